# core/enums.py
from enum import Enum


class Ambiente(str, Enum):
    HOMOLOGACAO = "2"
    PRODUCAO = "1"

    @classmethod
    def from_nome(cls, valor: "str | Ambiente | None") -> "Ambiente":
        """
        Aceita 'producao' / 'homologacao' (API) ou '1' / '2' (tpAmb).
        Ausente => homologação; qualquer outro valor é ValueError.
        """
        if isinstance(valor, Ambiente):
            return valor
        valor = str(valor or "").strip().lower()
        if valor in {"1", "producao", "produção", "production"}:
            return cls.PRODUCAO
        if valor in {"", "2", "homologacao", "homologação", "homologation"}:
            return cls.HOMOLOGACAO
        raise ValueError(f"Ambiente inválido: {valor!r}")

    @property
    def producao(self) -> bool:
        return self is Ambiente.PRODUCAO


class FamiliaDocumento(str, Enum):
    NFE = "nfe"
    NFSE_SP = "nfse-sp"


class ServicoNFe(str, Enum):
    """
    Serviços SOAP da NF-e 4.00 usados pelo gateway.
    """
    AUTORIZACAO = "autorizacao"
    CONSULTA_PROTOCOLO = "consultaProtocolo"
    INUTILIZACAO = "inutilizacao"
    RECEPCAO_EVENTO = "recepcaoEvento"
    STATUS_SERVICO = "statusServico"


class OperacaoNFSe(str, Enum):
    """
    Operações do webservice da NFS-e de São Paulo.
    """
    ENVIO_LOTE_RPS = "EnvioLoteRPS"
    TESTE_ENVIO_LOTE_RPS = "TesteEnvioLoteRPS"
    ENVIO_RPS = "EnvioRPS"
    CONSULTA_SITUACAO_LOTE = "ConsultaSituacaoLote"
    CANCELAMENTO_NFE = "CancelamentoNFe"
