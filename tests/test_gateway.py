import pytest

from fiscal_service.core.conta import Conta, ContaNaoEncontrada, ContaStoreMemoria
from fiscal_service.core.enums import Ambiente, FamiliaDocumento
from fiscal_service.core.erros import CertificadoNaoEncontrado, ErroMontagemDocumento
from fiscal_service.gateway import GatewayFiscal

from respostas import envelope_nfse, retorno_envio_lote, retorno_lote_async, retorno_situacao_lote

API_KEY = "chave-do-tenant"


class TestContaStore:
    def test_conta_inexistente(self):
        with pytest.raises(ContaNaoEncontrada):
            ContaStoreMemoria().carregar("nada")

    def test_repr_nao_expoe_certificado(self):
        conta = Conta(certificado=b"segredo", senha="senha", cnpj="52507723000185")
        assert "segredo" not in repr(conta)
        assert "senha=" not in repr(conta)


class TestGatewayFiscal:
    def setup_method(self):
        self.store = ContaStoreMemoria()
        self.gateway = GatewayFiscal(self.store)

    def _registrar(self, pfx):
        dados, senha = pfx
        self.store.registrar(API_KEY, Conta(certificado=dados, senha=senha, cnpj="52507723000185"))

    def test_sem_conta_vira_certificado_nao_encontrado(self):
        with pytest.raises(CertificadoNaoEncontrado) as exc:
            self.gateway.carregar_conta("desconhecida")
        assert exc.value.codigo == "CERTIFICATE_NOT_FOUND"

    def test_conta_sem_certificado(self):
        self.store.registrar(API_KEY, Conta(certificado=b"", senha="x", cnpj="52507723000185"))
        with pytest.raises(CertificadoNaoEncontrado):
            self.gateway.carregar_conta(API_KEY)

    def test_servicos_com_ambiente(self, pfx):
        self._registrar(pfx)
        assert self.gateway.servico_nfe(API_KEY, "producao").ambiente is Ambiente.PRODUCAO
        assert self.gateway.servico_nfse_sp(API_KEY, "2").ambiente is Ambiente.HOMOLOGACAO

    @pytest.mark.parametrize("ambiente", ["prod", "homolog", "3"])
    def test_ambiente_desconhecido(self, pfx, ambiente):
        self._registrar(pfx)
        with pytest.raises(ErroMontagemDocumento) as exc:
            self.gateway.servico_nfe(API_KEY, ambiente)
        assert exc.value.campo == "ambiente"

    def test_familia_desconhecida(self, pfx):
        self._registrar(pfx)
        with pytest.raises(ErroMontagemDocumento) as exc:
            self.gateway.emitir("cte", "homologacao", {}, API_KEY)
        assert exc.value.campo == "documentFamily"

    def test_emitir_nfse(self, pfx, sessao, lote_nfse):
        self._registrar(pfx)
        sessao.responder(envelope_nfse("EnvioLoteRPSAsyncResponse", retorno_lote_async()))
        resultado = self.gateway.emitir(
            FamiliaDocumento.NFSE_SP,
            "homologacao",
            {"layoutVersion": "v01-1", "lote": lote_nfse},
            API_KEY,
        )
        assert resultado.identificadores["numeroProtocolo"] == "1234567890"

    def test_consultar_nfse_usa_cnpj_da_conta(self, pfx, sessao):
        self._registrar(pfx)
        sessao.responder(envelope_nfse(
            "ConsultaSituacaoLoteResponse", retorno_situacao_lote(retorno_envio_lote())
        ))
        self.gateway.consultar("nfse-sp", "homologacao", "1234567890", API_KEY)
        assert "&lt;CNPJ&gt;52507723000185&lt;/CNPJ&gt;" in sessao.chamadas[0]["data"]

    def test_cancelar_so_nfe(self, pfx, sessao):
        self._registrar(pfx)
        with pytest.raises(ErroMontagemDocumento):
            self.gateway.cancelar(
                FamiliaDocumento.NFSE_SP, "homologacao", "123", "Justificativa longa o bastante", API_KEY
            )
        assert sessao.chamadas == []
