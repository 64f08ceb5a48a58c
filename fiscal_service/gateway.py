# fiscal_service/gateway.py
"""
Fachada do gateway: emitir / consultar / cancelar por família de documento.

A conta (certificado + senha + CNPJ) vem do cofre pela API Key; cada chamada
monta o seu próprio serviço, sem estado compartilhado entre requisições.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .core.conta import Conta, ContaNaoEncontrada, ContaStore
from .core.enums import Ambiente, FamiliaDocumento
from .core.erros import CertificadoNaoEncontrado, ErroMontagemDocumento
from .core.resultado import ResultadoOperacao
from .nfe.servico import NFeService
from .nfse.servico import NFSeSPService
from .nfse.xml_builder import LAYOUT_SUPORTADO

logger = logging.getLogger(__name__)


def _familia(valor: FamiliaDocumento | str) -> FamiliaDocumento:
    try:
        return FamiliaDocumento(valor)
    except ValueError as exc:
        raise ErroMontagemDocumento(
            f"Família de documento não suportada: {valor!r}", campo="documentFamily"
        ) from exc


class GatewayFiscal:
    def __init__(self, store: ContaStore):
        self.store = store

    # ------------------------------------------------------------------
    # conta / serviços
    # ------------------------------------------------------------------

    def carregar_conta(self, api_key: str) -> Conta:
        try:
            conta = self.store.carregar(api_key)
        except ContaNaoEncontrada as exc:
            raise CertificadoNaoEncontrado() from exc
        if not conta.certificado:
            raise CertificadoNaoEncontrado()
        return conta

    def servico_nfe(self, api_key: str, ambiente: Ambiente | str) -> NFeService:
        conta = self.carregar_conta(api_key)
        return NFeService(pfx_data=conta.certificado, pfx_password=conta.senha, ambiente=ambiente)

    def servico_nfse_sp(self, api_key: str, ambiente: Ambiente | str) -> NFSeSPService:
        conta = self.carregar_conta(api_key)
        return NFSeSPService(pfx_data=conta.certificado, pfx_password=conta.senha, ambiente=ambiente)

    # ------------------------------------------------------------------
    # operações
    # ------------------------------------------------------------------

    def emitir(
        self,
        familia: FamiliaDocumento | str,
        ambiente: Ambiente | str,
        payload: Dict[str, Any],
        api_key: str,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
        **opcoes: Any,
    ) -> ResultadoOperacao:
        """
        - nfe: payload é o JSON da NF-e (ide, emit, det, ...);
          opções id_lote e ind_sinc.
        - nfse-sp: payload é {"layoutVersion", "lote"}; envia o lote assíncrono.
        """
        familia = _familia(familia)
        logger.info("emitir %s (ambiente=%s)", familia.value, ambiente)

        if familia is FamiliaDocumento.NFE:
            return self.servico_nfe(api_key, ambiente).emitir(
                payload,
                id_lote=opcoes.get("id_lote", 1),
                ind_sinc=opcoes.get("ind_sinc", 1),
                incluir_soap=incluir_soap,
                endpoint_override=endpoint_override,
            )

        return self.servico_nfse_sp(api_key, ambiente).enviar_lote_async(
            payload.get("layoutVersion"),
            payload.get("lote"),
            incluir_soap=incluir_soap,
            endpoint_override=endpoint_override,
        )

    def consultar(
        self,
        familia: FamiliaDocumento | str,
        ambiente: Ambiente | str,
        protocolo_ou_chave: str,
        api_key: str,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
        **opcoes: Any,
    ) -> ResultadoOperacao:
        """
        - nfe: consulta pela chave de acesso (opção c_uf).
        - nfse-sp: situação do lote pelo protocolo; o remetente padrão é o
          CNPJ da conta (opções cpf_cnpj_remetente e layout_version).
        """
        familia = _familia(familia)

        if familia is FamiliaDocumento.NFE:
            return self.servico_nfe(api_key, ambiente).consultar(
                protocolo_ou_chave,
                c_uf=opcoes.get("c_uf"),
                incluir_soap=incluir_soap,
                endpoint_override=endpoint_override,
            )

        conta = self.carregar_conta(api_key)
        remetente = opcoes.get("cpf_cnpj_remetente") or {"cnpj": conta.cnpj}
        servico = NFSeSPService(pfx_data=conta.certificado, pfx_password=conta.senha, ambiente=ambiente)
        return servico.consultar_situacao_lote(
            opcoes.get("layout_version", LAYOUT_SUPORTADO),
            remetente,
            protocolo_ou_chave,
            incluir_soap=incluir_soap,
            endpoint_override=endpoint_override,
        )

    def cancelar(
        self,
        familia: FamiliaDocumento | str,
        ambiente: Ambiente | str,
        chave: str,
        justificativa: str,
        api_key: str,
        n_prot: str = "",
        cnpj: Optional[str] = None,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
        **opcoes: Any,
    ) -> ResultadoOperacao:
        """
        Cancelamento (só NF-e). A justificativa já chega validada (>= 15).
        CNPJ do autor padrão: o da conta.
        """
        familia = _familia(familia)
        if familia is not FamiliaDocumento.NFE:
            raise ErroMontagemDocumento(
                "Cancelamento disponível apenas para NF-e", campo="documentFamily"
            )

        conta = self.carregar_conta(api_key)
        servico = NFeService(pfx_data=conta.certificado, pfx_password=conta.senha, ambiente=ambiente)
        return servico.cancelar(
            chave,
            n_prot,
            justificativa,
            cnpj or conta.cnpj,
            n_seq_evento=opcoes.get("n_seq_evento", 1),
            dh_evento=opcoes.get("dh_evento"),
            id_lote=opcoes.get("id_lote", 1),
            c_uf=opcoes.get("c_uf"),
            incluir_soap=incluir_soap,
            endpoint_override=endpoint_override,
        )
