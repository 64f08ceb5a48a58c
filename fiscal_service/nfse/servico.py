# fiscal_service/nfse/servico.py
"""
Orquestração da NFS-e de São Paulo (leiaute v01-1):

    validação -> certificado -> assinatura dos RPS -> pedido -> assinatura
    do pedido (XML-DSig SHA-1) -> envio SOAP 1.1 -> normalização

Nada sai para a rede antes do lote estar validado e assinado.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.assinatura import PERFIL_SHA1, assinar_elemento
from ..core.certificado import CertificadoPFX, carregar_pfx
from ..core.config import settings
from ..core.enums import Ambiente, OperacaoNFSe
from ..core.erros import ErroMontagemDocumento, RespostaIlegivel
from ..core.resultado import ResultadoCanonico, ResultadoOperacao
from ..core.soap_client import SoapClient
from ..core.utils import montar_soap_debug
from .assinatura_rps import assinar_rps
from .normalizador import normalizar_resposta
from .soap import enviar_nfse
from .xml_builder import (
    montar_pedido_consulta_situacao_lote,
    montar_pedido_envio_lote,
    montar_pedido_envio_rps,
    validar_layout,
    validar_lote,
)

logger = logging.getLogger(__name__)


def _chaves_rps(rps_lista: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "inscricaoPrestador": str((rps.get("chaveRPS") or {}).get("inscricaoPrestador")),
            "serieRPS": str((rps.get("chaveRPS") or {}).get("serieRPS")),
            "numeroRPS": str((rps.get("chaveRPS") or {}).get("numeroRPS")),
        }
        for rps in rps_lista
    ]


@dataclass
class NFSeSPService:
    """
    Serviços da NFS-e paulistana para um tenant (certificado + ambiente).
    """

    pfx_data: bytes = field(repr=False)
    pfx_password: str = field(repr=False)
    ambiente: Ambiente = Ambiente.HOMOLOGACAO
    timeout: int = field(default_factory=lambda: settings.soap_timeout)
    verificar_ssl: bool = field(default_factory=lambda: settings.verificar_ssl)

    def __post_init__(self) -> None:
        try:
            self.ambiente = Ambiente.from_nome(self.ambiente)
        except ValueError as exc:
            raise ErroMontagemDocumento(str(exc), campo="ambiente") from exc

    # ------------------------------------------------------------------
    # infraestrutura
    # ------------------------------------------------------------------

    def _certificado(self) -> CertificadoPFX:
        return carregar_pfx(self.pfx_data, self.pfx_password)

    def _soap_client(self) -> SoapClient:
        return SoapClient(
            pfx_data=self.pfx_data,
            pfx_password=self.pfx_password,
            timeout=self.timeout,
            verificar_ssl=self.verificar_ssl,
        )

    def _assinar_rps(
        self, rps_lista: List[Dict[str, Any]], certificado: CertificadoPFX
    ) -> List[Dict[str, Any]]:
        return [{**rps, "assinatura": assinar_rps(rps, certificado)} for rps in rps_lista]

    def _transmitir(
        self,
        operacao: OperacaoNFSe,
        mensagem_xml: str,
        endpoint_override: Optional[str],
        incluir_soap: bool,
    ) -> tuple[ResultadoCanonico, Optional[Dict[str, Any]]]:
        resposta = enviar_nfse(
            self._soap_client(), operacao, mensagem_xml, self.ambiente, endpoint_override
        )
        soap = montar_soap_debug(resposta.request, resposta.response) if incluir_soap else None

        try:
            resultado = normalizar_resposta(resposta.response, operacao)
        except RespostaIlegivel as exc:
            exc.soap = soap
            raise
        return resultado, soap

    def _enviar_lote(
        self,
        operacao: OperacaoNFSe,
        layout_version: str,
        lote: Dict[str, Any],
        incluir_soap: bool,
        endpoint_override: Optional[str],
    ) -> ResultadoOperacao:
        validar_layout(layout_version)
        validar_lote(lote)

        certificado = self._certificado()
        rps_assinados = self._assinar_rps(lote["rps"], certificado)
        pedido = montar_pedido_envio_lote(lote["cabecalho"], rps_assinados)
        logger.debug("PedidoEnvioLoteRPS montado (%d RPS, %d bytes)", len(rps_assinados), len(pedido))

        xml_assinado = assinar_elemento(pedido, certificado, PERFIL_SHA1)

        resultado, soap = self._transmitir(operacao, xml_assinado, endpoint_override, incluir_soap)
        identificadores: Dict[str, Any] = {
            "layoutVersion": layout_version,
            "qtdRPS": len(rps_assinados),
            "rps": _chaves_rps(rps_assinados),
        }
        if resultado.lot_info is not None and resultado.lot_info.numero_lote:
            identificadores["numeroProtocolo"] = resultado.lot_info.numero_lote
        return ResultadoOperacao(
            resultado=resultado,
            identificadores=identificadores,
            xml_assinado=xml_assinado,
            soap=soap,
        )

    # ------------------------------------------------------------------
    # operações
    # ------------------------------------------------------------------

    def enviar_lote_async(
        self,
        layout_version: str,
        lote: Dict[str, Any],
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """
        Lote de RPS (EnvioLoteRPS). O retorno traz o protocolo; as notas saem
        na consulta de situação do lote.
        """
        return self._enviar_lote(
            OperacaoNFSe.ENVIO_LOTE_RPS, layout_version, lote, incluir_soap, endpoint_override
        )

    def testar_envio_lote(
        self,
        layout_version: str,
        lote: Dict[str, Any],
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """TesteEnvioLoteRPS: só valida o lote na prefeitura, não gera notas."""
        return self._enviar_lote(
            OperacaoNFSe.TESTE_ENVIO_LOTE_RPS, layout_version, lote, incluir_soap, endpoint_override
        )

    def enviar_rps_sincrono(
        self,
        layout_version: str,
        lote: Dict[str, Any],
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """
        EnvioRPS: um único RPS, processado na hora (PedidoEnvioRPS).
        """
        validar_layout(layout_version)
        validar_lote(lote)
        if len(lote["rps"]) != 1:
            raise ErroMontagemDocumento(
                "Envio síncrono aceita um único RPS", campo="lote.rps"
            )

        certificado = self._certificado()
        rps_assinado = self._assinar_rps(lote["rps"], certificado)[0]
        pedido = montar_pedido_envio_rps(lote["cabecalho"]["cpfCnpjRemetente"], rps_assinado)
        xml_assinado = assinar_elemento(pedido, certificado, PERFIL_SHA1)

        resultado, soap = self._transmitir(
            OperacaoNFSe.ENVIO_RPS, xml_assinado, endpoint_override, incluir_soap
        )
        return ResultadoOperacao(
            resultado=resultado,
            identificadores={
                "layoutVersion": layout_version,
                "rps": _chaves_rps([rps_assinado]),
            },
            xml_assinado=xml_assinado,
            soap=soap,
        )

    def consultar_situacao_lote(
        self,
        layout_version: str,
        cpf_cnpj_remetente: Dict[str, Any],
        numero_protocolo: str,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """
        ConsultaSituacaoLote pelo protocolo devolvido no envio do lote.
        """
        validar_layout(layout_version)
        pedido = montar_pedido_consulta_situacao_lote(cpf_cnpj_remetente, numero_protocolo)
        # Só abre o PFX para falhar cedo com senha ou arquivo inválidos
        self._certificado()

        resultado, soap = self._transmitir(
            OperacaoNFSe.CONSULTA_SITUACAO_LOTE, pedido, endpoint_override, incluir_soap
        )
        return ResultadoOperacao(
            resultado=resultado,
            identificadores={"layoutVersion": layout_version, "numeroProtocolo": str(numero_protocolo)},
            soap=soap,
        )
