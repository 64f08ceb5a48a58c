# fiscal_service/nfse/soap.py
"""
Envelope SOAP 1.1 e endpoints do webservice da NFS-e de São Paulo.

O pedido (já assinado) vai escapado dentro de <MensagemXML>. O WSDL usa
"versaoSchema" (minúsculo) nas operações assíncronas de lote e
"VersaoSchema" nas demais.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..core.config import settings
from ..core.enums import Ambiente, OperacaoNFSe
from ..core.soap_client import CONTENT_TYPE_SOAP11, RespostaSoap, SoapClient
from ..core.xml_utils import esc, strip_xml_declaration

logger = logging.getLogger(__name__)

SOAP11_NS = "http://schemas.xmlsoap.org/soap/envelope/"
NFSE_SP_WS_NS = "http://www.prefeitura.sp.gov.br/nfe"
VERSAO_SCHEMA = 1

SOAP_ACTIONS = {
    OperacaoNFSe.ENVIO_LOTE_RPS: f"{NFSE_SP_WS_NS}/ws/envioLoteRPSAsync",
    OperacaoNFSe.TESTE_ENVIO_LOTE_RPS: f"{NFSE_SP_WS_NS}/ws/testeEnvioLoteRPSAsync",
    OperacaoNFSe.ENVIO_RPS: f"{NFSE_SP_WS_NS}/ws/envioRPS",
    OperacaoNFSe.CONSULTA_SITUACAO_LOTE: f"{NFSE_SP_WS_NS}/ws/consultaSituacaoLote",
    OperacaoNFSe.CANCELAMENTO_NFE: f"{NFSE_SP_WS_NS}/ws/cancelamentoNFe",
}

# Operações atendidas pelo lotenfeasync.asmx
OPERACOES_ASSINCRONAS = {
    OperacaoNFSe.ENVIO_LOTE_RPS,
    OperacaoNFSe.TESTE_ENVIO_LOTE_RPS,
}


def tag_versao_schema(operacao: OperacaoNFSe) -> str:
    if operacao in OPERACOES_ASSINCRONAS:
        return "versaoSchema"
    return "VersaoSchema"


def montar_envelope(
    operacao: OperacaoNFSe,
    mensagem_xml: str,
    versao_schema: int = VERSAO_SCHEMA,
) -> str:
    """
    <soap:Envelope>
      <soap:Body>
        <tns:{Operacao}Request>
          <versaoSchema>1</versaoSchema>
          <MensagemXML>{pedido escapado}</MensagemXML>
        </tns:{Operacao}Request>
      </soap:Body>
    </soap:Envelope>
    """
    tag_versao = tag_versao_schema(operacao)
    mensagem = esc(strip_xml_declaration(mensagem_xml))
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<soap:Envelope xmlns:soap="{SOAP11_NS}" xmlns:tns="{NFSE_SP_WS_NS}">'
        "<soap:Body>"
        f"<tns:{operacao.value}Request>"
        f"<{tag_versao}>{versao_schema}</{tag_versao}>"
        f"<MensagemXML>{mensagem}</MensagemXML>"
        f"</tns:{operacao.value}Request>"
        "</soap:Body>"
        "</soap:Envelope>"
    )


def url_endpoint(operacao: OperacaoNFSe, ambiente: Ambiente) -> str:
    """
    URL do webservice para a operação. Lote assíncrono no lotenfeasync.asmx,
    o resto no lotenfe.asmx. Valores em settings (FISCAL_NFSE_SP_URL_*).
    """
    producao = Ambiente.from_nome(ambiente).producao
    if operacao in OPERACOES_ASSINCRONAS:
        if producao:
            return settings.nfse_sp_url_async_producao
        return settings.nfse_sp_url_async_homologacao
    if producao:
        return settings.nfse_sp_url_sync_producao
    return settings.nfse_sp_url_sync_homologacao


def enviar_nfse(
    client: SoapClient,
    operacao: OperacaoNFSe,
    mensagem_xml: str,
    ambiente: Ambiente,
    endpoint_override: Optional[str] = None,
) -> RespostaSoap:
    """
    Envelopa o pedido e envia via SOAP 1.1 (uma tentativa, sem retry).
    """
    url = endpoint_override or url_endpoint(operacao, ambiente)
    envelope = montar_envelope(operacao, mensagem_xml)
    logger.info("NFS-e SP %s: ambiente=%s endpoint=%s", operacao.value, ambiente.name, url)
    logger.debug("Envelope NFS-e montado (%d bytes)", len(envelope))
    return client.post_xml(
        url,
        envelope,
        content_type=CONTENT_TYPE_SOAP11,
        soap_action=SOAP_ACTIONS[operacao],
    )
