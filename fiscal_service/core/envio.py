# fiscal_service/core/envio.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from lxml import etree

from .enums import ServicoNFe
from .soap_client import CONTENT_TYPE_SOAP12, RespostaSoap, SoapClient
from .xml_utils import local_name, parse_xml, strip_xml_declaration

logger = logging.getLogger(__name__)

NFE_NS = "http://www.portalfiscal.inf.br/nfe"
SOAP12_NS = "http://www.w3.org/2003/05/soap-envelope"

# Namespaces dos WSDL da NF-e 4.00 (atenção à caixa: "Nfe" x "NFe")
SERVICE_NAMESPACE = {
    ServicoNFe.AUTORIZACAO: "http://www.portalfiscal.inf.br/nfe/wsdl/NFeAutorizacao4",
    ServicoNFe.CONSULTA_PROTOCOLO: "http://www.portalfiscal.inf.br/nfe/wsdl/NfeConsultaProtocolo4",
    ServicoNFe.INUTILIZACAO: "http://www.portalfiscal.inf.br/nfe/wsdl/NfeInutilizacao4",
    ServicoNFe.RECEPCAO_EVENTO: "http://www.portalfiscal.inf.br/nfe/wsdl/NFeRecepcaoEvento4",
    ServicoNFe.STATUS_SERVICO: "http://www.portalfiscal.inf.br/nfe/wsdl/NFeStatusServico4",
}


@dataclass
class EndpointInfo:
    url: str
    namespace: str


def montar_soap_envelope(
    payload_xml: str,
    c_uf: str | int,
    namespace: str,
    versao_dados: str = "4.00",
) -> str:
    """
    Monta o envelope SOAP 1.2 da NF-e:

    <soap12:Envelope xmlns:xsi=... xmlns:xsd=... xmlns:soap12=...>
      <soap12:Header>
        <nfeCabecMsg xmlns="{namespace}">
          <cUF>35</cUF>
          <versaoDados>4.00</versaoDados>
        </nfeCabecMsg>
      </soap12:Header>
      <soap12:Body>
        <nfeDadosMsg xmlns="{namespace}">{payload}</nfeDadosMsg>
      </soap12:Body>
    </soap12:Envelope>

    Sem quebras de linha: o payload assinado não pode ganhar whitespace.
    """
    payload = strip_xml_declaration(payload_xml).strip()
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        "<soap12:Envelope"
        ' xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"'
        ' xmlns:xsd="http://www.w3.org/2001/XMLSchema"'
        f' xmlns:soap12="{SOAP12_NS}">'
        "<soap12:Header>"
        f'<nfeCabecMsg xmlns="{namespace}">'
        f"<cUF>{c_uf}</cUF>"
        f"<versaoDados>{versao_dados}</versaoDados>"
        "</nfeCabecMsg>"
        "</soap12:Header>"
        "<soap12:Body>"
        f'<nfeDadosMsg xmlns="{namespace}">'
        f"{payload}"
        "</nfeDadosMsg>"
        "</soap12:Body>"
        "</soap12:Envelope>"
    )


def enviar_soap_nfe(
    client: SoapClient,
    endpoint: EndpointInfo,
    payload_xml: str,
    c_uf: str | int,
) -> RespostaSoap:
    """
    Envelopa o payload e envia via SOAP 1.2 (uma tentativa, sem retry).
    """
    envelope = montar_soap_envelope(payload_xml, c_uf, endpoint.namespace)
    logger.debug("Envelope NF-e montado (%d bytes) para %s", len(envelope), endpoint.url)
    return client.post_xml(endpoint.url, envelope, content_type=CONTENT_TYPE_SOAP12)


def extrair_xml_resultado(resp_xml: str) -> Optional[etree._Element]:
    """
    A partir do SOAP de resposta, devolve o primeiro filho de <nfeResultMsg>
    (retEnviNFe, retConsSitNFe, ...). Procura por local-name, então aceita
    qualquer prefixo ou namespace do WSDL. None se não encontrar.
    """
    root = parse_xml(resp_xml)

    for elem in root.iter():
        if not isinstance(elem.tag, str):
            continue
        if local_name(elem) == "nfeResultMsg":
            filhos = [f for f in elem if isinstance(f.tag, str)]
            return filhos[0] if filhos else None

    # Alguns servidores devolvem o retorno direto no Body
    for elem in root.iter():
        if isinstance(elem.tag, str) and local_name(elem).startswith("ret"):
            return elem
    return None
