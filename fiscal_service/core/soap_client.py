# fiscal_service/core/soap_client.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from lxml import etree
import requests
from requests_pkcs12 import Pkcs12Adapter

from .erros import (
    AcessoNegado,
    EndpointNaoEncontrado,
    ErroServidorRemoto,
    FalhaSoap,
    FalhaTransporte,
    NaoAutorizado,
    SemResposta,
)
from .xml_utils import descendente, parse_xml, texto

logger = logging.getLogger(__name__)

CONTENT_TYPE_SOAP11 = "text/xml; charset=utf-8"
CONTENT_TYPE_SOAP12 = "application/soap+xml; charset=utf-8"


@dataclass
class RespostaSoap:
    """Par envelope enviado / corpo recebido (com o status HTTP)."""

    request: str
    response: str
    status: int


@dataclass
class SoapClient:
    """
    Cliente SOAP com TLS mútuo a partir do PKCS#12 do tenant.
    - Os bytes do PFX vêm do cofre de contas; nada é gravado em disco.
    """

    pfx_data: bytes             # Conteúdo do .pfx
    pfx_password: str           # Senha do PFX
    timeout: int = 60           # Timeout padrão (segundos)
    verificar_ssl: bool = True

    def _get_session(self) -> requests.Session:
        """
        Cria uma sessão HTTPS configurada com o PFX.
        """
        session = requests.Session()
        session.mount("https://", Pkcs12Adapter(
            pkcs12_data=self.pfx_data,
            pkcs12_password=self.pfx_password,
        ))
        return session

    def post_xml(
        self,
        url: str,
        xml: str,
        content_type: str = CONTENT_TYPE_SOAP11,
        soap_action: Optional[str] = None,
    ) -> RespostaSoap:
        """
        Envia o envelope via POST e devolve o par envio/retorno.
        Status >= 400 e falhas de rede viram FalhaTransporte (e subclasses).
        """
        headers = {"Content-Type": content_type}
        if soap_action:
            headers["SOAPAction"] = soap_action

        logger.info("POST SOAP %s (action=%s)", url, soap_action or "-")

        session = self._get_session()
        try:
            response = session.post(
                url=url,
                data=xml.encode("utf-8"),
                headers=headers,
                timeout=self.timeout,
                verify=self.verificar_ssl,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            logger.warning("Sem resposta de %s: %s", url, exc)
            raise SemResposta(url=url) from exc
        except requests.RequestException as exc:
            raise FalhaTransporte(f"Erro ao conectar ao servidor: {exc}", url=url) from exc
        finally:
            session.close()

        status = response.status_code
        logger.info("Resposta SOAP %s: HTTP %s", url, status)
        if "charset" not in response.headers.get("Content-Type", "").lower():
            # Sem charset declarado o requests assume ISO-8859-1
            response.encoding = "utf-8"
        corpo = response.text
        _verificar_status(status, url, corpo)

        return RespostaSoap(request=xml, response=corpo, status=status)


def _verificar_status(status: int, url: str, corpo: str = "") -> None:
    if status < 400:
        return
    logger.warning("HTTP %s em %s", status, url)
    if status == 401:
        raise NaoAutorizado(status_http=status, url=url)
    if status == 403:
        raise AcessoNegado(status_http=status, url=url)
    if status == 404:
        raise EndpointNaoEncontrado(
            f"Serviço não encontrado (404): {url}", status_http=status, url=url
        )
    if status >= 500:
        # Fault SOAP costuma vir com HTTP 500
        try:
            root = parse_xml(corpo)
        except (etree.XMLSyntaxError, ValueError):
            root = None
        if root is not None:
            verificar_fault(root)
        erro = ErroServidorRemoto(
            f"Erro interno do servidor remoto ({status}).", status_http=status, url=url
        )
        erro.detalhe["body"] = corpo
        raise erro
    raise FalhaTransporte(f"Erro HTTP {status} do servidor remoto.", status_http=status, url=url)


def verificar_fault(root) -> None:
    """
    Levanta FalhaSoap se o envelope trouxer <Fault> (SOAP 1.1 ou 1.2).
    1.1: <faultstring>; 1.2: <Reason><Text>.
    """
    fault = descendente(root, "Fault")
    if fault is None:
        return
    mensagem = texto(descendente(fault, "faultstring"))
    if not mensagem:
        mensagem = texto(descendente(descendente(fault, "Reason"), "Text"))
    logger.warning("SOAP Fault recebido: %s", mensagem)
    raise FalhaSoap(mensagem or None)
