# fiscal_service/core/erros.py
from __future__ import annotations

from typing import Any, Dict, Optional


class ErroFiscal(Exception):
    """
    Base de todos os erros do gateway.

    - codigo: código estável (usado pelo chamador para decidir a ação)
    - mensagem: texto legível para o tenant
    - detalhe: dados extras, só expostos em modo debug
    """

    codigo = "FISCAL_ERROR"
    mensagem_padrao = "Erro ao processar documento fiscal"

    def __init__(
        self,
        mensagem: Optional[str] = None,
        detalhe: Optional[Dict[str, Any]] = None,
    ):
        self.mensagem = mensagem or self.mensagem_padrao
        self.detalhe = detalhe or {}
        super().__init__(self.mensagem)

    def to_dict(self, debug: bool = False) -> Dict[str, Any]:
        dados: Dict[str, Any] = {"code": self.codigo, "message": self.mensagem}
        if debug and self.detalhe:
            dados["details"] = self.detalhe
        return dados


# ----------------------------------------------------------------------
# Certificado
# ----------------------------------------------------------------------


class CertificadoNaoEncontrado(ErroFiscal):
    codigo = "CERTIFICATE_NOT_FOUND"
    mensagem_padrao = "Certificado não encontrado para esta API Key"


class CertificadoInvalido(ErroFiscal):
    codigo = "INVALID_CERTIFICATE"
    mensagem_padrao = "Certificado digital inválido ou sem chave privada"


class SenhaInvalida(ErroFiscal):
    codigo = "INVALID_PASSWORD"
    mensagem_padrao = "Senha do certificado inválida"


# ----------------------------------------------------------------------
# Montagem / assinatura
# ----------------------------------------------------------------------


class ErroMontagemDocumento(ErroFiscal):
    codigo = "DOCUMENT_BUILD_ERROR"
    mensagem_padrao = "Dados do documento incompletos ou inválidos"

    def __init__(
        self,
        mensagem: Optional[str] = None,
        campo: Optional[str] = None,
        detalhe: Optional[Dict[str, Any]] = None,
    ):
        self.campo = campo
        detalhe = dict(detalhe or {})
        if campo:
            detalhe.setdefault("campo", campo)
        super().__init__(mensagem, detalhe)


class TamanhoChaveInvalido(ErroMontagemDocumento):
    codigo = "INVALID_KEY_LENGTH"
    mensagem_padrao = "Chave base inválida: esperado 43 dígitos"


class ErroAssinatura(ErroFiscal):
    codigo = "SIGNING_ERROR"
    mensagem_padrao = "Erro ao assinar documento"


# ----------------------------------------------------------------------
# Transporte
# ----------------------------------------------------------------------


class FalhaTransporte(ErroFiscal):
    codigo = "TRANSPORT_FAILURE"
    mensagem_padrao = "Falha de comunicação com o webservice"

    def __init__(
        self,
        mensagem: Optional[str] = None,
        status_http: Optional[int] = None,
        url: Optional[str] = None,
    ):
        self.status_http = status_http
        self.url = url
        detalhe: Dict[str, Any] = {}
        if status_http is not None:
            detalhe["status"] = status_http
        if url:
            detalhe["url"] = url
        super().__init__(mensagem, detalhe)


class NaoAutorizado(FalhaTransporte):
    codigo = "UNAUTHORIZED"
    mensagem_padrao = "Não autorizado (401). Verifique o certificado digital."


class AcessoNegado(FalhaTransporte):
    codigo = "FORBIDDEN"
    mensagem_padrao = "Acesso negado (403). Certificado não autorizado ou IP bloqueado."


class EndpointNaoEncontrado(FalhaTransporte):
    codigo = "ENDPOINT_NOT_FOUND"
    mensagem_padrao = "Serviço não encontrado (404)"


class ErroServidorRemoto(FalhaTransporte):
    codigo = "UPSTREAM_SERVER_ERROR"
    mensagem_padrao = "Erro interno do servidor remoto"


class SemResposta(FalhaTransporte):
    codigo = "NO_RESPONSE"
    mensagem_padrao = "Sem resposta do servidor. Verifique a conexão de rede."


# ----------------------------------------------------------------------
# Resposta
# ----------------------------------------------------------------------


class FalhaSoap(ErroFiscal):
    codigo = "UPSTREAM_FAULT"
    mensagem_padrao = "SOAP Fault retornado pelo webservice"

    def __init__(self, fault_string: Optional[str] = None):
        self.fault_string = fault_string or "Erro desconhecido"
        super().__init__(
            f"SOAP Fault: {self.fault_string}",
            {"faultstring": self.fault_string},
        )


class RespostaIlegivel(ErroFiscal):
    """
    Resposta sem o wrapper esperado. Guarda o XML bruto (e, se pedido,
    o par SOAP compactado) para inspeção manual.
    """

    codigo = "UPSTREAM_RESPONSE_UNPARSEABLE"
    mensagem_padrao = "Resposta do webservice em formato não reconhecido"

    def __init__(self, mensagem: Optional[str] = None, resposta_bruta: str = ""):
        self.resposta_bruta = resposta_bruta
        self.soap: Optional[Dict[str, Any]] = None
        super().__init__(mensagem, {"rawResponse": resposta_bruta})
