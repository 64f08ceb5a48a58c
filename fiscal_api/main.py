# fiscal_api/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fiscal_service.core.config import configurar_logging, settings
from fiscal_service.core.erros import (
    CertificadoInvalido,
    CertificadoNaoEncontrado,
    ErroFiscal,
    ErroMontagemDocumento,
    FalhaSoap,
    FalhaTransporte,
    RespostaIlegivel,
    SenhaInvalida,
)

from .nfe_router import router as nfe_router
from .nfse_router import router as nfse_router

logger = logging.getLogger(__name__)

configurar_logging(settings.log_level)

app = FastAPI(
    title="Fiscal Gateway API",
    version=settings.app_version,
    description="API para emissão de NF-e e NFS-e (São Paulo): JSON -> XML assinado -> SOAP.",
)

# -------------------------------------------------------------------
# ERROS -> HTTP
# -------------------------------------------------------------------

# Ordem importa: subclasses antes das bases
STATUS_POR_ERRO = (
    (CertificadoNaoEncontrado, 404),
    (SenhaInvalida, 400),
    (CertificadoInvalido, 400),
    (ErroMontagemDocumento, 422),
    (FalhaTransporte, 502),
    (FalhaSoap, 502),
    (RespostaIlegivel, 502),
)


def status_http(exc: ErroFiscal) -> int:
    for tipo, status in STATUS_POR_ERRO:
        if isinstance(exc, tipo):
            return status
    return 500


@app.exception_handler(ErroFiscal)
async def erro_fiscal_handler(request: Request, exc: ErroFiscal):
    status = status_http(exc)
    logger.warning("%s %s -> %s %s", request.method, request.url.path, status, exc.codigo)

    corpo = {"success": False, "error": exc.to_dict(debug=settings.debug)}
    if isinstance(exc, RespostaIlegivel) and exc.soap is not None:
        corpo["soap"] = exc.soap
    return JSONResponse(status_code=status, content=corpo)


# -------------------------------------------------------------------
# ROTAS
# -------------------------------------------------------------------


@app.get("/health", summary="Verificação de saúde")
def health():
    return {"status": "ok", "app": settings.app_name, "version": settings.app_version}


app.include_router(nfe_router)
app.include_router(nfse_router)
