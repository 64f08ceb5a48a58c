"""
Configuração do gateway fiscal.

Valores lidos do ambiente (prefixo FISCAL_) ou do arquivo .env.
A tabela de endpoints da NF-e não é configurável: fica em soaplist.py.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "fiscal-gateway"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Transporte SOAP
    soap_timeout: int = 60
    verificar_ssl: bool = True

    # NFS-e São Paulo (lote assíncrono e envio síncrono).
    # As URLs de homologação não são documentadas oficialmente pela
    # prefeitura; conferir com o WSDL vigente antes de usar.
    nfse_sp_url_async_producao: str = "https://nfews.prefeitura.sp.gov.br/lotenfeasync.asmx"
    nfse_sp_url_async_homologacao: str = (
        "https://nfews-homologacao.prefeitura.sp.gov.br/lotenfeasync.asmx"
    )
    nfse_sp_url_sync_producao: str = "https://nfe.prefeitura.sp.gov.br/ws/lotenfe.asmx"
    nfse_sp_url_sync_homologacao: str = (
        "https://nfews-homologacao.prefeitura.sp.gov.br/lotenfe.asmx"
    )

    model_config = SettingsConfigDict(
        env_prefix="FISCAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def configurar_logging(nivel: str | None = None) -> None:
    """Configura o logging raiz uma única vez (chamado pela API no startup)."""
    logging.basicConfig(
        level=(nivel or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
