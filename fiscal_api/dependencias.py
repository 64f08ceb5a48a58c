# fiscal_api/dependencias.py
from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from fiscal_service.core.conta import ContaStore, ContaStoreMemoria
from fiscal_service.gateway import GatewayFiscal

# Cofre padrão em memória; em produção a aplicação troca por um cofre
# real via app.dependency_overrides[get_store].
_store = ContaStoreMemoria()


def get_store() -> ContaStore:
    return _store


def get_gateway(store: ContaStore = Depends(get_store)) -> GatewayFiscal:
    return GatewayFiscal(store)


def get_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> str:
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Header X-API-Key obrigatório.",
        )
    return x_api_key
