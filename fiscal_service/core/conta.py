# fiscal_service/core/conta.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class ContaNaoEncontrada(LookupError):
    """API Key sem conta cadastrada."""


@dataclass(frozen=True)
class Conta:
    """
    Registro da conta do tenant, como entregue pelo cofre externo.
    O certificado já vem decifrado; só existe em memória durante a chamada.
    """
    certificado: bytes
    senha: str
    cnpj: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Conta(cnpj={self.cnpj!r}, metadata={self.metadata!r})"


class ContaStore(Protocol):
    def carregar(self, api_key: str) -> Conta:
        ...


class ContaStoreMemoria:
    """
    Cofre em memória (testes e execução local).
    """

    def __init__(self, contas: Optional[Dict[str, Conta]] = None):
        self._contas: Dict[str, Conta] = dict(contas or {})

    def registrar(self, api_key: str, conta: Conta) -> None:
        self._contas[api_key] = conta

    def carregar(self, api_key: str) -> Conta:
        try:
            return self._contas[api_key]
        except KeyError:
            logger.info("API Key sem conta cadastrada")
            raise ContaNaoEncontrada("Conta não encontrada para esta API Key") from None
