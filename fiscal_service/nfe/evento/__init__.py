from .base import EventoMontado, NFeEventoBase
from .cancelamento import NFeEventoCancelamento

__all__ = [
    "EventoMontado",
    "NFeEventoBase",
    "NFeEventoCancelamento",
]
