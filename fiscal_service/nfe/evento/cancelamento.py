from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...core.xml_utils import xml_tag
from ..chave import TIPO_EVENTO_CANCELAMENTO
from .base import EventoMontado, NFeEventoBase


@dataclass
class NFeEventoCancelamento(NFeEventoBase):
    """
    Monta o XML do evento de Cancelamento de NFe (110111).
    """

    def montar_xml(
        self,
        chave: str,
        n_protocolo: str | int,
        justificativa: str,
        cnpj: str,
        sequencia: int = 1,
        id_lote: str | int = 1,
        c_orgao: Optional[str | int] = None,
        dh_evento: Optional[str] = None,
    ) -> EventoMontado:
        """
        - chave: chave de acesso da NFe
        - n_protocolo: protocolo de autorização
        - justificativa: texto da justificativa (mínimo 15 caracteres, validado antes)
        - cnpj: CNPJ/CPF autor do evento
        - sequencia: número sequencial do evento (default 1)
        """
        det = '<detEvento versao="1.00">'
        det += xml_tag("descEvento", "Cancelamento")
        det += xml_tag("nProt", str(n_protocolo))
        det += xml_tag("xJust", justificativa)
        det += "</detEvento>"

        evento, id_evento = self.montar_evento(
            chave=chave,
            tipo_evento=TIPO_EVENTO_CANCELAMENTO,
            sequencia=sequencia,
            xml_det_evento=det,
            cnpj=cnpj,
            c_orgao=c_orgao,
            dh_evento=dh_evento,
        )
        return EventoMontado(
            env_evento_xml=self.montar_envio_lote(id_lote, evento),
            evento_xml=evento,
            id_evento=id_evento,
        )
