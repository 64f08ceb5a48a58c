from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...core.enums import Ambiente
from ...core.erros import ErroMontagemDocumento
from ...core.xml_utils import xml_tag, now_sefaz_datetime, only_digits, strip_xml_declaration
from ..chave import montar_id_evento

NFE_EVENTO_NS = "http://www.portalfiscal.inf.br/nfe"
EVENTO_VERSAO = "1.00"


@dataclass
class EventoMontado:
    """
    envEvento com o <evento> ainda sem assinatura.
    - evento_xml: trecho exato que será assinado e trocado dentro do lote
    - id_evento: Id do <infEvento> (referência "#ID...")
    """
    env_evento_xml: str
    evento_xml: str
    id_evento: str

    def com_evento_assinado(self, evento_assinado: str) -> str:
        return self.env_evento_xml.replace(
            self.evento_xml, strip_xml_declaration(evento_assinado), 1
        )


@dataclass
class NFeEventoBase:
    """
    Base para qualquer EVENTO de NFe (cancelamento, carta, etc).
    Responsável por montar <evento> e <envEvento>.
    """

    ambiente: Ambiente

    def montar_evento(
        self,
        chave: str,
        tipo_evento: str,
        sequencia: int,
        xml_det_evento: str,
        cnpj: str,
        c_orgao: Optional[str | int] = None,
        dh_evento: Optional[str] = None,
    ) -> tuple[str, str]:
        """
        Monta o XML <evento>...</evento> (sem o envEvento).
        Retorna (xml, id_evento).
        """
        chave = only_digits(chave)
        if len(chave) != 44:
            raise ErroMontagemDocumento("Chave de acesso (chNFe) deve ter 44 dígitos", campo="chNFe")

        cnpj_num = only_digits(cnpj)
        if not cnpj_num:
            raise ErroMontagemDocumento("CNPJ do autor do evento é obrigatório", campo="CNPJ")
        tag_cnpj = "CPF" if len(cnpj_num) == 11 else "CNPJ"

        c_orgao = c_orgao or chave[:2]
        id_evento = montar_id_evento(tipo_evento, chave, sequencia)

        xml = f'<evento versao="{EVENTO_VERSAO}" xmlns="{NFE_EVENTO_NS}">'
        xml += f'<infEvento Id="{id_evento}">'
        xml += xml_tag("cOrgao", c_orgao)
        xml += xml_tag("tpAmb", self.ambiente.value)
        xml += xml_tag(tag_cnpj, cnpj_num)
        xml += xml_tag("chNFe", chave)
        xml += xml_tag("dhEvento", dh_evento or now_sefaz_datetime())
        xml += xml_tag("tpEvento", tipo_evento)
        xml += xml_tag("nSeqEvento", str(int(sequencia)))
        xml += xml_tag("verEvento", EVENTO_VERSAO)
        xml += xml_det_evento
        xml += "</infEvento></evento>"
        return xml, id_evento

    @staticmethod
    def montar_envio_lote(id_lote: str | int, evento_xml: str) -> str:
        """
        Monta o <envEvento>...<evento>...</evento>...</envEvento>.
        """
        xml = f'<envEvento versao="{EVENTO_VERSAO}" xmlns="{NFE_EVENTO_NS}">'
        xml += xml_tag("idLote", id_lote)
        xml += evento_xml
        xml += "</envEvento>"
        return xml
