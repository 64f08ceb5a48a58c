from __future__ import annotations

import re
import datetime as _dt
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional
from xml.sax.saxutils import escape as _sax_escape

from lxml import etree

from .erros import ErroMontagemDocumento

_ENTIDADES_ATRIBUTO = {'"': "&quot;", "'": "&apos;"}


def only_digits(value: Any) -> str:
    """
    Remove tudo que não for número.
    """
    if value is None:
        return ""
    return re.sub(r"\D+", "", str(value))


def esc(value: Any) -> str:
    """
    Escapa &, <, >, aspas e apóstrofo para uso em texto ou atributo XML.
    """
    return _sax_escape(str(value), _ENTIDADES_ATRIBUTO)


def fmt(value: Any, decimals: int = 2, campo: Optional[str] = None) -> str:
    """
    Formata número com casas decimais fixas (arredondamento comercial).
    Valor ausente vira zero; valor não numérico é erro de montagem.
    """
    if value is None or value == "":
        value = 0
    quant = Decimal(1).scaleb(-decimals)
    try:
        numero = Decimal(str(value))
        if not numero.is_finite():
            raise InvalidOperation(value)
        return str(numero.quantize(quant, rounding=ROUND_HALF_UP))
    except InvalidOperation as exc:
        onde = f" em {campo}" if campo else ""
        raise ErroMontagemDocumento(
            f"Valor numérico inválido{onde}: {value!r}",
            campo=campo,
        ) from exc


def inteiro(value: Any, campo: str) -> int:
    """int(value) ou ErroMontagemDocumento apontando o campo."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ErroMontagemDocumento(
            f"Valor inteiro inválido em {campo}: {value!r}", campo=campo
        ) from exc


def xml_tag(tag: str, value: Optional[Any]) -> str:
    """
    Gera <tag>valor</tag> (valor escapado) se tiver valor, senão string vazia.
    """
    if value is None:
        return ""
    value = str(value)
    if value == "":
        return ""
    return f"<{tag}>{esc(value)}</{tag}>"


def strip_xml_declaration(xml: str) -> str:
    """
    Remove a declaração XML (<?xml ...?>) se existir.
    """
    xml = xml.lstrip().lstrip("\ufeff")
    if xml.startswith("<?xml"):
        end = xml.find("?>")
        if end != -1:
            return xml[end + 2 :].lstrip()
    return xml


def now_sefaz_datetime() -> str:
    """
    Data/hora no padrão SEFAZ: 2025-01-29T10:35:27-03:00
    Usa o timezone local da máquina.
    """
    dt = _dt.datetime.now(_dt.timezone.utc).astimezone()
    return dt.isoformat(timespec="seconds")


def local_name(elem: etree._Element) -> str:
    """Nome da tag sem namespace/prefixo."""
    return etree.QName(elem).localname


def parse_xml(xml: str | bytes) -> etree._Element:
    """
    Parse do XML (aceita str com declaração de encoding).
    """
    if isinstance(xml, str):
        xml = xml.lstrip("\ufeff").encode("utf-8")
    parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False)
    return etree.fromstring(xml.strip(), parser=parser)


# ----------------------------------------------------------------------
# Busca por local-name (ignora prefixo e namespace)
# ----------------------------------------------------------------------


def filhos(elem: Optional[etree._Element], nome: str) -> List[etree._Element]:
    """Filhos diretos com o local-name informado (sempre lista)."""
    if elem is None:
        return []
    return [f for f in elem if isinstance(f.tag, str) and local_name(f) == nome]


def filho(elem: Optional[etree._Element], nome: str) -> Optional[etree._Element]:
    encontrados = filhos(elem, nome)
    return encontrados[0] if encontrados else None


def descendente(elem: Optional[etree._Element], nome: str) -> Optional[etree._Element]:
    """Primeiro descendente (inclusive o próprio) com o local-name informado."""
    if elem is None:
        return None
    for node in elem.iter():
        if isinstance(node.tag, str) and local_name(node) == nome:
            return node
    return None


def texto(elem: Optional[etree._Element], nome: Optional[str] = None) -> Optional[str]:
    """
    Texto do filho direto `nome` (ou do próprio elemento), sem espaços nas
    pontas. None quando ausente.
    """
    if nome is not None:
        elem = filho(elem, nome)
    if elem is None:
        return None
    valor = "".join(elem.itertext()).strip()
    return valor
