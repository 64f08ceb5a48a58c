# fiscal_service/nfe/normalizador.py
"""
Normalização dos retornos da SEFAZ (NF-e 4.00) para o ResultadoCanonico.

Cada serviço devolve um XML diferente dentro de <nfeResultMsg>:
retConsStatServ, retEnviNFe, retConsSitNFe, retInutNFe, retEnvEvento.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from lxml import etree

from ..core.envio import extrair_xml_resultado
from ..core.erros import RespostaIlegivel
from ..core.resultado import ChaveDocumento, InfoLote, Mensagem, ResultadoCanonico
from ..core.soap_client import verificar_fault
from ..core.xml_utils import descendente, filho, filhos, local_name, parse_xml, texto

logger = logging.getLogger(__name__)

CSTAT_STATUS_OK = {"107"}
CSTAT_LOTE_PROCESSADO = "104"
CSTAT_LOTE_RECEBIDO = "103"
CSTAT_AUTORIZADA = {"100", "150"}
CSTAT_CONSULTA_OK = {"100", "101", "110", "150", "151", "155", "301", "302", "303"}
CSTAT_INUTILIZADA = {"102"}
CSTAT_EVENTO_OK = {"135", "136", "155"}


def _mensagem(elem: Optional[etree._Element]) -> Mensagem:
    return Mensagem(code=texto(elem, "cStat"), description=texto(elem, "xMotivo"))


def _base(ret: etree._Element) -> Dict[str, Optional[str]]:
    return {"status_code": texto(ret, "cStat"), "status_message": texto(ret, "xMotivo")}


def _chave_protocolo(inf_prot: Optional[etree._Element]) -> Optional[ChaveDocumento]:
    if inf_prot is None:
        return None
    chave = texto(inf_prot, "chNFe")
    protocolo = texto(inf_prot, "nProt")
    if not chave and not protocolo:
        return None
    return ChaveDocumento(numero_documento=chave, codigo_verificacao=protocolo)


# ----------------------------------------------------------------------
# Um parser por retorno
# ----------------------------------------------------------------------


def _ret_cons_stat_serv(ret: etree._Element) -> ResultadoCanonico:
    ok = texto(ret, "cStat") in CSTAT_STATUS_OK
    return ResultadoCanonico(
        success=ok,
        errors=[] if ok else [_mensagem(ret)],
        lot_info=InfoLote(recebido_em=texto(ret, "dhRecbto")),
        **_base(ret),
    )


def _ret_envi_nfe(ret: etree._Element) -> ResultadoCanonico:
    c_stat = texto(ret, "cStat")
    lote = InfoLote(recebido_em=texto(ret, "dhRecbto"))

    if c_stat == CSTAT_LOTE_RECEBIDO:
        # Assíncrono: só o recibo, a autorização sai na consulta do recibo
        lote.numero_lote = texto(filho(ret, "infRec"), "nRec")
        return ResultadoCanonico(success=True, lot_info=lote, **_base(ret))

    if c_stat != CSTAT_LOTE_PROCESSADO:
        return ResultadoCanonico(success=False, errors=[_mensagem(ret)], lot_info=lote, **_base(ret))

    erros: List[Mensagem] = []
    chaves: List[ChaveDocumento] = []
    for prot in filhos(ret, "protNFe"):
        inf_prot = filho(prot, "infProt")
        if texto(inf_prot, "cStat") in CSTAT_AUTORIZADA:
            chave = _chave_protocolo(inf_prot)
            if chave:
                chaves.append(chave)
        else:
            erros.append(_mensagem(inf_prot))
    lote.processado_em = texto(descendente(ret, "infProt"), "dhRecbto")
    return ResultadoCanonico(
        success=bool(chaves) and not erros,
        errors=erros,
        lot_info=lote,
        document_keys=chaves,
        **_base(ret),
    )


def _ret_cons_sit_nfe(ret: etree._Element) -> ResultadoCanonico:
    ok = texto(ret, "cStat") in CSTAT_CONSULTA_OK
    chaves: List[ChaveDocumento] = []
    chave = _chave_protocolo(descendente(filho(ret, "protNFe"), "infProt"))
    if chave:
        chaves.append(chave)
    elif texto(ret, "chNFe"):
        chaves.append(ChaveDocumento(numero_documento=texto(ret, "chNFe")))
    return ResultadoCanonico(
        success=ok,
        errors=[] if ok else [_mensagem(ret)],
        document_keys=chaves,
        **_base(ret),
    )


def _ret_inut_nfe(ret: etree._Element) -> ResultadoCanonico:
    inf = filho(ret, "infInut")
    if inf is None:
        inf = ret
    ok = texto(inf, "cStat") in CSTAT_INUTILIZADA
    chaves = []
    if ok and texto(inf, "nProt"):
        chaves.append(ChaveDocumento(codigo_verificacao=texto(inf, "nProt")))
    return ResultadoCanonico(
        success=ok,
        errors=[] if ok else [_mensagem(inf)],
        lot_info=InfoLote(processado_em=texto(inf, "dhRecbto")),
        document_keys=chaves,
        **_base(inf),
    )


def _ret_env_evento(ret: etree._Element) -> ResultadoCanonico:
    erros: List[Mensagem] = []
    chaves: List[ChaveDocumento] = []
    eventos = filhos(ret, "retEvento")
    for ret_evento in eventos:
        inf = filho(ret_evento, "infEvento")
        if texto(inf, "cStat") in CSTAT_EVENTO_OK:
            chave = _chave_protocolo(inf)
            if chave:
                chaves.append(chave)
        else:
            erros.append(_mensagem(inf))
    if not eventos:
        # Lote rejeitado antes de processar os eventos
        erros.append(_mensagem(ret))
    return ResultadoCanonico(
        success=bool(eventos) and not erros,
        errors=erros,
        lot_info=InfoLote(numero_lote=texto(ret, "idLote")),
        document_keys=chaves,
        **_base(ret),
    )


PARSERS: Dict[str, Callable[[etree._Element], ResultadoCanonico]] = {
    "retConsStatServ": _ret_cons_stat_serv,
    "retEnviNFe": _ret_envi_nfe,
    "retConsSitNFe": _ret_cons_sit_nfe,
    "retInutNFe": _ret_inut_nfe,
    "retEnvEvento": _ret_env_evento,
}


def normalizar_resposta(resp_xml: str) -> ResultadoCanonico:
    """
    SOAP de resposta -> ResultadoCanonico.

    - SOAP Fault: FalhaSoap
    - XML inválido ou retorno desconhecido: RespostaIlegivel (com o XML bruto)
    """
    try:
        root = parse_xml(resp_xml)
    except etree.XMLSyntaxError as exc:
        raise RespostaIlegivel(f"Resposta não é XML válido: {exc}", resp_xml) from exc

    verificar_fault(root)

    ret = extrair_xml_resultado(resp_xml)
    if ret is None:
        raise RespostaIlegivel("Retorno sem <nfeResultMsg>", resp_xml)

    nome = local_name(ret)
    parser = PARSERS.get(nome)
    if parser is None:
        raise RespostaIlegivel(f"Retorno não reconhecido: <{nome}>", resp_xml)

    resultado = parser(ret)
    logger.info("Retorno %s: cStat=%s success=%s", nome, resultado.status_code, resultado.success)
    return resultado
