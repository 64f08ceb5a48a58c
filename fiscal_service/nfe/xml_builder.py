# fiscal_service/nfe/xml_builder.py
"""
Montagem do XML da NF-e 4.00 a partir do JSON de entrada.

A ordem dos elementos segue o leiauteNFe_v4.00.xsd; a SEFAZ rejeita
elementos fora de ordem. Nenhuma função aqui faz I/O.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..core.erros import ErroMontagemDocumento
from ..core.xml_utils import esc, fmt, inteiro, only_digits, strip_xml_declaration

NFE_NS = "http://www.portalfiscal.inf.br/nfe"
VERSAO_NFE = "4.00"

# Ordem genérica (grupos sem entrada em CAMPOS_ICMS_GRUPO)
CAMPOS_ICMS = (
    "orig", "CST", "CSOSN", "modBC", "vBC", "pRedBC", "pICMS", "vICMS",
    "vBCFCP", "pFCP", "vFCP",
    "vBCFCPUFDest", "pFCPUFDest", "pICMSUFDest", "pICMSInter", "pICMSInterPart",
    "vFCPUFDest", "vICMSUFDest", "vICMSUFRemet",
    "modBCST", "pMVAST", "pRedBCST", "vBCST", "pICMSST", "vICMSST",
    "vBCFCPST", "pFCPST", "vFCPST", "pCredSN", "vCredICMSSN",
    "vICMSDeson", "motDesICMS", "pRedBCEfet", "vBCEfet", "pICMSEfet", "vICMSEfet",
    "vICMSOp", "vICMSDif",
    "vBCSTRet", "pST", "vICMSSubstituto", "vICMSSTRet", "vBCFCPSTRet", "pFCPSTRet", "vFCPSTRet",
    "pRedBCSTRet", "vBCSTDest", "vICMSSTDest", "vICMSSTDesonerado", "motDesICMSST",
    "vBCFCPDif", "pFCPDif", "vFCPDif", "vFCPEfet",
    "indSomaST",
)

_ICMS_PROPRIO = ("modBC", "vBC", "pICMS", "vICMS")
_FCP = ("vBCFCP", "pFCP", "vFCP")
_ST = ("modBCST", "pMVAST", "pRedBCST", "vBCST", "pICMSST", "vICMSST", "vBCFCPST", "pFCPST", "vFCPST")
_DESONERACAO = ("vICMSDeson", "motDesICMS", "indDeduzDeson")
_ST_DESONERACAO = ("vICMSSTDeson", "motDesICMSST")
_ST_RETIDO = (
    "vBCSTRet", "pST", "vICMSSubstituto", "vICMSSTRet", "vBCFCPSTRet", "pFCPSTRet", "vFCPSTRet",
    "pRedBCEfet", "vBCEfet", "pICMSEfet", "vICMSEfet",
)
_CREDITO_SN = ("pCredSN", "vCredICMSSN")

# Ordem do XSD por grupo; a posição de pRedBC muda entre os grupos
CAMPOS_ICMS_GRUPO = {
    "ICMS00": ("orig", "CST") + _ICMS_PROPRIO + ("pFCP", "vFCP"),
    "ICMS10": ("orig", "CST") + _ICMS_PROPRIO + _FCP + _ST + _ST_DESONERACAO,
    "ICMS20": ("orig", "CST", "modBC", "pRedBC", "vBC", "pICMS", "vICMS") + _FCP + _DESONERACAO,
    "ICMS30": ("orig", "CST") + _ST + _DESONERACAO,
    "ICMS40": ("orig", "CST") + _DESONERACAO,
    "ICMS51": (
        "orig", "CST", "modBC", "pRedBC", "cBenefRBC", "vBC", "pICMS", "vICMSOp", "pDif",
        "vICMSDif", "vICMS",
    ) + _FCP + ("pFCPDif", "vFCPDif", "vFCPEfet"),
    "ICMS60": ("orig", "CST") + _ST_RETIDO,
    "ICMS70": ("orig", "CST", "modBC", "pRedBC", "vBC", "pICMS", "vICMS")
    + _FCP + _ST + _DESONERACAO + _ST_DESONERACAO,
    "ICMS90": ("orig", "CST", "modBC", "vBC", "pRedBC", "pICMS", "vICMS")
    + _FCP + _ST + _DESONERACAO + _ST_DESONERACAO,
    "ICMSSN101": ("orig", "CSOSN") + _CREDITO_SN,
    "ICMSSN102": ("orig", "CSOSN"),
    "ICMSSN201": ("orig", "CSOSN") + _ST + _CREDITO_SN,
    "ICMSSN202": ("orig", "CSOSN") + _ST,
    "ICMSSN500": ("orig", "CSOSN") + _ST_RETIDO,
    "ICMSSN900": ("orig", "CSOSN", "modBC", "vBC", "pRedBC", "pICMS", "vICMS") + _ST + _CREDITO_SN,
}

CAMPOS_PIS_COFINS = ("CST", "vBC", "pPIS", "pCOFINS", "qBCProd", "vAliqProd", "vPIS", "vCOFINS")


# ----------------------------------------------------------------------
# HELPERS
# ----------------------------------------------------------------------


def _tem(dados: Dict[str, Any], campo: str) -> bool:
    """Campo presente (mesmo que zero / falso)."""
    return dados.get(campo) is not None


def _obrigatorio(dados: Optional[Dict[str, Any]], campo: str, caminho: str) -> Any:
    if not isinstance(dados, dict) or dados.get(campo) in (None, ""):
        raise ErroMontagemDocumento(f"Campo obrigatório ausente: {caminho}", campo=caminho)
    return dados[campo]


def _t(tag: str, valor: Any) -> str:
    """<tag>valor escapado</tag>, sempre (campo obrigatório)."""
    return f"<{tag}>{esc('' if valor is None else valor)}</{tag}>"


def _opc(dados: Dict[str, Any], tag: str) -> str:
    """Tag opcional: sai quando houver valor."""
    valor = dados.get(tag)
    if valor is None or valor == "" or valor is False:
        return ""
    return _t(tag, valor)


def _dec(dados: Dict[str, Any], tag: str, casas: int = 2) -> str:
    """Tag decimal opcional: sai sempre que o campo existir."""
    if not _tem(dados, tag):
        return ""
    return f"<{tag}>{fmt(dados[tag], casas, tag)}</{tag}>"


def _dec_padrao(dados: Dict[str, Any], tag: str, casas: int = 2) -> str:
    """Tag decimal obrigatória; ausente vira zero."""
    return f"<{tag}>{fmt(dados.get(tag), casas, tag)}</{tag}>"


def _doc(dados: Dict[str, Any], *tags: str) -> str:
    """Primeiro documento presente (CNPJ, CPF, ...), só dígitos."""
    for tag in tags:
        valor = dados.get(tag)
        if valor:
            if tag in ("CNPJ", "CPF"):
                valor = only_digits(valor)
            return _t(tag, valor)
    return ""


def _lista(valor: Any) -> List[Any]:
    if valor is None:
        return []
    if isinstance(valor, list):
        return valor
    return [valor]


# ----------------------------------------------------------------------
# IDE
# ----------------------------------------------------------------------


def montar_ide(ide: Dict[str, Any]) -> str:
    xml = "<ide>"
    xml += _t("cUF", ide.get("cUF"))
    xml += _t("cNF", ide.get("cNF"))
    xml += _t("natOp", _obrigatorio(ide, "natOp", "ide.natOp"))
    xml += _t("mod", ide.get("mod"))
    xml += _t("serie", ide.get("serie"))
    xml += _t("nNF", ide.get("nNF"))
    xml += _t("dhEmi", ide.get("dhEmi"))
    xml += _opc(ide, "dhSaiEnt")
    xml += _opc(ide, "dPrevEntrega")
    xml += _t("tpNF", ide.get("tpNF"))
    xml += _t("idDest", ide.get("idDest"))
    xml += _t("cMunFG", ide.get("cMunFG"))
    xml += _opc(ide, "cMunFGIBS")
    xml += _t("tpImp", ide.get("tpImp"))
    xml += _t("tpEmis", ide.get("tpEmis"))
    xml += _t("cDV", ide.get("cDV"))
    xml += _t("tpAmb", ide.get("tpAmb"))
    xml += _t("finNFe", ide.get("finNFe"))
    xml += _t("indFinal", ide.get("indFinal"))
    xml += _t("indPres", ide.get("indPres"))
    if _tem(ide, "indIntermed"):
        xml += _t("indIntermed", ide["indIntermed"])
    xml += _t("procEmi", ide.get("procEmi"))
    xml += _t("verProc", ide.get("verProc"))
    xml += _opc(ide, "dhCont")
    xml += _opc(ide, "xJust")
    for ref in _lista(ide.get("NFref")):
        xml += montar_nfref(ref)
    xml += "</ide>"
    return xml


def montar_nfref(ref: Dict[str, Any]) -> str:
    xml = "<NFref>"
    xml += _opc(ref, "refNFe")
    xml += _opc(ref, "refNFeSig")
    ref_nf = ref.get("refNF")
    if ref_nf:
        xml += "<refNF>"
        xml += _t("cUF", ref_nf.get("cUF"))
        xml += _t("AAMM", ref_nf.get("AAMM"))
        xml += _t("CNPJ", only_digits(ref_nf.get("CNPJ")))
        xml += _t("mod", ref_nf.get("mod"))
        xml += _t("serie", ref_nf.get("serie"))
        xml += _t("nNF", ref_nf.get("nNF"))
        xml += "</refNF>"
    xml += _opc(ref, "refCTe")
    xml += "</NFref>"
    return xml


# ----------------------------------------------------------------------
# EMITENTE / DESTINATÁRIO / ENDEREÇOS
# ----------------------------------------------------------------------


def montar_endereco(tag: str, end: Dict[str, Any]) -> str:
    xml = f"<{tag}>"
    xml += _doc(end, "CNPJ", "CPF")
    xml += _opc(end, "xNome")
    xml += _opc(end, "xLgr")
    xml += _opc(end, "nro")
    xml += _opc(end, "xCpl")
    xml += _opc(end, "xBairro")
    xml += _opc(end, "cMun")
    xml += _opc(end, "xMun")
    xml += _opc(end, "UF")
    if end.get("CEP"):
        xml += _t("CEP", only_digits(end["CEP"]))
    xml += _opc(end, "cPais")
    xml += _opc(end, "xPais")
    if end.get("fone"):
        xml += _t("fone", only_digits(end["fone"]))
    xml += f"</{tag}>"
    return xml


def montar_emit(emit: Dict[str, Any]) -> str:
    xml = "<emit>"
    xml += _doc(emit, "CNPJ", "CPF")
    xml += _t("xNome", _obrigatorio(emit, "xNome", "emit.xNome"))
    xml += _opc(emit, "xFant")
    if emit.get("enderEmit"):
        xml += montar_endereco("enderEmit", emit["enderEmit"])
    xml += _opc(emit, "IE")
    xml += _opc(emit, "IEST")
    xml += _opc(emit, "IM")
    xml += _opc(emit, "CNAE")
    xml += _t("CRT", _obrigatorio(emit, "CRT", "emit.CRT"))
    xml += "</emit>"
    return xml


def montar_avulsa(av: Dict[str, Any]) -> str:
    xml = "<avulsa>"
    xml += _t("CNPJ", only_digits(av.get("CNPJ")))
    xml += _t("xOrgao", av.get("xOrgao"))
    xml += _t("matr", av.get("matr"))
    xml += _t("xAgente", av.get("xAgente"))
    xml += _opc(av, "fone")
    xml += _t("UF", av.get("UF"))
    xml += _opc(av, "nDAR")
    xml += _opc(av, "dEmi")
    xml += _dec(av, "vDAR")
    xml += _t("repEmi", av.get("repEmi"))
    xml += _opc(av, "dPag")
    xml += "</avulsa>"
    return xml


def montar_dest(dest: Dict[str, Any]) -> str:
    xml = "<dest>"
    xml += _doc(dest, "CNPJ", "CPF", "idEstrangeiro")
    xml += _opc(dest, "xNome")
    if dest.get("enderDest"):
        xml += montar_endereco("enderDest", dest["enderDest"])
    xml += _t("indIEDest", dest.get("indIEDest", 9))
    xml += _opc(dest, "IE")
    xml += _opc(dest, "ISUF")
    xml += _opc(dest, "IM")
    xml += _opc(dest, "email")
    xml += "</dest>"
    return xml


def montar_aut_xml(autorizados: List[Dict[str, Any]]) -> str:
    xml = ""
    for aut in autorizados:
        xml += "<autXML>" + _doc(aut, "CNPJ", "CPF") + "</autXML>"
    return xml


# ----------------------------------------------------------------------
# ITENS (det / prod / imposto)
# ----------------------------------------------------------------------


def montar_prod(prod: Dict[str, Any], n_item: Any) -> str:
    caminho = f"det[{n_item}].prod"
    xml = "<prod>"
    xml += _t("cProd", _obrigatorio(prod, "cProd", f"{caminho}.cProd"))
    xml += _t("cEAN", prod.get("cEAN") or "SEM GTIN")
    xml += _t("xProd", _obrigatorio(prod, "xProd", f"{caminho}.xProd"))
    xml += _t("NCM", prod.get("NCM"))
    xml += _opc(prod, "NVE")
    xml += _opc(prod, "CEST")
    xml += _opc(prod, "indEscala")
    if prod.get("CNPJFab"):
        xml += _t("CNPJFab", only_digits(prod["CNPJFab"]))
    xml += _opc(prod, "cBenef")
    xml += _opc(prod, "EXTIPI")
    xml += _t("CFOP", _obrigatorio(prod, "CFOP", f"{caminho}.CFOP"))
    xml += _t("uCom", prod.get("uCom"))
    xml += f"<qCom>{fmt(prod.get('qCom'), 4, f'{caminho}.qCom')}</qCom>"
    xml += f"<vUnCom>{fmt(prod.get('vUnCom'), 10, f'{caminho}.vUnCom')}</vUnCom>"
    xml += f"<vProd>{fmt(prod.get('vProd'), 2, f'{caminho}.vProd')}</vProd>"
    xml += _t("cEANTrib", prod.get("cEANTrib") or "SEM GTIN")
    xml += _t("uTrib", prod.get("uTrib") or prod.get("uCom"))
    q_trib = prod["qTrib"] if _tem(prod, "qTrib") else prod.get("qCom")
    v_un_trib = prod["vUnTrib"] if _tem(prod, "vUnTrib") else prod.get("vUnCom")
    xml += f"<qTrib>{fmt(q_trib, 4, f'{caminho}.qTrib')}</qTrib>"
    xml += f"<vUnTrib>{fmt(v_un_trib, 10, f'{caminho}.vUnTrib')}</vUnTrib>"
    xml += _dec(prod, "vFrete")
    xml += _dec(prod, "vSeg")
    xml += _dec(prod, "vDesc")
    xml += _dec(prod, "vOutro")
    xml += _t("indTot", prod["indTot"] if _tem(prod, "indTot") else 1)
    xml += _opc(prod, "xPed")
    xml += _opc(prod, "nItemPed")
    xml += _opc(prod, "nFCI")
    for rastro in _lista(prod.get("rastro")):
        xml += "<rastro>"
        xml += _t("nLote", rastro.get("nLote"))
        xml += f"<qLote>{fmt(rastro.get('qLote'), 3, f'{caminho}.rastro.qLote')}</qLote>"
        xml += _t("dFab", rastro.get("dFab"))
        xml += _opc(rastro, "dVal")
        xml += _opc(rastro, "cAgreg")
        xml += "</rastro>"
    xml += "</prod>"
    return xml


def montar_icms(icms: Dict[str, Any]) -> str:
    """
    Recebe um único grupo, ex.: {"ICMS00": {...}} ou {"ICMSSN102": {...}}.
    """
    if not icms:
        return ""
    grupo = next(iter(icms))
    dados = icms[grupo] or {}
    xml = f"<ICMS><{grupo}>"
    for campo in CAMPOS_ICMS_GRUPO.get(grupo, CAMPOS_ICMS):
        if _tem(dados, campo):
            xml += _t(campo, dados[campo])
    xml += f"</{grupo}></ICMS>"
    return xml


def montar_pis_cofins(tag: str, dados: Dict[str, Any]) -> str:
    """
    PIS / COFINS: grupo escolhido pela chave (PISAliq, PISNT, COFINSOutr...).
    """
    grupo = next(iter(dados))
    d = dados[grupo] or {}
    xml = f"<{tag}><{grupo}>"
    for campo in CAMPOS_PIS_COFINS:
        if _tem(d, campo):
            xml += _t(campo, d[campo])
    xml += f"</{grupo}></{tag}>"
    return xml


def montar_issqn(iss: Dict[str, Any]) -> str:
    xml = "<ISSQN>"
    xml += _dec_padrao(iss, "vBC")
    xml += _dec_padrao(iss, "vAliq", 4)
    xml += _dec_padrao(iss, "vISSQN")
    xml += _t("cMunFG", iss.get("cMunFG"))
    xml += _t("cListServ", iss.get("cListServ"))
    xml += _dec(iss, "vDeducao")
    xml += _dec(iss, "vOutro")
    xml += _dec(iss, "vDescIncond")
    xml += _dec(iss, "vDescCond")
    xml += _dec(iss, "vISSRet")
    xml += _t("indISS", iss.get("indISS"))
    xml += _opc(iss, "cServico")
    xml += _opc(iss, "cMun")
    xml += _opc(iss, "cPais")
    xml += _opc(iss, "nProcesso")
    xml += _t("indIncentivo", iss.get("indIncentivo"))
    xml += "</ISSQN>"
    return xml


def montar_ipi(ipi: Dict[str, Any]) -> str:
    xml = "<IPI>"
    xml += _opc(ipi, "clEnq")
    if ipi.get("CNPJProd"):
        xml += _t("CNPJProd", only_digits(ipi["CNPJProd"]))
    xml += _opc(ipi, "cSelo")
    if _tem(ipi, "qSelo"):
        xml += _t("qSelo", ipi["qSelo"])
    xml += _opc(ipi, "cEnq")
    grupo = "IPITrib" if ipi.get("IPITrib") else "IPINT"
    dados = ipi.get(grupo)
    if dados:
        xml += f"<{grupo}>"
        if _tem(dados, "CST"):
            xml += _t("CST", dados["CST"])
        xml += _dec(dados, "vBC")
        xml += _dec(dados, "pIPI", 4)
        xml += _dec(dados, "qUnid", 4)
        xml += _dec(dados, "vUnid", 4)
        xml += _dec(dados, "vIPI")
        xml += f"</{grupo}>"
    xml += "</IPI>"
    return xml


def montar_ii(ii: Dict[str, Any]) -> str:
    return (
        "<II>"
        + _dec_padrao(ii, "vBC")
        + _dec_padrao(ii, "vDespAdu")
        + _dec_padrao(ii, "vII")
        + _dec_padrao(ii, "vIOF")
        + "</II>"
    )


def _montar_st(tag: str, dados: Dict[str, Any], aliquota: str, valor: str, ind_soma: str) -> str:
    xml = f"<{tag}>"
    xml += _dec(dados, "vBC")
    xml += _dec(dados, aliquota, 4)
    xml += _dec(dados, "qBCProd", 4)
    xml += _dec(dados, "vAliqProd", 4)
    xml += _dec_padrao(dados, valor)
    if _tem(dados, ind_soma):
        xml += _t(ind_soma, dados[ind_soma])
    xml += f"</{tag}>"
    return xml


def montar_imposto(imposto: Dict[str, Any]) -> str:
    xml = "<imposto>"
    xml += _dec(imposto, "vTotTrib")
    if imposto.get("ICMS"):
        xml += montar_icms(imposto["ICMS"])
    if imposto.get("ISSQN"):
        xml += montar_issqn(imposto["ISSQN"])
    if imposto.get("IPI"):
        xml += montar_ipi(imposto["IPI"])
    if imposto.get("II"):
        xml += montar_ii(imposto["II"])
    if imposto.get("PIS"):
        xml += montar_pis_cofins("PIS", imposto["PIS"])
    if imposto.get("PISST"):
        xml += _montar_st("PISST", imposto["PISST"], "pPIS", "vPIS", "indSomaPISST")
    if imposto.get("COFINS"):
        xml += montar_pis_cofins("COFINS", imposto["COFINS"])
    if imposto.get("COFINSST"):
        xml += _montar_st("COFINSST", imposto["COFINSST"], "pCOFINS", "vCOFINS", "indSomaCOFINSST")
    xml += "</imposto>"
    return xml


def montar_det(det: Dict[str, Any], indice: int) -> str:
    n_item = det.get("nItem") or indice
    prod = det.get("prod")
    if not prod:
        raise ErroMontagemDocumento(f"Item {n_item} sem <prod>", campo=f"det[{n_item}].prod")

    xml = f'<det nItem="{esc(n_item)}">'
    xml += montar_prod(prod, n_item)
    if det.get("imposto"):
        xml += montar_imposto(det["imposto"])
    devol = det.get("impostoDevol")
    if devol:
        xml += "<impostoDevol>"
        xml += f"<pDevol>{fmt(devol.get('pDevol'), 2)}</pDevol>"
        xml += f"<IPI><vIPIDevol>{fmt((devol.get('IPI') or {}).get('vIPIDevol'))}</vIPIDevol></IPI>"
        xml += "</impostoDevol>"
    xml += _opc(det, "infAdProd")
    xml += "</det>"
    return xml


# ----------------------------------------------------------------------
# TOTAIS / TRANSPORTE / COBRANÇA / PAGAMENTO
# ----------------------------------------------------------------------


def montar_total(total: Dict[str, Any]) -> str:
    xml = "<total>"
    t = total.get("ICMSTot")
    if t:
        xml += "<ICMSTot>"
        xml += _dec_padrao(t, "vBC")
        xml += _dec_padrao(t, "vICMS")
        xml += _dec_padrao(t, "vICMSDeson")
        xml += _dec(t, "vFCPUFDest")
        xml += _dec(t, "vICMSUFDest")
        xml += _dec(t, "vICMSUFRemet")
        xml += _dec_padrao(t, "vFCP")
        xml += _dec_padrao(t, "vBCST")
        xml += _dec_padrao(t, "vST")
        xml += _dec_padrao(t, "vFCPST")
        xml += _dec_padrao(t, "vFCPSTRet")
        xml += _dec(t, "qBCMono", 4)
        xml += _dec(t, "vICMSMono")
        xml += _dec(t, "qBCMonoReten", 4)
        xml += _dec(t, "vICMSMonoReten")
        xml += _dec(t, "qBCMonoRet", 4)
        xml += _dec(t, "vICMSMonoRet")
        xml += _dec_padrao(t, "vProd")
        xml += _dec_padrao(t, "vFrete")
        xml += _dec_padrao(t, "vSeg")
        xml += _dec_padrao(t, "vDesc")
        xml += _dec_padrao(t, "vII")
        xml += _dec_padrao(t, "vIPI")
        xml += _dec_padrao(t, "vIPIDevol")
        xml += _dec_padrao(t, "vPIS")
        xml += _dec_padrao(t, "vCOFINS")
        xml += _dec_padrao(t, "vOutro")
        xml += _dec_padrao(t, "vNF")
        xml += _dec(t, "vTotTrib")
        xml += "</ICMSTot>"
    t = total.get("ISSQNtot")
    if t:
        xml += "<ISSQNtot>"
        xml += _dec(t, "vServ")
        xml += _dec(t, "vBC")
        xml += _dec(t, "vISS")
        xml += _dec(t, "vPIS")
        xml += _dec(t, "vCOFINS")
        xml += _opc(t, "dCompet")
        xml += _dec(t, "vDeducao")
        xml += _dec(t, "vOutro")
        xml += _dec(t, "vDescIncond")
        xml += _dec(t, "vDescCond")
        xml += _dec(t, "vISSRet")
        if _tem(t, "cRegTrib"):
            xml += _t("cRegTrib", t["cRegTrib"])
        xml += "</ISSQNtot>"
    xml += "</total>"
    return xml


def montar_transp(transp: Dict[str, Any]) -> str:
    xml = "<transp>"
    xml += _t("modFrete", transp.get("modFrete", 9))
    tr = transp.get("transporta")
    if tr:
        xml += "<transporta>"
        xml += _doc(tr, "CNPJ", "CPF")
        xml += _opc(tr, "xNome")
        xml += _opc(tr, "IE")
        xml += _opc(tr, "xEnder")
        xml += _opc(tr, "xMun")
        xml += _opc(tr, "UF")
        xml += "</transporta>"
    ret = transp.get("retTransp")
    if ret:
        xml += "<retTransp>"
        xml += _dec_padrao(ret, "vServ")
        xml += _dec_padrao(ret, "vBCRet")
        xml += _dec_padrao(ret, "pICMSRet", 4)
        xml += _dec_padrao(ret, "vICMSRet")
        xml += _t("CFOP", ret.get("CFOP"))
        xml += _t("cMunFG", ret.get("cMunFG"))
        xml += "</retTransp>"
    for vol in _lista(transp.get("vol")):
        xml += "<vol>"
        if _tem(vol, "qVol"):
            xml += _t("qVol", vol["qVol"])
        xml += _opc(vol, "esp")
        xml += _opc(vol, "marca")
        xml += _opc(vol, "nVol")
        xml += _dec(vol, "pesoL", 3)
        xml += _dec(vol, "pesoB", 3)
        xml += "</vol>"
    xml += "</transp>"
    return xml


def montar_cobr(cobr: Dict[str, Any]) -> str:
    xml = "<cobr>"
    fat = cobr.get("fat")
    if fat:
        xml += "<fat>"
        xml += _opc(fat, "nFat")
        xml += _dec(fat, "vOrig")
        xml += _dec(fat, "vDesc")
        xml += _dec(fat, "vLiq")
        xml += "</fat>"
    for dup in _lista(cobr.get("dup")):
        xml += "<dup>"
        xml += _opc(dup, "nDup")
        xml += _opc(dup, "dVenc")
        xml += _dec_padrao(dup, "vDup")
        xml += "</dup>"
    xml += "</cobr>"
    return xml


def montar_pag(pag: Dict[str, Any]) -> str:
    xml = "<pag>"
    for det in _lista(pag.get("detPag")):
        xml += "<detPag>"
        if _tem(det, "indPag"):
            xml += _t("indPag", det["indPag"])
        xml += _t("tPag", det.get("tPag"))
        xml += _dec_padrao(det, "vPag")
        xml += _opc(det, "dEmi")
        if det.get("CNPJ"):
            xml += _t("CNPJ", only_digits(det["CNPJ"]))
        xml += _opc(det, "tBand")
        xml += _opc(det, "cAut")
        card = det.get("card")
        if card:
            xml += "<card>"
            if _tem(card, "tpIntegra"):
                xml += _t("tpIntegra", card["tpIntegra"])
            if card.get("CNPJ"):
                xml += _t("CNPJ", only_digits(card["CNPJ"]))
            xml += _opc(card, "tBand")
            xml += _opc(card, "cAut")
            xml += "</card>"
        xml += "</detPag>"
    xml += _dec(pag, "vTroco")
    xml += "</pag>"
    return xml


# ----------------------------------------------------------------------
# GRUPOS FINAIS
# ----------------------------------------------------------------------


def montar_inf_intermed(inter: Dict[str, Any]) -> str:
    return (
        "<infIntermed>"
        + _t("CNPJ", only_digits(inter.get("CNPJ")))
        + _opc(inter, "idCadIntTran")
        + "</infIntermed>"
    )


def montar_inf_adic(adic: Dict[str, Any]) -> str:
    return "<infAdic>" + _opc(adic, "infAdFisco") + _opc(adic, "infCpl") + "</infAdic>"


def montar_exporta(exp: Dict[str, Any]) -> str:
    return (
        "<exporta>"
        + _t("UFSaidaPais", exp.get("UFSaidaPais"))
        + _opc(exp, "xLocExporta")
        + _opc(exp, "xLocDespacho")
        + "</exporta>"
    )


def montar_inf_resp_tec(resp: Dict[str, Any]) -> str:
    xml = "<infRespTec>"
    xml += _t("CNPJ", only_digits(resp.get("CNPJ")))
    xml += _t("xContato", resp.get("xContato"))
    xml += _t("email", resp.get("email"))
    xml += _t("fone", only_digits(resp.get("fone")))
    if resp.get("idCSRT"):
        xml += _t("idCSRT", resp["idCSRT"])
        xml += _t("hashCSRT", resp.get("hashCSRT"))
    xml += "</infRespTec>"
    return xml


# ----------------------------------------------------------------------
# DOCUMENTOS
# ----------------------------------------------------------------------


def montar_nfe(nfe: Dict[str, Any], chave: str, versao: str = VERSAO_NFE) -> str:
    """
    Monta <NFe><infNFe Id="NFe{chave}">...</infNFe></NFe>, sem declaração
    e sem assinatura (a <Signature> entra depois, irmã de <infNFe>).
    """
    ide = _obrigatorio(nfe, "ide", "ide")
    emit = _obrigatorio(nfe, "emit", "emit")
    dets = _lista(nfe.get("det"))
    if not dets:
        raise ErroMontagemDocumento("NF-e sem itens (det)", campo="det")

    xml = f'<NFe xmlns="{NFE_NS}">'
    xml += f'<infNFe versao="{esc(versao)}" Id="NFe{esc(chave)}">'
    xml += montar_ide(ide)
    xml += montar_emit(emit)
    if nfe.get("avulsa"):
        xml += montar_avulsa(nfe["avulsa"])
    if nfe.get("dest"):
        xml += montar_dest(nfe["dest"])
    if nfe.get("retirada"):
        xml += montar_endereco("retirada", nfe["retirada"])
    if nfe.get("entrega"):
        xml += montar_endereco("entrega", nfe["entrega"])
    xml += montar_aut_xml(_lista(nfe.get("autXML")))
    for i, det in enumerate(dets, start=1):
        xml += montar_det(det, i)
    xml += montar_total(_obrigatorio(nfe, "total", "total"))
    xml += montar_transp(nfe.get("transp") or {})
    if nfe.get("cobr"):
        xml += montar_cobr(nfe["cobr"])
    if nfe.get("pag"):
        xml += montar_pag(nfe["pag"])
    if nfe.get("infIntermed"):
        xml += montar_inf_intermed(nfe["infIntermed"])
    if nfe.get("infAdic"):
        xml += montar_inf_adic(nfe["infAdic"])
    if nfe.get("exporta"):
        xml += montar_exporta(nfe["exporta"])
    if nfe.get("infRespTec"):
        xml += montar_inf_resp_tec(nfe["infRespTec"])
    xml += "</infNFe></NFe>"
    return xml


def montar_envi_nfe_xml(
    nfe_assinada: str,
    id_lote: str | int = 1,
    ind_sinc: str | int = 1,
    versao: str = VERSAO_NFE,
) -> str:
    """
    Monta o XML <enviNFe> com a NFe assinada dentro.
    """
    return (
        f'<enviNFe versao="{esc(versao)}" xmlns="{NFE_NS}">'
        f"<idLote>{esc(id_lote)}</idLote>"
        f"<indSinc>{esc(ind_sinc)}</indSinc>"
        f"{strip_xml_declaration(nfe_assinada)}"
        "</enviNFe>"
    )


def montar_cons_sit_nfe(chave: str, tp_amb: str | int) -> str:
    return (
        f'<consSitNFe versao="{VERSAO_NFE}" xmlns="{NFE_NS}">'
        f"<tpAmb>{esc(tp_amb)}</tpAmb>"
        "<xServ>CONSULTAR</xServ>"
        f"<chNFe>{esc(chave)}</chNFe>"
        "</consSitNFe>"
    )


def montar_cons_stat_serv(c_uf: str | int, tp_amb: str | int) -> str:
    """
    <consStatServ versao="4.00" xmlns="http://www.portalfiscal.inf.br/nfe">
        <tpAmb>2</tpAmb><cUF>35</cUF><xServ>STATUS</xServ>
    </consStatServ>
    """
    return (
        f'<consStatServ versao="{VERSAO_NFE}" xmlns="{NFE_NS}">'
        f"<tpAmb>{esc(tp_amb)}</tpAmb>"
        f"<cUF>{esc(c_uf)}</cUF>"
        "<xServ>STATUS</xServ>"
        "</consStatServ>"
    )


def montar_inut_nfe(
    id_inut: str,
    c_uf: str | int,
    tp_amb: str | int,
    ano: str,
    cnpj: str,
    mod: str | int,
    serie: str | int,
    n_nf_ini: str | int,
    n_nf_fin: str | int,
    x_just: str,
) -> str:
    """
    <inutNFe> sem assinatura; a assinatura referencia "#{id_inut}".
    """
    return (
        f'<inutNFe versao="{VERSAO_NFE}" xmlns="{NFE_NS}">'
        f'<infInut Id="{esc(id_inut)}">'
        f"<tpAmb>{esc(tp_amb)}</tpAmb>"
        "<xServ>INUTILIZAR</xServ>"
        f"<cUF>{esc(c_uf)}</cUF>"
        f"<ano>{esc(ano)}</ano>"
        f"<CNPJ>{only_digits(cnpj)}</CNPJ>"
        f"<mod>{esc(mod)}</mod>"
        f"<serie>{inteiro(serie, 'serie')}</serie>"
        f"<nNFIni>{inteiro(n_nf_ini, 'nNFIni')}</nNFIni>"
        f"<nNFFin>{inteiro(n_nf_fin, 'nNFFin')}</nNFFin>"
        f"<xJust>{esc(x_just)}</xJust>"
        "</infInut>"
        "</inutNFe>"
    )
