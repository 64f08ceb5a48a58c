# fiscal_service/core/soaplist.py
from __future__ import annotations

from typing import Dict

from .enums import Ambiente, ServicoNFe
from .envio import EndpointInfo, SERVICE_NAMESPACE

# Ambiente nacional (SVC-AN), usado quando a UF não está na tabela
DEFAULT_HOM_AN = "https://hom1.nfe.fazenda.gov.br"
DEFAULT_PROD_AN = "https://nfe.fazenda.gov.br"

SERVICE_PATH = {
    ServicoNFe.AUTORIZACAO: "/NFeAutorizacao4/NFeAutorizacao4.asmx",
    ServicoNFe.CONSULTA_PROTOCOLO: "/NfeConsultaProtocolo4/NfeConsultaProtocolo4.asmx",
    ServicoNFe.INUTILIZACAO: "/NfeInutilizacao4/NfeInutilizacao4.asmx",
    ServicoNFe.RECEPCAO_EVENTO: "/NFeRecepcaoEvento4/NFeRecepcaoEvento4.asmx",
    ServicoNFe.STATUS_SERVICO: "/NFeStatusServico4/NFeStatusServico4.asmx",
}

_AN_AUT_HOM = "https://hom1.nfe.fazenda.gov.br/NFeAutorizacao4/NFeAutorizacao4.asmx"
_AN_AUT_PROD = "https://nfe.fazenda.gov.br/NFeAutorizacao4/NFeAutorizacao4.asmx"
_RS_AUT_HOM = "https://hom.sefaz.rs.gov.br/ws/NFeAutorizacao/NFeAutorizacao4.asmx"
_RS_AUT_PROD = "https://nfe.sefaz.rs.gov.br/ws/NFeAutorizacao/NFeAutorizacao4.asmx"

# ============================================================
# 1) NFeAutorizacao4 (envio de NFe)
# ============================================================

AUTORIZACAO: Dict[str, Dict[int, str]] = {
    "hom": {
        12: _AN_AUT_HOM,  # AC
        27: _AN_AUT_HOM,  # AL
        16: _AN_AUT_HOM,  # AP
        13: "https://homnfe.sefaz.am.gov.br/services2/services/NfeAutorizacao4",
        29: "https://hnfe.sefaz.ba.gov.br/webservices/NFeAutorizacao4/NFeAutorizacao4.asmx",
        23: "https://nfehom.sefaz.ce.gov.br/nfe4/services/NFeAutorizacao4",
        53: _AN_AUT_HOM,  # DF
        32: _AN_AUT_HOM,  # ES
        52: "https://hom.nfe.sefaz.go.gov.br/nfe/services/NFeAutorizacao4",
        21: _AN_AUT_HOM,  # MA
        51: "https://homologacao.sefaz.mt.gov.br/nfews/v2/services/NfeAutorizacao4",
        50: "https://hom.nfe.fazenda.ms.gov.br/NfeAutorizacao4/NFeAutorizacao4.asmx",
        31: "https://hnfe.fazenda.mg.gov.br/nfe/services/NFeAutorizacao4",
        15: "https://appnf.sefa.pa.gov.br/nfe-services/services/NFeAutorizacao4",
        25: _AN_AUT_HOM,  # PB
        41: "https://homologacao.nfe.fazenda.pr.gov.br/nfe/services/NFeAutorizacao4",
        26: "https://nfehom.sefaz.pe.gov.br/nfe-service/services/NFeAutorizacao4",
        22: _AN_AUT_HOM,  # PI
        33: _RS_AUT_HOM,  # RJ (SVRS)
        24: _AN_AUT_HOM,  # RN
        43: _RS_AUT_HOM,  # RS
        11: _AN_AUT_HOM,  # RO
        14: _AN_AUT_HOM,  # RR
        42: _RS_AUT_HOM,  # SC (SVRS)
        35: "https://homologacao.nfe.fazenda.sp.gov.br/ws/NfeAutorizacao4.asmx",
        28: _AN_AUT_HOM,  # SE
        17: _AN_AUT_HOM,  # TO
        91: _AN_AUT_HOM,  # SVC-AN
        90: _RS_AUT_HOM,  # SVRS
    },
    "prod": {
        12: _AN_AUT_PROD,
        27: _AN_AUT_PROD,
        16: _AN_AUT_PROD,
        13: "https://nfe.sefaz.am.gov.br/services2/services/NfeAutorizacao4",
        29: "https://nfe.sefaz.ba.gov.br/webservices/NFeAutorizacao4/NFeAutorizacao4.asmx",
        23: "https://nfece.sefaz.ce.gov.br/nfe4/services/NFeAutorizacao4",
        53: _AN_AUT_PROD,
        32: _AN_AUT_PROD,
        52: "https://nfe.sefaz.go.gov.br/nfe/services/NFeAutorizacao4",
        21: _AN_AUT_PROD,
        51: "https://nfe.sefaz.mt.gov.br/nfews/v2/services/NfeAutorizacao4",
        50: "https://nfe.fazenda.ms.gov.br/NfeAutorizacao4/NFeAutorizacao4.asmx",
        31: "https://nfe.fazenda.mg.gov.br/nfe/services/NFeAutorizacao4",
        15: "https://app.sefa.pa.gov.br/nfe/services/NFeAutorizacao4",
        25: _AN_AUT_PROD,
        41: "https://nfe.fazenda.pr.gov.br/nfe/services/NFeAutorizacao4",
        26: "https://nfe.sefaz.pe.gov.br/nfe-service/services/NFeAutorizacao4",
        22: _AN_AUT_PROD,
        33: _RS_AUT_PROD,
        24: _AN_AUT_PROD,
        43: _RS_AUT_PROD,
        11: _AN_AUT_PROD,
        14: _AN_AUT_PROD,
        42: _RS_AUT_PROD,
        35: "https://nfe.fazenda.sp.gov.br/ws/NfeAutorizacao4.asmx",
        28: _AN_AUT_PROD,
        17: _AN_AUT_PROD,
        91: _AN_AUT_PROD,
        90: _RS_AUT_PROD,
    },
}

# ============================================================
# 2) NfeConsultaProtocolo4
# ============================================================

CONSULTA_PROTOCOLO: Dict[str, Dict[int, str]] = {
    "hom": {
        91: "https://hom1.nfe.fazenda.gov.br/NfeConsultaProtocolo4/NfeConsultaProtocolo4.asmx",
        90: "https://hom.sefaz.rs.gov.br/ws/NfeConsultaProtocolo/NfeConsultaProtocolo4.asmx",
        35: "https://homologacao.nfe.fazenda.sp.gov.br/ws/NfeConsultaProtocolo4.asmx",
        31: "https://hnfe.fazenda.mg.gov.br/nfe/services/NfeConsultaProtocolo4",
        43: "https://hom.sefaz.rs.gov.br/ws/NfeConsultaProtocolo/NfeConsultaProtocolo4.asmx",
        33: "https://hom.sefaz.rs.gov.br/ws/NfeConsultaProtocolo/NfeConsultaProtocolo4.asmx",
        42: "https://hom.sefaz.rs.gov.br/ws/NfeConsultaProtocolo/NfeConsultaProtocolo4.asmx",
    },
    "prod": {
        91: "https://nfe.fazenda.gov.br/NfeConsultaProtocolo4/NfeConsultaProtocolo4.asmx",
        90: "https://nfe.sefaz.rs.gov.br/ws/NfeConsultaProtocolo/NfeConsultaProtocolo4.asmx",
        35: "https://nfe.fazenda.sp.gov.br/ws/NfeConsultaProtocolo4.asmx",
        31: "https://nfe.fazenda.mg.gov.br/nfe/services/NfeConsultaProtocolo4",
        43: "https://nfe.sefaz.rs.gov.br/ws/NfeConsultaProtocolo/NfeConsultaProtocolo4.asmx",
        33: "https://nfe.sefaz.rs.gov.br/ws/NfeConsultaProtocolo/NfeConsultaProtocolo4.asmx",
        42: "https://nfe.sefaz.rs.gov.br/ws/NfeConsultaProtocolo/NfeConsultaProtocolo4.asmx",
    },
}

# ============================================================
# 3) NfeInutilizacao4
# ============================================================

INUTILIZACAO: Dict[str, Dict[int, str]] = {
    "hom": {
        91: "https://hom1.nfe.fazenda.gov.br/NfeInutilizacao4/NfeInutilizacao4.asmx",
        90: "https://hom.sefaz.rs.gov.br/ws/NfeInutilizacao/NfeInutilizacao4.asmx",
        35: "https://homologacao.nfe.fazenda.sp.gov.br/ws/NfeInutilizacao4.asmx",
        31: "https://hnfe.fazenda.mg.gov.br/nfe/services/NfeInutilizacao4",
        43: "https://hom.sefaz.rs.gov.br/ws/NfeInutilizacao/NfeInutilizacao4.asmx",
    },
    "prod": {
        91: "https://nfe.fazenda.gov.br/NfeInutilizacao4/NfeInutilizacao4.asmx",
        90: "https://nfe.sefaz.rs.gov.br/ws/NfeInutilizacao/NfeInutilizacao4.asmx",
        35: "https://nfe.fazenda.sp.gov.br/ws/NfeInutilizacao4.asmx",
        31: "https://nfe.fazenda.mg.gov.br/nfe/services/NfeInutilizacao4",
        43: "https://nfe.sefaz.rs.gov.br/ws/NfeInutilizacao/NfeInutilizacao4.asmx",
    },
}

# ============================================================
# 4) NFeRecepcaoEvento4 (cancelamento e demais eventos)
# ============================================================

RECEPCAO_EVENTO: Dict[str, Dict[int, str]] = {
    "hom": {
        91: "https://hom1.nfe.fazenda.gov.br/NFeRecepcaoEvento4/NFeRecepcaoEvento4.asmx",
        90: "https://hom.sefaz.rs.gov.br/ws/NFeRecepcaoEvento4/NFeRecepcaoEvento4.asmx",
        35: "https://homologacao.nfe.fazenda.sp.gov.br/ws/NFeRecepcaoEvento4.asmx",
        31: "https://hnfe.fazenda.mg.gov.br/nfe/services/NFeRecepcaoEvento4",
        43: "https://hom.sefaz.rs.gov.br/ws/NFeRecepcaoEvento4/NFeRecepcaoEvento4.asmx",
    },
    "prod": {
        91: "https://nfe.fazenda.gov.br/NFeRecepcaoEvento4/NFeRecepcaoEvento4.asmx",
        90: "https://nfe.sefaz.rs.gov.br/ws/NFeRecepcaoEvento4/NFeRecepcaoEvento4.asmx",
        35: "https://nfe.fazenda.sp.gov.br/ws/NFeRecepcaoEvento4.asmx",
        31: "https://nfe.fazenda.mg.gov.br/nfe/services/NFeRecepcaoEvento4",
        43: "https://nfe.sefaz.rs.gov.br/ws/NFeRecepcaoEvento4/NFeRecepcaoEvento4.asmx",
    },
}

# ============================================================
# 5) NFeStatusServico4
# ============================================================

STATUS_SERVICO: Dict[str, Dict[int, str]] = {
    "hom": {
        91: "https://hom1.nfe.fazenda.gov.br/NFeStatusServico4/NFeStatusServico4.asmx",
        90: "https://hom.sefaz.rs.gov.br/ws/NFeStatusServico/NFeStatusServico4.asmx",
        35: "https://homologacao.nfe.fazenda.sp.gov.br/ws/NFeStatusServico4.asmx",
        31: "https://hnfe.fazenda.mg.gov.br/nfe/services/NFeStatusServico4",
        43: "https://hom.sefaz.rs.gov.br/ws/NFeStatusServico/NFeStatusServico4.asmx",
    },
    "prod": {
        91: "https://nfe.fazenda.gov.br/NFeStatusServico4/NFeStatusServico4.asmx",
        90: "https://nfe.sefaz.rs.gov.br/ws/NFeStatusServico/NFeStatusServico4.asmx",
        35: "https://nfe.fazenda.sp.gov.br/ws/NFeStatusServico4.asmx",
        31: "https://nfe.fazenda.mg.gov.br/nfe/services/NFeStatusServico4",
        43: "https://nfe.sefaz.rs.gov.br/ws/NFeStatusServico/NFeStatusServico4.asmx",
    },
}

ENDPOINTS = {
    ServicoNFe.AUTORIZACAO: AUTORIZACAO,
    ServicoNFe.CONSULTA_PROTOCOLO: CONSULTA_PROTOCOLO,
    ServicoNFe.INUTILIZACAO: INUTILIZACAO,
    ServicoNFe.RECEPCAO_EVENTO: RECEPCAO_EVENTO,
    ServicoNFe.STATUS_SERVICO: STATUS_SERVICO,
}


def get_endpoint_url(servico: ServicoNFe, cuf: int | str, ambiente: Ambiente) -> str:
    """
    URL do webservice para (serviço, UF, ambiente).
    UF fora da tabela cai no ambiente nacional + caminho do serviço.
    """
    servico = ServicoNFe(servico)
    env = "prod" if Ambiente.from_nome(ambiente).producao else "hom"
    tabela = ENDPOINTS[servico][env]
    url = tabela.get(int(cuf))
    if url:
        return url
    base = DEFAULT_PROD_AN if env == "prod" else DEFAULT_HOM_AN
    return base + SERVICE_PATH[servico]


def get_endpoint(servico: ServicoNFe, cuf: int | str, ambiente: Ambiente) -> EndpointInfo:
    """
    Endpoint completo (URL + namespace do WSDL) usado pelo envio SOAP 1.2.
    """
    servico = ServicoNFe(servico)
    return EndpointInfo(
        url=get_endpoint_url(servico, cuf, ambiente),
        namespace=SERVICE_NAMESPACE[servico],
    )
