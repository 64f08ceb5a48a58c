# fiscal_service/nfe/assinatura.py
from __future__ import annotations

from ..core.assinatura import PERFIL_SHA256, assinar_elemento
from ..core.certificado import CertificadoPFX


# --------------------------------------------------------
# Wrappers da NF-e 4.00 (RSA-SHA256 / SHA-256)
# --------------------------------------------------------
def assinar_nfe_xml(xml: str, certificado: CertificadoPFX) -> str:
    """
    Assina a <NFe>: referência "#NFe{chave}", Signature irmã de <infNFe>.
    """
    return assinar_elemento(xml, certificado, PERFIL_SHA256, tag_referencia="infNFe")


def assinar_evento_xml(xml: str, certificado: CertificadoPFX) -> str:
    """
    Assina o <evento> (referência ao <infEvento>).
    """
    return assinar_elemento(xml, certificado, PERFIL_SHA256, tag_referencia="infEvento")


def assinar_inut_xml(xml: str, certificado: CertificadoPFX) -> str:
    """
    Assina o <inutNFe> (referência ao <infInut>).
    """
    return assinar_elemento(xml, certificado, PERFIL_SHA256, tag_referencia="infInut")
