# fiscal_service/core/assinatura.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from lxml import etree
import xmlsec

from .certificado import CertificadoPFX
from .erros import ErroAssinatura
from .xml_utils import parse_xml

logger = logging.getLogger(__name__)

DSIG_NS = "http://www.w3.org/2000/09/xmldsig#"


@dataclass(frozen=True)
class PerfilAssinatura:
    """Par (algoritmo de assinatura, algoritmo de digest) do xmlsec."""

    nome: str
    assinatura: object
    digest: object


# NF-e 4.00: RSA-SHA256 / SHA-256
PERFIL_SHA256 = PerfilAssinatura("sha256", xmlsec.Transform.RSA_SHA256, xmlsec.Transform.SHA256)

# NFS-e São Paulo: RSA-SHA1 / SHA-1
PERFIL_SHA1 = PerfilAssinatura("sha1", xmlsec.Transform.RSA_SHA1, xmlsec.Transform.SHA1)


def _limpar_whitespace_subarvore(elem: etree._Element) -> None:
    """
    Remove nós de texto/tail que sejam APENAS whitespace em toda a subárvore.
    Usado ANTES da assinatura, para que o template de Signature não tenha
    \\n/\\r/\\t "decorativos".
    """
    for node in elem.iter():
        if node.text is not None and node.text.strip() == "":
            node.text = ""
        if node.tail is not None and node.tail.strip() == "":
            node.tail = ""


def _compactar_base64(signature_el: etree._Element) -> None:
    """
    Após assinar: SignatureValue e X509Certificate em uma linha só.
    """
    sigval_el = signature_el.find(f".//{{{DSIG_NS}}}SignatureValue")
    if sigval_el is not None:
        sigval_el.text = "".join("".join(sigval_el.itertext()).split())

    x509data_el = signature_el.find(f".//{{{DSIG_NS}}}X509Data")
    if x509data_el is not None:
        if x509data_el.text is not None and x509data_el.text.strip() == "":
            x509data_el.text = ""
        for cert_el in x509data_el.findall(f"{{{DSIG_NS}}}X509Certificate"):
            if cert_el.text:
                cert_el.text = "".join("".join(cert_el.itertext()).split())
            if cert_el.tail is not None and cert_el.tail.strip() == "":
                cert_el.tail = ""


def assinar_elemento(
    xml: str,
    certificado: CertificadoPFX,
    perfil: PerfilAssinatura,
    tag_referencia: Optional[str] = None,
    xml_declaration: bool = False,
) -> str:
    """
    Assina o XML com XML-DSig envelopado (enveloped + C14N).

    - tag_referencia informada (ex.: "infNFe"): localiza o nó por local-name,
      referencia "#<Id>" e põe a <Signature> logo após esse nó (irmã).
    - tag_referencia None: referência URI="" (documento inteiro) e a
      <Signature> vira o último filho da raiz.
    """
    try:
        # Só o whitespace entre tags sai (remove_blank_text); o texto fica intacto
        root = parse_xml(xml)
    except etree.XMLSyntaxError as exc:
        raise ErroAssinatura(f"XML malformado para assinatura: {exc}") from exc

    uri = ""
    alvo = None
    if tag_referencia:
        encontrados = root.xpath(f"descendant-or-self::*[local-name()='{tag_referencia}']")
        if not encontrados:
            raise ErroAssinatura(f"Não encontrado <{tag_referencia}> para assinar")
        alvo = encontrados[0]
        ref_id = alvo.get("Id")
        if not ref_id:
            raise ErroAssinatura(f"<{tag_referencia}> sem atributo Id")
        uri = f"#{ref_id}"
        xmlsec.tree.add_ids(root, ["Id"])

    signature_node = xmlsec.template.create(
        root,
        xmlsec.Transform.C14N,
        perfil.assinatura,
    )
    if alvo is not None and alvo is not root:
        alvo.addnext(signature_node)
    else:
        root.append(signature_node)

    ref = xmlsec.template.add_reference(signature_node, perfil.digest, uri=uri)
    xmlsec.template.add_transform(ref, xmlsec.Transform.ENVELOPED)
    xmlsec.template.add_transform(ref, xmlsec.Transform.C14N)

    key_info = xmlsec.template.ensure_key_info(signature_node)
    xmlsec.template.add_x509_data(key_info)

    _limpar_whitespace_subarvore(signature_node)

    try:
        ctx = xmlsec.SignatureContext()
        key = xmlsec.Key.from_memory(certificado.pem_key, xmlsec.KeyFormat.PEM, None)
        key.load_cert_from_memory(certificado.pem_cert, xmlsec.KeyFormat.PEM)
        ctx.key = key
        ctx.sign(signature_node)
    except xmlsec.Error as exc:
        logger.error("Falha no xmlsec ao assinar (%s, uri=%r)", perfil.nome, uri)
        raise ErroAssinatura(f"Erro ao assinar XML: {exc}") from exc

    _compactar_base64(signature_node)

    return etree.tostring(
        root,
        encoding="UTF-8",
        xml_declaration=xml_declaration,
        pretty_print=False,
    ).decode("utf-8")


def verificar_assinatura(xml: str, pem_cert: bytes) -> bool:
    """
    Confere a primeira <Signature> do documento com o certificado informado.
    """
    root = parse_xml(xml)
    signature_node = root.find(f".//{{{DSIG_NS}}}Signature")
    if signature_node is None:
        return False
    xmlsec.tree.add_ids(root, ["Id"])
    ctx = xmlsec.SignatureContext()
    ctx.key = xmlsec.Key.from_memory(pem_cert, xmlsec.KeyFormat.CERT_PEM, None)
    try:
        ctx.verify(signature_node)
    except xmlsec.Error:
        return False
    return True
