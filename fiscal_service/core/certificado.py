# fiscal_service/core/certificado.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.serialization.pkcs12 import (
    load_key_and_certificates,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PrivateFormat,
    NoEncryption,
)

from .erros import CertificadoInvalido, SenhaInvalida

logger = logging.getLogger(__name__)

# PFX é um SEQUENCE DER
_DER_SEQUENCE = 0x30


@dataclass(frozen=True)
class CertificadoPFX:
    """
    Par (chave privada, certificado folha) aberto a partir de um PKCS#12.
    Vive só durante a requisição; nunca é persistido nem logado.
    """

    chave: RSAPrivateKey
    certificado: x509.Certificate

    @property
    def pem_key(self) -> bytes:
        return self.chave.private_bytes(
            encoding=Encoding.PEM,
            format=PrivateFormat.PKCS8,
            encryption_algorithm=NoEncryption(),
        )

    @property
    def pem_cert(self) -> bytes:
        return self.certificado.public_bytes(Encoding.PEM)

    @property
    def der_cert_b64(self) -> str:
        """Certificado em base64 (DER) em uma linha, como vai no X509Certificate."""
        pem = self.pem_cert.decode("ascii")
        linhas = [l for l in pem.splitlines() if l and not l.startswith("-----")]
        return "".join(linhas)

    @property
    def titular(self) -> str:
        return self.certificado.subject.rfc4514_string()


def carregar_pfx(pfx_data: bytes, senha: Optional[str]) -> CertificadoPFX:
    """
    Abre o PKCS#12 (DER) com a senha e devolve chave + certificado.

    - SenhaInvalida: o conteúdo tem cara de PFX mas não decifra com a senha.
    - CertificadoInvalido: não é um PFX, ou falta a chave/certificado.
    """
    if not pfx_data or pfx_data[0] != _DER_SEQUENCE:
        raise CertificadoInvalido("Arquivo de certificado não é um PKCS#12 válido")

    try:
        key, cert, _extra_certs = load_key_and_certificates(
            pfx_data,
            senha.encode("utf-8") if senha else None,
        )
    except ValueError as exc:
        logger.warning("Falha ao decifrar PKCS#12: senha incorreta ou conteúdo corrompido")
        raise SenhaInvalida() from exc

    if key is None:
        raise CertificadoInvalido("Chave privada não encontrada no certificado")
    if cert is None:
        raise CertificadoInvalido("Certificado não encontrado no arquivo PFX")
    if not isinstance(key, RSAPrivateKey):
        raise CertificadoInvalido("Chave privada do certificado não é RSA")

    return CertificadoPFX(chave=key, certificado=cert)
