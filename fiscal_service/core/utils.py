# fiscal_service/core/utils.py
from __future__ import annotations

from typing import Any, Dict

import gzip
import base64

UF_CODIGOS = {
    "RO": 11,
    "AC": 12,
    "AM": 13,
    "RR": 14,
    "PA": 15,
    "AP": 16,
    "TO": 17,
    "MA": 21,
    "PI": 22,
    "CE": 23,
    "RN": 24,
    "PB": 25,
    "PE": 26,
    "AL": 27,
    "SE": 28,
    "BA": 29,
    "MG": 31,
    "ES": 32,
    "RJ": 33,
    "SP": 35,
    "PR": 41,
    "SC": 42,
    "RS": 43,
    "MS": 50,
    "MT": 51,
    "GO": 52,
    "DF": 53,
}


def obter_cuf(uf: str | int) -> int:
    """
    Aceita sigla ('SP') ou código ('35' / 35) e devolve o cUF numérico.
    """
    texto = str(uf or "").strip().upper()
    if texto.isdigit():
        return int(texto)
    if texto not in UF_CODIGOS:
        raise ValueError(f"UF inválida: {uf!r}")
    return UF_CODIGOS[texto]


def compactar_gzip_base64(texto: str) -> tuple[str, int]:
    """
    Compacta em GZip (nível 9) e retorna (base64, tamanho compactado).
    """
    gz = gzip.compress((texto or "").encode("utf-8"), compresslevel=9)
    return base64.b64encode(gz).decode("ascii"), len(gz)


def montar_soap_debug(request: str, response: str) -> Dict[str, Any]:
    """
    Par SOAP (envio/retorno) compactado para depuração.
    """
    req_b64, req_gz = compactar_gzip_base64(request)
    resp_b64, resp_gz = compactar_gzip_base64(response)
    return {
        "compression": "gzip",
        "encoding": "base64",
        "request": req_b64,
        "response": resp_b64,
        "sizes": {
            "requestBytes": len((request or "").encode("utf-8")),
            "responseBytes": len((response or "").encode("utf-8")),
            "requestCompressedBytes": req_gz,
            "responseCompressedBytes": resp_gz,
        },
    }
