# fiscal_service/nfse/assinatura_rps.py
"""
Assinatura do RPS (NFS-e São Paulo).

Não é XML-DSig: a prefeitura assina uma string posicional de largura fixa
montada com os campos do RPS, com RSA-SHA1, e o resultado vai em base64 no
elemento <Assinatura> do RPS.

Layout (86 posições; 102 com intermediário):

    inscrição prestador ......  8  zeros à esquerda
    série do RPS .............  5  espaços à direita
    número do RPS ............ 12  zeros à esquerda
    data de emissão ..........  8  AAAAMMDD
    tributação ...............  1  T / F / A / B / M / N / X / ...
    status ...................  1  N / C
    ISS retido ...............  1  S / N
    valor dos serviços ....... 15  centavos, zeros à esquerda
    valor das deduções ....... 15  centavos, zeros à esquerda
    código do serviço ........  5  zeros à esquerda
    indicador CPF/CNPJ tomador  1  1 = CPF, 2 = CNPJ, 3 = não informado
    CPF/CNPJ tomador ......... 14  zeros à esquerda
  [ indicador intermediário ..  1
    CPF/CNPJ intermediário ... 14
    ISS retido intermediário .  1  S / N ]
"""
from __future__ import annotations

import base64
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from ..core.certificado import CertificadoPFX
from ..core.erros import ErroAssinatura, ErroMontagemDocumento
from ..core.xml_utils import only_digits

logger = logging.getLogger(__name__)

TAMANHO_SEM_INTERMEDIARIO = 86
TAMANHO_COM_INTERMEDIARIO = 102

INDICADOR_CPF = "1"
INDICADOR_CNPJ = "2"
INDICADOR_NAO_INFORMADO = "3"

_VERDADEIROS = {"true", "s", "sim", "1"}


def valor_booleano(valor: Any) -> bool:
    """
    Booleano do JSON do RPS: aceita True/False, "true"/"false", "S"/"N".
    """
    if isinstance(valor, bool):
        return valor
    if valor is None:
        return False
    return str(valor).strip().lower() in _VERDADEIROS


def _centavos(valor: Any, campo: str) -> str:
    """Valor monetário em centavos, 15 posições, sem separadores."""
    if valor is None or valor == "":
        valor = 0
    try:
        centavos = int((Decimal(str(valor)) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError) as exc:
        raise ErroMontagemDocumento(
            f"Valor monetário inválido em {campo}: {valor!r}", campo=campo
        ) from exc
    return str(centavos).zfill(15)


def _documento(cpf_cnpj: Optional[Dict[str, Any]]) -> Tuple[str, str]:
    """(indicador, CPF/CNPJ com 14 posições) do tomador ou intermediário."""
    if cpf_cnpj:
        if cpf_cnpj.get("cnpj"):
            return INDICADOR_CNPJ, only_digits(cpf_cnpj["cnpj"]).zfill(14)
        if cpf_cnpj.get("cpf"):
            return INDICADOR_CPF, only_digits(cpf_cnpj["cpf"]).zfill(14)
    return INDICADOR_NAO_INFORMADO, "0" * 14


def _data_emissao(valor: Any) -> str:
    data = only_digits(str(valor or "")[:10])
    if len(data) != 8:
        raise ErroMontagemDocumento(
            f"Data de emissão do RPS inválida: {valor!r}", campo="dataEmissao"
        )
    return data


def montar_string_assinatura(rps: Dict[str, Any]) -> str:
    """
    String posicional do RPS (86 ou 102 caracteres, conforme haja
    intermediário). Qualquer largura diferente é erro de montagem.
    """
    chave = rps.get("chaveRPS") or {}

    inscricao = str(chave.get("inscricaoPrestador", "")).zfill(8)
    serie = str(chave.get("serieRPS", "")).ljust(5)
    numero = str(chave.get("numeroRPS", "")).zfill(12)
    data = _data_emissao(rps.get("dataEmissao"))
    tributacao = str(rps.get("tributacaoRPS", ""))
    status = str(rps.get("statusRPS", ""))
    iss_retido = "S" if valor_booleano(rps.get("issRetido")) else "N"
    valor_servicos = _centavos(rps.get("valorServicos"), "valorServicos")
    valor_deducoes = _centavos(rps.get("valorDeducoes"), "valorDeducoes")
    codigo_servico = str(rps.get("codigoServico", "")).zfill(5)
    ind_tomador, doc_tomador = _documento(rps.get("cpfCnpjTomador"))

    texto = (
        inscricao
        + serie
        + numero
        + data
        + tributacao
        + status
        + iss_retido
        + valor_servicos
        + valor_deducoes
        + codigo_servico
        + ind_tomador
        + doc_tomador
    )
    esperado = TAMANHO_SEM_INTERMEDIARIO

    if rps.get("cpfCnpjIntermediario"):
        ind_inter, doc_inter = _documento(rps["cpfCnpjIntermediario"])
        iss_inter = "S" if valor_booleano(rps.get("issRetidoIntermediario")) else "N"
        texto += ind_inter + doc_inter + iss_inter
        esperado = TAMANHO_COM_INTERMEDIARIO

    if len(texto) != esperado:
        raise ErroMontagemDocumento(
            f"String de assinatura do RPS inválida. Esperado {esperado} caracteres, "
            f"obtido {len(texto)}",
            campo="chaveRPS",
        )
    return texto


def assinar_rps(rps: Dict[str, Any], certificado: CertificadoPFX) -> str:
    """
    RSA-SHA1 (PKCS#1 v1.5) sobre a string posicional, em base64.
    """
    texto = montar_string_assinatura(rps)
    try:
        assinatura = certificado.chave.sign(
            texto.encode("ascii"),
            padding.PKCS1v15(),
            hashes.SHA1(),
        )
    except ValueError as exc:
        raise ErroAssinatura(f"Erro ao assinar RPS: {exc}") from exc
    logger.debug("RPS %s assinado (%d caracteres)", texto[13:25].lstrip("0"), len(texto))
    return base64.b64encode(assinatura).decode("ascii")
