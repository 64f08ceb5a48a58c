# fiscal_service/nfe/chave.py
"""
Identificadores da NF-e.

Chave de acesso (44 dígitos):
    cUF(2) + AAMM(4) + CNPJ(14) + mod(2) + serie(3) + nNF(9)
    + tpEmis(1) + cNF(8) + cDV(1)
"""
from __future__ import annotations

import datetime as _dt
import random
from dataclasses import dataclass
from typing import Optional

from ..core.erros import ErroMontagemDocumento, TamanhoChaveInvalido
from ..core.xml_utils import only_digits

PESOS_MOD11 = (2, 3, 4, 5, 6, 7, 8, 9)

TIPO_EVENTO_CANCELAMENTO = "110111"


@dataclass(frozen=True)
class ChaveAcesso:
    chave: str
    cNF: str
    cDV: str

    @property
    def id_inf_nfe(self) -> str:
        return f"NFe{self.chave}"


def calcular_digito_verificador(chave43: str) -> int:
    """
    Módulo 11 com pesos 2..9 repetidos, da direita para a esquerda.
    Resto < 2 => 0, senão 11 - resto.
    """
    soma = 0
    for i, digito in enumerate(reversed(chave43)):
        soma += int(digito) * PESOS_MOD11[i % len(PESOS_MOD11)]
    resto = soma % 11
    if resto < 2:
        return 0
    return 11 - resto


def _gerar_cnf() -> str:
    return str(random.randint(1, 99999999)).zfill(8)


def calcular_chave_acesso(
    cUF: str | int,
    dhEmi: str,
    cnpj: str,
    mod: str | int,
    serie: str | int,
    nNF: str | int,
    tpEmis: str | int,
    cNF: Optional[str | int] = None,
) -> ChaveAcesso:
    """
    Calcula a chave de acesso de 44 dígitos.

    - dhEmi no formato AAAA-MM-DDThh:mm:ssTZD (usa AA e MM).
    - CNPJ/CPF: só dígitos, completado com zeros até 14.
    - cNF: gerado aleatoriamente (8 dígitos) se não informado.
    """
    dhEmi = str(dhEmi or "")
    if len(dhEmi) < 7:
        raise ErroMontagemDocumento("dhEmi inválido para a chave de acesso", campo="ide.dhEmi")

    aamm = dhEmi[2:4] + dhEmi[5:7]
    cnf = str(cNF).zfill(8) if cNF not in (None, "") else _gerar_cnf()

    chave43 = (
        str(cUF).zfill(2)
        + aamm
        + only_digits(cnpj).zfill(14)[:14]
        + str(mod).zfill(2)
        + str(serie).zfill(3)
        + str(nNF).zfill(9)
        + str(tpEmis).zfill(1)
        + cnf
    )

    if len(chave43) != 43 or not chave43.isdigit():
        raise TamanhoChaveInvalido(
            f"Chave base inválida: esperado 43 dígitos, obtido {len(chave43)}",
            detalhe={"tamanho": len(chave43)},
        )

    cdv = str(calcular_digito_verificador(chave43))
    return ChaveAcesso(chave=chave43 + cdv, cNF=cnf, cDV=cdv)


def montar_id_inutilizacao(
    cUF: str | int,
    ano: str | int | None,
    cnpj: str,
    mod: str | int,
    serie: str | int,
    nNFIni: str | int,
    nNFFin: str | int,
) -> str:
    """
    ID + cUF(2) + ano(2) + CNPJ(14) + mod(2) + serie(3) + nNFIni(9) + nNFFin(9)
    Ano com 4 dígitos é reduzido aos 2 últimos; ausente => ano corrente.
    """
    return (
        "ID"
        + str(cUF).zfill(2)
        + normalizar_ano(ano)
        + only_digits(cnpj).zfill(14)[:14]
        + str(mod).zfill(2)
        + str(serie).zfill(3)
        + str(nNFIni).zfill(9)
        + str(nNFFin).zfill(9)
    )


def normalizar_ano(ano: str | int | None) -> str:
    if ano in (None, ""):
        ano = _dt.date.today().year
    return only_digits(ano).zfill(2)[-2:]


def montar_id_evento(tipo_evento: str, chave: str, sequencia: int | str = 1) -> str:
    """
    ID + tpEvento(6) + chNFe(44) + nSeqEvento(2)
    """
    chave = only_digits(chave)
    if len(chave) != 44:
        raise ErroMontagemDocumento("Chave de acesso (chNFe) deve ter 44 dígitos", campo="chNFe")
    return f"ID{tipo_evento}{chave}{str(sequencia).zfill(2)}"
