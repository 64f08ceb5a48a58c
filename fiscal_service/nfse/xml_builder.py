# fiscal_service/nfse/xml_builder.py
"""
Montagem dos pedidos da NFS-e de São Paulo (leiaute v01-1).

- PedidoEnvioLoteRPS: lote assíncrono (e o teste de envio)
- PedidoEnvioRPS: um RPS, processamento síncrono
- PedidoConsultaSituacaoLote: situação do lote pelo protocolo

Os elementos seguem a ordem do XSD da prefeitura. Cabecalho e RPS vão com
xmlns="" dentro da raiz qualificada, como nos exemplos do manual.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..core.erros import ErroMontagemDocumento
from ..core.xml_utils import esc, fmt, only_digits
from .assinatura_rps import valor_booleano

NFSE_SP_NS = "http://www.prefeitura.sp.gov.br/nfe"
NFSE_SP_TIPOS_NS = "http://www.prefeitura.sp.gov.br/nfe/tipos"
LAYOUT_SUPORTADO = "v01-1"

CAMPOS_RPS_OBRIGATORIOS = (
    ("tipoRPS", "Tipo do RPS é obrigatório"),
    ("dataEmissao", "Data de emissão é obrigatória"),
    ("statusRPS", "Status do RPS é obrigatório"),
    ("tributacaoRPS", "Tributação do RPS é obrigatória"),
    ("valorServicos", "Valor de serviços é obrigatório"),
    ("valorDeducoes", "Valor de deduções é obrigatório"),
    ("codigoServico", "Código do serviço é obrigatório"),
    ("aliquotaServicos", "Alíquota de serviços é obrigatória"),
    ("issRetido", "ISS Retido é obrigatório"),
    ("discriminacao", "Discriminação dos serviços é obrigatória"),
)

# (chave no JSON, tag) dos valores opcionais entre ValorDeducoes e CodigoServico
VALORES_RETENCOES = (
    ("valorPIS", "ValorPIS"),
    ("valorCOFINS", "ValorCOFINS"),
    ("valorINSS", "ValorINSS"),
    ("valorIR", "ValorIR"),
    ("valorCSLL", "ValorCSLL"),
)

CAMPOS_ENDERECO = (
    ("tipoLogradouro", "TipoLogradouro"),
    ("logradouro", "Logradouro"),
    ("numeroEndereco", "NumeroEndereco"),
    ("complementoEndereco", "ComplementoEndereco"),
    ("bairro", "Bairro"),
    ("cidade", "Cidade"),
    ("uf", "UF"),
    ("cep", "CEP"),
)


def _vazio(valor: Any) -> bool:
    return valor is None or valor == ""


def _t(tag: str, valor: Any) -> str:
    return f"<{tag}>{esc('' if valor is None else valor)}</{tag}>"


def _opc(dados: Dict[str, Any], chave: str, tag: str) -> str:
    valor = dados.get(chave)
    if _vazio(valor):
        return ""
    return _t(tag, valor)


def _bool(valor: Any) -> str:
    return "true" if valor_booleano(valor) else "false"


# ----------------------------------------------------------------------
# Validação
# ----------------------------------------------------------------------


def validar_layout(layout_version: Optional[str]) -> None:
    if layout_version != LAYOUT_SUPORTADO:
        raise ErroMontagemDocumento(
            f"Layout não suportado. Versão esperada: {LAYOUT_SUPORTADO}",
            campo="layoutVersion",
        )


def validar_cpf_cnpj(cpf_cnpj: Optional[Dict[str, Any]], campo: str) -> None:
    if not cpf_cnpj:
        raise ErroMontagemDocumento("CPF/CNPJ do remetente é obrigatório", campo=campo)
    if not cpf_cnpj.get("cnpj") and not cpf_cnpj.get("cpf"):
        raise ErroMontagemDocumento("Informe CPF ou CNPJ do remetente", campo=campo)


def validar_rps(rps: Dict[str, Any], indice: int) -> None:
    n = indice + 1
    caminho = f"lote.rps[{indice}]"
    chave = rps.get("chaveRPS")
    if not chave:
        raise ErroMontagemDocumento(f"RPS {n}: Chave do RPS é obrigatória", campo=f"{caminho}.chaveRPS")
    for campo, rotulo in (
        ("inscricaoPrestador", "Inscrição do prestador é obrigatória"),
        ("serieRPS", "Série do RPS é obrigatória"),
        ("numeroRPS", "Número do RPS é obrigatório"),
    ):
        if _vazio(chave.get(campo)):
            raise ErroMontagemDocumento(f"RPS {n}: {rotulo}", campo=f"{caminho}.chaveRPS.{campo}")
    for campo, rotulo in CAMPOS_RPS_OBRIGATORIOS:
        if _vazio(rps.get(campo)):
            raise ErroMontagemDocumento(f"RPS {n}: {rotulo}", campo=f"{caminho}.{campo}")


def validar_lote(lote: Optional[Dict[str, Any]]) -> None:
    """
    Confere o lote antes de qualquer assinatura ou envio.
    QtdRPS precisa bater com a quantidade de RPS enviados.
    """
    if not lote:
        raise ErroMontagemDocumento("Dados do lote são obrigatórios", campo="lote")
    cabecalho = lote.get("cabecalho")
    if not cabecalho:
        raise ErroMontagemDocumento("Cabeçalho do lote é obrigatório", campo="lote.cabecalho")

    validar_cpf_cnpj(cabecalho.get("cpfCnpjRemetente"), "lote.cabecalho.cpfCnpjRemetente")
    if _vazio(cabecalho.get("dtInicio")):
        raise ErroMontagemDocumento("Data de início é obrigatória", campo="lote.cabecalho.dtInicio")
    if _vazio(cabecalho.get("dtFim")):
        raise ErroMontagemDocumento("Data de fim é obrigatória", campo="lote.cabecalho.dtFim")
    if not cabecalho.get("qtdRPS"):
        raise ErroMontagemDocumento("Quantidade de RPS é obrigatória", campo="lote.cabecalho.qtdRPS")
    if _vazio(cabecalho.get("valorTotalServicos")):
        raise ErroMontagemDocumento(
            "Valor total de serviços é obrigatório", campo="lote.cabecalho.valorTotalServicos"
        )

    rps_lista = lote.get("rps")
    if not isinstance(rps_lista, list) or not rps_lista:
        raise ErroMontagemDocumento(
            "Lista de RPS é obrigatória e deve conter ao menos um RPS", campo="lote.rps"
        )

    try:
        qtd = int(cabecalho["qtdRPS"])
    except (TypeError, ValueError) as exc:
        raise ErroMontagemDocumento(
            "Quantidade de RPS deve ser numérica", campo="lote.cabecalho.qtdRPS"
        ) from exc
    if len(rps_lista) != qtd:
        raise ErroMontagemDocumento(
            f"Quantidade de RPS informada ({qtd}) não corresponde à quantidade "
            f"enviada ({len(rps_lista)})",
            campo="lote.cabecalho.qtdRPS",
        )

    for indice, rps in enumerate(rps_lista):
        validar_rps(rps, indice)


# ----------------------------------------------------------------------
# Blocos
# ----------------------------------------------------------------------


def montar_cpf_cnpj(tag: str, cpf_cnpj: Dict[str, Any], attrs: str = "") -> str:
    """<tag><CNPJ>..</CNPJ></tag> ou <tag><CPF>..</CPF></tag>."""
    if cpf_cnpj.get("cnpj"):
        interno = _t("CNPJ", only_digits(cpf_cnpj["cnpj"]))
    elif cpf_cnpj.get("cpf"):
        interno = _t("CPF", only_digits(cpf_cnpj["cpf"]))
    else:
        raise ErroMontagemDocumento("CPF ou CNPJ é obrigatório", campo=tag)
    return f"<{tag}{attrs}>{interno}</{tag}>"


def montar_endereco(endereco: Dict[str, Any]) -> str:
    xml = "<EnderecoTomador>"
    for chave, tag in CAMPOS_ENDERECO:
        xml += _opc(endereco, chave, tag)
    xml += "</EnderecoTomador>"
    return xml


def montar_chave_rps(chave: Dict[str, Any]) -> str:
    return (
        "<ChaveRPS>"
        + _t("InscricaoPrestador", chave.get("inscricaoPrestador"))
        + _t("SerieRPS", chave.get("serieRPS"))
        + _t("NumeroRPS", chave.get("numeroRPS"))
        + "</ChaveRPS>"
    )


def montar_rps(rps: Dict[str, Any]) -> str:
    """
    <RPS xmlns=""> na ordem do tpRPS. A assinatura posicional já deve estar
    em rps["assinatura"].
    """
    xml = '<RPS xmlns="">'
    xml += _t("Assinatura", rps.get("assinatura"))
    xml += montar_chave_rps(rps.get("chaveRPS") or {})
    xml += _t("TipoRPS", rps.get("tipoRPS"))
    xml += _t("DataEmissao", rps.get("dataEmissao"))
    xml += _t("StatusRPS", rps.get("statusRPS"))
    xml += _t("TributacaoRPS", rps.get("tributacaoRPS"))
    xml += _t("ValorServicos", fmt(rps.get("valorServicos"), 2, "valorServicos"))
    xml += _t("ValorDeducoes", fmt(rps.get("valorDeducoes"), 2, "valorDeducoes"))

    for chave, tag in VALORES_RETENCOES:
        if rps.get(chave) is not None:
            xml += _t(tag, fmt(rps[chave], 2, chave))

    xml += _t("CodigoServico", rps.get("codigoServico"))
    xml += _t("AliquotaServicos", fmt(rps.get("aliquotaServicos"), 4, "aliquotaServicos"))
    xml += _t("ISSRetido", _bool(rps.get("issRetido")))

    # Tomador
    if rps.get("cpfCnpjTomador"):
        xml += montar_cpf_cnpj("CPFCNPJTomador", rps["cpfCnpjTomador"])
    xml += _opc(rps, "inscricaoMunicipalTomador", "InscricaoMunicipalTomador")
    xml += _opc(rps, "inscricaoEstadualTomador", "InscricaoEstadualTomador")
    xml += _opc(rps, "razaoSocialTomador", "RazaoSocialTomador")
    if rps.get("enderecoTomador"):
        xml += montar_endereco(rps["enderecoTomador"])
    xml += _opc(rps, "emailTomador", "EmailTomador")

    # Intermediário
    if rps.get("cpfCnpjIntermediario"):
        xml += montar_cpf_cnpj("CPFCNPJIntermediario", rps["cpfCnpjIntermediario"])
    xml += _opc(rps, "inscricaoMunicipalIntermediario", "InscricaoMunicipalIntermediario")
    if not _vazio(rps.get("issRetidoIntermediario")):
        xml += _t("ISSRetidoIntermediario", _bool(rps["issRetidoIntermediario"]))
    xml += _opc(rps, "emailIntermediario", "EmailIntermediario")

    xml += _t("Discriminacao", rps.get("discriminacao"))

    # Carga tributária (Lei 12.741)
    if rps.get("valorCargaTributaria") is not None:
        xml += _t("ValorCargaTributaria", fmt(rps["valorCargaTributaria"], 2, "valorCargaTributaria"))
    if rps.get("percentualCargaTributaria") is not None:
        xml += _t(
            "PercentualCargaTributaria",
            fmt(rps["percentualCargaTributaria"], 2, "percentualCargaTributaria"),
        )
    xml += _opc(rps, "fonteCargaTributaria", "FonteCargaTributaria")

    # Construção civil
    xml += _opc(rps, "codigoCEI", "CodigoCEI")
    xml += _opc(rps, "matriculaObra", "MatriculaObra")
    xml += _opc(rps, "municipioPrestacao", "MunicipioPrestacao")
    xml += _opc(rps, "numeroEncapsulamento", "NumeroEncapsulamento")
    if rps.get("valorTotalRecebido") is not None:
        xml += _t("ValorTotalRecebido", fmt(rps["valorTotalRecebido"], 2, "valorTotalRecebido"))

    xml += "</RPS>"
    return xml


def montar_cabecalho_lote(cabecalho: Dict[str, Any]) -> str:
    transacao = cabecalho.get("transacao")
    xml = '<Cabecalho Versao="1" xmlns="">'
    xml += montar_cpf_cnpj("CPFCNPJRemetente", cabecalho["cpfCnpjRemetente"])
    xml += _t("transacao", _bool(True if transacao is None else transacao))
    xml += _t("dtInicio", cabecalho.get("dtInicio"))
    xml += _t("dtFim", cabecalho.get("dtFim"))
    xml += _t("QtdRPS", cabecalho.get("qtdRPS"))
    xml += _t(
        "ValorTotalServicos",
        fmt(cabecalho.get("valorTotalServicos"), 2, "lote.cabecalho.valorTotalServicos"),
    )
    if cabecalho.get("valorTotalDeducoes") is not None:
        xml += _t(
            "ValorTotalDeducoes",
            fmt(cabecalho["valorTotalDeducoes"], 2, "lote.cabecalho.valorTotalDeducoes"),
        )
    xml += "</Cabecalho>"
    return xml


# ----------------------------------------------------------------------
# Pedidos
# ----------------------------------------------------------------------


def montar_pedido_envio_lote(cabecalho: Dict[str, Any], rps_assinados: List[Dict[str, Any]]) -> str:
    """
    <PedidoEnvioLoteRPS> sem a assinatura do lote (entra depois, como último
    filho da raiz).
    """
    xml = f'<PedidoEnvioLoteRPS xmlns="{NFSE_SP_NS}" xmlns:tipos="{NFSE_SP_TIPOS_NS}">'
    xml += montar_cabecalho_lote(cabecalho)
    for rps in rps_assinados:
        xml += montar_rps(rps)
    xml += "</PedidoEnvioLoteRPS>"
    return xml


def montar_pedido_envio_rps(cpf_cnpj_remetente: Dict[str, Any], rps_assinado: Dict[str, Any]) -> str:
    """<PedidoEnvioRPS> com um único RPS (EnvioRPS, síncrono)."""
    xml = f'<PedidoEnvioRPS xmlns="{NFSE_SP_NS}" xmlns:tipos="{NFSE_SP_TIPOS_NS}">'
    xml += '<Cabecalho Versao="1" xmlns="">'
    xml += montar_cpf_cnpj("CPFCNPJRemetente", cpf_cnpj_remetente)
    xml += "</Cabecalho>"
    xml += montar_rps(rps_assinado)
    xml += "</PedidoEnvioRPS>"
    return xml


def montar_pedido_consulta_situacao_lote(
    cpf_cnpj_remetente: Dict[str, Any],
    numero_protocolo: Any,
) -> str:
    validar_cpf_cnpj(cpf_cnpj_remetente, "cpfCnpjRemetente")
    if _vazio(numero_protocolo):
        raise ErroMontagemDocumento("Número do protocolo é obrigatório", campo="numeroProtocolo")
    return (
        f'<PedidoConsultaSituacaoLote xmlns="{NFSE_SP_NS}" xmlns:tipos="{NFSE_SP_TIPOS_NS}">'
        + montar_cpf_cnpj("CPFCNPJRemetente", cpf_cnpj_remetente, ' xmlns=""')
        + f'<NumeroProtocolo xmlns="">{esc(numero_protocolo)}</NumeroProtocolo>'
        + "</PedidoConsultaSituacaoLote>"
    )
