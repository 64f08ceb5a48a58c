# fiscal_service/nfse/normalizador.py
"""
Normalização dos retornos da NFS-e de São Paulo para o ResultadoCanonico.

O webservice devolve um wrapper por operação e, dentro dele, o retorno de
verdade como XML escapado (RetornoXML). É um segundo documento: faz-se um
segundo parse. Na consulta de situação do lote há ainda um terceiro nível
(ResultadoOperacao), com o retorno do processamento do lote.

Erro, Alerta e ChaveNFeRPS são repetíveis e sempre viram lista.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from lxml import etree

from ..core.enums import OperacaoNFSe
from ..core.erros import RespostaIlegivel
from ..core.resultado import (
    ChaveDocumento,
    ChaveRPSOrigem,
    InfoLote,
    Mensagem,
    ResultadoCanonico,
)
from ..core.soap_client import verificar_fault
from ..core.xml_utils import descendente, filho, filhos, local_name, parse_xml, texto

logger = logging.getLogger(__name__)


def sucesso(valor) -> bool:
    """Sucesso vem como "true" no XML; aceita também booleano."""
    if isinstance(valor, bool):
        return valor
    return str(valor or "").strip().lower() == "true"


def _mensagens(ret: etree._Element, nome: str) -> List[Mensagem]:
    return [
        Mensagem(code=texto(item, "Codigo"), description=texto(item, "Descricao"))
        for item in filhos(ret, nome)
    ]


def _chaves_nfe_rps(ret: etree._Element) -> List[ChaveDocumento]:
    chaves: List[ChaveDocumento] = []
    for item in filhos(ret, "ChaveNFeRPS"):
        nfe = filho(item, "ChaveNFe")
        rps = filho(item, "ChaveRPS")
        origem = None
        if rps is not None:
            origem = ChaveRPSOrigem(
                inscricao_prestador=texto(rps, "InscricaoPrestador"),
                serie_rps=texto(rps, "SerieRPS"),
                numero_rps=texto(rps, "NumeroRPS"),
            )
        chaves.append(
            ChaveDocumento(
                inscricao_prestador=texto(nfe, "InscricaoPrestador"),
                numero_documento=texto(nfe, "NumeroNFe"),
                codigo_verificacao=texto(nfe, "CodigoVerificacao"),
                chave_origem=origem,
            )
        )
    return chaves


def _xml_interno(elem: Optional[etree._Element], raw: str) -> etree._Element:
    """
    Documento embutido em RetornoXML / ResultadoOperacao. Normalmente vem
    escapado (texto); alguns proxies devolvem já como elementos.
    """
    if elem is None:
        raise RespostaIlegivel("RetornoXML não encontrado na resposta", raw)
    embutidos = [f for f in elem if isinstance(f.tag, str)]
    if embutidos:
        return embutidos[0]
    conteudo = texto(elem)
    if not conteudo:
        raise RespostaIlegivel(f"<{local_name(elem)}> vazio na resposta", raw)
    try:
        return parse_xml(conteudo)
    except etree.XMLSyntaxError as exc:
        raise RespostaIlegivel(f"XML interno inválido em <{local_name(elem)}>: {exc}", raw) from exc


def _cabecalho(ret: etree._Element) -> Optional[etree._Element]:
    cab = filho(ret, "Cabecalho")
    return cab if cab is not None else ret


# ----------------------------------------------------------------------
# Um parser por família de retorno
# ----------------------------------------------------------------------


def _retorno_lote_async(ret: etree._Element, raw: str) -> ResultadoCanonico:
    """RetornoEnvioLoteRPSAsync (EnvioLoteRPS e TesteEnvioLoteRPS)."""
    cab = _cabecalho(ret)
    inf = filho(cab, "InformacoesLote")
    lote = None
    if inf is not None:
        lote = InfoLote(
            numero_lote=texto(inf, "NumeroProtocolo") or texto(inf, "NumeroLote"),
            recebido_em=texto(inf, "DataRecebimento"),
        )
    return ResultadoCanonico(
        success=sucesso(texto(cab, "Sucesso")),
        errors=_mensagens(ret, "Erro"),
        warnings=_mensagens(ret, "Alerta"),
        lot_info=lote,
    )


def _retorno_envio_lote(ret: etree._Element, raw: str = "") -> ResultadoCanonico:
    """RetornoEnvioLoteRPS (lote síncrono e ResultadoOperacao da consulta)."""
    cab = _cabecalho(ret)
    inf = filho(cab, "InformacoesLote")
    lote = None
    if inf is not None:
        lote = InfoLote(
            numero_lote=texto(inf, "NumeroLote"),
            recebido_em=texto(inf, "DataEnvioLote"),
            qtd_documentos=texto(inf, "QtdNotasProcessadas"),
            valor_total_servicos=texto(inf, "ValorTotalServicos"),
            valor_total_deducoes=texto(inf, "ValorTotalDeducoes"),
        )
    return ResultadoCanonico(
        success=sucesso(texto(cab, "Sucesso")),
        errors=_mensagens(ret, "Erro"),
        warnings=_mensagens(ret, "Alerta"),
        lot_info=lote,
        document_keys=_chaves_nfe_rps(ret),
    )


def _retorno_envio_rps(ret: etree._Element, raw: str) -> ResultadoCanonico:
    """RetornoEnvioRPS (EnvioRPS síncrono, um RPS)."""
    cab = _cabecalho(ret)
    return ResultadoCanonico(
        success=sucesso(texto(cab, "Sucesso")),
        errors=_mensagens(ret, "Erro"),
        warnings=_mensagens(ret, "Alerta"),
        document_keys=_chaves_nfe_rps(ret),
    )


def _retorno_situacao_lote(ret: etree._Element, raw: str) -> ResultadoCanonico:
    """
    RetornoConsultaSituacaoLote. A situação vem no cabeçalho; as notas
    geradas, dentro de ResultadoOperacao (terceiro parse).
    """
    cab = _cabecalho(ret)
    lote = InfoLote(
        numero_lote=texto(cab, "NumeroLote") or texto(ret, "NumeroLote"),
        recebido_em=texto(cab, "DataRecebimento") or texto(ret, "DataRecebimento"),
        processado_em=texto(cab, "DataProcessamento") or texto(ret, "DataProcessamento"),
        situacao=texto(cab, "Situacao") or texto(ret, "Situacao"),
    )
    erros = _mensagens(ret, "Erro")
    alertas = _mensagens(ret, "Alerta")
    chaves: List[ChaveDocumento] = []

    resultado_op = filho(ret, "ResultadoOperacao")
    if resultado_op is None:
        resultado_op = filho(cab, "ResultadoOperacao")
    if resultado_op is not None and (texto(resultado_op) or len(resultado_op)):
        interno = _retorno_envio_lote(_xml_interno(resultado_op, raw))
        erros.extend(interno.errors)
        alertas.extend(interno.warnings)
        chaves = interno.document_keys
        if interno.lot_info is not None:
            lote.qtd_documentos = interno.lot_info.qtd_documentos
            lote.valor_total_servicos = interno.lot_info.valor_total_servicos
            lote.valor_total_deducoes = interno.lot_info.valor_total_deducoes

    return ResultadoCanonico(
        success=sucesso(texto(cab, "Sucesso")),
        errors=erros,
        warnings=alertas,
        lot_info=lote,
        document_keys=chaves,
    )


def _retorno_cancelamento(ret: etree._Element, raw: str) -> ResultadoCanonico:
    """RetornoCancelamentoNFe."""
    cab = _cabecalho(ret)
    return ResultadoCanonico(
        success=sucesso(texto(cab, "Sucesso")),
        errors=_mensagens(ret, "Erro"),
        warnings=_mensagens(ret, "Alerta"),
    )


Parser = Callable[[etree._Element, str], ResultadoCanonico]

# operação -> (wrappers aceitos no Body, elemento com o XML interno, parser)
FAMILIAS: Dict[OperacaoNFSe, Tuple[Tuple[str, ...], str, Parser]] = {
    OperacaoNFSe.ENVIO_LOTE_RPS: (
        ("EnvioLoteRPSResponseAsync", "EnvioLoteRPSAsyncResponse", "EnvioLoteRPSResponse"),
        "RetornoXML",
        _retorno_lote_async,
    ),
    OperacaoNFSe.TESTE_ENVIO_LOTE_RPS: (
        ("TesteEnvioLoteRPSResponseAsync", "TesteEnvioLoteRPSAsyncResponse", "TesteEnvioLoteRPSResponse"),
        "RetornoXML",
        _retorno_lote_async,
    ),
    OperacaoNFSe.ENVIO_RPS: (
        ("EnvioRPSResponse",),
        "RetornoXML",
        _retorno_envio_rps,
    ),
    OperacaoNFSe.CONSULTA_SITUACAO_LOTE: (
        ("ConsultaSituacaoLoteResponse",),
        "RetornoXML",
        _retorno_situacao_lote,
    ),
    OperacaoNFSe.CANCELAMENTO_NFE: (
        ("CancelamentoNFeResponse",),
        "RetornoXML",
        _retorno_cancelamento,
    ),
}


def normalizar_resposta(resp_xml: str, operacao: OperacaoNFSe) -> ResultadoCanonico:
    """
    SOAP de resposta da operação -> ResultadoCanonico.

    - SOAP Fault: FalhaSoap (antes de olhar o conteúdo)
    - wrapper da operação ausente ou XML interno ilegível: RespostaIlegivel
    """
    try:
        root = parse_xml(resp_xml)
    except etree.XMLSyntaxError as exc:
        raise RespostaIlegivel(f"Resposta não é XML válido: {exc}", resp_xml) from exc

    verificar_fault(root)

    wrappers, campo, parser = FAMILIAS[operacao]
    wrapper = None
    for nome in wrappers:
        wrapper = descendente(root, nome)
        if wrapper is not None:
            break
    if wrapper is None:
        raise RespostaIlegivel(
            f"Resposta esperada não encontrada ({' / '.join(wrappers)})", resp_xml
        )

    interno = _xml_interno(descendente(wrapper, campo), resp_xml)
    resultado = parser(interno, resp_xml)
    logger.info(
        "Retorno NFS-e SP %s: success=%s erros=%d alertas=%d notas=%d",
        operacao.value,
        resultado.success,
        len(resultado.errors),
        len(resultado.warnings),
        len(resultado.document_keys),
    )
    return resultado
