"""
Respostas SOAP de exemplo (SEFAZ e prefeitura de São Paulo) para os testes.
"""
from fiscal_service.core.xml_utils import esc

NFSE_NS = "http://www.prefeitura.sp.gov.br/nfe"
NFE_NS = "http://www.portalfiscal.inf.br/nfe"


def envelope_nfse(wrapper: str, retorno: str) -> str:
    """Envelope SOAP 1.1 com o retorno escapado em <RetornoXML>."""
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
        "<soap:Body>"
        f'<{wrapper} xmlns="{NFSE_NS}">'
        f"<RetornoXML>{esc(retorno)}</RetornoXML>"
        f"</{wrapper}>"
        "</soap:Body>"
        "</soap:Envelope>"
    )


def envelope_nfe(retorno: str, servico: str = "NFeAutorizacao4") -> str:
    """Envelope SOAP 1.2 com o retorno dentro de <nfeResultMsg>."""
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<soap:Envelope xmlns:soap="http://www.w3.org/2003/05/soap-envelope">'
        "<soap:Body>"
        f'<nfeResultMsg xmlns="http://www.portalfiscal.inf.br/nfe/wsdl/{servico}">'
        f"{retorno}"
        "</nfeResultMsg>"
        "</soap:Body>"
        "</soap:Envelope>"
    )


def erro(codigo: str, descricao: str, tag: str = "Erro") -> str:
    return f'<{tag} xmlns=""><Codigo>{codigo}</Codigo><Descricao>{descricao}</Descricao></{tag}>'


def retorno_lote_async(sucesso: str = "true", protocolo: str = "1234567890", extras: str = "") -> str:
    return (
        f'<RetornoEnvioLoteRPSAsync xmlns="{NFSE_NS}">'
        '<Cabecalho xmlns="" Versao="1">'
        f"<Sucesso>{sucesso}</Sucesso>"
        "<InformacoesLote>"
        f"<NumeroProtocolo>{protocolo}</NumeroProtocolo>"
        "<DataRecebimento>2024-01-15T10:00:00</DataRecebimento>"
        "</InformacoesLote>"
        "</Cabecalho>"
        f"{extras}"
        "</RetornoEnvioLoteRPSAsync>"
    )


def chave_nfe_rps(numero_nfe: str, numero_rps: str) -> str:
    return (
        '<ChaveNFeRPS xmlns="">'
        "<ChaveNFe>"
        "<InscricaoPrestador>78709806</InscricaoPrestador>"
        f"<NumeroNFe>{numero_nfe}</NumeroNFe>"
        "<CodigoVerificacao>ABCD1234</CodigoVerificacao>"
        "</ChaveNFe>"
        "<ChaveRPS>"
        "<InscricaoPrestador>78709806</InscricaoPrestador>"
        "<SerieRPS>1</SerieRPS>"
        f"<NumeroRPS>{numero_rps}</NumeroRPS>"
        "</ChaveRPS>"
        "</ChaveNFeRPS>"
    )


def retorno_envio_lote(extras: str = "") -> str:
    return (
        f'<RetornoEnvioLoteRPS xmlns="{NFSE_NS}">'
        '<Cabecalho xmlns="" Versao="1">'
        "<Sucesso>true</Sucesso>"
        "<InformacoesLote>"
        "<NumeroLote>987</NumeroLote>"
        "<DataEnvioLote>2024-01-15T10:00:00</DataEnvioLote>"
        "<QtdNotasProcessadas>2</QtdNotasProcessadas>"
        "<ValorTotalServicos>2000.00</ValorTotalServicos>"
        "<ValorTotalDeducoes>0.00</ValorTotalDeducoes>"
        "</InformacoesLote>"
        "</Cabecalho>"
        f"{extras}"
        "</RetornoEnvioLoteRPS>"
    )


def retorno_situacao_lote(resultado_operacao: str) -> str:
    return (
        f'<RetornoConsultaSituacaoLote xmlns="{NFSE_NS}">'
        '<Cabecalho xmlns="" Versao="1">'
        "<Sucesso>true</Sucesso>"
        "<NumeroLote>987</NumeroLote>"
        "<Situacao>5</Situacao>"
        "<DataRecebimento>2024-01-15T10:00:00</DataRecebimento>"
        "<DataProcessamento>2024-01-15T10:05:00</DataProcessamento>"
        "</Cabecalho>"
        f'<ResultadoOperacao xmlns="">{esc(resultado_operacao)}</ResultadoOperacao>'
        "</RetornoConsultaSituacaoLote>"
    )


def soap_fault_11(mensagem: str) -> str:
    return (
        '<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
        "<soap:Body><soap:Fault>"
        "<faultcode>soap:Server</faultcode>"
        f"<faultstring>{mensagem}</faultstring>"
        "</soap:Fault></soap:Body></soap:Envelope>"
    )


def ret_envi_nfe(chave: str, c_stat_prot: str = "100", x_motivo_prot: str = "Autorizado o uso da NF-e") -> str:
    return (
        f'<retEnviNFe versao="4.00" xmlns="{NFE_NS}">'
        "<tpAmb>2</tpAmb><verAplic>SP_NFE_PL009_V4</verAplic>"
        "<cStat>104</cStat><xMotivo>Lote processado</xMotivo>"
        "<cUF>35</cUF><dhRecbto>2024-01-15T10:00:01-03:00</dhRecbto>"
        '<protNFe versao="4.00"><infProt>'
        "<tpAmb>2</tpAmb><verAplic>SP_NFE_PL009_V4</verAplic>"
        f"<chNFe>{chave}</chNFe>"
        "<dhRecbto>2024-01-15T10:00:01-03:00</dhRecbto>"
        "<nProt>135240000000001</nProt>"
        f"<cStat>{c_stat_prot}</cStat><xMotivo>{x_motivo_prot}</xMotivo>"
        "</infProt></protNFe>"
        "</retEnviNFe>"
    )
