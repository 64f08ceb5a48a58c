import pytest

from fiscal_service.core.enums import Ambiente, OperacaoNFSe
from fiscal_service.core.erros import ErroMontagemDocumento
from fiscal_service.core.xml_utils import filho, local_name, parse_xml, texto
from fiscal_service.nfse.soap import SOAP_ACTIONS, montar_envelope, url_endpoint
from fiscal_service.nfse.xml_builder import (
    NFSE_SP_NS,
    montar_pedido_consulta_situacao_lote,
    montar_pedido_envio_lote,
    montar_rps,
    validar_layout,
    validar_lote,
)

ORDEM_RPS = [
    "Assinatura",
    "ChaveRPS",
    "TipoRPS",
    "DataEmissao",
    "StatusRPS",
    "TributacaoRPS",
    "ValorServicos",
    "ValorDeducoes",
    "CodigoServico",
    "AliquotaServicos",
    "ISSRetido",
    "CPFCNPJTomador",
    "RazaoSocialTomador",
    "Discriminacao",
]


class TestMontarRPS:
    def test_ordem_dos_elementos(self, rps):
        rps["assinatura"] = "QUJD"
        elem = parse_xml(montar_rps(rps))
        assert [local_name(f) for f in elem] == ORDEM_RPS

    def test_formatos(self, rps):
        elem = parse_xml(montar_rps(rps))
        assert texto(elem, "AliquotaServicos") == "0.0500"
        assert texto(elem, "ValorServicos") == "1000.00"
        assert texto(elem, "ValorDeducoes") == "0.00"
        assert texto(elem, "ISSRetido") == "false"
        assert texto(filho(elem, "CPFCNPJTomador"), "CNPJ") == "11222333000181"

    def test_rps_sem_namespace(self, rps):
        elem = parse_xml(montar_rps(rps))
        assert elem.tag == "RPS"

    def test_retencoes_entre_deducoes_e_codigo(self, rps):
        rps["valorPIS"] = 6.5
        rps["valorIR"] = 15
        nomes = [local_name(f) for f in parse_xml(montar_rps(rps))]
        i = nomes.index("ValorDeducoes")
        assert nomes[i + 1:i + 4] == ["ValorPIS", "ValorIR", "CodigoServico"]

    def test_texto_escapado(self, rps):
        rps["discriminacao"] = "Servico <A> & B"
        assert texto(parse_xml(montar_rps(rps)), "Discriminacao") == "Servico <A> & B"


class TestPedidoEnvioLote:
    def test_cabecalho_e_rps(self, lote_nfse):
        rps = [{**r, "assinatura": "QUJD"} for r in lote_nfse["rps"]]
        root = parse_xml(montar_pedido_envio_lote(lote_nfse["cabecalho"], rps))

        assert root.tag == f"{{{NFSE_SP_NS}}}PedidoEnvioLoteRPS"
        assert [local_name(f) for f in root] == ["Cabecalho", "RPS", "RPS"]

        cab = root[0]
        assert cab.get("Versao") == "1"
        assert texto(cab, "transacao") == "true"
        assert texto(cab, "QtdRPS") == "2"
        assert texto(cab, "ValorTotalServicos") == "2000.00"
        assert texto(filho(cab, "CPFCNPJRemetente"), "CNPJ") == "52507723000185"

    def test_consulta_situacao_lote(self):
        root = parse_xml(montar_pedido_consulta_situacao_lote({"cnpj": "52507723000185"}, "123456"))
        assert local_name(root) == "PedidoConsultaSituacaoLote"
        assert root.nsmap[None] == NFSE_SP_NS
        assert root.nsmap["tipos"] == "http://www.prefeitura.sp.gov.br/nfe/tipos"
        assert [f.tag for f in root] == ["CPFCNPJRemetente", "NumeroProtocolo"]
        assert texto(root, "NumeroProtocolo") == "123456"

    def test_consulta_sem_protocolo(self):
        with pytest.raises(ErroMontagemDocumento):
            montar_pedido_consulta_situacao_lote({"cnpj": "52507723000185"}, "")


class TestValidacao:
    def test_layout_nao_suportado(self):
        with pytest.raises(ErroMontagemDocumento) as exc:
            validar_layout("v02-0")
        assert exc.value.campo == "layoutVersion"

    def test_quantidade_divergente(self, lote_nfse):
        lote_nfse["cabecalho"]["qtdRPS"] = 3
        with pytest.raises(ErroMontagemDocumento) as exc:
            validar_lote(lote_nfse)
        assert exc.value.campo == "lote.cabecalho.qtdRPS"
        assert "(3)" in exc.value.mensagem and "(2)" in exc.value.mensagem

    def test_campo_obrigatorio_do_rps(self, lote_nfse):
        del lote_nfse["rps"][1]["discriminacao"]
        with pytest.raises(ErroMontagemDocumento) as exc:
            validar_lote(lote_nfse)
        assert exc.value.mensagem.startswith("RPS 2:")
        assert exc.value.campo == "lote.rps[1].discriminacao"

    def test_lista_vazia(self, lote_nfse):
        lote_nfse["rps"] = []
        with pytest.raises(ErroMontagemDocumento):
            validar_lote(lote_nfse)

    def test_remetente_obrigatorio(self, lote_nfse):
        lote_nfse["cabecalho"]["cpfCnpjRemetente"] = {}
        with pytest.raises(ErroMontagemDocumento):
            validar_lote(lote_nfse)


class TestEnvelopeNFSe:
    def test_versao_schema_minuscula_no_lote_assincrono(self):
        envelope = montar_envelope(OperacaoNFSe.ENVIO_LOTE_RPS, "<Pedido/>")
        assert "<versaoSchema>1</versaoSchema>" in envelope
        assert "<tns:EnvioLoteRPSRequest>" in envelope

    def test_versao_schema_maiuscula_nas_demais(self):
        envelope = montar_envelope(OperacaoNFSe.CONSULTA_SITUACAO_LOTE, "<Pedido/>")
        assert "<VersaoSchema>1</VersaoSchema>" in envelope

    def test_mensagem_escapada(self):
        envelope = montar_envelope(OperacaoNFSe.ENVIO_RPS, '<?xml version="1.0"?><Pedido a="1"/>')
        root = parse_xml(envelope)
        mensagem = root.find(".//MensagemXML")
        assert mensagem.text == '<Pedido a="1"/>'

    def test_urls_por_ambiente(self):
        assert url_endpoint(OperacaoNFSe.ENVIO_LOTE_RPS, Ambiente.PRODUCAO).endswith("lotenfeasync.asmx")
        assert url_endpoint(OperacaoNFSe.ENVIO_RPS, Ambiente.PRODUCAO).endswith("lotenfe.asmx")
        assert url_endpoint(OperacaoNFSe.ENVIO_RPS, Ambiente.HOMOLOGACAO) != url_endpoint(
            OperacaoNFSe.ENVIO_RPS, Ambiente.PRODUCAO
        )

    def test_soap_action_para_toda_operacao(self):
        assert set(SOAP_ACTIONS) == set(OperacaoNFSe)
