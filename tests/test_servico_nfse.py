import base64

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from fiscal_service.core.assinatura import DSIG_NS, verificar_assinatura
from fiscal_service.core.erros import AcessoNegado, ErroMontagemDocumento, FalhaSoap, SenhaInvalida
from fiscal_service.core.soap_client import CONTENT_TYPE_SOAP11
from fiscal_service.core.xml_utils import filhos, local_name, parse_xml, texto
from fiscal_service.nfse.assinatura_rps import montar_string_assinatura
from fiscal_service.nfse.servico import NFSeSPService

from respostas import (
    chave_nfe_rps,
    envelope_nfse,
    erro,
    retorno_envio_lote,
    retorno_lote_async,
    retorno_situacao_lote,
    soap_fault_11,
)

LAYOUT = "v01-1"


def _pedido_enviado(sessao, indice: int = 0):
    """Pedido assinado que foi escapado dentro de <MensagemXML>."""
    envelope = parse_xml(sessao.chamadas[indice]["data"])
    return envelope.find(".//MensagemXML").text


class TestEnvioLote:
    def setup_method(self):
        self.resposta = envelope_nfse("EnvioLoteRPSAsyncResponse", retorno_lote_async())

    def _servico(self, pfx) -> NFSeSPService:
        dados, senha = pfx
        return NFSeSPService(pfx_data=dados, pfx_password=senha, ambiente="homologacao")

    def test_lote_assinado_e_enviado(self, pfx, certificado, sessao, lote_nfse):
        sessao.responder(self.resposta)
        resultado = self._servico(pfx).enviar_lote_async(LAYOUT, lote_nfse)

        assert resultado.success is True
        assert resultado.identificadores["numeroProtocolo"] == "1234567890"
        assert resultado.identificadores["qtdRPS"] == 2
        assert [r["numeroRPS"] for r in resultado.identificadores["rps"]] == ["5", "6"]

        chamada = sessao.chamadas[0]
        assert chamada["url"].endswith("lotenfeasync.asmx")
        assert chamada["headers"]["Content-Type"] == CONTENT_TYPE_SOAP11
        assert chamada["headers"]["SOAPAction"].endswith("/ws/envioLoteRPSAsync")
        assert "<versaoSchema>1</versaoSchema>" in chamada["data"]

        pedido_xml = _pedido_enviado(sessao)
        assert pedido_xml == resultado.xml_assinado
        assert verificar_assinatura(pedido_xml, certificado.pem_cert)

        pedido = parse_xml(pedido_xml)
        assert local_name(pedido) == "PedidoEnvioLoteRPS"
        assert local_name(pedido[-1]) == "Signature"
        assert pedido[-1].find(f".//{{{DSIG_NS}}}Reference").get("URI") == ""

    def test_assinatura_de_cada_rps(self, pfx, certificado, sessao, lote_nfse):
        sessao.responder(self.resposta)
        self._servico(pfx).enviar_lote_async(LAYOUT, lote_nfse)

        pedido = parse_xml(_pedido_enviado(sessao))
        rps_enviados = filhos(pedido, "RPS")
        assert len(rps_enviados) == 2
        chave_publica = certificado.certificado.public_key()
        for elem, rps in zip(rps_enviados, lote_nfse["rps"]):
            chave_publica.verify(
                base64.b64decode(texto(elem, "Assinatura")),
                montar_string_assinatura(rps).encode("ascii"),
                padding.PKCS1v15(),
                hashes.SHA1(),
            )

    def test_quantidade_divergente_nao_envia(self, pfx, sessao, lote_nfse):
        lote_nfse["cabecalho"]["qtdRPS"] = 3
        with pytest.raises(ErroMontagemDocumento) as exc:
            self._servico(pfx).enviar_lote_async(LAYOUT, lote_nfse)
        assert exc.value.to_dict() == {
            "code": "DOCUMENT_BUILD_ERROR",
            "message": "Quantidade de RPS informada (3) não corresponde à quantidade enviada (2)",
        }
        assert sessao.chamadas == []

    def test_validacao_antes_do_certificado(self, pfx, sessao, lote_nfse):
        """Lote inválido com senha errada: o erro é do lote."""
        dados, _ = pfx
        servico = NFSeSPService(pfx_data=dados, pfx_password="errada")
        with pytest.raises(ErroMontagemDocumento):
            servico.enviar_lote_async("v02", lote_nfse)

    def test_senha_errada(self, pfx, sessao, lote_nfse):
        dados, _ = pfx
        servico = NFSeSPService(pfx_data=dados, pfx_password="errada")
        with pytest.raises(SenhaInvalida):
            servico.enviar_lote_async(LAYOUT, lote_nfse)
        assert sessao.chamadas == []

    def test_acesso_negado(self, pfx, sessao, lote_nfse):
        sessao.responder("Forbidden", 403)
        with pytest.raises(AcessoNegado) as exc:
            self._servico(pfx).enviar_lote_async(LAYOUT, lote_nfse)
        assert exc.value.status_http == 403
        assert exc.value.codigo == "FORBIDDEN"

    def test_fault_com_http_500_preserva_a_mensagem(self, pfx, sessao, lote_nfse):
        sessao.responder(soap_fault_11("Certificado revogado"), 500)
        with pytest.raises(FalhaSoap) as exc:
            self._servico(pfx).enviar_lote_async(LAYOUT, lote_nfse)
        assert exc.value.to_dict() == {
            "code": "UPSTREAM_FAULT",
            "message": "SOAP Fault: Certificado revogado",
        }

    def test_lote_rejeitado_com_erros(self, pfx, sessao, lote_nfse):
        sessao.responder(envelope_nfse(
            "EnvioLoteRPSAsyncResponse",
            retorno_lote_async("false", extras=erro("1206", "Assinatura inválida")),
        ))
        resultado = self._servico(pfx).enviar_lote_async(LAYOUT, lote_nfse)
        dados = resultado.to_dict()
        assert dados["success"] is False
        assert dados["canonicalResult"]["errors"] == [{"code": "1206", "description": "Assinatura inválida"}]

    def test_teste_de_envio(self, pfx, sessao, lote_nfse):
        sessao.responder(envelope_nfse("TesteEnvioLoteRPSAsyncResponse", retorno_lote_async()))
        resultado = self._servico(pfx).testar_envio_lote(LAYOUT, lote_nfse)
        assert resultado.success is True
        assert sessao.chamadas[0]["headers"]["SOAPAction"].endswith("/ws/testeEnvioLoteRPSAsync")
        assert "<tns:TesteEnvioLoteRPSRequest>" in sessao.chamadas[0]["data"]


class TestEnvioRPSSincrono:
    def test_um_rps(self, pfx, sessao, lote_nfse):
        lote_nfse["rps"] = lote_nfse["rps"][:1]
        lote_nfse["cabecalho"]["qtdRPS"] = 1
        interno = (
            '<RetornoEnvioRPS xmlns="http://www.prefeitura.sp.gov.br/nfe">'
            '<Cabecalho xmlns="" Versao="1"><Sucesso>true</Sucesso></Cabecalho>'
            + chave_nfe_rps("1001", "5")
            + "</RetornoEnvioRPS>"
        )
        sessao.responder(envelope_nfse("EnvioRPSResponse", interno))
        dados, senha = pfx
        resultado = NFSeSPService(pfx_data=dados, pfx_password=senha).enviar_rps_sincrono(LAYOUT, lote_nfse)

        assert resultado.resultado.document_keys[0].numero_documento == "1001"
        assert "<VersaoSchema>1</VersaoSchema>" in sessao.chamadas[0]["data"]
        pedido = parse_xml(_pedido_enviado(sessao))
        assert [local_name(f) for f in pedido] == ["Cabecalho", "RPS", "Signature"]

    def test_mais_de_um_rps(self, pfx, sessao, lote_nfse):
        dados, senha = pfx
        with pytest.raises(ErroMontagemDocumento) as exc:
            NFSeSPService(pfx_data=dados, pfx_password=senha).enviar_rps_sincrono(LAYOUT, lote_nfse)
        assert exc.value.campo == "lote.rps"
        assert sessao.chamadas == []


class TestConsultaSituacaoLote:
    def test_consulta(self, pfx, sessao):
        interno = retorno_envio_lote(chave_nfe_rps("1001", "5") + chave_nfe_rps("1002", "6"))
        sessao.responder(envelope_nfse("ConsultaSituacaoLoteResponse", retorno_situacao_lote(interno)))
        dados, senha = pfx
        resultado = NFSeSPService(pfx_data=dados, pfx_password=senha).consultar_situacao_lote(
            LAYOUT, {"cnpj": "52507723000185"}, "1234567890"
        )

        assert resultado.identificadores == {"layoutVersion": LAYOUT, "numeroProtocolo": "1234567890"}
        assert len(resultado.resultado.document_keys) == 2
        assert resultado.resultado.lot_info.situacao == "5"

        chamada = sessao.chamadas[0]
        assert chamada["url"].endswith("lotenfe.asmx")
        assert chamada["headers"]["SOAPAction"].endswith("/ws/consultaSituacaoLote")
        pedido = parse_xml(_pedido_enviado(sessao))
        assert texto(pedido, "NumeroProtocolo") == "1234567890"
