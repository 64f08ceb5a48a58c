import base64

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from fiscal_service.core.erros import ErroMontagemDocumento
from fiscal_service.nfse.assinatura_rps import (
    TAMANHO_COM_INTERMEDIARIO,
    TAMANHO_SEM_INTERMEDIARIO,
    assinar_rps,
    montar_string_assinatura,
    valor_booleano,
)


class TestStringAssinatura:
    def setup_method(self):
        self.rps = {
            "chaveRPS": {"inscricaoPrestador": "78709806", "serieRPS": "1", "numeroRPS": 5},
            "dataEmissao": "2024-01-15",
            "tributacaoRPS": "T",
            "statusRPS": "N",
            "issRetido": False,
            "valorServicos": 1000.00,
            "valorDeducoes": 0.00,
            "codigoServico": 1234,
        }

    def test_sem_tomador(self):
        esperado = (
            "78709806"
            + "1    "
            + "000000000005"
            + "20240115"
            + "T"
            + "N"
            + "N"
            + "000000000100000"
            + "000000000000000"
            + "01234"
            + "3"
            + "00000000000000"
        )
        texto = montar_string_assinatura(self.rps)
        assert texto == esperado
        assert len(texto) == TAMANHO_SEM_INTERMEDIARIO

    def test_tomador_cnpj_e_cpf(self):
        self.rps["cpfCnpjTomador"] = {"cnpj": "11.222.333/0001-81"}
        texto = montar_string_assinatura(self.rps)
        assert texto[-15:] == "2" + "11222333000181"

        self.rps["cpfCnpjTomador"] = {"cpf": "123.456.789-09"}
        texto = montar_string_assinatura(self.rps)
        assert texto[-15:] == "1" + "00012345678909"
        assert len(texto) == TAMANHO_SEM_INTERMEDIARIO

    def test_com_intermediario(self):
        self.rps["cpfCnpjIntermediario"] = {"cnpj": "11222333000181"}
        self.rps["issRetidoIntermediario"] = "true"
        texto = montar_string_assinatura(self.rps)
        assert len(texto) == TAMANHO_COM_INTERMEDIARIO
        assert texto[-16:] == "2" + "11222333000181" + "S"

    def test_data_com_hora_usa_so_a_data(self):
        self.rps["dataEmissao"] = "2024-01-15T08:30:00"
        assert montar_string_assinatura(self.rps)[25:33] == "20240115"

    def test_centavos_arredondados(self):
        self.rps["valorServicos"] = "10.005"
        assert montar_string_assinatura(self.rps)[36:51] == "000000000001001"

    @pytest.mark.parametrize("campo", ["valorServicos", "valorDeducoes"])
    def test_valor_nao_numerico(self, campo):
        self.rps[campo] = "mil reais"
        with pytest.raises(ErroMontagemDocumento) as exc:
            montar_string_assinatura(self.rps)
        assert exc.value.campo == campo

    def test_data_invalida(self):
        self.rps["dataEmissao"] = "15/01"
        with pytest.raises(ErroMontagemDocumento):
            montar_string_assinatura(self.rps)

    def test_campo_que_estoura_a_largura(self):
        """Inscrição com 9 dígitos muda o tamanho da string."""
        self.rps["chaveRPS"]["inscricaoPrestador"] = "123456789"
        with pytest.raises(ErroMontagemDocumento) as exc:
            montar_string_assinatura(self.rps)
        assert "Esperado 86" in exc.value.mensagem


class TestAssinaturaRPS:
    def test_assinatura_confere_com_chave_publica(self, certificado, rps):
        assinatura = base64.b64decode(assinar_rps(rps, certificado))
        # Levanta InvalidSignature se não conferir
        certificado.certificado.public_key().verify(
            assinatura,
            montar_string_assinatura(rps).encode("ascii"),
            padding.PKCS1v15(),
            hashes.SHA1(),
        )

    def test_deterministica(self, certificado, rps):
        """PKCS#1 v1.5 não tem sal: mesma entrada, mesma assinatura."""
        assert assinar_rps(rps, certificado) == assinar_rps(rps, certificado)


@pytest.mark.parametrize(
    "valor, esperado",
    [(True, True), ("true", True), ("S", True), ("1", True), (False, False), ("false", False), (None, False)],
)
def test_valor_booleano(valor, esperado):
    assert valor_booleano(valor) is esperado
