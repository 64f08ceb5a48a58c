import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12
from cryptography.x509.oid import NameOID
from requests.structures import CaseInsensitiveDict

from fiscal_service.core.certificado import carregar_pfx
from fiscal_service.core.soap_client import SoapClient

SENHA_PFX = "senha123"


def _gerar_pfx(senha: str) -> bytes:
    chave = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    nome = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "BR"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "EMPRESA TESTE LTDA"),
        x509.NameAttribute(NameOID.COMMON_NAME, "EMPRESA TESTE LTDA:52507723000185"),
    ])
    agora = datetime.datetime.now(datetime.timezone.utc)
    certificado = (
        x509.CertificateBuilder()
        .subject_name(nome)
        .issuer_name(nome)
        .public_key(chave.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(agora - datetime.timedelta(days=1))
        .not_valid_after(agora + datetime.timedelta(days=365))
        .sign(chave, hashes.SHA256())
    )
    return pkcs12.serialize_key_and_certificates(
        b"teste",
        chave,
        certificado,
        None,
        BestAvailableEncryption(senha.encode("utf-8")),
    )


@pytest.fixture(scope="session")
def pfx():
    """(bytes do PKCS#12, senha) com certificado autoassinado."""
    return _gerar_pfx(SENHA_PFX), SENHA_PFX


@pytest.fixture(scope="session")
def certificado(pfx):
    return carregar_pfx(*pfx)


class RespostaFalsa:
    """
    Imita requests.Response: o texto sai de content com o encoding do
    cabeçalho (ISO-8859-1 para text/* sem charset, como o requests faz).
    """

    def __init__(self, status_code: int, text: str, content_type: str = "text/xml; charset=utf-8"):
        self.status_code = status_code
        self.content = text.encode("utf-8")
        self.headers = CaseInsensitiveDict({"Content-Type": content_type})
        self.encoding = "utf-8" if "charset" in content_type.lower() else "ISO-8859-1"

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding)


class SessaoFalsa:
    """
    Substitui a sessão requests do SoapClient: registra cada POST e devolve
    as respostas enfileiradas na ordem.
    """

    def __init__(self):
        self.chamadas = []
        self.respostas = []
        self.fechada = False

    def responder(
        self, texto: str, status_code: int = 200, content_type: str = "text/xml; charset=utf-8"
    ) -> None:
        self.respostas.append(RespostaFalsa(status_code, texto, content_type))

    def falhar(self, exc: Exception) -> None:
        self.respostas.append(exc)

    def post(self, url, data=None, headers=None, timeout=None, verify=None):
        self.chamadas.append({
            "url": url,
            "data": data.decode("utf-8") if isinstance(data, bytes) else data,
            "headers": dict(headers or {}),
        })
        resposta = self.respostas.pop(0)
        if isinstance(resposta, Exception):
            raise resposta
        return resposta

    def close(self):
        self.fechada = True


@pytest.fixture
def sessao(monkeypatch):
    sessao = SessaoFalsa()
    monkeypatch.setattr(SoapClient, "_get_session", lambda self: sessao)
    return sessao


@pytest.fixture
def nfe_payload():
    return {
        "ide": {
            "cUF": 35,
            "natOp": "VENDA DE MERCADORIA",
            "mod": 55,
            "serie": 1,
            "nNF": 511,
            "dhEmi": "2024-01-15T10:00:00-03:00",
            "cNF": "12345678",
            "tpNF": 1,
            "idDest": 1,
            "cMunFG": "3550308",
            "tpImp": 1,
            "tpEmis": 1,
            "finNFe": 1,
            "indFinal": 1,
            "indPres": 1,
            "procEmi": 0,
            "verProc": "fiscal-gateway 1.0",
        },
        "emit": {
            "CNPJ": "52.507.723/0001-85",
            "xNome": "EMPRESA TESTE LTDA",
            "enderEmit": {
                "xLgr": "RUA TESTE",
                "nro": "100",
                "xBairro": "CENTRO",
                "cMun": "3550308",
                "xMun": "SAO PAULO",
                "UF": "SP",
                "CEP": "01001000",
            },
            "IE": "123456789012",
            "CRT": 1,
        },
        "det": [
            {
                "prod": {
                    "cProd": "001",
                    "xProd": "PRODUTO TESTE",
                    "NCM": "61091000",
                    "CFOP": "5102",
                    "uCom": "UN",
                    "qCom": 1,
                    "vUnCom": 100,
                    "vProd": 100,
                },
                "imposto": {
                    "ICMS": {"ICMSSN102": {"orig": 0, "CSOSN": "102"}},
                },
            }
        ],
        "total": {"ICMSTot": {"vProd": 100, "vNF": 100}},
        "transp": {"modFrete": 9},
        "pag": {"detPag": [{"tPag": "01", "vPag": 100}]},
    }


def _rps(numero: int) -> dict:
    return {
        "chaveRPS": {"inscricaoPrestador": "78709806", "serieRPS": "1", "numeroRPS": numero},
        "tipoRPS": "RPS",
        "dataEmissao": "2024-01-15",
        "statusRPS": "N",
        "tributacaoRPS": "T",
        "valorServicos": 1000.00,
        "valorDeducoes": 0,
        "codigoServico": 1234,
        "aliquotaServicos": 0.05,
        "issRetido": False,
        "cpfCnpjTomador": {"cnpj": "11222333000181"},
        "razaoSocialTomador": "TOMADOR TESTE LTDA",
        "discriminacao": "Servicos de consultoria",
    }


@pytest.fixture
def rps():
    return _rps(5)


@pytest.fixture
def lote_nfse():
    return {
        "cabecalho": {
            "cpfCnpjRemetente": {"cnpj": "52507723000185"},
            "transacao": True,
            "dtInicio": "2024-01-15",
            "dtFim": "2024-01-15",
            "qtdRPS": 2,
            "valorTotalServicos": 2000.00,
            "valorTotalDeducoes": 0,
        },
        "rps": [_rps(5), _rps(6)],
    }
