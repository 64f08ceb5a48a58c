import pytest
from fastapi.testclient import TestClient

from fiscal_api.dependencias import get_store
from fiscal_api.main import app, status_http
from fiscal_service.core.conta import Conta, ContaStoreMemoria
from fiscal_service.core.erros import (
    ErroAssinatura,
    FalhaSoap,
    NaoAutorizado,
    SenhaInvalida,
)

from respostas import envelope_nfse, retorno_lote_async

API_KEY = "chave-do-tenant"


@pytest.fixture
def store():
    return ContaStoreMemoria()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def conta(store, pfx):
    dados, senha = pfx
    store.registrar(API_KEY, Conta(certificado=dados, senha=senha, cnpj="52507723000185"))


class TestApi:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_sem_api_key(self, client):
        resp = client.post("/nfe/status", json={"cUF": "SP"})
        assert resp.status_code == 401

    def test_conta_inexistente(self, client):
        resp = client.post("/nfe/status", json={"cUF": "SP"}, headers={"X-API-Key": "outra"})
        assert resp.status_code == 404
        assert resp.json() == {
            "success": False,
            "error": {"code": "CERTIFICATE_NOT_FOUND", "message": "Certificado não encontrado para esta API Key"},
        }

    def test_justificativa_curta(self, client, conta):
        resp = client.post(
            "/nfe/cancelar",
            json={"chNFe": "3" * 44, "nProt": "1", "xJust": "curta"},
            headers={"X-API-Key": API_KEY},
        )
        assert resp.status_code == 422

    def test_ambiente_desconhecido_vira_422(self, client, conta, sessao):
        resp = client.post(
            "/nfe/status", json={"cUF": "SP", "ambiente": "prod"}, headers={"X-API-Key": API_KEY}
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "DOCUMENT_BUILD_ERROR"
        assert sessao.chamadas == []

    def test_lote_invalido(self, client, conta, lote_nfse, sessao):
        lote_nfse["cabecalho"]["qtdRPS"] = 3
        resp = client.post("/nfse/sp/lote", json={"lote": lote_nfse}, headers={"X-API-Key": API_KEY})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "DOCUMENT_BUILD_ERROR"
        assert sessao.chamadas == []

    def test_valor_nao_numerico_vira_422(self, client, conta, lote_nfse, sessao):
        lote_nfse["rps"][0]["valorServicos"] = "mil reais"
        resp = client.post("/nfse/sp/lote", json={"lote": lote_nfse}, headers={"X-API-Key": API_KEY})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "DOCUMENT_BUILD_ERROR"
        assert sessao.chamadas == []

    def test_envio_de_lote(self, client, conta, lote_nfse, sessao):
        sessao.responder(envelope_nfse("EnvioLoteRPSAsyncResponse", retorno_lote_async()))
        resp = client.post(
            "/nfse/sp/lote",
            json={"lote": lote_nfse, "includeSoap": True},
            headers={"X-API-Key": API_KEY},
        )
        assert resp.status_code == 200
        dados = resp.json()
        assert dados["success"] is True
        assert dados["documentIdentifiers"]["numeroProtocolo"] == "1234567890"
        assert dados["canonicalResult"]["lotInfo"]["lotNumber"] == "1234567890"
        assert dados["soap"]["encoding"] == "base64"

    def test_acesso_negado_vira_502(self, client, conta, lote_nfse, sessao):
        sessao.responder("Forbidden", 403)
        resp = client.post("/nfse/sp/lote", json={"lote": lote_nfse}, headers={"X-API-Key": API_KEY})
        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "FORBIDDEN"

    def test_resposta_ilegivel_devolve_soap(self, client, conta, lote_nfse, sessao):
        sessao.responder("<html>manutencao</html>")
        resp = client.post(
            "/nfse/sp/lote",
            json={"lote": lote_nfse, "includeSoap": True},
            headers={"X-API-Key": API_KEY},
        )
        assert resp.status_code == 502
        dados = resp.json()
        assert dados["error"]["code"] == "UPSTREAM_RESPONSE_UNPARSEABLE"
        assert dados["soap"]["compression"] == "gzip"


@pytest.mark.parametrize(
    "erro, status",
    [
        (SenhaInvalida(), 400),
        (NaoAutorizado(status_http=401), 502),
        (FalhaSoap("x"), 502),
        (ErroAssinatura(), 500),
    ],
)
def test_status_http_por_erro(erro, status):
    assert status_http(erro) == status
