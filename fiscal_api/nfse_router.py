# fiscal_api/nfse_router.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from fiscal_service.core.enums import FamiliaDocumento
from fiscal_service.gateway import GatewayFiscal
from fiscal_service.nfse.xml_builder import LAYOUT_SUPORTADO

from .dependencias import get_api_key, get_gateway

router = APIRouter(
    prefix="/nfse/sp",
    tags=["NFS-e São Paulo"],
)


class NFSeLoteRequest(BaseModel):
    layoutVersion: str = Field(LAYOUT_SUPORTADO, description="Versão do leiaute (v01-1)")
    ambiente: str = Field("homologacao", description="producao | homologacao")
    lote: Dict[str, Any] = Field(..., description="{cabecalho: {...}, rps: [...]}")
    includeSoap: bool = Field(False, description="Devolve o par SOAP compactado (gzip+base64)")
    endpoint: Optional[str] = Field(None, description="URL do webservice (ignora a configuração)")


class NFSeConsultaLoteRequest(BaseModel):
    layoutVersion: str = Field(LAYOUT_SUPORTADO, description="Versão do leiaute (v01-1)")
    ambiente: str = Field("homologacao", description="producao | homologacao")
    cpfCnpjRemetente: Optional[Dict[str, str]] = Field(
        None, description="{cnpj} ou {cpf}; padrão: CNPJ da conta"
    )
    numeroProtocolo: str = Field(..., description="Protocolo devolvido no envio do lote")
    includeSoap: bool = False
    endpoint: Optional[str] = None


@router.post("/lote", summary="Enviar lote de RPS (EnvioLoteRPS)")
def enviar_lote(
    payload: NFSeLoteRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    resultado = gateway.emitir(
        FamiliaDocumento.NFSE_SP,
        payload.ambiente,
        {"layoutVersion": payload.layoutVersion, "lote": payload.lote},
        api_key,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
    )
    return resultado.to_dict()


@router.post("/lote/teste", summary="Testar envio de lote de RPS (TesteEnvioLoteRPS)")
def testar_lote(
    payload: NFSeLoteRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    servico = gateway.servico_nfse_sp(api_key, payload.ambiente)
    resultado = servico.testar_envio_lote(
        payload.layoutVersion,
        payload.lote,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
    )
    return resultado.to_dict()


@router.post("/rps", summary="Enviar um RPS com processamento síncrono (EnvioRPS)")
def enviar_rps(
    payload: NFSeLoteRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    servico = gateway.servico_nfse_sp(api_key, payload.ambiente)
    resultado = servico.enviar_rps_sincrono(
        payload.layoutVersion,
        payload.lote,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
    )
    return resultado.to_dict()


@router.post("/lote/consulta", summary="Consultar situação do lote (ConsultaSituacaoLote)")
def consultar_lote(
    payload: NFSeConsultaLoteRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    resultado = gateway.consultar(
        FamiliaDocumento.NFSE_SP,
        payload.ambiente,
        payload.numeroProtocolo,
        api_key,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
        cpf_cnpj_remetente=payload.cpfCnpjRemetente,
        layout_version=payload.layoutVersion,
    )
    return resultado.to_dict()
