# fiscal_api/nfe_router.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from fiscal_service.core.enums import FamiliaDocumento
from fiscal_service.gateway import GatewayFiscal

from .dependencias import get_api_key, get_gateway

router = APIRouter(
    prefix="/nfe",
    tags=["NF-e"],
)


class OpcoesEnvio(BaseModel):
    ambiente: str = Field("homologacao", description="producao | homologacao (ou 1 | 2)")
    includeSoap: bool = Field(False, description="Devolve o par SOAP compactado (gzip+base64)")
    endpoint: Optional[str] = Field(None, description="URL do webservice (ignora a tabela)")


class NFeEmitirRequest(OpcoesEnvio):
    nfe: Dict[str, Any] = Field(..., description="JSON da NF-e (ide, emit, dest, det, total, ...)")
    idLote: int = Field(1, description="Identificador do lote enviNFe")
    indSinc: int = Field(1, description="1 = síncrono, 0 = assíncrono")


class NFeConsultarRequest(OpcoesEnvio):
    chNFe: str = Field(..., description="Chave de acesso (44 dígitos)")
    cUF: Optional[str] = Field(None, description="UF (sigla ou código); padrão: início da chave")


class NFeCancelarRequest(OpcoesEnvio):
    chNFe: str = Field(..., description="Chave de acesso da NF-e a cancelar")
    nProt: str = Field(..., description="Protocolo de autorização")
    xJust: str = Field(..., min_length=15, max_length=255, description="Justificativa")
    CNPJ: Optional[str] = Field(None, description="CNPJ do autor; padrão: o da conta")
    nSeqEvento: int = Field(1, description="Sequencial do evento")
    dhEvento: Optional[str] = Field(None, description="Data/hora do evento; padrão: agora")
    idLote: int = 1
    cUF: Optional[str] = None


class NFeInutilizarRequest(OpcoesEnvio):
    cUF: str = Field(..., description="UF (sigla ou código)")
    CNPJ: str = Field(..., description="CNPJ do emitente")
    mod: str = Field("55", description="Modelo: 55 ou 65")
    serie: str = Field(..., description="Série")
    nNFIni: str = Field(..., description="Número inicial")
    nNFFin: str = Field(..., description="Número final")
    xJust: str = Field(..., min_length=15, max_length=255, description="Justificativa")
    ano: Optional[str] = Field(None, description="Ano (2 ou 4 dígitos); padrão: ano corrente")


class NFeStatusRequest(OpcoesEnvio):
    cUF: str = Field(..., description="UF (sigla ou código)")


@router.post("/emitir", summary="Emitir NF-e (NFeAutorizacao4)")
def emitir_nfe(
    payload: NFeEmitirRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    resultado = gateway.emitir(
        FamiliaDocumento.NFE,
        payload.ambiente,
        payload.nfe,
        api_key,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
        id_lote=payload.idLote,
        ind_sinc=payload.indSinc,
    )
    return resultado.to_dict()


@router.post("/consultar", summary="Consultar NF-e pela chave (NfeConsultaProtocolo4)")
def consultar_nfe(
    payload: NFeConsultarRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    resultado = gateway.consultar(
        FamiliaDocumento.NFE,
        payload.ambiente,
        payload.chNFe,
        api_key,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
        c_uf=payload.cUF,
    )
    return resultado.to_dict()


@router.post("/cancelar", summary="Cancelar NF-e (evento 110111)")
def cancelar_nfe(
    payload: NFeCancelarRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    resultado = gateway.cancelar(
        FamiliaDocumento.NFE,
        payload.ambiente,
        payload.chNFe,
        payload.xJust,
        api_key,
        n_prot=payload.nProt,
        cnpj=payload.CNPJ,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
        n_seq_evento=payload.nSeqEvento,
        dh_evento=payload.dhEvento,
        id_lote=payload.idLote,
        c_uf=payload.cUF,
    )
    return resultado.to_dict()


@router.post("/inutilizar", summary="Inutilizar faixa de numeração (NfeInutilizacao4)")
def inutilizar_nfe(
    payload: NFeInutilizarRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    servico = gateway.servico_nfe(api_key, payload.ambiente)
    resultado = servico.inutilizar(
        c_uf=payload.cUF,
        cnpj=payload.CNPJ,
        mod=payload.mod,
        serie=payload.serie,
        n_nf_ini=payload.nNFIni,
        n_nf_fin=payload.nNFFin,
        x_just=payload.xJust,
        ano=payload.ano,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
    )
    return resultado.to_dict()


@router.post("/status", summary="Status do serviço da UF (NFeStatusServico4)")
def status_nfe(
    payload: NFeStatusRequest,
    api_key: str = Depends(get_api_key),
    gateway: GatewayFiscal = Depends(get_gateway),
):
    servico = gateway.servico_nfe(api_key, payload.ambiente)
    resultado = servico.status_servico(
        payload.cUF,
        incluir_soap=payload.includeSoap,
        endpoint_override=payload.endpoint,
    )
    return resultado.to_dict()
