# fiscal_service/core/resultado.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Mensagem:
    """Erro ou alerta devolvido pelo webservice (código + descrição)."""
    code: Optional[str]
    description: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "description": self.description}


@dataclass
class ChaveRPSOrigem:
    inscricao_prestador: Optional[str] = None
    serie_rps: Optional[str] = None
    numero_rps: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "providerRegistration": self.inscricao_prestador,
            "rpsSeries": self.serie_rps,
            "rpsNumber": self.numero_rps,
        }


@dataclass
class ChaveDocumento:
    """
    Documento gerado pelo webservice.
    - NFS-e: inscrição do prestador, número da NFS-e, código de verificação
      e a chave do RPS de origem.
    - NF-e: documentNumber = chNFe, verificationCode = nProt.
    """
    inscricao_prestador: Optional[str] = None
    numero_documento: Optional[str] = None
    codigo_verificacao: Optional[str] = None
    chave_origem: Optional[ChaveRPSOrigem] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "providerRegistration": self.inscricao_prestador,
            "documentNumber": self.numero_documento,
            "verificationCode": self.codigo_verificacao,
            "sourceKey": self.chave_origem.to_dict() if self.chave_origem else None,
        }


@dataclass
class InfoLote:
    numero_lote: Optional[str] = None
    recebido_em: Optional[str] = None
    processado_em: Optional[str] = None
    qtd_documentos: Optional[str] = None
    valor_total_servicos: Optional[str] = None
    valor_total_deducoes: Optional[str] = None
    situacao: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        dados = {
            "lotNumber": self.numero_lote,
            "receivedAt": self.recebido_em,
            "processedAt": self.processado_em,
            "documentCount": self.qtd_documentos,
            "totalServices": self.valor_total_servicos,
            "totalDeductions": self.valor_total_deducoes,
            "status": self.situacao,
        }
        return {k: v for k, v in dados.items() if v is not None}


@dataclass
class ResultadoCanonico:
    """
    Forma única de retorno do normalizador.

    success e errors são preservados de forma independente: o webservice
    pode mandar Sucesso=true com erros (lote parcialmente aceito).
    """
    success: bool
    errors: List[Mensagem] = field(default_factory=list)
    warnings: List[Mensagem] = field(default_factory=list)
    lot_info: Optional[InfoLote] = None
    document_keys: List[ChaveDocumento] = field(default_factory=list)
    status_code: Optional[str] = None
    status_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        dados: Dict[str, Any] = {
            "success": self.success,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "documentKeys": [k.to_dict() for k in self.document_keys],
        }
        if self.lot_info is not None:
            dados["lotInfo"] = self.lot_info.to_dict()
        if self.status_code is not None:
            dados["statusCode"] = self.status_code
            dados["statusMessage"] = self.status_message
        return dados


@dataclass
class ResultadoOperacao:
    """
    Resposta montada pela orquestração:
    {success, documentIdentifiers, canonicalResult, soap?}
    """
    resultado: ResultadoCanonico
    identificadores: Dict[str, Any] = field(default_factory=dict)
    xml_assinado: Optional[str] = None
    soap: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return self.resultado.success

    def to_dict(self) -> Dict[str, Any]:
        dados: Dict[str, Any] = {
            "success": self.resultado.success,
            "documentIdentifiers": dict(self.identificadores),
            "canonicalResult": self.resultado.to_dict(),
        }
        if self.soap is not None:
            dados["soap"] = self.soap
        return dados
