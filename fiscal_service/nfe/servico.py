# fiscal_service/nfe/servico.py
"""
Orquestração da NF-e:

    certificado -> montagem -> chave -> assinatura -> envio -> normalização

Uma tentativa por chamada; qualquer falha interrompe o fluxo.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..core.certificado import CertificadoPFX, carregar_pfx
from ..core.config import settings
from ..core.enums import Ambiente, ServicoNFe
from ..core.envio import SERVICE_NAMESPACE, EndpointInfo, enviar_soap_nfe
from ..core.erros import ErroMontagemDocumento, RespostaIlegivel
from ..core.resultado import ResultadoCanonico, ResultadoOperacao
from ..core.soap_client import SoapClient
from ..core.soaplist import get_endpoint
from ..core.utils import montar_soap_debug, obter_cuf
from ..core.xml_utils import inteiro, only_digits
from .assinatura import assinar_evento_xml, assinar_inut_xml, assinar_nfe_xml
from .chave import calcular_chave_acesso, montar_id_inutilizacao, normalizar_ano
from .evento import NFeEventoCancelamento
from .normalizador import normalizar_resposta
from .xml_builder import (
    montar_cons_sit_nfe,
    montar_cons_stat_serv,
    montar_envi_nfe_xml,
    montar_inut_nfe,
    montar_nfe,
)

logger = logging.getLogger(__name__)


def _validar_chave(ch_nfe: str) -> str:
    chave = only_digits(ch_nfe)
    if len(chave) != 44:
        raise ErroMontagemDocumento("Chave de acesso (chNFe) deve ter 44 dígitos", campo="chNFe")
    return chave


def _cuf(valor: Any, campo: str) -> int:
    try:
        return obter_cuf(valor)
    except ValueError as exc:
        raise ErroMontagemDocumento(str(exc), campo=campo) from exc


@dataclass
class NFeService:
    """
    Serviços da NF-e 4.00 para um tenant (certificado + ambiente).

    - pfx_data / pfx_password: certificado A1 em memória (nunca logado)
    - ambiente: produção ou homologação (força o tpAmb dos XMLs)
    """

    pfx_data: bytes = field(repr=False)
    pfx_password: str = field(repr=False)
    ambiente: Ambiente = Ambiente.HOMOLOGACAO
    timeout: int = field(default_factory=lambda: settings.soap_timeout)
    verificar_ssl: bool = field(default_factory=lambda: settings.verificar_ssl)

    def __post_init__(self) -> None:
        try:
            self.ambiente = Ambiente.from_nome(self.ambiente)
        except ValueError as exc:
            raise ErroMontagemDocumento(str(exc), campo="ambiente") from exc

    # ------------------------------------------------------------------
    # infraestrutura
    # ------------------------------------------------------------------

    def _certificado(self) -> CertificadoPFX:
        return carregar_pfx(self.pfx_data, self.pfx_password)

    def _soap_client(self) -> SoapClient:
        return SoapClient(
            pfx_data=self.pfx_data,
            pfx_password=self.pfx_password,
            timeout=self.timeout,
            verificar_ssl=self.verificar_ssl,
        )

    def _transmitir(
        self,
        servico: ServicoNFe,
        payload_xml: str,
        c_uf: int,
        endpoint_override: Optional[str],
        incluir_soap: bool,
    ) -> tuple[ResultadoCanonico, Optional[Dict[str, Any]]]:
        if endpoint_override:
            endpoint = EndpointInfo(url=endpoint_override, namespace=SERVICE_NAMESPACE[servico])
        else:
            endpoint = get_endpoint(servico, c_uf, self.ambiente)
        logger.info(
            "NF-e %s: cUF=%s ambiente=%s endpoint=%s",
            servico.value, c_uf, self.ambiente.name, endpoint.url,
        )

        resposta = enviar_soap_nfe(self._soap_client(), endpoint, payload_xml, c_uf)
        soap = montar_soap_debug(resposta.request, resposta.response) if incluir_soap else None

        try:
            resultado = normalizar_resposta(resposta.response)
        except RespostaIlegivel as exc:
            exc.soap = soap
            raise
        return resultado, soap

    # ------------------------------------------------------------------
    # operações
    # ------------------------------------------------------------------

    def emitir(
        self,
        nfe: Dict[str, Any],
        id_lote: str | int = 1,
        ind_sinc: str | int = 1,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """
        JSON da NF-e -> <NFe> assinada -> <enviNFe> -> NFeAutorizacao4.
        """
        certificado = self._certificado()

        if not isinstance(nfe, dict) or not nfe.get("ide") or not nfe.get("emit"):
            raise ErroMontagemDocumento("Dados da NF-e incompletos: ide e emit são obrigatórios")

        nfe = copy.deepcopy(nfe)
        ide = nfe["ide"]
        emit = nfe["emit"]
        c_uf = _cuf(ide.get("cUF"), "ide.cUF")
        for campo in ("dhEmi", "nNF"):
            if ide.get(campo) in (None, ""):
                raise ErroMontagemDocumento(f"Campo obrigatório ausente: ide.{campo}", campo=f"ide.{campo}")
        if only_digits(ide["nNF"]) != str(ide["nNF"]):
            raise ErroMontagemDocumento("ide.nNF deve ser numérico", campo="ide.nNF")
        ide.setdefault("mod", 55)
        ide.setdefault("serie", 1)
        ide.setdefault("tpEmis", 1)

        chave = calcular_chave_acesso(
            cUF=c_uf,
            dhEmi=ide["dhEmi"],
            cnpj=emit.get("CNPJ") or emit.get("CPF") or "",
            mod=ide["mod"],
            serie=ide["serie"],
            nNF=ide["nNF"],
            tpEmis=ide["tpEmis"],
            cNF=ide.get("cNF"),
        )
        ide["cUF"] = c_uf
        ide["cNF"] = chave.cNF
        ide["cDV"] = chave.cDV
        ide["tpAmb"] = self.ambiente.value

        xml_nfe = montar_nfe(nfe, chave.chave)
        logger.debug("NF-e %s montada (%d bytes)", chave.chave, len(xml_nfe))

        xml_assinado = assinar_nfe_xml(xml_nfe, certificado)
        envi = montar_envi_nfe_xml(xml_assinado, id_lote=id_lote, ind_sinc=ind_sinc)

        resultado, soap = self._transmitir(
            ServicoNFe.AUTORIZACAO, envi, c_uf, endpoint_override, incluir_soap
        )
        return ResultadoOperacao(
            resultado=resultado,
            identificadores={"chaveAcesso": chave.chave, "cNF": chave.cNF, "cDV": chave.cDV},
            xml_assinado=xml_assinado,
            soap=soap,
        )

    def consultar(
        self,
        ch_nfe: str,
        c_uf: Optional[str | int] = None,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """
        Consulta a situação da NF-e pela chave (NfeConsultaProtocolo4).
        cUF ausente => dois primeiros dígitos da chave.
        """
        chave = _validar_chave(ch_nfe)
        uf = _cuf(c_uf or chave[:2], "cUF")

        xml = montar_cons_sit_nfe(chave, self.ambiente.value)
        resultado, soap = self._transmitir(
            ServicoNFe.CONSULTA_PROTOCOLO, xml, uf, endpoint_override, incluir_soap
        )
        return ResultadoOperacao(
            resultado=resultado,
            identificadores={"chNFe": chave},
            soap=soap,
        )

    def cancelar(
        self,
        ch_nfe: str,
        n_prot: str,
        x_just: str,
        cnpj: str,
        n_seq_evento: int = 1,
        dh_evento: Optional[str] = None,
        id_lote: str | int = 1,
        c_uf: Optional[str | int] = None,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """
        Evento de cancelamento (110111) -> NFeRecepcaoEvento4.
        A justificativa (mínimo 15 caracteres) já chega validada.
        """
        certificado = self._certificado()
        chave = _validar_chave(ch_nfe)
        if not n_prot:
            raise ErroMontagemDocumento(
                "Número do protocolo de autorização (nProt) é obrigatório", campo="nProt"
            )
        uf = _cuf(c_uf or chave[:2], "cUF")

        montado = NFeEventoCancelamento(ambiente=self.ambiente).montar_xml(
            chave=chave,
            n_protocolo=n_prot,
            justificativa=x_just,
            cnpj=cnpj,
            sequencia=n_seq_evento,
            id_lote=id_lote,
            c_orgao=uf,
            dh_evento=dh_evento,
        )
        evento_assinado = assinar_evento_xml(montado.evento_xml, certificado)
        env_evento = montado.com_evento_assinado(evento_assinado)

        resultado, soap = self._transmitir(
            ServicoNFe.RECEPCAO_EVENTO, env_evento, uf, endpoint_override, incluir_soap
        )
        return ResultadoOperacao(
            resultado=resultado,
            identificadores={"chNFe": chave, "idEvento": montado.id_evento},
            xml_assinado=env_evento,
            soap=soap,
        )

    def inutilizar(
        self,
        c_uf: str | int,
        cnpj: str,
        mod: str | int,
        serie: str | int,
        n_nf_ini: str | int,
        n_nf_fin: str | int,
        x_just: str,
        ano: Optional[str | int] = None,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """
        Inutilização de faixa de numeração (NfeInutilizacao4).
        """
        certificado = self._certificado()
        uf = _cuf(c_uf, "cUF")
        if not only_digits(cnpj):
            raise ErroMontagemDocumento("CNPJ do emitente é obrigatório", campo="CNPJ")
        mod = inteiro(mod, "mod")
        serie = inteiro(serie, "serie")
        n_nf_ini = inteiro(n_nf_ini, "nNFIni")
        n_nf_fin = inteiro(n_nf_fin, "nNFFin")
        if n_nf_fin < n_nf_ini:
            raise ErroMontagemDocumento("nNFFin menor que nNFIni", campo="nNFFin")

        aa = normalizar_ano(ano)
        id_inut = montar_id_inutilizacao(uf, aa, cnpj, mod, serie, n_nf_ini, n_nf_fin)
        xml = montar_inut_nfe(
            id_inut=id_inut,
            c_uf=uf,
            tp_amb=self.ambiente.value,
            ano=aa,
            cnpj=cnpj,
            mod=mod,
            serie=serie,
            n_nf_ini=n_nf_ini,
            n_nf_fin=n_nf_fin,
            x_just=x_just,
        )
        xml_assinado = assinar_inut_xml(xml, certificado)

        resultado, soap = self._transmitir(
            ServicoNFe.INUTILIZACAO, xml_assinado, uf, endpoint_override, incluir_soap
        )
        return ResultadoOperacao(
            resultado=resultado,
            identificadores={"idInutilizacao": id_inut},
            xml_assinado=xml_assinado,
            soap=soap,
        )

    def status_servico(
        self,
        c_uf: str | int,
        incluir_soap: bool = False,
        endpoint_override: Optional[str] = None,
    ) -> ResultadoOperacao:
        """
        Status do serviço da UF (NFeStatusServico4).
        """
        uf = _cuf(c_uf, "cUF")
        xml = montar_cons_stat_serv(uf, self.ambiente.value)
        resultado, soap = self._transmitir(
            ServicoNFe.STATUS_SERVICO, xml, uf, endpoint_override, incluir_soap
        )
        return ResultadoOperacao(
            resultado=resultado,
            identificadores={"cUF": str(uf)},
            soap=soap,
        )
