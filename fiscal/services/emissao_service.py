# fiscal/services/emissao_service.py

from __future__ import annotations

import hashlib
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.utils import timezone

from fiscal.chave_acesso import gerar_chave_acesso
from fiscal.dto import DocumentoMontado, EmitenteConfig, TotaisDocumento, VendaSnapshot
from fiscal.exceptions import (
    AuthorizationRejected,
    AuthorizationTimeout,
    ConfigurationIncomplete,
    DocumentoNaoEncontrado,
    InvalidTransition,
    SequenceUnavailable,
    VendaInvalida,
    VendaNaoEncontrada,
)
from fiscal.formatacao import somente_digitos
from fiscal.models import DocumentoFiscal, StatusDocumento
from fiscal.municipios import MunicipioLookup, TabelaMunicipiosIBGE
from fiscal.qrcode import montar_qrcode_para_emitente, montar_url_consulta_nfe, url_chave
from fiscal.relogio import Relogio, RelogioSistema
from fiscal.repositorios.base import DocumentoStore, EmitenteProvider, SequenciaStore, VendaProvider
from fiscal.sefaz_factory import RoteadorAmbiente
from fiscal.services.ciclo_vida import Autorizar, Cancelar, DocumentoStateMachine, Rejeitar
from fiscal.services.montagem_service import (
    MODELO_NFCE,
    MODELO_NFE,
    anexar_info_suplementar,
    montar_documento,
    validar_emitente,
    validar_venda,
)
from fiscal.services.numero_service import AlocadorSequencia
from fiscal.tributos import CalculadoraTributos, CalculadoraTributosPorAliquota

logger = logging.getLogger("pdv.fiscal")

MODELOS_SUPORTADOS = (MODELO_NFCE, MODELO_NFE)

# codigo_retorno de documentos que falharam antes do envio à SEFAZ
CODIGO_FALHA_MONTAGEM = "MONTAGEM"


# ---------------------------------------------------------------------------
# DTOs de saída
# ---------------------------------------------------------------------------

@dataclass
class EmitirResult:
    status: str
    chave_acesso: str
    protocolo: Optional[str]
    qrcode: Optional[str]
    numero: int
    serie: int
    modelo: str
    documento_id: str
    totais: TotaisDocumento


@dataclass
class CancelarResult:
    status: str
    chave_acesso: str
    protocolo_cancelamento: Optional[str]
    cancelado_em: datetime


def _totais_do_documento(doc: DocumentoFiscal) -> TotaisDocumento:
    return TotaisDocumento(
        valor_produtos=doc.valor_produtos,
        valor_desconto=doc.valor_desconto,
        valor_outros=doc.valor_outros,
        valor_icms=doc.valor_icms,
        valor_pis=doc.valor_pis,
        valor_cofins=doc.valor_cofins,
        valor_ipi=doc.valor_ipi,
        valor_total=doc.valor_total,
    )


def _build_result_from_document(doc: DocumentoFiscal) -> EmitirResult:
    return EmitirResult(
        status=doc.status,
        chave_acesso=doc.chave_acesso,
        protocolo=doc.protocolo,
        qrcode=doc.qrcode,
        numero=doc.numero,
        serie=doc.serie,
        modelo=doc.modelo,
        documento_id=str(doc.id),
        totais=_totais_do_documento(doc),
    )


# ---------------------------------------------------------------------------
# Motor de emissão
# ---------------------------------------------------------------------------

class EmissorFiscal:
    """
    Orquestra validação, numeração, chave, montagem, QR-Code e autorização.

    Todas as dependências são injetadas: stores (ORM ou memória), providers
    de venda/emitente, calculadora de tributos, roteador de ambiente e
    relógio. Não há estado global; cada instância é independente.
    """

    def __init__(
        self,
        *,
        vendas: VendaProvider,
        emitentes: EmitenteProvider,
        sequencias: SequenciaStore,
        documentos: DocumentoStore,
        roteador: Optional[RoteadorAmbiente] = None,
        tributos: Optional[CalculadoraTributos] = None,
        relogio: Optional[Relogio] = None,
        municipios: Optional[MunicipioLookup] = None,
        timeout_autorizacao: float = 30,
        tentativas_sequencia: int = 3,
        rng: Optional[random.Random] = None,
    ):
        self.vendas = vendas
        self.emitentes = emitentes
        self.documentos = documentos
        self.relogio = relogio or RelogioSistema()
        self.roteador = roteador or RoteadorAmbiente(relogio=self.relogio)
        self.tributos = tributos or CalculadoraTributosPorAliquota()
        self.municipios = municipios or TabelaMunicipiosIBGE()
        self.timeout_autorizacao = timeout_autorizacao
        self.alocador = AlocadorSequencia(sequencias, tentativas=tentativas_sequencia)
        self.rng = rng

    # -------------------------
    # Emissão
    # -------------------------
    def emitir(
        self,
        venda_id: str,
        modelo: str = MODELO_NFCE,
        cpf_cnpj_destinatario: Optional[str] = None,
    ) -> EmitirResult:
        modelo = str(modelo)
        log_ctx = {"venda_id": str(venda_id), "modelo": modelo}

        logger.info("emissao_fiscal_iniciada", extra={"event": "emissao_fiscal_iniciada", **log_ctx})

        if modelo not in MODELOS_SUPORTADOS:
            raise VendaInvalida(f"Modelo de documento não suportado: {modelo}.")

        # 1) Venda + emitente
        venda = self.vendas.obter_venda(venda_id)
        if venda is None:
            raise VendaNaoEncontrada(f"Venda {venda_id} não encontrada.")
        emitente = self.emitentes.obter_emitente_ativo()
        destinatario = somente_digitos(cpf_cnpj_destinatario or venda.cpf_cnpj_destinatario) or None

        # 2) Validações (nenhum número consumido se falhar)
        try:
            validar_emitente(emitente, modelo, municipios=self.municipios)
            validar_venda(venda, destinatario)
            self.roteador.verificar(emitente)
        except (ConfigurationIncomplete, VendaInvalida) as exc:
            logger.warning(
                "emissao_fiscal_pre_validacao_falhou",
                extra={
                    "event": "emissao_fiscal_pre_validacao_falhou",
                    "code": exc.code,
                    "detalhes": exc.detalhes,
                    **log_ctx,
                },
            )
            raise

        serie = int(emitente.config_documento(modelo).serie)

        # 3) Reserva da vaga (venda, modelo): conflito → DuplicateActiveDocument
        documento = DocumentoFiscal(
            venda_id=str(venda.id),
            filial_id=emitente.id,
            modelo=modelo,
            serie=serie,
            status=StatusDocumento.PENDENTE,
            ambiente=emitente.ambiente,
            uf=emitente.uf.upper(),
        )
        self.documentos.reservar(documento)

        # 4) Número, gravado de imediato: nenhuma falha adiante o perde
        try:
            numero = self.alocador.proximo_numero(emitente.id, serie, modelo)
        except SequenceUnavailable:
            self.documentos.liberar_reserva(documento)
            logger.error(
                "emissao_fiscal_sem_numero",
                extra={"event": "emissao_fiscal_sem_numero", **log_ctx},
            )
            raise

        documento.numero = numero
        self.documentos.atualizar(documento, status_anterior=StatusDocumento.PENDENTE)

        # 5) Chave, tributos, XML, QR-Code
        try:
            montado = self._montar(documento, venda, emitente, destinatario)
        except Exception as exc:
            self._rejeitar_falha_montagem(documento, exc, log_ctx)
            raise

        self.documentos.registrar_evento(documento, "EMISSAO_PENDENTE")

        logger.info(
            "emissao_fiscal_documento_montado",
            extra={
                "event": "emissao_fiscal_documento_montado",
                "chave_acesso": documento.chave_acesso,
                "numero": numero,
                "serie": serie,
                "valor_total": str(montado.totais.valor_total),
                **log_ctx,
            },
        )

        # 6) Autorização
        return self._autorizar(documento, emitente)

    def _montar(
        self,
        documento: DocumentoFiscal,
        venda: VendaSnapshot,
        emitente: EmitenteConfig,
        destinatario: Optional[str],
    ) -> DocumentoMontado:
        modelo = documento.modelo
        emitido_em = timezone.localtime(self.relogio.agora())
        chave = gerar_chave_acesso(
            uf=emitente.uf,
            ano_mes=emitido_em.strftime("%y%m"),
            cnpj=somente_digitos(emitente.cnpj),
            modelo=modelo,
            serie=documento.serie,
            numero=documento.numero,
            rng=self.rng,
        )
        resumo = self.tributos.calcular(venda)
        montado = montar_documento(
            venda,
            emitente,
            resumo,
            documento.numero,
            chave,
            destinatario,
            emitido_em=emitido_em,
            municipios=self.municipios,
        )

        xml = montado.xml
        if modelo == MODELO_NFCE:
            qrcode = montar_qrcode_para_emitente(chave, emitente, modelo)
            xml = anexar_info_suplementar(xml, qrcode, url_chave(chave, emitente.ambiente))
        else:
            qrcode = montar_url_consulta_nfe(chave, emitente.ambiente)

        documento.chave_acesso = chave
        documento.emitido_em = emitido_em
        documento.qrcode = qrcode
        documento.xml = xml.decode("utf-8")
        documento.hash_xml = hashlib.sha256(xml).hexdigest()
        for campo, valor in montado.totais.as_dict().items():
            setattr(documento, campo, valor)

        self.documentos.atualizar(documento, status_anterior=StatusDocumento.PENDENTE)
        return montado

    def _rejeitar_falha_montagem(self, documento: DocumentoFiscal, exc: Exception, log_ctx: dict) -> None:
        """
        Número já consumido e nada enviado à SEFAZ: o documento fica
        rejeitado com o número gravado e a venda volta a aceitar emissão.
        """
        motivo = f"{type(exc).__name__}: {exc}"
        status_anterior = documento.status
        documento.chave_acesso = None
        documento.xml = None
        documento.hash_xml = None
        documento.qrcode = None
        DocumentoStateMachine.aplicar(
            documento,
            Rejeitar(codigo_retorno=CODIGO_FALHA_MONTAGEM, motivo=motivo),
            agora=self.relogio.agora(),
        )
        self.documentos.atualizar(documento, status_anterior=status_anterior)
        self.documentos.registrar_evento(
            documento,
            "EMISSAO_FALHA_MONTAGEM",
            status_anterior=status_anterior,
            codigo_retorno=CODIGO_FALHA_MONTAGEM,
            mensagem_retorno=motivo,
        )
        logger.error(
            "emissao_fiscal_falha_montagem",
            extra={
                "event": "emissao_fiscal_falha_montagem",
                "numero": documento.numero,
                "serie": documento.serie,
                "erro": motivo,
                **log_ctx,
            },
        )

    def _autorizar(self, documento: DocumentoFiscal, emitente: EmitenteConfig) -> EmitirResult:
        try:
            resultado = self.roteador.autorizar(documento, emitente, timeout=self.timeout_autorizacao)
        except AuthorizationTimeout as exc:
            self.documentos.registrar_evento(
                documento,
                "EMISSAO_TIMEOUT",
                status_anterior=documento.status,
                mensagem_retorno=exc.message,
            )
            logger.warning(
                "emissao_fiscal_pendente_timeout",
                extra={
                    "event": "emissao_fiscal_pendente_timeout",
                    "chave_acesso": documento.chave_acesso,
                    "venda_id": documento.venda_id,
                },
            )
            exc.detalhes.setdefault("chave_acesso", documento.chave_acesso)
            raise

        agora = self.relogio.agora()
        status_anterior = documento.status

        if resultado.autorizado:
            transicao = Autorizar(
                protocolo=resultado.protocolo,
                autorizado_em=agora,
                codigo_retorno=resultado.codigo_retorno,
                mensagem=resultado.mensagem,
            )
            evento = "EMISSAO_AUTORIZADA"
        else:
            transicao = Rejeitar(codigo_retorno=resultado.codigo_retorno, motivo=resultado.mensagem)
            evento = "EMISSAO_REJEITADA"

        DocumentoStateMachine.aplicar(documento, transicao, agora=agora)
        self.documentos.atualizar(documento, status_anterior=status_anterior)
        self.documentos.registrar_evento(
            documento,
            evento,
            status_anterior=status_anterior,
            codigo_retorno=resultado.codigo_retorno,
            mensagem_retorno=resultado.mensagem,
        )

        if not resultado.autorizado:
            logger.warning(
                "emissao_fiscal_rejeitada",
                extra={
                    "event": "emissao_fiscal_rejeitada",
                    "chave_acesso": documento.chave_acesso,
                    "codigo_retorno": resultado.codigo_retorno,
                },
            )
            raise AuthorizationRejected(
                f"Documento rejeitado: {resultado.mensagem}",
                detalhes={
                    "chave_acesso": documento.chave_acesso,
                    "codigo_retorno": resultado.codigo_retorno,
                },
            )

        logger.info(
            "emissao_fiscal_autorizada",
            extra={
                "event": "emissao_fiscal_autorizada",
                "chave_acesso": documento.chave_acesso,
                "protocolo": documento.protocolo,
            },
        )
        return _build_result_from_document(documento)

    # -------------------------
    # Reprocessamento de pendentes
    # -------------------------
    def reprocessar_pendente(self, chave_acesso: str) -> EmitirResult:
        """
        Reenvia o XML armazenado de um documento pendente, com o mesmo número
        e a mesma chave. Nunca aloca número novo.
        """
        documento = self.consultar_status(chave_acesso)
        if documento.status != StatusDocumento.PENDENTE:
            raise InvalidTransition(
                f"Somente documentos pendentes podem ser reprocessados (status atual: {documento.status})."
            )

        emitente = self.emitentes.obter_emitente_ativo()
        if str(emitente.id) != str(documento.filial_id):
            raise ConfigurationIncomplete(
                "Documento pertence a outra filial emitente.",
                detalhes={"campos": ["filial"]},
            )

        logger.info(
            "emissao_fiscal_reprocessamento",
            extra={"event": "emissao_fiscal_reprocessamento", "chave_acesso": chave_acesso},
        )
        return self._autorizar(documento, emitente)

    # -------------------------
    # Cancelamento
    # -------------------------
    def cancelar(self, chave_acesso: str, motivo: str) -> CancelarResult:
        documento = self.consultar_status(chave_acesso)
        agora = self.relogio.agora()

        # guardas antes de falar com a autoridade
        DocumentoStateMachine.verificar(documento, Cancelar(motivo=motivo), agora=agora)

        emitente = self.emitentes.obter_emitente_ativo()
        resultado = self.roteador.cancelar(documento, motivo, emitente, timeout=self.timeout_autorizacao)

        status_anterior = documento.status
        DocumentoStateMachine.aplicar(
            documento,
            Cancelar(motivo=motivo, protocolo=resultado.protocolo, cancelado_em=agora),
            agora=agora,
        )
        self.documentos.atualizar(documento, status_anterior=status_anterior)
        self.documentos.registrar_evento(
            documento,
            "CANCELAMENTO",
            status_anterior=status_anterior,
            codigo_retorno=resultado.codigo_retorno,
            mensagem_retorno=resultado.mensagem,
        )

        logger.info(
            "cancelamento_fiscal_registrado",
            extra={
                "event": "cancelamento_fiscal_registrado",
                "chave_acesso": chave_acesso,
                "protocolo_cancelamento": resultado.protocolo,
            },
        )

        return CancelarResult(
            status=documento.status,
            chave_acesso=documento.chave_acesso,
            protocolo_cancelamento=documento.protocolo_cancelamento,
            cancelado_em=documento.cancelado_em,
        )

    # -------------------------
    # Consulta
    # -------------------------
    def consultar_status(self, chave_acesso: str) -> DocumentoFiscal:
        documento = self.documentos.buscar_por_chave(chave_acesso)
        if documento is None:
            raise DocumentoNaoEncontrado(f"Documento com chave {chave_acesso} não encontrado.")
        return documento

    def listar_pendentes(self, antes_de: datetime):
        return self.documentos.listar_pendentes(antes_de)
