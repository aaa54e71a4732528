# fiscal/repositorios/orm.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from filial.models import Filial
from fiscal.dto import EmitenteConfig, SerieConfig
from fiscal.exceptions import (
    ConfigurationIncomplete,
    DuplicateActiveDocument,
    InvalidTransition,
    SequenceUnavailable,
)
from fiscal.models import (
    STATUS_ATIVOS,
    DocumentoFiscal,
    DocumentoFiscalAuditoria,
    DocumentoFiscalSequencia,
    StatusDocumento,
)

logger = logging.getLogger("pdv.fiscal")


class SequenciaORMStore:
    """
    Contador durável em DocumentoFiscalSequencia.

    A linha é criada sob demanda e incrementada sob select_for_update,
    dentro de uma única transação: ou o número é emitido e persistido,
    ou nada acontece.
    """

    def incrementar(self, filial_id: str, serie: int, modelo: str) -> int:
        try:
            with transaction.atomic():
                DocumentoFiscalSequencia.objects.get_or_create(
                    filial_id=filial_id,
                    modelo=modelo,
                    serie=serie,
                )
                sequencia = DocumentoFiscalSequencia.objects.select_for_update().get(
                    filial_id=filial_id,
                    modelo=modelo,
                    serie=serie,
                )
                sequencia.numero_atual = sequencia.numero_atual + 1
                sequencia.save(update_fields=["numero_atual", "updated_at"])
                return sequencia.numero_atual
        except DatabaseError as exc:
            logger.error(
                "sequencia_fiscal_indisponivel",
                extra={
                    "event": "sequencia_fiscal_indisponivel",
                    "filial_id": str(filial_id),
                    "modelo": modelo,
                    "serie": serie,
                    "erro": str(exc),
                },
            )
            raise SequenceUnavailable() from exc

    def numero_atual(self, filial_id: str, serie: int, modelo: str) -> int:
        sequencia = (
            DocumentoFiscalSequencia.objects.filter(filial_id=filial_id, modelo=modelo, serie=serie)
            .only("numero_atual")
            .first()
        )
        return sequencia.numero_atual if sequencia else 0


# Campos regravados em atualizar(); o restante é imutável após a reserva
_CAMPOS_MUTAVEIS = [
    "numero",
    "chave_acesso",
    "status",
    "uf",
    "emitido_em",
    "autorizado_em",
    "protocolo",
    "codigo_retorno",
    "mensagem_retorno",
    "qrcode",
    "valor_produtos",
    "valor_desconto",
    "valor_outros",
    "valor_icms",
    "valor_pis",
    "valor_cofins",
    "valor_ipi",
    "valor_total",
    "xml",
    "hash_xml",
    "motivo_cancelamento",
    "cancelado_em",
    "protocolo_cancelamento",
    "updated_at",
]


class DocumentoORMStore:
    def reservar(self, documento: DocumentoFiscal) -> None:
        try:
            # savepoint: o IntegrityError não contamina uma transação externa
            with transaction.atomic():
                documento.save(force_insert=True)
        except IntegrityError as exc:
            existente = self.buscar_ativo(documento.venda_id, documento.modelo)
            if existente is None:
                raise
            raise DuplicateActiveDocument(
                detalhes={
                    "documento_id": str(existente.id),
                    "status": existente.status,
                    "chave_acesso": existente.chave_acesso,
                }
            ) from exc

    def atualizar(self, documento: DocumentoFiscal, *, status_anterior: str) -> None:
        documento.updated_at = timezone.now()
        valores = {campo: getattr(documento, campo) for campo in _CAMPOS_MUTAVEIS}

        with transaction.atomic():
            linhas = DocumentoFiscal.objects.filter(
                pk=documento.pk,
                status=status_anterior,
            ).update(**valores)

        if linhas == 0:
            raise InvalidTransition(
                "Documento alterado por outra operação; status esperado "
                f"'{status_anterior}' não confere."
            )

    def liberar_reserva(self, documento: DocumentoFiscal) -> None:
        DocumentoFiscal.objects.filter(
            pk=documento.pk,
            numero__isnull=True,
            status=StatusDocumento.PENDENTE,
        ).delete()

    def buscar_por_chave(self, chave_acesso: str) -> Optional[DocumentoFiscal]:
        if not chave_acesso:
            return None
        return DocumentoFiscal.objects.filter(chave_acesso=chave_acesso).first()

    def buscar_ativo(self, venda_id: str, modelo: str) -> Optional[DocumentoFiscal]:
        return DocumentoFiscal.objects.filter(
            venda_id=venda_id,
            modelo=modelo,
            status__in=STATUS_ATIVOS,
        ).first()

    def listar_pendentes(self, antes_de: datetime) -> List[DocumentoFiscal]:
        return list(
            DocumentoFiscal.objects.filter(
                status=StatusDocumento.PENDENTE,
                numero__isnull=False,
                emitido_em__lte=antes_de,
            ).order_by("emitido_em")
        )

    def registrar_evento(
        self,
        documento: DocumentoFiscal,
        tipo_evento: str,
        *,
        status_anterior: Optional[str] = None,
        codigo_retorno: Optional[str] = None,
        mensagem_retorno: Optional[str] = None,
    ) -> None:
        DocumentoFiscalAuditoria.objects.create(
            tipo_evento=tipo_evento,
            documento_id=documento.pk,
            venda_id=documento.venda_id,
            filial_id=documento.filial_id,
            chave_acesso=documento.chave_acesso,
            status_anterior=status_anterior,
            status_novo=documento.status,
            codigo_retorno=codigo_retorno,
            mensagem_retorno=mensagem_retorno,
            protocolo=documento.protocolo_cancelamento or documento.protocolo,
            ambiente=documento.ambiente,
        )


class EmitenteORMProvider:
    """Lê a filial ativa e congela seus dados num EmitenteConfig."""

    def obter_emitente_ativo(self) -> EmitenteConfig:
        filial = (
            Filial.objects.filter(ativo=True)
            .select_related("fiscal_config")
            .prefetch_related("documento_configs")
            .order_by("created_at")
            .first()
        )
        if filial is None:
            raise ConfigurationIncomplete(
                "Nenhuma filial emitente ativa cadastrada.",
                detalhes={"campos": ["filial"]},
            )
        return emitente_from_filial(filial)


def emitente_from_filial(filial: Filial) -> EmitenteConfig:
    fiscal_config = getattr(filial, "fiscal_config", None)

    documentos = tuple(
        SerieConfig(
            modelo=cfg.modelo,
            serie=cfg.serie,
            csc_id=cfg.csc_id or "",
            csc_token=cfg.csc_token or "",
            natureza_operacao=cfg.natureza_operacao or "VENDA",
        )
        for cfg in filial.documento_configs.all()
    )

    return EmitenteConfig(
        id=str(filial.id),
        razao_social=filial.razao_social or "",
        nome_fantasia=filial.nome_fantasia or "",
        cnpj=filial.cnpj or "",
        inscricao_estadual=(fiscal_config.inscricao_estadual if fiscal_config else "") or "",
        regime_tributario=(fiscal_config.regime_tributario if fiscal_config else "") or "",
        logradouro=filial.logradouro or "",
        numero=filial.numero or "",
        complemento=filial.complemento or "",
        bairro=filial.bairro or "",
        municipio=filial.municipio or "",
        codigo_municipio=filial.codigo_municipio or "",
        uf=(filial.uf or "").upper(),
        cep=filial.cep or "",
        telefone=filial.telefone or "",
        ambiente=filial.ambiente,
        documentos=documentos,
    )
