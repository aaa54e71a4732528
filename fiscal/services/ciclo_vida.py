# fiscal/services/ciclo_vida.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple, Type, Union

from fiscal.exceptions import CancellationWindowExpired, InvalidTransition
from fiscal.models import DocumentoFiscal, StatusDocumento

logger = logging.getLogger("pdv.fiscal")

JANELA_CANCELAMENTO = timedelta(hours=24)


@dataclass(frozen=True)
class Autorizar:
    protocolo: str
    autorizado_em: datetime
    codigo_retorno: Optional[str] = None
    mensagem: Optional[str] = None


@dataclass(frozen=True)
class Rejeitar:
    codigo_retorno: str
    motivo: str


@dataclass(frozen=True)
class Cancelar:
    motivo: str
    protocolo: Optional[str] = None
    cancelado_em: Optional[datetime] = None


Transicao = Union[Autorizar, Rejeitar, Cancelar]


# Matriz de transições permitidas. Tudo que não estiver aqui é
# InvalidTransition; rejected e cancelled são terminais.
TRANSICOES_VALIDAS: Dict[Tuple[str, Type], str] = {
    (StatusDocumento.PENDENTE, Autorizar): StatusDocumento.AUTORIZADO,
    (StatusDocumento.PENDENTE, Rejeitar): StatusDocumento.REJEITADO,
    (StatusDocumento.AUTORIZADO, Cancelar): StatusDocumento.CANCELADO,
}


class DocumentoStateMachine:
    """
    ÚNICO ponto autorizado a trocar o status de um DocumentoFiscal.
    Não persiste: quem grava é o DocumentoStore, condicionado ao status
    anterior.
    """

    @classmethod
    def destino(cls, status_atual: str, transicao: Transicao) -> str:
        try:
            return TRANSICOES_VALIDAS[(status_atual, type(transicao))]
        except KeyError:
            raise InvalidTransition(
                f"Transição {type(transicao).__name__} não permitida a partir de '{status_atual}'."
            ) from None

    @staticmethod
    def prazo_cancelamento(documento: DocumentoFiscal) -> Optional[datetime]:
        if documento.autorizado_em is None:
            return None
        return documento.autorizado_em + JANELA_CANCELAMENTO

    @classmethod
    def verificar(cls, documento: DocumentoFiscal, transicao: Transicao, *, agora: datetime) -> str:
        """Valida transição e guardas sem alterar o documento."""
        novo_status = cls.destino(documento.status, transicao)

        if isinstance(transicao, Cancelar):
            if not (transicao.motivo or "").strip():
                raise InvalidTransition("Motivo do cancelamento é obrigatório.")

            prazo = cls.prazo_cancelamento(documento)
            if prazo is None or agora > prazo:
                raise CancellationWindowExpired(
                    detalhes={
                        "autorizado_em": documento.autorizado_em.isoformat() if documento.autorizado_em else None,
                    }
                )

        return novo_status

    @classmethod
    def aplicar(cls, documento: DocumentoFiscal, transicao: Transicao, *, agora: datetime) -> None:
        status_atual = documento.status
        novo_status = cls.verificar(documento, transicao, agora=agora)

        if isinstance(transicao, Autorizar):
            documento.protocolo = transicao.protocolo
            documento.autorizado_em = transicao.autorizado_em
            documento.codigo_retorno = transicao.codigo_retorno
            documento.mensagem_retorno = transicao.mensagem
        elif isinstance(transicao, Rejeitar):
            documento.codigo_retorno = transicao.codigo_retorno
            documento.mensagem_retorno = transicao.motivo
        else:
            documento.motivo_cancelamento = transicao.motivo.strip()
            documento.protocolo_cancelamento = transicao.protocolo
            documento.cancelado_em = transicao.cancelado_em or agora

        documento.status = novo_status

        logger.info(
            "documento_status_transicao",
            extra={
                "event": "documento_status_transicao",
                "documento_id": str(documento.id),
                "chave_acesso": documento.chave_acesso,
                "status_anterior": status_atual,
                "status_novo": novo_status,
                "transicao": type(transicao).__name__,
            },
        )
