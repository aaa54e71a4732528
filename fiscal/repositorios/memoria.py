# fiscal/repositorios/memoria.py
"""
Implementações em memória dos stores e providers.

Mesmas regras das implementações ORM (incremento atômico, unicidade do
documento ativo, atualização condicionada ao status), garantidas por um
threading.Lock. Usadas nos testes de concorrência e em ferramentas locais.
"""

from __future__ import annotations

import copy
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from django.utils import timezone

from fiscal.dto import EmitenteConfig, VendaSnapshot
from fiscal.exceptions import (
    ConfigurationIncomplete,
    DuplicateActiveDocument,
    InvalidTransition,
    SequenceUnavailable,
)
from fiscal.models import STATUS_ATIVOS, DocumentoFiscal, StatusDocumento


class SequenciaMemoriaStore:
    def __init__(self, inicial: Optional[Dict[Tuple[str, int, str], int]] = None):
        self._contadores: Dict[Tuple[str, int, str], int] = dict(inicial or {})
        self._falhas_pendentes = 0
        self._lock = threading.Lock()

    @staticmethod
    def _chave(filial_id, serie, modelo) -> Tuple[str, int, str]:
        return (str(filial_id), int(serie), str(modelo))

    def falhar_proximas(self, quantidade: int) -> None:
        """Simula indisponibilidade do contador nas próximas `quantidade` chamadas."""
        with self._lock:
            self._falhas_pendentes = quantidade

    def incrementar(self, filial_id: str, serie: int, modelo: str) -> int:
        with self._lock:
            if self._falhas_pendentes > 0:
                self._falhas_pendentes -= 1
                raise SequenceUnavailable()

            chave = self._chave(filial_id, serie, modelo)
            numero = self._contadores.get(chave, 0) + 1
            self._contadores[chave] = numero
            return numero

    def numero_atual(self, filial_id: str, serie: int, modelo: str) -> int:
        with self._lock:
            return self._contadores.get(self._chave(filial_id, serie, modelo), 0)


class DocumentoMemoriaStore:
    def __init__(self):
        self._documentos: Dict[str, DocumentoFiscal] = {}
        self.eventos: List[dict] = []
        self._lock = threading.Lock()

    def _ativo(self, venda_id: str, modelo: str) -> Optional[DocumentoFiscal]:
        for doc in self._documentos.values():
            if doc.venda_id == str(venda_id) and doc.modelo == str(modelo) and doc.status in STATUS_ATIVOS:
                return doc
        return None

    def reservar(self, documento: DocumentoFiscal) -> None:
        with self._lock:
            existente = self._ativo(documento.venda_id, documento.modelo)
            if existente is not None:
                raise DuplicateActiveDocument(
                    detalhes={
                        "documento_id": str(existente.id),
                        "status": existente.status,
                        "chave_acesso": existente.chave_acesso,
                    }
                )
            self._documentos[str(documento.id)] = copy.copy(documento)

    def atualizar(self, documento: DocumentoFiscal, *, status_anterior: str) -> None:
        with self._lock:
            atual = self._documentos.get(str(documento.id))
            if atual is None or atual.status != status_anterior:
                raise InvalidTransition(
                    "Documento alterado por outra operação; status esperado "
                    f"'{status_anterior}' não confere."
                )
            documento.updated_at = timezone.now()
            self._documentos[str(documento.id)] = copy.copy(documento)

    def liberar_reserva(self, documento: DocumentoFiscal) -> None:
        with self._lock:
            atual = self._documentos.get(str(documento.id))
            if atual is not None and atual.numero is None and atual.status == StatusDocumento.PENDENTE:
                del self._documentos[str(documento.id)]

    def buscar_por_chave(self, chave_acesso: str) -> Optional[DocumentoFiscal]:
        with self._lock:
            for doc in self._documentos.values():
                if chave_acesso and doc.chave_acesso == chave_acesso:
                    return copy.copy(doc)
        return None

    def buscar_ativo(self, venda_id: str, modelo: str) -> Optional[DocumentoFiscal]:
        with self._lock:
            doc = self._ativo(venda_id, modelo)
            return copy.copy(doc) if doc is not None else None

    def listar_pendentes(self, antes_de: datetime) -> List[DocumentoFiscal]:
        with self._lock:
            pendentes = [
                copy.copy(doc)
                for doc in self._documentos.values()
                if doc.status == StatusDocumento.PENDENTE
                and doc.numero is not None
                and doc.emitido_em is not None
                and doc.emitido_em <= antes_de
            ]
        return sorted(pendentes, key=lambda d: d.emitido_em)

    def todos(self) -> List[DocumentoFiscal]:
        with self._lock:
            return [copy.copy(doc) for doc in self._documentos.values()]

    def registrar_evento(
        self,
        documento: DocumentoFiscal,
        tipo_evento: str,
        *,
        status_anterior: Optional[str] = None,
        codigo_retorno: Optional[str] = None,
        mensagem_retorno: Optional[str] = None,
    ) -> None:
        with self._lock:
            self.eventos.append(
                {
                    "tipo_evento": tipo_evento,
                    "documento_id": str(documento.id),
                    "chave_acesso": documento.chave_acesso,
                    "status_anterior": status_anterior,
                    "status_novo": documento.status,
                    "codigo_retorno": codigo_retorno,
                    "mensagem_retorno": mensagem_retorno,
                }
            )


class VendaMemoriaProvider:
    def __init__(self, vendas: Iterable[VendaSnapshot] = ()):
        self._vendas: Dict[str, VendaSnapshot] = {str(v.id): v for v in vendas}

    def adicionar(self, venda: VendaSnapshot) -> None:
        self._vendas[str(venda.id)] = venda

    def obter_venda(self, venda_id: str) -> Optional[VendaSnapshot]:
        return self._vendas.get(str(venda_id))


class EmitenteMemoriaProvider:
    def __init__(self, emitente: Optional[EmitenteConfig] = None):
        self.emitente = emitente

    def obter_emitente_ativo(self) -> EmitenteConfig:
        if self.emitente is None:
            raise ConfigurationIncomplete(
                "Nenhuma filial emitente ativa cadastrada.",
                detalhes={"campos": ["filial"]},
            )
        return self.emitente
