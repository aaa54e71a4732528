# fiscal/repositorios/base.py
"""
Contratos de persistência do motor de emissão.

O motor (EmissorFiscal) depende apenas destes protocolos; as implementações
ORM ficam em orm.py e as em memória (testes, ferramentas) em memoria.py.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from fiscal.dto import EmitenteConfig, VendaSnapshot
from fiscal.models import DocumentoFiscal


class SequenciaStore(Protocol):
    def incrementar(self, filial_id: str, serie: int, modelo: str) -> int:
        """Incremento atômico; devolve o número recém-emitido."""
        ...

    def numero_atual(self, filial_id: str, serie: int, modelo: str) -> int:
        ...


class DocumentoStore(Protocol):
    def reservar(self, documento: DocumentoFiscal) -> None:
        """
        Insere o documento `pending` condicionado a não existir outro ativo
        para (venda_id, modelo). Conflito → DuplicateActiveDocument.
        """
        ...

    def atualizar(self, documento: DocumentoFiscal, *, status_anterior: str) -> None:
        """
        Grava o documento somente se o status persistido ainda for
        `status_anterior`. Caso contrário → InvalidTransition.
        """
        ...

    def liberar_reserva(self, documento: DocumentoFiscal) -> None:
        """Remove a reserva que ainda não recebeu número."""
        ...

    def buscar_por_chave(self, chave_acesso: str) -> Optional[DocumentoFiscal]:
        ...

    def buscar_ativo(self, venda_id: str, modelo: str) -> Optional[DocumentoFiscal]:
        ...

    def listar_pendentes(self, antes_de: datetime) -> List[DocumentoFiscal]:
        ...

    def registrar_evento(
        self,
        documento: DocumentoFiscal,
        tipo_evento: str,
        *,
        status_anterior: Optional[str] = None,
        codigo_retorno: Optional[str] = None,
        mensagem_retorno: Optional[str] = None,
    ) -> None:
        ...


class VendaProvider(Protocol):
    def obter_venda(self, venda_id: str) -> Optional[VendaSnapshot]:
        ...


class EmitenteProvider(Protocol):
    def obter_emitente_ativo(self) -> EmitenteConfig:
        ...
