from .base import DocumentoStore, EmitenteProvider, SequenciaStore, VendaProvider
from .memoria import (
    DocumentoMemoriaStore,
    EmitenteMemoriaProvider,
    SequenciaMemoriaStore,
    VendaMemoriaProvider,
)
from .orm import DocumentoORMStore, EmitenteORMProvider, SequenciaORMStore


__all__ = [
    "DocumentoStore",
    "EmitenteProvider",
    "SequenciaStore",
    "VendaProvider",
    "DocumentoMemoriaStore",
    "EmitenteMemoriaProvider",
    "SequenciaMemoriaStore",
    "VendaMemoriaProvider",
    "DocumentoORMStore",
    "EmitenteORMProvider",
    "SequenciaORMStore",
]
