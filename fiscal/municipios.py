# fiscal/municipios.py
from __future__ import annotations

import unicodedata
from typing import Dict, Optional, Protocol, Tuple

from fiscal.exceptions import ConfigurationIncomplete
from fiscal.formatacao import somente_digitos


class MunicipioLookup(Protocol):
    def codigo_ibge(self, municipio: str, uf: str) -> Optional[str]:
        ...


def normalizar_nome(nome: str) -> str:
    sem_acento = unicodedata.normalize("NFKD", nome or "")
    sem_acento = "".join(c for c in sem_acento if not unicodedata.combining(c))
    return " ".join(sem_acento.upper().split())


class TabelaMunicipiosIBGE:
    """
    Lookup em tabela local de códigos IBGE (7 dígitos).

    Cobre capitais e os municípios com maior volume de emissão; filiais fora
    da tabela devem informar `codigo_municipio` no cadastro.
    """

    TABELA: Dict[Tuple[str, str], str] = {
        ("SP", "SAO PAULO"): "3550308",
        ("SP", "CAMPINAS"): "3509502",
        ("SP", "GUARULHOS"): "3518800",
        ("SP", "SANTOS"): "3548500",
        ("RJ", "RIO DE JANEIRO"): "3304557",
        ("RJ", "NITEROI"): "3303302",
        ("MG", "BELO HORIZONTE"): "3106200",
        ("MG", "UBERLANDIA"): "3170206",
        ("MG", "CONTAGEM"): "3118601",
        ("ES", "VITORIA"): "3205309",
        ("ES", "VILA VELHA"): "3205200",
        ("ES", "SERRA"): "3205002",
        ("PR", "CURITIBA"): "4106902",
        ("RS", "PORTO ALEGRE"): "4314902",
        ("SC", "FLORIANOPOLIS"): "4205407",
        ("BA", "SALVADOR"): "2927408",
        ("PE", "RECIFE"): "2611606",
        ("CE", "FORTALEZA"): "2304400",
        ("DF", "BRASILIA"): "5300108",
        ("GO", "GOIANIA"): "5208707",
        ("AM", "MANAUS"): "1302603",
        ("PA", "BELEM"): "1501402",
    }

    def __init__(self, extras: Optional[Dict[Tuple[str, str], str]] = None):
        self._tabela = dict(self.TABELA)
        for (uf, nome), codigo in (extras or {}).items():
            self._tabela[(uf.upper(), normalizar_nome(nome))] = codigo

    def codigo_ibge(self, municipio: str, uf: str) -> Optional[str]:
        return self._tabela.get(((uf or "").strip().upper(), normalizar_nome(municipio)))


def resolver_codigo_municipio(emitente, municipios: Optional[MunicipioLookup]) -> str:
    """
    Código explícito do cadastro primeiro; depois o lookup.
    Sem resolução → ConfigurationIncomplete (nunca um código padrão).
    """
    explicito = somente_digitos(emitente.codigo_municipio)
    if len(explicito) == 7:
        return explicito

    codigo = municipios.codigo_ibge(emitente.municipio, emitente.uf) if municipios else None
    if codigo and len(codigo) == 7 and codigo.isdigit():
        return codigo

    raise ConfigurationIncomplete(
        f"Código IBGE do município '{emitente.municipio}/{emitente.uf}' não encontrado.",
        detalhes={"campos": ["codigo_municipio"]},
    )
