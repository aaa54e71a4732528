# fiscal/uf/__init__.py
from __future__ import annotations

from typing import Dict

from .base import (
    AMBIENTE_HOMOLOGACAO,
    AMBIENTE_PRODUCAO,
    CfopDef,
    FiscalUFConfig,
    tp_amb,
)
from . import sp, mg, rj, es


# Tabela IBGE de códigos de UF (cUF da chave de acesso).
CODIGO_UF: Dict[str, str] = {
    "RO": "11", "AC": "12", "AM": "13", "RR": "14", "PA": "15", "AP": "16", "TO": "17",
    "MA": "21", "PI": "22", "CE": "23", "RN": "24", "PB": "25", "PE": "26", "AL": "27",
    "SE": "28", "BA": "29",
    "MG": "31", "ES": "32", "RJ": "33", "SP": "35",
    "PR": "41", "SC": "42", "RS": "43",
    "MS": "50", "MT": "51", "GO": "52", "DF": "53",
}

UF_POR_CODIGO: Dict[str, str] = {codigo: uf for uf, codigo in CODIGO_UF.items()}


# Registry interno, 1:1 por UF
_UF_CONFIGS: Dict[str, FiscalUFConfig] = {
    sp.CONFIG.uf: sp.CONFIG,
    mg.CONFIG.uf: mg.CONFIG,
    rj.CONFIG.uf: rj.CONFIG,
    es.CONFIG.uf: es.CONFIG,
}


def codigo_uf(uf: str | None) -> str:
    key = (uf or "").strip().upper()
    try:
        return CODIGO_UF[key]
    except KeyError:
        raise ValueError(f"UF desconhecida: {uf!r}") from None


def uf_atendida(uf: str | None) -> bool:
    return (uf or "").strip().upper() in _UF_CONFIGS


def get_uf_config(uf: str | None) -> FiscalUFConfig:
    """
    Retorna a configuração fiscal para a UF informada.

    UFs sem config própria (sp.py, mg.py, rj.py, es.py) levantam ValueError:
    QR-Code e CFOP padrão dependem dos dados da UF e não têm fallback.
    """
    key = (uf or "").strip().upper()
    try:
        return _UF_CONFIGS[key]
    except KeyError:
        raise ValueError(f"UF sem configuração fiscal: {uf!r}") from None


def get_uf_config_por_codigo(codigo: str) -> FiscalUFConfig:
    uf = UF_POR_CODIGO.get(codigo)
    if uf is None:
        raise ValueError(f"Código de UF desconhecido: {codigo!r}")
    return get_uf_config(uf)


__all__ = [
    "AMBIENTE_HOMOLOGACAO",
    "AMBIENTE_PRODUCAO",
    "CODIGO_UF",
    "UF_POR_CODIGO",
    "CfopDef",
    "FiscalUFConfig",
    "codigo_uf",
    "get_uf_config",
    "get_uf_config_por_codigo",
    "tp_amb",
    "uf_atendida",
]
