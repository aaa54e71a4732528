# fiscal/chave_acesso.py
"""
Chave de acesso NF-e/NFC-e (44 dígitos):

    cUF(2) AAMM(4) CNPJ(14) mod(2) serie(3) nNF(9) tpEmis(1) cNF(8) cDV(1)
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from fiscal.formatacao import somente_digitos
from fiscal.uf import UF_POR_CODIGO, codigo_uf

TAMANHO_CHAVE = 44
TP_EMIS_NORMAL = "1"
MODELOS_VALIDOS = ("55", "65")

_rng_padrao = random.SystemRandom()


@dataclass(frozen=True)
class ChaveDecomposta:
    codigo_uf: str
    ano_mes: str
    cnpj: str
    modelo: str
    serie: int
    numero: int
    tp_emis: str
    codigo_numerico: str
    digito_verificador: str


def calcular_digito_verificador(prefixo: str) -> str:
    """Módulo 11 com pesos 2..9 da direita para a esquerda."""
    if not prefixo.isdigit():
        raise ValueError("Prefixo da chave deve conter apenas dígitos.")

    soma = 0
    peso = 2
    for digito in reversed(prefixo):
        soma += int(digito) * peso
        peso = 2 if peso == 9 else peso + 1

    resto = soma % 11
    if resto in (0, 1):
        return "0"
    return str(11 - resto)


def _gerar_codigo_numerico(numero: int, rng: random.Random) -> str:
    # cNF nunca pode repetir os 8 últimos dígitos do nNF
    proibido = f"{numero:09d}"[-8:]
    while True:
        codigo = f"{rng.randrange(0, 10 ** 8):08d}"
        if codigo != proibido:
            return codigo


def gerar_chave_acesso(
    *,
    uf: str,
    ano_mes: str,
    cnpj: str,
    modelo: str,
    serie: int,
    numero: int,
    tp_emis: str = TP_EMIS_NORMAL,
    rng: Optional[random.Random] = None,
) -> str:
    cnpj_digitos = somente_digitos(cnpj)
    if len(cnpj_digitos) != 14 or cnpj_digitos != cnpj.strip():
        raise ValueError("CNPJ deve conter exatamente 14 dígitos.")
    if len(ano_mes) != 4 or not ano_mes.isdigit() or not 1 <= int(ano_mes[2:]) <= 12:
        raise ValueError("Ano/mês deve estar no formato AAMM.")
    if str(modelo) not in MODELOS_VALIDOS:
        raise ValueError(f"Modelo de documento inválido: {modelo!r}")
    if not 0 <= int(serie) <= 999:
        raise ValueError("Série deve estar entre 0 e 999.")
    if not 1 <= int(numero) <= 999_999_999:
        raise ValueError("Número deve estar entre 1 e 999999999.")

    codigo_numerico = _gerar_codigo_numerico(int(numero), rng or _rng_padrao)

    prefixo = (
        f"{codigo_uf(uf)}"
        f"{ano_mes}"
        f"{cnpj_digitos}"
        f"{modelo}"
        f"{int(serie):03d}"
        f"{int(numero):09d}"
        f"{tp_emis}"
        f"{codigo_numerico}"
    )
    return prefixo + calcular_digito_verificador(prefixo)


def validar_chave_acesso(chave: str) -> bool:
    if not chave or len(chave) != TAMANHO_CHAVE or not chave.isdigit():
        return False
    if chave[:2] not in UF_POR_CODIGO:
        return False
    return calcular_digito_verificador(chave[:43]) == chave[43]


def decompor_chave_acesso(chave: str) -> ChaveDecomposta:
    if not validar_chave_acesso(chave):
        raise ValueError(f"Chave de acesso inválida: {chave!r}")

    return ChaveDecomposta(
        codigo_uf=chave[0:2],
        ano_mes=chave[2:6],
        cnpj=chave[6:20],
        modelo=chave[20:22],
        serie=int(chave[22:25]),
        numero=int(chave[25:34]),
        tp_emis=chave[34],
        codigo_numerico=chave[35:43],
        digito_verificador=chave[43],
    )
