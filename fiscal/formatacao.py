# fiscal/formatacao.py
"""
Arredondamento e formatação numérica no contrato do layout NF-e 4.00:
moeda com 2 casas, quantidades e valores unitários com 4.
"""

from __future__ import annotations

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

DUAS_CASAS = Decimal("0.01")
QUATRO_CASAS = Decimal("0.0001")
ZERO = Decimal("0.00")


def q2(valor) -> Decimal:
    return Decimal(valor).quantize(DUAS_CASAS, rounding=ROUND_HALF_UP)


def q4(valor) -> Decimal:
    return Decimal(valor).quantize(QUATRO_CASAS, rounding=ROUND_HALF_UP)


def fmt2(valor) -> str:
    return f"{q2(valor):.2f}"


def fmt4(valor) -> str:
    return f"{q4(valor):.4f}"


def somente_digitos(valor: Optional[str]) -> str:
    return re.sub(r"\D", "", valor or "")


def ratear_valor(valor, pesos: Sequence[Decimal]) -> List[Decimal]:
    """
    Distribui `valor` proporcionalmente aos `pesos`, em centavos.

    Maior resto: cada parcela recebe o piso da sua fração e os centavos
    que sobram vão para as maiores frações (empate: ordem dos itens).
    A soma é sempre exatamente `valor`, nenhuma parcela fica negativa e,
    com `valor` <= soma dos pesos, nenhuma passa do próprio peso.
    Pesos todos zerados dividem `valor` em partes iguais.
    """
    valor = q2(valor)
    if not pesos:
        return []

    pesos = [max(Decimal(peso), Decimal("0")) for peso in pesos]
    total_pesos = sum(pesos, Decimal("0"))
    if total_pesos == 0:
        pesos = [Decimal("1")] * len(pesos)
        total_pesos = Decimal(len(pesos))

    centavos = int(valor / DUAS_CASAS)
    sinal = -1 if centavos < 0 else 1
    centavos = abs(centavos)

    exatos = [centavos * peso / total_pesos for peso in pesos]
    parcelas = [int(exato) for exato in exatos]
    sobra = centavos - sum(parcelas)
    por_fracao = sorted(range(len(pesos)), key=lambda i: (-(exatos[i] - parcelas[i]), i))
    for indice in por_fracao[:sobra]:
        parcelas[indice] += 1

    return [Decimal(sinal * parcela) * DUAS_CASAS for parcela in parcelas]
