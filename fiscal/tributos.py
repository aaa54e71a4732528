# fiscal/tributos.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Protocol

from fiscal.dto import ResumoTributos, TributosItem, VendaSnapshot
from fiscal.formatacao import q2, ratear_valor


class CalculadoraTributos(Protocol):
    def calcular(self, venda: VendaSnapshot) -> ResumoTributos:
        ...


def bases_por_item(venda: VendaSnapshot) -> List[Decimal]:
    """Total de cada linha, líquido do desconto e acrescido do acréscimo rateados."""
    totais = [q2(item.total) for item in venda.itens]
    descontos = ratear_valor(venda.desconto, totais)
    acrescimos = ratear_valor(venda.acrescimo, totais)
    return [t - d + a for t, d, a in zip(totais, descontos, acrescimos)]


def _valor(base: Decimal, aliquota: Decimal) -> Decimal:
    return q2(base * Decimal(aliquota) / Decimal("100"))


class CalculadoraTributosPorAliquota:
    """
    Calcula os tributos a partir das alíquotas cadastradas em cada item.
    Não aplica regra tributária nacional; só multiplica base por alíquota.
    """

    def calcular(self, venda: VendaSnapshot) -> ResumoTributos:
        itens = []
        for item, base in zip(venda.itens, bases_por_item(venda)):
            itens.append(
                TributosItem(
                    base_icms=base,
                    aliquota_icms=q2(item.aliquota_icms),
                    valor_icms=_valor(base, item.aliquota_icms),
                    base_pis=base,
                    aliquota_pis=q2(item.aliquota_pis),
                    valor_pis=_valor(base, item.aliquota_pis),
                    base_cofins=base,
                    aliquota_cofins=q2(item.aliquota_cofins),
                    valor_cofins=_valor(base, item.aliquota_cofins),
                    base_ipi=q2(item.total),
                    aliquota_ipi=q2(item.aliquota_ipi),
                    valor_ipi=_valor(q2(item.total), item.aliquota_ipi),
                )
            )

        return ResumoTributos(
            itens=tuple(itens),
            total_icms=sum((i.valor_icms for i in itens), Decimal("0.00")),
            total_pis=sum((i.valor_pis for i in itens), Decimal("0.00")),
            total_cofins=sum((i.valor_cofins for i in itens), Decimal("0.00")),
            total_ipi=sum((i.valor_ipi for i in itens), Decimal("0.00")),
        )
