# fiscal/dto.py
"""
Snapshots imutáveis que entram no motor de emissão.

O motor não lê Venda nem Filial diretamente: recebe estes objetos dos
providers (fiscal.repositorios), o que mantém a montagem do documento pura.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

ZERO = Decimal("0")


@dataclass(frozen=True)
class VendaItemSnapshot:
    produto_id: str
    descricao: str
    quantidade: Decimal
    preco_unitario: Decimal
    total: Decimal
    ncm: str = "00000000"
    cfop: Optional[str] = None
    unidade: str = "UN"
    gtin: Optional[str] = None
    origem: str = "0"
    aliquota_icms: Decimal = ZERO
    aliquota_pis: Decimal = ZERO
    aliquota_cofins: Decimal = ZERO
    aliquota_ipi: Decimal = ZERO


@dataclass(frozen=True)
class VendaSnapshot:
    id: str
    itens: Tuple[VendaItemSnapshot, ...]
    total: Decimal
    desconto: Decimal = ZERO
    acrescimo: Decimal = ZERO
    cpf_cnpj_destinatario: Optional[str] = None
    nome_destinatario: Optional[str] = None
    criada_em: Optional[datetime] = None
    # tPag do grupo de pagamento (01 = dinheiro)
    forma_pagamento: str = "01"


@dataclass(frozen=True)
class TributosItem:
    base_icms: Decimal = ZERO
    aliquota_icms: Decimal = ZERO
    valor_icms: Decimal = ZERO
    base_pis: Decimal = ZERO
    aliquota_pis: Decimal = ZERO
    valor_pis: Decimal = ZERO
    base_cofins: Decimal = ZERO
    aliquota_cofins: Decimal = ZERO
    valor_cofins: Decimal = ZERO
    base_ipi: Decimal = ZERO
    aliquota_ipi: Decimal = ZERO
    valor_ipi: Decimal = ZERO


@dataclass(frozen=True)
class ResumoTributos:
    itens: Tuple[TributosItem, ...] = ()
    total_icms: Decimal = ZERO
    total_pis: Decimal = ZERO
    total_cofins: Decimal = ZERO
    total_ipi: Decimal = ZERO


@dataclass(frozen=True)
class SerieConfig:
    """Configuração de numeração e credenciais de um modelo (55/65) da filial."""
    modelo: str
    serie: Optional[int]
    csc_id: str = ""
    csc_token: str = ""
    natureza_operacao: str = "VENDA"


@dataclass(frozen=True)
class EmitenteConfig:
    id: str
    razao_social: str
    cnpj: str
    inscricao_estadual: str
    regime_tributario: str
    logradouro: str
    numero: str
    bairro: str
    municipio: str
    uf: str
    cep: str
    ambiente: str
    nome_fantasia: str = ""
    complemento: str = ""
    codigo_municipio: str = ""
    telefone: str = ""
    documentos: Tuple[SerieConfig, ...] = field(default_factory=tuple)

    @property
    def simples_nacional(self) -> bool:
        return self.regime_tributario == "simples_nacional"

    @property
    def crt(self) -> str:
        # CRT 1 = Simples Nacional, 3 = regime normal
        return "1" if self.simples_nacional else "3"

    def config_documento(self, modelo: str) -> Optional[SerieConfig]:
        for cfg in self.documentos:
            if cfg.modelo == str(modelo):
                return cfg
        return None


@dataclass(frozen=True)
class TotaisDocumento:
    valor_produtos: Decimal
    valor_desconto: Decimal
    valor_outros: Decimal
    valor_icms: Decimal
    valor_pis: Decimal
    valor_cofins: Decimal
    valor_ipi: Decimal
    valor_total: Decimal

    def as_dict(self) -> dict:
        return {
            "valor_produtos": self.valor_produtos,
            "valor_desconto": self.valor_desconto,
            "valor_outros": self.valor_outros,
            "valor_icms": self.valor_icms,
            "valor_pis": self.valor_pis,
            "valor_cofins": self.valor_cofins,
            "valor_ipi": self.valor_ipi,
            "valor_total": self.valor_total,
        }


@dataclass(frozen=True)
class DocumentoMontado:
    xml: bytes
    totais: TotaisDocumento
