# fiscal/uf/rj.py
from __future__ import annotations

from .base import CfopDef, FiscalUFConfig


_CFOPS_RJ = {
    "5102": CfopDef(
        codigo="5102",
        descricao="Venda de mercadoria adquirida ou recebida de terceiros",
    ),
    "5405": CfopDef(
        codigo="5405",
        descricao="Venda de mercadoria sujeita à substituição tributária",
    ),
    "5202": CfopDef(
        codigo="5202",
        descricao="Devolução de compra para comercialização",
    ),
}


# RJ publica o mesmo endereço de QR-Code para os dois ambientes.
CONFIG = FiscalUFConfig(
    uf="RJ",
    codigo_ibge="33",
    layout_versao="4.00",
    cfops=_CFOPS_RJ,
    cfop_venda_dentro_uf="5102",
    cfop_devolucao="5202",
    url_qrcode_homologacao="https://www4.fazenda.rj.gov.br/consultaNFCe/QRCode",
    url_qrcode_producao="https://www4.fazenda.rj.gov.br/consultaNFCe/QRCode",
    url_consulta_homologacao="www.fazenda.rj.gov.br/nfce/consulta",
    url_consulta_producao="www.fazenda.rj.gov.br/nfce/consulta",
)
