# fiscal/uf/mg.py
from __future__ import annotations

from .base import CfopDef, FiscalUFConfig


_CFOPS_MG = {
    "5102": CfopDef(
        codigo="5102",
        descricao="Venda de mercadoria adquirida ou recebida de terceiros",
    ),
    "5405": CfopDef(
        codigo="5405",
        descricao="Venda de mercadoria adquirida ou recebida de terceiros, sujeita à ST",
    ),
    "5202": CfopDef(
        codigo="5202",
        descricao="Devolução de compra para comercialização",
    ),
}


CONFIG = FiscalUFConfig(
    uf="MG",
    codigo_ibge="31",
    layout_versao="4.00",
    cfops=_CFOPS_MG,
    cfop_venda_dentro_uf="5102",
    cfop_devolucao="5202",
    url_qrcode_homologacao="https://hnfce.fazenda.mg.gov.br/portalnfce/sistema/qrcode.xhtml",
    url_qrcode_producao="https://portalsped.fazenda.mg.gov.br/portalnfce/sistema/qrcode.xhtml",
    url_consulta_homologacao="https://hportalsped.fazenda.mg.gov.br/portalnfce",
    url_consulta_producao="https://portalsped.fazenda.mg.gov.br/portalnfce",
)
