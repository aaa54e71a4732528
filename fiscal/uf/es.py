# fiscal/uf/es.py
from __future__ import annotations

from .base import CfopDef, FiscalUFConfig


_CFOPS_ES = {
    "5102": CfopDef(
        codigo="5102",
        descricao="Venda de mercadoria adquirida ou recebida de terceiros",
    ),
    "5405": CfopDef(
        codigo="5405",
        descricao="Venda de mercadoria sujeita à substituição tributária",
    ),
}


CONFIG = FiscalUFConfig(
    uf="ES",
    codigo_ibge="32",
    layout_versao="4.00",
    cfops=_CFOPS_ES,
    cfop_venda_dentro_uf="5102",
    url_qrcode_homologacao="http://homologacao.sefaz.es.gov.br/ConsultaNFCe/qrcode.aspx",
    url_qrcode_producao="http://app.sefaz.es.gov.br/ConsultaNFCe/qrcode.aspx",
    url_consulta_homologacao="www.sefaz.es.gov.br/nfce/consulta",
    url_consulta_producao="www.sefaz.es.gov.br/nfce/consulta",
)
