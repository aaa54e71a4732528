# fiscal/uf/sp.py
from __future__ import annotations

from .base import CfopDef, FiscalUFConfig


_CFOPS_SP = {
    "5102": CfopDef(
        codigo="5102",
        descricao="Venda de mercadoria adquirida ou recebida de terceiros",
    ),
    "5405": CfopDef(
        codigo="5405",
        descricao="Venda de mercadoria adquirida de terceiros em operação com ST (substituído)",
    ),
    "5101": CfopDef(
        codigo="5101",
        descricao="Venda de produção do estabelecimento",
    ),
    "5202": CfopDef(
        codigo="5202",
        descricao="Devolução de compra para comercialização",
    ),
}


CONFIG = FiscalUFConfig(
    uf="SP",
    codigo_ibge="35",
    layout_versao="4.00",
    cfops=_CFOPS_SP,
    cfop_venda_dentro_uf="5102",
    cfop_devolucao="5202",
    url_qrcode_homologacao="https://www.homologacao.nfce.fazenda.sp.gov.br/NFCeConsultaPublica/Paginas/ConsultaQRCode.aspx",
    url_qrcode_producao="https://www.nfce.fazenda.sp.gov.br/NFCeConsultaPublica/Paginas/ConsultaQRCode.aspx",
    url_consulta_homologacao="https://www.homologacao.nfce.fazenda.sp.gov.br/consulta",
    url_consulta_producao="https://www.nfce.fazenda.sp.gov.br/consulta",
)
