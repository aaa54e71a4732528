# fiscal/uf/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

AMBIENTE_HOMOLOGACAO = "homolog"
AMBIENTE_PRODUCAO = "producao"

# tpAmb do layout: 1 = produção, 2 = homologação
_TP_AMB = {
    AMBIENTE_PRODUCAO: "1",
    AMBIENTE_HOMOLOGACAO: "2",
}


def tp_amb(ambiente: str) -> str:
    try:
        return _TP_AMB[(ambiente or "").strip().lower()]
    except KeyError:
        raise ValueError(f"Ambiente fiscal desconhecido: {ambiente!r}") from None


@dataclass(frozen=True)
class CfopDef:
    """
    Definição de um CFOP aceito na emissão.

    - codigo: CFOP em formato '5102', '5405', etc.
    - descricao: descrição oficial/resumida.
    """
    codigo: str
    descricao: str


@dataclass(frozen=True)
class FiscalUFConfig:
    """
    Metadados fiscais por UF usados na montagem do documento e no QR-Code:

      - codigo_ibge: cUF que abre a chave de acesso.
      - CFOP padrão de venda quando o item não traz o seu.
      - Endereços públicos de consulta (QR-Code e urlChave) por ambiente.

    Essa config não fala com a SEFAZ; quem transmite é o client registrado
    em fiscal.sefaz_factory.
    """

    uf: str
    codigo_ibge: str
    layout_versao: str

    cfops: Mapping[str, CfopDef]
    cfop_venda_dentro_uf: str

    url_qrcode_homologacao: str
    url_qrcode_producao: str
    url_consulta_homologacao: str
    url_consulta_producao: str

    cfop_devolucao: Optional[str] = None

    def url_qrcode(self, ambiente: str) -> str:
        if tp_amb(ambiente) == "1":
            return self.url_qrcode_producao
        return self.url_qrcode_homologacao

    def url_chave(self, ambiente: str) -> str:
        if tp_amb(ambiente) == "1":
            return self.url_consulta_producao
        return self.url_consulta_homologacao
