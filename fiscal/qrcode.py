# fiscal/qrcode.py
"""
QR-Code da NFC-e, versão 2 (emissão online):

    <url>?p=<chave>|2|<tpAmb>|<idCSC>|<hash>

hash = SHA-1 hexadecimal maiúsculo de "<chave>|2|<tpAmb>|<idCSC>" + CSC.
"""

from __future__ import annotations

import hashlib

from fiscal.chave_acesso import validar_chave_acesso
from fiscal.dto import EmitenteConfig
from fiscal.exceptions import ConfigurationIncomplete
from fiscal.uf import codigo_uf, get_uf_config_por_codigo, tp_amb

VERSAO_QRCODE = "2"

_URL_CONSULTA_NFE = {
    "1": "https://www.nfe.fazenda.gov.br/portal/consultaRecaptcha.aspx",
    "2": "https://hom.nfe.fazenda.gov.br/portal/consultaRecaptcha.aspx",
}


def _normalizar_id_csc(csc_id: str) -> str:
    valor = str(csc_id or "").strip()
    if not valor.isdigit():
        raise ValueError("Identificador do CSC deve ser numérico.")
    return str(int(valor))


def montar_qrcode(chave_acesso: str, ambiente: str, csc_id: str, csc_token: str) -> str:
    if not validar_chave_acesso(chave_acesso):
        raise ValueError("Chave de acesso inválida para QR-Code.")
    if not csc_token:
        raise ValueError("CSC não informado.")

    uf_config = get_uf_config_por_codigo(chave_acesso[:2])
    parametros = "|".join(
        [chave_acesso, VERSAO_QRCODE, tp_amb(ambiente), _normalizar_id_csc(csc_id)]
    )
    hash_qrcode = hashlib.sha1(f"{parametros}{csc_token}".encode("utf-8")).hexdigest().upper()

    return f"{uf_config.url_qrcode(ambiente)}?p={parametros}|{hash_qrcode}"


def url_chave(chave_acesso: str, ambiente: str) -> str:
    return get_uf_config_por_codigo(chave_acesso[:2]).url_chave(ambiente)


def montar_url_consulta_nfe(chave_acesso: str, ambiente: str) -> str:
    """NF-e (modelo 55) não tem QR-Code; usa a consulta do portal nacional."""
    if not validar_chave_acesso(chave_acesso):
        raise ValueError("Chave de acesso inválida.")
    base = _URL_CONSULTA_NFE[tp_amb(ambiente)]
    return f"{base}?tipoConsulta=resumo&nfe={chave_acesso}"


def montar_qrcode_para_emitente(chave_acesso: str, emitente: EmitenteConfig, modelo: str = "65") -> str:
    """Ambiente e credenciais vêm do mesmo cadastro usado para gerar a chave."""
    if chave_acesso[:2] != codigo_uf(emitente.uf):
        raise ValueError("Chave de acesso não pertence à UF do emitente.")

    cfg = emitente.config_documento(modelo)
    if cfg is None or not cfg.csc_id or not cfg.csc_token:
        raise ConfigurationIncomplete(
            "CSC não configurado para o modelo.",
            detalhes={"campos": ["csc_id", "csc_token"]},
        )
    return montar_qrcode(chave_acesso, emitente.ambiente, cfg.csc_id, cfg.csc_token)
