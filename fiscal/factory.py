# fiscal/factory.py
"""
Montagem do EmissorFiscal de produção a partir de settings.FISCAL_ENGINE.

Views e management commands pegam o motor daqui; testes substituem
get_emissor_fiscal via monkeypatch.
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from fiscal.relogio import RelogioSistema
from fiscal.repositorios.orm import DocumentoORMStore, EmitenteORMProvider, SequenciaORMStore
from fiscal.sefaz_factory import RoteadorAmbiente
from fiscal.services.emissao_service import EmissorFiscal


def _config() -> dict:
    return getattr(settings, "FISCAL_ENGINE", {}) or {}


def _instanciar(caminho: str | None):
    if not caminho:
        return None
    return import_string(caminho)()


def get_emissor_fiscal() -> EmissorFiscal:
    config = _config()

    venda_provider = config.get("VENDA_PROVIDER")
    if not venda_provider:
        raise ImproperlyConfigured(
            "FISCAL_ENGINE['VENDA_PROVIDER'] deve apontar para o provider de vendas do PDV."
        )

    relogio = RelogioSistema()
    return EmissorFiscal(
        vendas=_instanciar(venda_provider),
        emitentes=EmitenteORMProvider(),
        sequencias=SequenciaORMStore(),
        documentos=DocumentoORMStore(),
        roteador=RoteadorAmbiente(
            relogio=relogio,
            assinador=_instanciar(config.get("ASSINADOR")),
        ),
        tributos=_instanciar(config.get("CALCULADORA_TRIBUTOS")),
        relogio=relogio,
        municipios=_instanciar(config.get("MUNICIPIO_LOOKUP")),
        timeout_autorizacao=config.get("TIMEOUT_AUTORIZACAO", 30),
        tentativas_sequencia=config.get("TENTATIVAS_SEQUENCIA", 3),
    )
