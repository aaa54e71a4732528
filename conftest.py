# conftest.py (na raiz do projeto)

import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from filial.models import Filial
from fiscal.dto import EmitenteConfig, SerieConfig, VendaItemSnapshot, VendaSnapshot
from fiscal.relogio import RelogioFixo
from fiscal.repositorios.memoria import (
    DocumentoMemoriaStore,
    EmitenteMemoriaProvider,
    SequenciaMemoriaStore,
    VendaMemoriaProvider,
)
from fiscal.sefaz_factory import RoteadorAmbiente
from fiscal.services.emissao_service import EmissorFiscal

FILIAL_ID = "7d1f0c8e-3a52-4c57-9a51-2f6f1b0f9a10"
CNPJ_EMITENTE = "11222333000181"
CSC_ID = "000001"
CSC_TOKEN = "A1B2C3D4E5F6A1B2C3D4E5F6A1B2C3D4E5F6"

# 10/03/2026 13:00 UTC (10:00 em São Paulo)
INSTANTE_BASE = datetime(2026, 3, 10, 13, 0, 0, tzinfo=dt_timezone.utc)


# =============================================================================
# BUILDERS DE SNAPSHOT
# =============================================================================

def build_emitente(**overrides) -> EmitenteConfig:
    base = EmitenteConfig(
        id=FILIAL_ID,
        razao_social="Mercadinho GetStart LTDA",
        nome_fantasia="Mercadinho GetStart",
        cnpj=CNPJ_EMITENTE,
        inscricao_estadual="123456789110",
        regime_tributario="simples_nacional",
        logradouro="Avenida Paulista",
        numero="1000",
        bairro="Bela Vista",
        municipio="São Paulo",
        codigo_municipio="3550308",
        uf="SP",
        cep="01310100",
        ambiente="homolog",
        documentos=(
            SerieConfig(modelo="65", serie=1, csc_id=CSC_ID, csc_token=CSC_TOKEN),
            SerieConfig(modelo="55", serie=1),
        ),
    )
    return replace(base, **overrides)


def build_item(
    preco: str,
    quantidade: str = "1",
    *,
    produto_id: str = "P001",
    descricao: str = "Produto teste",
    **overrides,
) -> VendaItemSnapshot:
    qtd = Decimal(quantidade)
    preco_unitario = Decimal(preco)
    return VendaItemSnapshot(
        produto_id=produto_id,
        descricao=descricao,
        quantidade=qtd,
        preco_unitario=preco_unitario,
        total=(qtd * preco_unitario).quantize(Decimal("0.01")),
        ncm="22029900",
        **overrides,
    )


def build_venda(venda_id: str = "V-1", itens=None, **overrides) -> VendaSnapshot:
    itens = tuple(itens or (build_item("100.00"),))
    total = sum((i.total for i in itens), Decimal("0.00"))
    total = total - overrides.get("desconto", Decimal("0")) + overrides.get("acrescimo", Decimal("0"))
    return VendaSnapshot(id=venda_id, itens=itens, total=total, **overrides)


# =============================================================================
# MOTOR EM MEMÓRIA
# =============================================================================

@dataclass
class MotorMemoria:
    emissor: EmissorFiscal
    vendas: VendaMemoriaProvider
    emitentes: EmitenteMemoriaProvider
    sequencias: SequenciaMemoriaStore
    documentos: DocumentoMemoriaStore
    relogio: RelogioFixo


@pytest.fixture
def relogio():
    return RelogioFixo(INSTANTE_BASE)


@pytest.fixture
def emitente():
    return build_emitente()


@pytest.fixture
def montar_motor(relogio):
    """
    Factory de EmissorFiscal com stores em memória.

    Uso:
        motor = montar_motor(vendas=[build_venda("V-1")])
        motor.emissor.emitir("V-1")
    """

    def _build(*, emitente=None, vendas=(), roteador=None, timeout=5, **kwargs):
        vendas_provider = VendaMemoriaProvider(vendas)
        emitentes = EmitenteMemoriaProvider(emitente or build_emitente())
        sequencias = SequenciaMemoriaStore()
        documentos = DocumentoMemoriaStore()
        emissor = EmissorFiscal(
            vendas=vendas_provider,
            emitentes=emitentes,
            sequencias=sequencias,
            documentos=documentos,
            roteador=roteador or RoteadorAmbiente(relogio=relogio),
            relogio=relogio,
            timeout_autorizacao=timeout,
            rng=random.Random(42),
            **kwargs,
        )
        return MotorMemoria(
            emissor=emissor,
            vendas=vendas_provider,
            emitentes=emitentes,
            sequencias=sequencias,
            documentos=documentos,
            relogio=relogio,
        )

    return _build


# =============================================================================
# FILIAL (ORM)
# =============================================================================

@pytest.fixture
def filial_factory(db):
    """Cria filiais emitentes em SP, homologação, com endereço completo."""

    def _create(**overrides):
        dados = dict(
            razao_social="Mercadinho GetStart LTDA",
            nome_fantasia="Mercadinho GetStart",
            cnpj=CNPJ_EMITENTE,
            logradouro="Avenida Paulista",
            numero="1000",
            bairro="Bela Vista",
            municipio="São Paulo",
            uf="SP",
            cep="01310100",
            ambiente="homolog",
        )
        dados.update(overrides)
        return Filial.objects.create(**dados)

    return _create


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def api_user(db):
    User = get_user_model()
    return User.objects.create_user(username="operador", password="123456")


@pytest.fixture
def api_client(api_user):
    client = APIClient()
    client.force_authenticate(user=api_user)
    return client
