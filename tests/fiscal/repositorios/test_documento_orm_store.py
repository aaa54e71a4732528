# tests/fiscal/repositorios/test_documento_orm_store.py
import random
from datetime import timedelta

import pytest

from conftest import FILIAL_ID, INSTANTE_BASE, build_venda
from filial.models import FilialDocumentoConfig, FilialFiscalConfig
from fiscal.exceptions import DuplicateActiveDocument, InvalidTransition
from fiscal.models import DocumentoFiscal, DocumentoFiscalAuditoria, StatusDocumento
from fiscal.repositorios.memoria import VendaMemoriaProvider
from fiscal.repositorios.orm import (
    DocumentoORMStore,
    EmitenteORMProvider,
    SequenciaORMStore,
)
from fiscal.sefaz_factory import RoteadorAmbiente
from fiscal.services.emissao_service import EmissorFiscal

pytestmark = pytest.mark.django_db


def _reserva(venda_id="V-1", modelo="65", **extra):
    return DocumentoFiscal(
        venda_id=venda_id,
        filial_id=FILIAL_ID,
        modelo=modelo,
        serie=1,
        status=StatusDocumento.PENDENTE,
        ambiente="homolog",
        uf="SP",
        **extra,
    )


def test_reservar_persiste_documento_sem_numero():
    store = DocumentoORMStore()
    doc = _reserva()

    store.reservar(doc)

    ativo = store.buscar_ativo("V-1", "65")
    assert ativo.pk == doc.pk
    assert ativo.numero is None
    assert ativo.status == "pending"


def test_reservar_mesma_venda_e_modelo_duas_vezes():
    store = DocumentoORMStore()
    primeiro = _reserva()
    store.reservar(primeiro)

    with pytest.raises(DuplicateActiveDocument) as exc_info:
        store.reservar(_reserva())

    assert exc_info.value.detalhes["documento_id"] == str(primeiro.pk)
    assert DocumentoFiscal.objects.count() == 1


def test_reservar_outro_modelo_da_mesma_venda():
    store = DocumentoORMStore()
    store.reservar(_reserva(modelo="65"))
    store.reservar(_reserva(modelo="55"))

    assert DocumentoFiscal.objects.count() == 2


def test_documento_rejeitado_libera_a_vaga():
    store = DocumentoORMStore()
    doc = _reserva()
    store.reservar(doc)
    doc.numero = 1
    doc.status = StatusDocumento.REJEITADO
    store.atualizar(doc, status_anterior=StatusDocumento.PENDENTE)

    store.reservar(_reserva())

    assert DocumentoFiscal.objects.filter(venda_id="V-1").count() == 2


def test_atualizar_condicionado_ao_status_anterior():
    store = DocumentoORMStore()
    doc = _reserva()
    store.reservar(doc)

    doc.numero = 7
    doc.chave_acesso = "3" * 44
    doc.status = StatusDocumento.AUTORIZADO
    store.atualizar(doc, status_anterior=StatusDocumento.PENDENTE)

    gravado = DocumentoFiscal.objects.get(pk=doc.pk)
    assert gravado.numero == 7
    assert gravado.status == "authorized"

    # segunda escrita com status anterior desatualizado perde a corrida
    doc.status = StatusDocumento.REJEITADO
    with pytest.raises(InvalidTransition):
        store.atualizar(doc, status_anterior=StatusDocumento.PENDENTE)

    assert DocumentoFiscal.objects.get(pk=doc.pk).status == "authorized"


def test_liberar_reserva_so_remove_documento_sem_numero():
    store = DocumentoORMStore()
    sem_numero = _reserva("V-1")
    com_numero = _reserva("V-2")
    store.reservar(sem_numero)
    store.reservar(com_numero)
    com_numero.numero = 1
    store.atualizar(com_numero, status_anterior=StatusDocumento.PENDENTE)

    store.liberar_reserva(sem_numero)
    store.liberar_reserva(com_numero)

    assert list(DocumentoFiscal.objects.values_list("venda_id", flat=True)) == ["V-2"]


def test_listar_pendentes_por_idade():
    store = DocumentoORMStore()
    for indice, minutos in enumerate((30, 10, 1), start=1):
        doc = _reserva(f"V-{indice}")
        store.reservar(doc)
        doc.numero = indice
        doc.emitido_em = INSTANTE_BASE - timedelta(minutes=minutos)
        store.atualizar(doc, status_anterior=StatusDocumento.PENDENTE)
    store.reservar(_reserva("V-sem-numero"))

    pendentes = store.listar_pendentes(INSTANTE_BASE - timedelta(minutes=5))

    assert [d.venda_id for d in pendentes] == ["V-1", "V-2"]


def test_buscar_por_chave_vazia():
    assert DocumentoORMStore().buscar_por_chave("") is None


def test_registrar_evento_grava_auditoria():
    store = DocumentoORMStore()
    doc = _reserva()
    store.reservar(doc)

    store.registrar_evento(doc, "EMISSAO_PENDENTE", codigo_retorno="100")

    evento = DocumentoFiscalAuditoria.objects.get()
    assert evento.tipo_evento == "EMISSAO_PENDENTE"
    assert evento.documento_id == doc.pk
    assert evento.status_novo == "pending"
    assert evento.codigo_retorno == "100"


def test_emissao_completa_com_stores_orm(filial_emitente, relogio):
    emissor = EmissorFiscal(
        vendas=VendaMemoriaProvider([build_venda("V-1")]),
        emitentes=EmitenteORMProvider(),
        sequencias=SequenciaORMStore(),
        documentos=DocumentoORMStore(),
        roteador=RoteadorAmbiente(relogio=relogio),
        relogio=relogio,
        rng=random.Random(7),
    )

    result = emissor.emitir("V-1")

    doc = DocumentoFiscal.objects.get(chave_acesso=result.chave_acesso)
    assert doc.status == "authorized"
    assert doc.numero == 1
    assert str(doc.filial_id) == str(filial_emitente.id)
    assert doc.valor_total == 100
    assert set(DocumentoFiscalAuditoria.objects.values_list("tipo_evento", flat=True)) == {
        "EMISSAO_PENDENTE",
        "EMISSAO_AUTORIZADA",
    }

    with pytest.raises(DuplicateActiveDocument):
        emissor.emitir("V-1")


@pytest.fixture
def filial_emitente(filial_factory):
    filial = filial_factory()
    FilialFiscalConfig.objects.create(filial=filial, inscricao_estadual="123456789110")
    FilialDocumentoConfig.objects.create(
        filial=filial,
        modelo="65",
        serie=1,
        csc_id="000001",
        csc_token="A1B2C3D4E5F6A1B2C3D4E5F6A1B2C3D4E5F6",
    )
    return filial
