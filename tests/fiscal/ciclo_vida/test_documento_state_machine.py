# tests/fiscal/ciclo_vida/test_documento_state_machine.py
import logging
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from fiscal.exceptions import CancellationWindowExpired, InvalidTransition
from fiscal.models import DocumentoFiscal, StatusDocumento
from fiscal.services.ciclo_vida import (
    JANELA_CANCELAMENTO,
    TRANSICOES_VALIDAS,
    Autorizar,
    Cancelar,
    DocumentoStateMachine,
    Rejeitar,
)

AUTORIZADO_EM = datetime(2026, 3, 10, 13, 0, 0, tzinfo=dt_timezone.utc)


def _documento(status=StatusDocumento.PENDENTE, autorizado_em=None):
    return DocumentoFiscal(
        venda_id="V-1",
        filial_id="7d1f0c8e-3a52-4c57-9a51-2f6f1b0f9a10",
        modelo="65",
        serie=1,
        numero=1,
        chave_acesso="3" * 44,
        status=status,
        autorizado_em=autorizado_em,
    )


def _autorizado():
    return _documento(StatusDocumento.AUTORIZADO, autorizado_em=AUTORIZADO_EM)


def test_matriz_de_transicoes():
    assert TRANSICOES_VALIDAS == {
        ("pending", Autorizar): "authorized",
        ("pending", Rejeitar): "rejected",
        ("authorized", Cancelar): "cancelled",
    }


def test_pendente_para_autorizado(caplog):
    doc = _documento()
    caplog.set_level(logging.INFO, logger="pdv.fiscal")

    DocumentoStateMachine.aplicar(
        doc,
        Autorizar(protocolo="999123", autorizado_em=AUTORIZADO_EM, codigo_retorno="100"),
        agora=AUTORIZADO_EM,
    )

    assert doc.status == "authorized"
    assert doc.protocolo == "999123"
    assert doc.autorizado_em == AUTORIZADO_EM
    registros = [r for r in caplog.records if r.getMessage() == "documento_status_transicao"]
    assert registros and registros[-1].status_novo == "authorized"


def test_pendente_para_rejeitado():
    doc = _documento()
    DocumentoStateMachine.aplicar(doc, Rejeitar(codigo_retorno="539", motivo="Duplicidade"), agora=AUTORIZADO_EM)

    assert doc.status == "rejected"
    assert doc.codigo_retorno == "539"
    assert doc.mensagem_retorno == "Duplicidade"


@pytest.mark.parametrize(
    "status, transicao",
    [
        (StatusDocumento.PENDENTE, Cancelar(motivo="Cliente desistiu da compra")),
        (StatusDocumento.AUTORIZADO, Autorizar(protocolo="1", autorizado_em=AUTORIZADO_EM)),
        (StatusDocumento.AUTORIZADO, Rejeitar(codigo_retorno="1", motivo="x")),
        (StatusDocumento.REJEITADO, Autorizar(protocolo="1", autorizado_em=AUTORIZADO_EM)),
        (StatusDocumento.REJEITADO, Cancelar(motivo="Cliente desistiu da compra")),
        (StatusDocumento.CANCELADO, Cancelar(motivo="Cliente desistiu da compra")),
        (StatusDocumento.CANCELADO, Autorizar(protocolo="1", autorizado_em=AUTORIZADO_EM)),
    ],
)
def test_transicoes_fora_da_matriz(status, transicao):
    doc = _documento(status, autorizado_em=AUTORIZADO_EM)

    with pytest.raises(InvalidTransition):
        DocumentoStateMachine.aplicar(doc, transicao, agora=AUTORIZADO_EM)

    assert doc.status == status


def test_cancelamento_dentro_da_janela_23h59m59s():
    doc = _autorizado()
    agora = AUTORIZADO_EM + timedelta(hours=23, minutes=59, seconds=59)

    DocumentoStateMachine.aplicar(doc, Cancelar(motivo="Cliente desistiu da compra", protocolo="CANC1"), agora=agora)

    assert doc.status == "cancelled"
    assert doc.cancelado_em == agora
    assert doc.protocolo_cancelamento == "CANC1"


def test_cancelamento_exatamente_em_24h_ainda_permitido():
    doc = _autorizado()
    DocumentoStateMachine.aplicar(
        doc,
        Cancelar(motivo="Cliente desistiu da compra"),
        agora=AUTORIZADO_EM + JANELA_CANCELAMENTO,
    )
    assert doc.status == "cancelled"


def test_cancelamento_apos_24h00m01s_expirado():
    doc = _autorizado()
    agora = AUTORIZADO_EM + timedelta(hours=24, seconds=1)

    with pytest.raises(CancellationWindowExpired):
        DocumentoStateMachine.aplicar(doc, Cancelar(motivo="Cliente desistiu da compra"), agora=agora)

    assert doc.status == "authorized"


@pytest.mark.parametrize("motivo", ["", "   "])
def test_cancelamento_exige_motivo(motivo):
    with pytest.raises(InvalidTransition):
        DocumentoStateMachine.verificar(_autorizado(), Cancelar(motivo=motivo), agora=AUTORIZADO_EM)


def test_prazo_cancelamento():
    assert DocumentoStateMachine.prazo_cancelamento(_autorizado()) == AUTORIZADO_EM + timedelta(hours=24)
    assert DocumentoStateMachine.prazo_cancelamento(_documento()) is None
