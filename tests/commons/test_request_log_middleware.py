# tests/commons/test_request_log_middleware.py
import logging

from django.urls import reverse


def test_ecoa_request_id_recebido(api_client, caplog):
    caplog.set_level(logging.INFO, logger="pdv.fiscal")

    resp = api_client.get(
        reverse("fiscal:documento_consultar", kwargs={"chave_acesso": "1" * 44}),
        HTTP_X_REQUEST_ID="req-123",
    )

    assert resp["X-Request-ID"] == "req-123"
    registros = [r for r in caplog.records if getattr(r, "event", None) == "http_request"]
    assert len(registros) == 1
    assert registros[0].request_id == "req-123"
    assert registros[0].method == "GET"
    assert registros[0].status == resp.status_code


def test_gera_request_id_quando_ausente(api_client):
    resp = api_client.get(reverse("fiscal:documento_consultar", kwargs={"chave_acesso": "1" * 44}))

    assert len(resp["X-Request-ID"]) == 36
