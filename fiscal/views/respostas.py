# fiscal/views/respostas.py
"""
Tradução de erros do motor fiscal para respostas HTTP.

Toda resposta de erro tem o formato {"code", "error", "message",
"retryable"}, com status HTTP definido pela classe do erro.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response

from fiscal.exceptions import FiscalError

logger = logging.getLogger("pdv.fiscal")

ERRO_INESPERADO = {
    "code": "FISCAL_5999",
    "error": "InternalError",
    "message": "Erro inesperado no processamento fiscal.",
    "retryable": False,
}


def contexto_request(request, evento: str) -> dict:
    user = getattr(request, "user", None)
    return {
        "event": evento,
        "user_id": getattr(user, "id", None),
        "request_id": getattr(request, "request_id", None) or request.META.get("HTTP_X_REQUEST_ID"),
    }


def resposta_validacao(request, evento: str, exc: DRFValidationError) -> Response:
    logger.warning(
        f"{evento}_validacao",
        extra={**contexto_request(request, evento), "errors": exc.detail, "outcome": "validation_error"},
    )
    return Response(
        {
            "code": "FISCAL_1000",
            "error": "ValidationError",
            "message": "Dados de entrada inválidos.",
            "retryable": False,
            "detalhes": exc.detail,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


def resposta_erro_fiscal(request, evento: str, exc: FiscalError) -> Response:
    nivel = logging.ERROR if exc.http_status >= 500 else logging.WARNING
    logger.log(
        nivel,
        f"{evento}_erro_fiscal",
        extra={
            **contexto_request(request, evento),
            "code": exc.code,
            "error": type(exc).__name__,
            "detail": exc.message,
            "outcome": "fiscal_error",
        },
    )
    return Response(exc.to_dict(), status=exc.http_status)


def resposta_erro_inesperado(request, evento: str, exc: Exception) -> Response:
    logger.exception(
        f"{evento}_erro",
        extra={**contexto_request(request, evento), "error": str(exc)},
    )
    return Response(ERRO_INESPERADO, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
