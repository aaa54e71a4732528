import logging
import time
import uuid

from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger("pdv.fiscal")


class RequestLogMiddleware(MiddlewareMixin):
    """
    Uma linha de log por requisição (request_id, rota, status, latência).

    O request_id vem do header X-Request-ID quando o PDV envia um;
    caso contrário é gerado aqui e devolvido no mesmo header, para que o
    caixa correlacione a resposta com os eventos do motor fiscal.
    """

    def process_request(self, request):
        request.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request._inicio = time.monotonic()

    def process_response(self, request, response):
        inicio = getattr(request, "_inicio", None)
        latencia_ms = int((time.monotonic() - inicio) * 1000) if inicio is not None else 0
        request_id = getattr(request, "request_id", None) or str(uuid.uuid4())

        logger.info(
            "http_request",
            extra={
                "event": "http_request",
                "request_id": request_id,
                "path": request.path,
                "method": request.method,
                "status": response.status_code,
                "latency_ms": latencia_ms,
            },
        )

        response["X-Request-ID"] = request_id
        return response
