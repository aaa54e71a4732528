# fiscal/views/cancelamento_views.py

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fiscal import factory
from fiscal.exceptions import FiscalError
from fiscal.serializers_cancelamento import (
    CancelarDocumentoInputSerializer,
    CancelarDocumentoOutputSerializer,
)
from fiscal.views.respostas import (
    contexto_request,
    resposta_erro_fiscal,
    resposta_erro_inesperado,
    resposta_validacao,
)

logger = logging.getLogger("pdv.fiscal")


@extend_schema(request=CancelarDocumentoInputSerializer, responses={200: CancelarDocumentoOutputSerializer})
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def cancelar_documento_view(request):
    """
    POST /api/v1/fiscal/documentos/cancelar

    Só documentos autorizados, dentro de 24 horas da autorização.
    """
    evento = "documento_cancelar"

    try:
        ser_in = CancelarDocumentoInputSerializer(data=request.data)
        ser_in.is_valid(raise_exception=True)
        data = ser_in.validated_data

        result = factory.get_emissor_fiscal().cancelar(data["chave_acesso"], data["motivo"])

        ser_out = CancelarDocumentoOutputSerializer(
            {
                "status": result.status,
                "chave_acesso": result.chave_acesso,
                "protocolo_cancelamento": result.protocolo_cancelamento,
                "cancelado_em": result.cancelado_em,
            }
        )

        logger.info(
            evento,
            extra={
                **contexto_request(request, evento),
                "chave_acesso": result.chave_acesso,
                "status": result.status,
                "outcome": "success",
            },
        )
        return Response(ser_out.data, status=status.HTTP_200_OK)

    except DRFValidationError as exc:
        return resposta_validacao(request, evento, exc)

    except FiscalError as exc:
        return resposta_erro_fiscal(request, evento, exc)

    except Exception as exc:
        return resposta_erro_inesperado(request, evento, exc)
