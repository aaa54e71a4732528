# fiscal/views/emissao_views.py

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fiscal import factory
from fiscal.exceptions import FiscalError
from fiscal.serializers_emissao import (
    EmitirDocumentoInputSerializer,
    EmitirDocumentoOutputSerializer,
)
from fiscal.views.respostas import (
    contexto_request,
    resposta_erro_fiscal,
    resposta_erro_inesperado,
    resposta_validacao,
)

logger = logging.getLogger("pdv.fiscal")


@extend_schema(request=EmitirDocumentoInputSerializer, responses={201: EmitirDocumentoOutputSerializer})
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def emitir_documento_view(request):
    """
    Endpoint HTTP para emissão do documento fiscal de uma venda.

    URL final:
        POST /api/v1/fiscal/documentos/emitir

    Fluxo:
      1) Valida payload com EmitirDocumentoInputSerializer.
      2) Chama EmissorFiscal.emitir (motor montado em fiscal.factory).
      3) Retorna EmitirDocumentoOutputSerializer (201).
      4) Erros do motor viram {"code", "error", "message", "retryable"}.
    """
    evento = "documento_emitir"

    try:
        ser_in = EmitirDocumentoInputSerializer(data=request.data)
        ser_in.is_valid(raise_exception=True)
        data = ser_in.validated_data

        emissor = factory.get_emissor_fiscal()
        result = emissor.emitir(
            data["venda_id"],
            modelo=data["modelo"],
            cpf_cnpj_destinatario=data.get("cpf_cnpj"),
        )

        ser_out = EmitirDocumentoOutputSerializer(
            {
                "documento_id": result.documento_id,
                "status": result.status,
                "chave_acesso": result.chave_acesso,
                "protocolo": result.protocolo,
                "qrcode": result.qrcode,
                "numero": result.numero,
                "serie": result.serie,
                "modelo": result.modelo,
                "totais": result.totais.as_dict(),
            }
        )

        logger.info(
            evento,
            extra={
                **contexto_request(request, evento),
                "venda_id": data["venda_id"],
                "chave_acesso": result.chave_acesso,
                "status": result.status,
                "outcome": "success",
            },
        )
        return Response(ser_out.data, status=status.HTTP_201_CREATED)

    except DRFValidationError as exc:
        return resposta_validacao(request, evento, exc)

    except FiscalError as exc:
        return resposta_erro_fiscal(request, evento, exc)

    except Exception as exc:
        return resposta_erro_inesperado(request, evento, exc)
