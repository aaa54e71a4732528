# fiscal/views/consulta_views.py

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fiscal import factory
from fiscal.exceptions import FiscalError
from fiscal.serializers import DocumentoFiscalSerializer
from fiscal.views.respostas import resposta_erro_fiscal, resposta_erro_inesperado


@extend_schema(responses={200: DocumentoFiscalSerializer})
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def consultar_documento_view(request, chave_acesso: str):
    """GET /api/v1/fiscal/documentos/<chave_acesso>"""
    evento = "documento_consultar"

    try:
        documento = factory.get_emissor_fiscal().consultar_status(chave_acesso)
        return Response(DocumentoFiscalSerializer(documento).data, status=status.HTTP_200_OK)

    except FiscalError as exc:
        return resposta_erro_fiscal(request, evento, exc)

    except Exception as exc:
        return resposta_erro_inesperado(request, evento, exc)
