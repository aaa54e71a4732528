# fiscal/urls.py

from django.urls import path

from fiscal.views.cancelamento_views import cancelar_documento_view
from fiscal.views.consulta_views import consultar_documento_view
from fiscal.views.emissao_views import emitir_documento_view

app_name = "fiscal"

urlpatterns = [
    # emissão
    path("documentos/emitir", emitir_documento_view, name="documento_emitir"),
    path("documentos/emitir/", emitir_documento_view),

    # cancelamento
    path("documentos/cancelar", cancelar_documento_view, name="documento_cancelar"),
    path("documentos/cancelar/", cancelar_documento_view),

    # consulta por chave
    path("documentos/<str:chave_acesso>", consultar_documento_view, name="documento_consultar"),
    path("documentos/<str:chave_acesso>/", consultar_documento_view),
]
