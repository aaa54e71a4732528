# fiscal/serializers.py

from rest_framework import serializers

from fiscal.models import DocumentoFiscal


class DocumentoFiscalSerializer(serializers.ModelSerializer):
    """Representação completa do documento na consulta por chave."""

    class Meta:
        model = DocumentoFiscal
        fields = [
            "id",
            "venda_id",
            "filial_id",
            "modelo",
            "serie",
            "numero",
            "chave_acesso",
            "status",
            "ambiente",
            "uf",
            "emitido_em",
            "autorizado_em",
            "protocolo",
            "codigo_retorno",
            "mensagem_retorno",
            "qrcode",
            "valor_produtos",
            "valor_desconto",
            "valor_outros",
            "valor_icms",
            "valor_pis",
            "valor_cofins",
            "valor_ipi",
            "valor_total",
            "xml",
            "hash_xml",
            "motivo_cancelamento",
            "cancelado_em",
            "protocolo_cancelamento",
        ]
        read_only_fields = fields
