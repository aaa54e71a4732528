# fiscal/serializers_cancelamento.py

from rest_framework import serializers


class CancelarDocumentoInputSerializer(serializers.Serializer):
    """
    Dados de entrada para cancelamento de documento fiscal autorizado.
    """

    chave_acesso = serializers.RegexField(
        regex=r"^\d{44}$",
        help_text="Chave de acesso completa (44 dígitos).",
    )
    motivo = serializers.CharField(
        max_length=255,
        help_text="Justificativa do cancelamento (15 a 255 caracteres).",
    )

    def validate_motivo(self, value):
        if len(value.strip()) < 15:
            raise serializers.ValidationError(
                "Motivo de cancelamento muito curto (mínimo 15 caracteres)."
            )
        return value.strip()


class CancelarDocumentoOutputSerializer(serializers.Serializer):
    status = serializers.CharField()
    chave_acesso = serializers.CharField()
    protocolo_cancelamento = serializers.CharField(allow_null=True)
    cancelado_em = serializers.DateTimeField()
