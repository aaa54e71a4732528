# fiscal/serializers_emissao.py

from rest_framework import serializers

from fiscal.formatacao import somente_digitos


class EmitirDocumentoInputSerializer(serializers.Serializer):
    """
    Dados de entrada para emissão do documento fiscal de uma venda.
    """

    venda_id = serializers.CharField(max_length=64)
    modelo = serializers.ChoiceField(
        choices=[("65", "NFC-e"), ("55", "NF-e")],
        default="65",
        help_text="Modelo do documento: 65 (NFC-e, padrão) ou 55 (NF-e).",
    )
    cpf_cnpj = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text="CPF (11) ou CNPJ (14) do destinatário. Omitido → documento sem destinatário.",
    )

    def validate_cpf_cnpj(self, value):
        if not value:
            return None
        digitos = somente_digitos(value)
        if len(digitos) not in (11, 14):
            raise serializers.ValidationError("Informe um CPF (11 dígitos) ou CNPJ (14 dígitos).")
        return digitos


class TotaisDocumentoSerializer(serializers.Serializer):
    valor_produtos = serializers.DecimalField(max_digits=15, decimal_places=2)
    valor_desconto = serializers.DecimalField(max_digits=15, decimal_places=2)
    valor_outros = serializers.DecimalField(max_digits=15, decimal_places=2)
    valor_icms = serializers.DecimalField(max_digits=15, decimal_places=2)
    valor_pis = serializers.DecimalField(max_digits=15, decimal_places=2)
    valor_cofins = serializers.DecimalField(max_digits=15, decimal_places=2)
    valor_ipi = serializers.DecimalField(max_digits=15, decimal_places=2)
    valor_total = serializers.DecimalField(max_digits=15, decimal_places=2)


class EmitirDocumentoOutputSerializer(serializers.Serializer):
    """
    Dados de saída da emissão via API.
    """

    documento_id = serializers.CharField()
    status = serializers.CharField()
    chave_acesso = serializers.CharField()
    protocolo = serializers.CharField(allow_null=True)
    qrcode = serializers.CharField(allow_null=True)
    numero = serializers.IntegerField()
    serie = serializers.IntegerField()
    modelo = serializers.CharField()
    totais = TotaisDocumentoSerializer()
