from django.db import models

from filial.models.filial_models import Filial


class ModeloDocumento(models.TextChoices):
    NFE = "55", "NF-e (55)"
    NFCE = "65", "NFC-e (65)"


class FilialDocumentoConfig(models.Model):
    """
    Parâmetros de emissão por modelo de documento (55 / 65):
    série em uso e credenciais do QR-Code (CSC).

    O número corrente não mora aqui: fica em fiscal.DocumentoFiscalSequencia.
    """

    filial = models.ForeignKey(
        Filial,
        on_delete=models.CASCADE,
        related_name="documento_configs",
        help_text="Filial a que esta configuração pertence.",
    )

    modelo = models.CharField(
        max_length=2,
        choices=ModeloDocumento.choices,
        default=ModeloDocumento.NFCE,
    )

    serie = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Série fiscal usada para este modelo (1..999).",
    )

    csc_id = models.CharField(
        max_length=6,
        blank=True,
        help_text="Identificador do CSC fornecido pela SEFAZ (NFC-e).",
    )

    csc_token = models.CharField(
        max_length=36,
        blank=True,
        help_text="Token do CSC fornecido pela SEFAZ (usado no hash do QR-Code).",
    )

    natureza_operacao = models.CharField(
        max_length=60,
        default="VENDA",
        help_text="Natureza da operação (natOp).",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Configuração de Documento da Filial"
        verbose_name_plural = "Configurações de Documentos das Filiais"
        constraints = [
            models.UniqueConstraint(
                fields=["filial", "modelo"],
                name="uniq_filial_documento_modelo",
            ),
        ]

    def __str__(self):
        return f"Mod {self.modelo} - {self.filial}"
