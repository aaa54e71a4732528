# fiscal/models/documento_sequencia_models.py
import uuid

from django.db import models


class DocumentoFiscalSequencia(models.Model):
    """
    Controla a numeração fiscal por filial emitente, modelo e série.

    Exemplo:
      - Filial A, modelo 65, série 1 -> numeração NFC-e
      - Filial A, modelo 55, série 1 -> numeração NF-e (sequência própria)
    """

    MODELO_NFE = "55"
    MODELO_NFCE = "65"
    MODELO_CHOICES = (
        (MODELO_NFE, "NF-e (55)"),
        (MODELO_NFCE, "NFC-e (65)"),
    )

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    # filial emitente, sem FK
    filial_id = models.UUIDField()

    modelo = models.CharField(
        max_length=2,
        choices=MODELO_CHOICES,
        help_text="Modelo de documento fiscal (55=NF-e, 65=NFC-e).",
    )

    serie = models.PositiveIntegerField(
        help_text="Série fiscal para este modelo de documento nesta filial.",
    )

    numero_atual = models.PositiveIntegerField(
        default=0,
        help_text="Último número utilizado. Próximo será numero_atual + 1.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fiscal_documento_sequencia"
        verbose_name = "Sequência de Documento Fiscal"
        verbose_name_plural = "Sequências de Documentos Fiscais"
        constraints = [
            models.UniqueConstraint(
                fields=["filial_id", "modelo", "serie"],
                name="uniq_sequencia_filial_modelo_serie",
            ),
        ]

    def __str__(self):
        return f"{self.filial_id} - Mod {self.modelo} - Série {self.serie}"

    @property
    def proximo_numero(self) -> int:
        """Retorna em memória qual será o próximo número a emitir."""
        return self.numero_atual + 1
