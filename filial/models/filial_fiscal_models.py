from django.db import models

from filial.models.filial_models import Filial


class RegimeTributario(models.TextChoices):
    SIMPLES_NACIONAL = "simples_nacional", "Simples Nacional"
    LUCRO_PRESUMIDO = "lucro_presumido", "Lucro Presumido"
    LUCRO_REAL = "lucro_real", "Lucro Real"


class FilialFiscalConfig(models.Model):
    """
    Configurações fiscais da filial:
    - Inscrição Estadual (IE)
    - Regime tributário (define CRT e os grupos de imposto por item)
    """

    filial = models.OneToOneField(
        Filial,
        on_delete=models.CASCADE,
        related_name="fiscal_config",
        help_text="Filial a que esta configuração fiscal pertence.",
    )

    inscricao_estadual = models.CharField(
        max_length=14,
        blank=True,
        help_text="Inscrição Estadual (IE) da filial.",
    )

    regime_tributario = models.CharField(
        max_length=20,
        choices=RegimeTributario.choices,
        default=RegimeTributario.SIMPLES_NACIONAL,
        help_text="Regime tributário usado na NF-e/NFC-e.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Configuração Fiscal da Filial"
        verbose_name_plural = "Configurações Fiscais das Filiais"

    def __str__(self):
        return f"Fiscal - {self.filial}"
