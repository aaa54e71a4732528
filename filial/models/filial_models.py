import uuid

from django.core.validators import MinLengthValidator
from django.db import models


class Ambiente(models.TextChoices):
    HOMOLOGACAO = "homolog", "Homologação"
    PRODUCAO = "producao", "Produção"


class Filial(models.Model):
    """
    Filial emitente (IssuerProfile).

    Identidade e endereço fiscal usados em <emit>/<enderEmit>.
    A configuração tributária fica em FilialFiscalConfig e a numeração /
    credenciais por modelo de documento em FilialDocumentoConfig.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    razao_social = models.CharField(
        max_length=120,
        help_text="Razão social da empresa emitente (xNome).",
    )

    nome_fantasia = models.CharField(
        max_length=120,
        blank=True,
        help_text="Nome fantasia da filial (xFant).",
    )

    cnpj = models.CharField(
        max_length=14,
        unique=True,
        validators=[MinLengthValidator(14)],
        db_index=True,
        help_text="CNPJ da filial (somente números, 14 dígitos).",
    )

    # Endereço fiscal (enderEmit)
    logradouro = models.CharField(max_length=60, blank=True, help_text="xLgr")
    numero = models.CharField(max_length=10, blank=True, help_text="nro (use 'S/N' se sem número)")
    complemento = models.CharField(max_length=60, blank=True, help_text="xCpl")
    bairro = models.CharField(max_length=60, blank=True, help_text="xBairro")
    municipio = models.CharField(max_length=60, blank=True, help_text="xMun")
    codigo_municipio = models.CharField(
        max_length=7,
        blank=True,
        help_text="Código IBGE do município (cMun). Se vazio, é resolvido pela tabela IBGE.",
    )
    uf = models.CharField(max_length=2, blank=True, help_text="Sigla da UF.")
    cep = models.CharField(max_length=8, blank=True, help_text="CEP (somente números).")
    telefone = models.CharField(max_length=14, blank=True)

    ambiente = models.CharField(
        max_length=12,
        choices=Ambiente.choices,
        default=Ambiente.HOMOLOGACAO,
        help_text="Ambiente de emissão (homologação simula a autorização).",
    )

    ativo = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Filial ativa para emissão (emitente ativo).",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Filial"
        verbose_name_plural = "Filiais"
        ordering = ["razao_social"]
        indexes = [
            models.Index(fields=["ativo"], name="idx_filial_ativo"),
        ]

    def __str__(self):
        return f"{self.razao_social} ({self.cnpj})"
