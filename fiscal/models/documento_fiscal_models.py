# fiscal/models/documento_fiscal_models.py
import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone


class StatusDocumento(models.TextChoices):
    PENDENTE = "pending", "Pendente"
    AUTORIZADO = "authorized", "Autorizado"
    REJEITADO = "rejected", "Rejeitado"
    CANCELADO = "cancelled", "Cancelado"


# Status que ocupam a vaga (venda, modelo)
STATUS_ATIVOS = (StatusDocumento.PENDENTE, StatusDocumento.AUTORIZADO)


class DocumentoFiscal(models.Model):
    """
    Documento fiscal (NFC-e 65 / NF-e 55) de uma venda.

    - Nasce como reserva `pending` sem número; recebe número, chave e XML
      logo depois da alocação.
    - No máximo um documento ativo (pending/authorized) por venda+modelo.
    - Registros rejeitados/cancelados nunca são apagados.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Venda vem de outro módulo: guarda só o identificador
    venda_id = models.CharField(max_length=64)
    filial_id = models.UUIDField()

    modelo = models.CharField(max_length=2)
    serie = models.PositiveIntegerField()
    numero = models.PositiveIntegerField(blank=True, null=True)

    chave_acesso = models.CharField(max_length=44, unique=True, blank=True, null=True)

    status = models.CharField(
        max_length=16,
        choices=StatusDocumento.choices,
        default=StatusDocumento.PENDENTE,
    )

    ambiente = models.CharField(max_length=20, default="homolog")
    uf = models.CharField(max_length=2, blank=True, null=True)

    emitido_em = models.DateTimeField(blank=True, null=True)
    autorizado_em = models.DateTimeField(blank=True, null=True)

    # Retorno da autoridade fiscal
    protocolo = models.CharField(max_length=64, blank=True, null=True)
    codigo_retorno = models.CharField(max_length=10, blank=True, null=True)
    mensagem_retorno = models.TextField(blank=True, null=True)

    qrcode = models.TextField(blank=True, null=True)

    # Totais calculados na montagem (nunca o total armazenado na venda)
    valor_produtos = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    valor_desconto = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    valor_outros = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    valor_icms = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    valor_pis = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    valor_cofins = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    valor_ipi = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    valor_total = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    xml = models.TextField(
        blank=True,
        null=True,
        help_text="Corpo XML montado e enviado à autoridade fiscal.",
    )
    hash_xml = models.CharField(
        max_length=64,
        blank=True,
        null=True,
        help_text="SHA256 do XML, usado em reconciliação e auditoria.",
    )

    # Cancelamento
    motivo_cancelamento = models.CharField(max_length=255, blank=True, null=True)
    cancelado_em = models.DateTimeField(blank=True, null=True)
    protocolo_cancelamento = models.CharField(max_length=64, blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "fiscal_documento"
        constraints = [
            models.UniqueConstraint(
                fields=["venda_id", "modelo"],
                condition=Q(status__in=["pending", "authorized"]),
                name="uniq_documento_ativo_venda_modelo",
            ),
            models.UniqueConstraint(
                fields=["filial_id", "modelo", "serie", "numero"],
                condition=Q(numero__isnull=False),
                name="uniq_documento_filial_modelo_serie_numero",
            ),
        ]
        indexes = [
            models.Index(fields=["venda_id", "modelo"]),
            models.Index(fields=["status", "emitido_em"]),
        ]

    def __str__(self):
        return f"Mod {self.modelo} {self.numero}/{self.serie} - {self.chave_acesso} ({self.status})"

    @property
    def ativo(self) -> bool:
        return self.status in STATUS_ATIVOS


class DocumentoFiscalAuditoria(models.Model):
    """
    Trilha de auditoria dos eventos do documento fiscal.

    Exemplos de tipo_evento:
      - EMISSAO_PENDENTE
      - EMISSAO_AUTORIZADA
      - EMISSAO_REJEITADA
      - EMISSAO_TIMEOUT
      - EMISSAO_FALHA_MONTAGEM
      - CANCELAMENTO
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tipo_evento = models.CharField(max_length=50)

    documento = models.ForeignKey(
        "fiscal.DocumentoFiscal",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="auditorias",
    )

    venda_id = models.CharField(max_length=64)
    filial_id = models.UUIDField()
    chave_acesso = models.CharField(max_length=44, blank=True, null=True)

    status_anterior = models.CharField(max_length=16, blank=True, null=True)
    status_novo = models.CharField(max_length=16, blank=True, null=True)

    codigo_retorno = models.CharField(max_length=128, blank=True, null=True)
    mensagem_retorno = models.TextField(blank=True, null=True)
    protocolo = models.CharField(max_length=64, blank=True, null=True)

    ambiente = models.CharField(max_length=20, blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "fiscal_documento_auditoria"
        indexes = [
            models.Index(fields=["tipo_evento"]),
            models.Index(fields=["chave_acesso"]),
        ]

    def __str__(self):
        return f"[{self.tipo_evento}] chave={self.chave_acesso} codigo={self.codigo_retorno}"
