from .documento_fiscal_models import (
    STATUS_ATIVOS,
    DocumentoFiscal,
    DocumentoFiscalAuditoria,
    StatusDocumento,
)
from .documento_sequencia_models import DocumentoFiscalSequencia


__all__ = [
    "STATUS_ATIVOS",
    "DocumentoFiscal",
    "DocumentoFiscalAuditoria",
    "DocumentoFiscalSequencia",
    "StatusDocumento",
]
