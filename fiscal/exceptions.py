# fiscal/exceptions.py
"""
Taxonomia de erros do motor de emissão fiscal.

Cada erro carrega:
  - code: código estável do domínio (FISCAL_xxxx), exposto na API.
  - message: texto legível, sem detalhes internos do schema.
  - retryable: se o chamador pode repetir a mesma operação.
  - http_status: status usado pela camada HTTP.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class FiscalError(Exception):
    code = "FISCAL_5000"
    default_message = "Erro no processamento fiscal."
    retryable = False
    http_status = 400

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        detalhes: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        if code:
            self.code = code
        self.detalhes: Dict[str, Any] = detalhes or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "code": self.code,
            "error": type(self).__name__,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.detalhes:
            data["detalhes"] = self.detalhes
        return data


# ---------------------------------------------------------------------------
# Pré-emissão (nenhum número consumido)
# ---------------------------------------------------------------------------


class ConfigurationIncomplete(FiscalError):
    """Emitente sem campos obrigatórios. Só resolve corrigindo a configuração."""

    code = "FISCAL_1001"
    default_message = "Configuração fiscal do emitente incompleta."
    http_status = 422


class VendaInvalida(FiscalError):
    code = "FISCAL_1002"
    default_message = "Dados da venda inválidos para emissão."
    http_status = 422


class VendaNaoEncontrada(FiscalError):
    code = "FISCAL_1003"
    default_message = "Venda não encontrada."
    http_status = 404


class DocumentoNaoEncontrado(FiscalError):
    code = "FISCAL_1004"
    default_message = "Documento fiscal não encontrado."
    http_status = 404


# ---------------------------------------------------------------------------
# Numeração / unicidade
# ---------------------------------------------------------------------------


class SequenceUnavailable(FiscalError):
    """Falha transitória do contador durável."""

    code = "FISCAL_2001"
    default_message = "Numeração fiscal indisponível no momento."
    retryable = True
    http_status = 503


class DuplicateActiveDocument(FiscalError):
    """A venda já possui documento ativo (pendente/autorizado) para o modelo."""

    code = "FISCAL_2002"
    default_message = "Venda já possui documento fiscal ativo para este modelo."
    http_status = 409


# ---------------------------------------------------------------------------
# Ciclo de vida
# ---------------------------------------------------------------------------


class InvalidTransition(FiscalError):
    code = "FISCAL_3001"
    default_message = "Transição de status não permitida para o documento."
    http_status = 409


class CancellationWindowExpired(FiscalError):
    code = "FISCAL_3002"
    default_message = "Prazo de cancelamento expirado (24 horas)."
    http_status = 422


# ---------------------------------------------------------------------------
# Autorização
# ---------------------------------------------------------------------------


class AuthorizationTimeout(FiscalError):
    """Autoridade não respondeu no prazo. O documento permanece pendente."""

    code = "FISCAL_4001"
    default_message = "Tempo esgotado aguardando a autorização. Documento mantido pendente."
    retryable = True
    http_status = 504


class AuthorizationRejected(FiscalError):
    code = "FISCAL_4002"
    default_message = "Documento rejeitado pela autoridade fiscal."
    http_status = 422
