"""
Camada de client SEFAZ.

Este módulo define:

- Contratos para comunicação com a SEFAZ (AutorizadorProtocol) e para a
  assinatura digital do XML (AssinadorProtocol).
- AutorizadorHomologacao: autorizador simulado, sem rede, usado sempre que
  o emitente está em ambiente de homologação.
- MockSefazClientAlwaysFail: client que sempre falha tecnicamente, para
  exercitar o caminho de timeout/pendência.

Clients reais de produção são registrados por UF em fiscal.sefaz_factory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from fiscal.relogio import Relogio, RelogioSistema


# ---------------------------------------------------------------------------
# Exceções específicas
# ---------------------------------------------------------------------------


class SefazTechnicalError(Exception):
    """
    Erros técnicos na comunicação com a SEFAZ (timeout, conexão, erro interno).

    Distingue problemas de infraestrutura (documento fica pendente e pode ser
    reprocessado) de rejeições fiscais (cStat de regra de negócio).
    """

    def __init__(
        self,
        message: str,
        *,
        codigo: str | None = None,
        raw: Dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.codigo = codigo
        self.raw: Dict[str, Any] = raw or {}


# ---------------------------------------------------------------------------
# DTOs de resposta da SEFAZ
# ---------------------------------------------------------------------------


# cStat de autorização: 100 = autorizado, 150 = autorizado fora de prazo
CODIGOS_AUTORIZADO = {100, 150}
# cStat de evento de cancelamento registrado
CODIGOS_CANCELAMENTO_OK = {135, 155}


@dataclass
class SefazAutorizacaoResponse:
    """Resultado de uma tentativa de autorização."""

    codigo: int
    mensagem: str
    protocolo: Optional[str]
    chave_acesso: str
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def autorizado(self) -> bool:
        return self.codigo in CODIGOS_AUTORIZADO


@dataclass
class SefazCancelamentoResponse:
    """Resultado de um evento de cancelamento."""

    codigo: int
    mensagem: str
    protocolo: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def registrado(self) -> bool:
        return self.codigo in CODIGOS_CANCELAMENTO_OK


@dataclass(frozen=True)
class ResultadoAutorizacao:
    status: str  # "authorized" | "rejected"
    protocolo: Optional[str]
    codigo_retorno: str
    mensagem: str

    @property
    def autorizado(self) -> bool:
        return self.status == "authorized"


@dataclass(frozen=True)
class ResultadoCancelamento:
    protocolo: str
    codigo_retorno: str
    mensagem: str


# ---------------------------------------------------------------------------
# Contratos
# ---------------------------------------------------------------------------


class AutorizadorProtocol(Protocol):
    """
    Contrato mínimo que um client SEFAZ deve cumprir.

    Em caso de erro técnico (timeout, indisponibilidade etc.), deve levantar
    SefazTechnicalError. Rejeição fiscal volta como resposta normal.
    """

    def autorizar_documento(self, *, xml: bytes, chave_acesso: str, emitente) -> SefazAutorizacaoResponse:
        ...

    def cancelar_documento(
        self,
        *,
        chave_acesso: str,
        protocolo: str,
        motivo: str,
        emitente,
    ) -> SefazCancelamentoResponse:
        ...


class AssinadorProtocol(Protocol):
    """Assina o XML (certificado A1/A3) antes do envio em produção."""

    def assinar(self, xml: bytes, emitente) -> bytes:
        ...


# ---------------------------------------------------------------------------
# Autorizador de homologação
# ---------------------------------------------------------------------------


def _epoch_millis(instante: datetime) -> int:
    return int(instante.timestamp() * 1000)


class AutorizadorHomologacao:
    """
    Autorizador simulado para ambiente de homologação.

    Não acessa rede e sempre autoriza. Protocolos derivam do relógio
    injetado:
      - autorização: "999" + epoch em milissegundos
      - cancelamento: "CANC" + epoch em milissegundos
    """

    def __init__(self, *, relogio: Optional[Relogio] = None, uf: Optional[str] = None):
        self.relogio = relogio or RelogioSistema()
        self.uf = uf

    def autorizar_documento(self, *, xml: bytes, chave_acesso: str, emitente) -> SefazAutorizacaoResponse:
        protocolo = f"999{_epoch_millis(self.relogio.agora())}"
        mensagem = "Autorizado o uso da NF-e (homologação)."
        return SefazAutorizacaoResponse(
            codigo=100,
            mensagem=mensagem,
            protocolo=protocolo,
            chave_acesso=chave_acesso,
            raw={
                "codigo": 100,
                "mensagem": mensagem,
                "protocolo": protocolo,
                "chave_acesso": chave_acesso,
                "ambiente": "homolog",
                "uf": self.uf,
            },
        )

    def cancelar_documento(
        self,
        *,
        chave_acesso: str,
        protocolo: str,
        motivo: str,
        emitente,
    ) -> SefazCancelamentoResponse:
        protocolo_cancelamento = f"CANC{_epoch_millis(self.relogio.agora())}"
        mensagem = "Evento registrado e vinculado a NF-e (homologação)."
        return SefazCancelamentoResponse(
            codigo=135,
            mensagem=mensagem,
            protocolo=protocolo_cancelamento,
            raw={
                "codigo": 135,
                "mensagem": mensagem,
                "protocolo": protocolo_cancelamento,
                "motivo": motivo,
                "ambiente": "homolog",
                "uf": self.uf,
            },
        )


class MockSefazClientAlwaysFail:
    """
    Client SEFAZ que SEMPRE falha tecnicamente.

    Usado em testes do caminho de indisponibilidade: o documento deve
    permanecer pendente e AuthorizationTimeout deve chegar ao chamador.
    """

    def __init__(self, *, ambiente: str = "producao", uf: Optional[str] = None):
        self.ambiente = ambiente
        self.uf = uf

    def _raise_technical_error(self) -> None:
        raise SefazTechnicalError(
            message="Falha técnica simulada na comunicação com a SEFAZ (mock).",
            codigo="TECH_FAIL",
            raw={"uf": self.uf, "ambiente": self.ambiente},
        )

    def autorizar_documento(self, *, xml: bytes, chave_acesso: str, emitente) -> SefazAutorizacaoResponse:
        self._raise_technical_error()

    def cancelar_documento(
        self,
        *,
        chave_acesso: str,
        protocolo: str,
        motivo: str,
        emitente,
    ) -> SefazCancelamentoResponse:
        self._raise_technical_error()
