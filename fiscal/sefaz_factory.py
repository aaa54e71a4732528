# fiscal/sefaz_factory.py
"""
Roteamento da autorização por ambiente / UF.

- Emitente em homologação → AutorizadorHomologacao (sem rede).
- Emitente em produção → client registrado para a UF em CLIENT_CLASS_BY_UF
  (ou injetado no RoteadorAmbiente). Sem client registrado, a emissão em
  produção é bloqueada com ConfigurationIncomplete.

A chamada de produção roda em thread auxiliar com prazo: estourar o prazo
ou receber SefazTechnicalError vira AuthorizationTimeout, e o documento
continua pendente para reprocessamento.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Callable, Dict, Optional

from fiscal.dto import EmitenteConfig
from fiscal.exceptions import (
    AuthorizationRejected,
    AuthorizationTimeout,
    ConfigurationIncomplete,
)
from fiscal.models import DocumentoFiscal
from fiscal.relogio import Relogio, RelogioSistema
from fiscal.sefaz_clients import (
    AssinadorProtocol,
    AutorizadorHomologacao,
    AutorizadorProtocol,
    ResultadoAutorizacao,
    ResultadoCancelamento,
    SefazTechnicalError,
)

logger = logging.getLogger("pdv.fiscal")

# Mapeamento de UF -> classe (ou factory) de client de produção.
# Vazio por padrão: nenhum transporte SOAP real acompanha este projeto.
CLIENT_CLASS_BY_UF: Dict[str, Callable[..., AutorizadorProtocol]] = {}


def _normalize_ambiente(ambiente: str | None) -> str:
    """
    Aceita variações comuns e converte para "homolog" / "producao".
    """
    if not ambiente:
        return "homolog"

    amb = ambiente.strip().lower()
    if amb in {"homolog", "homologacao", "homologação", "teste"}:
        return "homolog"
    if amb in {"prod", "producao", "produção"}:
        return "producao"
    return amb


def _normalize_uf(uf: str | None) -> str:
    return (uf or "").strip().upper()


class RoteadorAmbiente:
    def __init__(
        self,
        *,
        relogio: Optional[Relogio] = None,
        clients_por_uf: Optional[Dict[str, Callable[..., AutorizadorProtocol]]] = None,
        assinador: Optional[AssinadorProtocol] = None,
    ):
        self.relogio = relogio or RelogioSistema()
        self.clients_por_uf = dict(CLIENT_CLASS_BY_UF)
        self.clients_por_uf.update(clients_por_uf or {})
        self.assinador = assinador

    def em_producao(self, emitente: EmitenteConfig) -> bool:
        return _normalize_ambiente(emitente.ambiente) == "producao"

    def verificar(self, emitente: EmitenteConfig) -> None:
        """Confere, antes de consumir número, se há rota de autorização."""
        if not self.em_producao(emitente):
            return

        uf = _normalize_uf(emitente.uf)
        faltantes = []
        if uf not in self.clients_por_uf:
            faltantes.append("client_sefaz")
        if self.assinador is None:
            faltantes.append("assinador")
        if faltantes:
            raise ConfigurationIncomplete(
                f"Emissão em produção indisponível para UF {uf or '?'}: {', '.join(faltantes)} não configurado.",
                detalhes={"campos": faltantes},
            )

    def client_para(self, emitente: EmitenteConfig) -> AutorizadorProtocol:
        uf = _normalize_uf(emitente.uf)
        if not self.em_producao(emitente):
            return AutorizadorHomologacao(relogio=self.relogio, uf=uf)

        self.verificar(emitente)
        return self.clients_por_uf[uf](ambiente="producao", uf=uf)

    # -------------------------
    # Execução com prazo
    # -------------------------
    def _executar(self, emitente: EmitenteConfig, func: Callable, timeout: float, *, contexto: dict):
        if not self.em_producao(emitente):
            return func()

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sefaz")
        future = executor.submit(func)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError as exc:
            logger.warning(
                "sefaz_timeout",
                extra={"event": "sefaz_timeout", "timeout": timeout, **contexto},
            )
            raise AuthorizationTimeout() from exc
        except SefazTechnicalError as exc:
            logger.warning(
                "sefaz_erro_tecnico",
                extra={
                    "event": "sefaz_erro_tecnico",
                    "codigo": exc.codigo,
                    "erro": str(exc),
                    **contexto,
                },
            )
            raise AuthorizationTimeout(
                "Falha técnica na comunicação com a autoridade fiscal. Documento mantido pendente."
            ) from exc
        finally:
            executor.shutdown(wait=False)

    # -------------------------
    # Autorização
    # -------------------------
    def autorizar(
        self,
        documento: DocumentoFiscal,
        emitente: EmitenteConfig,
        *,
        timeout: float,
    ) -> ResultadoAutorizacao:
        client = self.client_para(emitente)
        xml = documento.xml.encode("utf-8") if isinstance(documento.xml, str) else documento.xml
        if self.em_producao(emitente):
            xml = self.assinador.assinar(xml, emitente)

        contexto = {
            "chave_acesso": documento.chave_acesso,
            "ambiente": _normalize_ambiente(emitente.ambiente),
            "uf": _normalize_uf(emitente.uf),
        }
        resposta = self._executar(
            emitente,
            lambda: client.autorizar_documento(xml=xml, chave_acesso=documento.chave_acesso, emitente=emitente),
            timeout,
            contexto=contexto,
        )

        logger.info(
            "sefaz_autorizacao_resposta",
            extra={"event": "sefaz_autorizacao_resposta", "codigo": resposta.codigo, **contexto},
        )
        return ResultadoAutorizacao(
            status="authorized" if resposta.autorizado else "rejected",
            protocolo=resposta.protocolo if resposta.autorizado else None,
            codigo_retorno=str(resposta.codigo),
            mensagem=resposta.mensagem,
        )

    # -------------------------
    # Cancelamento
    # -------------------------
    def cancelar(
        self,
        documento: DocumentoFiscal,
        motivo: str,
        emitente: EmitenteConfig,
        *,
        timeout: float,
    ) -> ResultadoCancelamento:
        client = self.client_para(emitente)
        contexto = {
            "chave_acesso": documento.chave_acesso,
            "ambiente": _normalize_ambiente(emitente.ambiente),
            "uf": _normalize_uf(emitente.uf),
        }
        resposta = self._executar(
            emitente,
            lambda: client.cancelar_documento(
                chave_acesso=documento.chave_acesso,
                protocolo=documento.protocolo,
                motivo=motivo,
                emitente=emitente,
            ),
            timeout,
            contexto=contexto,
        )

        if not resposta.registrado:
            raise AuthorizationRejected(
                f"Cancelamento rejeitado pela autoridade fiscal: {resposta.mensagem}",
                detalhes={"codigo_retorno": str(resposta.codigo)},
            )

        return ResultadoCancelamento(
            protocolo=resposta.protocolo,
            codigo_retorno=str(resposta.codigo),
            mensagem=resposta.mensagem,
        )
