# fiscal/services/numero_service.py
from __future__ import annotations

import logging

from fiscal.exceptions import SequenceUnavailable
from fiscal.repositorios.base import SequenciaStore

logger = logging.getLogger("pdv.fiscal")


class AlocadorSequencia:
    """
    Alocador de números fiscais por (filial, série, modelo).

    Regras:
      - Cada chamada devolve exatamente um número, nunca repetido, sem
        lacunas: o incremento é uma única operação atômica do store.
      - Falha transitória do store é repetida até `tentativas` vezes, sempre
        com a mesma operação atômica. Nenhum número é inventado localmente.
      - Esgotadas as tentativas, SequenceUnavailable sobe para o chamador.
    """

    def __init__(self, store: SequenciaStore, *, tentativas: int = 3):
        if tentativas < 1:
            raise ValueError("tentativas deve ser >= 1")
        self.store = store
        self.tentativas = tentativas

    def proximo_numero(self, filial_id: str, serie: int, modelo: str) -> int:
        ultimo_erro: SequenceUnavailable | None = None

        for tentativa in range(1, self.tentativas + 1):
            try:
                numero = self.store.incrementar(filial_id, serie, modelo)
            except SequenceUnavailable as exc:
                ultimo_erro = exc
                logger.warning(
                    "sequencia_fiscal_tentativa_falhou",
                    extra={
                        "event": "sequencia_fiscal_tentativa_falhou",
                        "filial_id": str(filial_id),
                        "serie": serie,
                        "modelo": modelo,
                        "tentativa": tentativa,
                    },
                )
                continue

            logger.info(
                "sequencia_fiscal_numero_alocado",
                extra={
                    "event": "sequencia_fiscal_numero_alocado",
                    "filial_id": str(filial_id),
                    "serie": serie,
                    "modelo": modelo,
                    "numero": numero,
                },
            )
            return numero

        raise ultimo_erro
