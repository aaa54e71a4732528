# fiscal/relogio.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from django.utils import timezone


class Relogio(Protocol):
    def agora(self) -> datetime:
        ...


class RelogioSistema:
    """Relógio de parede do servidor (UTC, aware)."""

    def agora(self) -> datetime:
        return timezone.now()


class RelogioFixo:
    """Relógio controlado manualmente, para testes determinísticos."""

    def __init__(self, instante: datetime):
        if timezone.is_naive(instante):
            raise ValueError("RelogioFixo exige datetime com timezone.")
        self._instante = instante

    def agora(self) -> datetime:
        return self._instante

    def avancar(self, delta: timedelta) -> datetime:
        self._instante = self._instante + delta
        return self._instante
