"""Timer one-shot sobre o event loop (timeout por sessão)."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable


class Timer:
    """Dispara `callback` uma única vez após `delay_ms`.

    - start(): arma o disparo no loop corrente e registra o instante;
      no-op enquanto já houver disparo pendente.
    - stop(): cancela disparo pendente; idempotente (2x ou após disparo = no-op).
    - elapsed(): ms desde start(), ou 0 se nunca iniciado.
    - is_running(): True enquanto houver disparo pendente.

    Não há retry nem re-arme automático.
    """

    def __init__(
        self,
        callback: Callable[[], object],
        delay_ms: int,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._callback = callback
        self._delay_ms = delay_ms
        self._clock = clock or time.monotonic
        self._handle: asyncio.TimerHandle | None = None
        self._started_at: float | None = None

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    def start(self) -> None:
        if self._handle is not None:
            return  # Já armado: um único disparo pendente por vez
        loop = asyncio.get_running_loop()
        self._started_at = self._clock()
        self._handle = loop.call_later(self._delay_ms / 1000, self._fire)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def elapsed(self) -> int:
        if self._started_at is None:
            return 0
        return int((self._clock() - self._started_at) * 1000)

    def is_running(self) -> bool:
        return self._handle is not None

    def _fire(self) -> None:
        # Limpa antes do callback: stop() chamado dentro dele vira no-op.
        self._handle = None
        self._callback()
