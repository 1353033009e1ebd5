"""Medição de latência por componente (resumo, fan-out, envio ao grupo)."""

from __future__ import annotations

import contextlib
import time
from collections.abc import Iterator
from dataclasses import dataclass, field

from supplier_relay.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Stopwatch:
    component: str
    started_at: float = field(default_factory=time.perf_counter)
    elapsed_ms: float = 0.0

    def stop(self) -> float:
        self.elapsed_ms = (time.perf_counter() - self.started_at) * 1000
        return self.elapsed_ms


@contextlib.contextmanager
def timed(component: str, **fields: object) -> Iterator[Stopwatch]:
    """Mede o bloco e emite `component_latency` ao sair, com ou sem erro.

        with timed("reply_summary", session_id=session_id) as watch:
            summary = await summarizer.summarize(replies)

    `watch.elapsed_ms` fica disponível depois do bloco (inclusive no except).
    """
    watch = Stopwatch(component)
    outcome = "ok"
    try:
        yield watch
    except BaseException:
        outcome = "error"
        raise
    finally:
        watch.stop()
        logger.info(
            "component_latency",
            extra={
                "component": component,
                "elapsed_ms": round(watch.elapsed_ms, 2),
                "outcome": outcome,
                **fields,
            },
        )
