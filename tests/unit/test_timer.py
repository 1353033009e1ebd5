"""Testes do Timer one-shot."""

from __future__ import annotations

import asyncio

import pytest

from supplier_relay.application.timer import Timer


class TestTimer:
    @pytest.mark.asyncio
    async def test_fires_once_after_delay(self) -> None:
        fired: list[int] = []
        timer = Timer(lambda: fired.append(1), delay_ms=10)

        timer.start()
        assert timer.is_running() is True
        await asyncio.sleep(0.05)

        assert fired == [1]
        assert timer.is_running() is False

    @pytest.mark.asyncio
    async def test_stop_prevents_fire_and_is_idempotent(self) -> None:
        fired: list[int] = []
        timer = Timer(lambda: fired.append(1), delay_ms=10)

        timer.start()
        timer.stop()
        timer.stop()
        await asyncio.sleep(0.05)

        assert fired == []
        assert timer.is_running() is False

    @pytest.mark.asyncio
    async def test_stop_after_fire_is_noop(self) -> None:
        fired: list[int] = []
        timer = Timer(lambda: fired.append(1), delay_ms=1)
        timer.start()
        await asyncio.sleep(0.02)

        timer.stop()

        assert fired == [1]

    @pytest.mark.asyncio
    async def test_stop_inside_callback_is_noop(self) -> None:
        holder: dict[str, Timer] = {}
        fired: list[int] = []

        def callback() -> None:
            holder["timer"].stop()
            fired.append(1)

        holder["timer"] = Timer(callback, delay_ms=1)
        holder["timer"].start()
        await asyncio.sleep(0.02)

        assert fired == [1]

    def test_elapsed_is_zero_before_start(self) -> None:
        assert Timer(lambda: None, delay_ms=10).elapsed() == 0

    @pytest.mark.asyncio
    async def test_elapsed_uses_clock(self) -> None:
        now = [100.0]
        timer = Timer(lambda: None, delay_ms=10_000, clock=lambda: now[0])
        timer.start()

        now[0] = 100.25

        assert timer.elapsed() == 250
        timer.stop()

    @pytest.mark.asyncio
    async def test_start_twice_then_stop_never_fires(self) -> None:
        fired: list[int] = []
        now = [10.0]
        timer = Timer(lambda: fired.append(1), delay_ms=10, clock=lambda: now[0])

        timer.start()
        now[0] = 10.5
        timer.start()
        timer.stop()
        await asyncio.sleep(0.05)

        assert fired == []
        assert timer.is_running() is False
        # O segundo start não reinicia a contagem
        assert timer.elapsed() == 500
