"""Tests for WaitSignal in application/services/chat/wait_signal.py."""

import asyncio
from unittest.mock import MagicMock

import pytest

from application.services.chat.wait_signal import WaitSignal


class TestWaitSignal:
    """Tests for the long-wait flag."""

    @pytest.mark.asyncio
    async def test_flag_raised_at_threshold(self):
        signal = WaitSignal(threshold_seconds=180, interval=3600)
        signal.start()

        for _ in range(179):
            signal.tick()
        assert signal.waiting_seconds == 179
        assert signal.show_long_wait is False

        signal.tick()
        assert signal.show_long_wait is True

        signal.stop()
        assert signal.show_long_wait is False
        assert not signal.is_running

    @pytest.mark.asyncio
    async def test_start_resets_counter(self):
        signal = WaitSignal(threshold_seconds=2, interval=3600)
        signal.start()
        signal.tick()
        signal.tick()
        assert signal.show_long_wait is True

        signal.start()

        assert signal.waiting_seconds == 0
        assert signal.show_long_wait is False
        assert signal.is_running
        signal.stop()

    @pytest.mark.asyncio
    async def test_restart_after_stop(self):
        signal = WaitSignal(threshold_seconds=5, interval=3600)
        signal.start()
        signal.stop()

        signal.start()

        assert signal.is_running
        signal.stop()

    @pytest.mark.asyncio
    async def test_ticks_on_its_own(self):
        on_change = MagicMock()
        signal = WaitSignal(threshold_seconds=2, interval=0.01, on_change=on_change)

        signal.start()
        await asyncio.sleep(0.1)
        signal.stop()

        assert signal.waiting_seconds >= 2
        assert on_change.call_count >= 3
        assert signal.show_long_wait is False

    def test_stop_without_start(self):
        signal = WaitSignal()

        signal.stop()

        assert signal.show_long_wait is False
        assert signal.waiting_seconds == 0
