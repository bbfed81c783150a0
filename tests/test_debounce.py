"""Tests for the event-loop debouncer."""

import asyncio

import pytest

from cadence.debounce import Debouncer


class TestDebouncer:
    @pytest.mark.asyncio
    async def test_triggers_coalesce(self):
        """Test a burst of triggers runs the callback once."""
        calls = []
        debouncer = Debouncer(lambda: calls.append(1), delay=0.02)
        for _ in range(5):
            debouncer.trigger()
        assert debouncer.pending
        await asyncio.sleep(0.1)
        assert calls == [1]
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_cancel(self):
        calls = []
        debouncer = Debouncer(lambda: calls.append(1), delay=0.01)
        debouncer.trigger()
        debouncer.cancel()
        await asyncio.sleep(0.05)
        assert calls == []

    @pytest.mark.asyncio
    async def test_flush_runs_now(self):
        calls = []
        debouncer = Debouncer(lambda: calls.append(1), delay=10)
        assert debouncer.flush() is False
        debouncer.trigger()
        assert debouncer.flush() is True
        assert calls == [1]
        assert not debouncer.pending

    def test_negative_delay(self):
        with pytest.raises(ValueError):
            Debouncer(lambda: None, delay=-1)
