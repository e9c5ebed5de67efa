# Tests for oauth/pending.py
# Created: 2026-10-11

import asyncio

import pytest

from authflow.oauth.pending import PendingOperation


class TestPendingOperation:
    async def test_resolve_then_wait(self):
        op = PendingOperation("k")
        assert op.resolve("value") is True
        assert op.done
        assert await op.wait(timeout=1) == "value"

    async def test_first_resolve_wins(self):
        op = PendingOperation("k")
        assert op.resolve("first") is True
        assert op.resolve("second") is False
        assert await op.wait() == "first"

    async def test_resolve_while_waiting(self):
        op = PendingOperation("k")
        asyncio.get_running_loop().call_later(0.01, op.resolve, "late")
        assert await op.wait(timeout=1) == "late"

    async def test_timeout(self):
        op = PendingOperation("k")
        with pytest.raises(TimeoutError):
            await op.wait(timeout=0.01)
        # Settled by the timeout; later deliveries are ignored
        assert op.done
        assert op.resolve("too late") is False

    async def test_cancel(self):
        op = PendingOperation("k")
        assert op.cancel() is True
        assert op.resolve("x") is False
