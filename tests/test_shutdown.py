"""
Tests for the shutdown coordinator.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from shutdown import ShutdownCoordinator
from sweeper import CleanupSweeper


@pytest.fixture
def exit_fn():
    return MagicMock()


@pytest.fixture
def coordinator(registry, exit_fn):
    sweeper = CleanupSweeper(registry, interval=60)
    return ShutdownCoordinator(registry, sweeper, timeout=0.2, exit_fn=exit_fn)


class TestShutdown:

    @pytest.mark.asyncio
    async def test_closes_every_connection(self, coordinator, registry, make_connection, exit_fn):
        a, b = make_connection("a"), make_connection("b")
        registry.register(a)
        registry.register(b)
        coordinator.sweeper.start()

        await coordinator.shutdown("test")

        assert a.closed_with == (1000, "Server shutting down")
        assert b.closed_with == (1000, "Server shutting down")
        assert coordinator.sweeper.running is False
        assert coordinator.accepting is False
        exit_fn.assert_not_called()

    @pytest.mark.asyncio
    async def test_signals_server_to_exit(self, coordinator):
        server = MagicMock(should_exit=False)
        coordinator.attach_server(server)

        await coordinator.shutdown("test")

        assert server.should_exit is True

    @pytest.mark.asyncio
    async def test_forces_exit_after_timeout(self, coordinator, registry, make_connection, exit_fn):
        stuck = make_connection("stuck")

        async def never_closes():
            await asyncio.Event().wait()

        stuck.wait_closed = never_closes
        registry.register(stuck)
        server = MagicMock(should_exit=False)
        coordinator.attach_server(server)

        await coordinator.shutdown("test")

        exit_fn.assert_called_once_with(1)
        assert server.should_exit is False

    @pytest.mark.asyncio
    async def test_repeated_requests_share_one_shutdown(self, coordinator, registry, make_connection):
        a = make_connection("a")
        calls = []
        original_close = a.close

        async def counting_close(code=1000, reason=""):
            calls.append(code)
            await original_close(code, reason)

        a.close = counting_close
        registry.register(a)

        first = coordinator.request_shutdown("first")
        second = coordinator.request_shutdown("second")
        assert first is second
        await first
        await coordinator.shutdown("again")

        assert calls == [1000]

    @pytest.mark.asyncio
    async def test_reset_accepts_again(self, coordinator):
        await coordinator.shutdown("test")
        coordinator.reset()
        assert coordinator.accepting is True
        assert coordinator.shutting_down is False


class TestLoopExceptionHandler:

    @pytest.mark.asyncio
    async def test_task_failures_are_only_logged(self, coordinator):
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        coordinator.handle_loop_exception(loop, {
            "message": "Task exception was never retrieved",
            "exception": RuntimeError("boom"),
            "future": future,
        })
        assert coordinator.shutting_down is False
        future.cancel()

    @pytest.mark.asyncio
    async def test_callback_failures_trigger_shutdown(self, coordinator, exit_fn):
        loop = asyncio.get_running_loop()
        coordinator.handle_loop_exception(loop, {
            "message": "Exception in callback",
            "exception": RuntimeError("boom"),
            "handle": MagicMock(),
        })
        await coordinator.request_shutdown()

        assert coordinator.shutting_down is True
        assert coordinator.accepting is False
        exit_fn.assert_not_called()
