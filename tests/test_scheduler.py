"""Tests for the timed synchronization loop."""

from __future__ import annotations

import asyncio
import logging

import pytest

from openhub.sync.scheduler import Scheduler, sync
from openhub.sync.state import SyncState


class TestSingleShot:
    """Test single-shot mode."""

    def test_runs_exactly_one_pass(self, listener, make_config, status_client, executor, caplog) -> None:
        config = make_config([listener], single_shot=True)
        status_client.set("portus-2.3", "1234")

        with caplog.at_level(logging.INFO, logger="openhub.sync.scheduler"):
            asyncio.run(sync(config, status_client, executor))

        assert len(executor.actions) == 1
        assert status_client.calls.count(("status", "portus-2.3")) == 1
        assert "Only one execution was needed" in caplog.text

    def test_run_once_returns_outcomes(self, listener, make_config, status_client, executor) -> None:
        config = make_config([listener], single_shot=True)
        status_client.set("portus-2.3", "1234")
        scheduler = Scheduler(config, status_client, executor)

        outcomes = asyncio.run(scheduler.run_once())

        assert list(outcomes) == ["portus-2.3"]
        assert scheduler.state.done is True


class TestContinuous:
    """Test the repeating loop and its backpressure."""

    def test_passes_repeat_on_interval(self, listener, make_config, status_client, executor) -> None:
        config = make_config([listener], interval_seconds=0.01)
        status_client.set("portus-2.3", "1234")
        scheduler = Scheduler(config, status_client, executor)

        async def scenario() -> None:
            await scheduler.start()
            await asyncio.sleep(0.1)
            await scheduler.stop()

        asyncio.run(scenario())

        assert status_client.calls.count(("status", "portus-2.3")) >= 3
        # Same revision on every pass: exactly one action
        assert len(executor.actions) == 1

    def test_tick_skipped_while_pass_in_flight(
        self, listener, make_config, status_client, executor, caplog
    ) -> None:
        """A tick finding the previous pass unfinished is dropped, not queued."""
        config = make_config([listener], interval_seconds=3600)
        status_client.set("portus-2.3", "1234")
        scheduler = Scheduler(config, status_client, executor)

        async def scenario() -> None:
            executor.gate = asyncio.Event()
            await scheduler.start()
            await asyncio.sleep(0.01)
            assert scheduler.pass_in_flight

            with caplog.at_level(logging.WARNING, logger="openhub.sync.scheduler"):
                assert scheduler.tick() is False
            assert "Previous execution is not done" in caplog.text

            executor.gate.set()
            while not scheduler.state.done:
                await asyncio.sleep(0.01)

            assert scheduler.tick() is True
            while not scheduler.state.done:
                await asyncio.sleep(0.01)
            await scheduler.stop()

        asyncio.run(scenario())

        assert status_client.calls.count(("status", "portus-2.3")) == 2
        assert len(executor.actions) == 1

    def test_state_survives_across_passes(self, make_listener, make_config, status_client, executor) -> None:
        listener = make_listener("svc")
        config = make_config([listener], interval_seconds=3600)
        state = SyncState()
        scheduler = Scheduler(config, status_client, executor, state=state)

        async def scenario() -> None:
            status_client.set("svc", "1")
            await scheduler.run_once()
            status_client.set("svc", "2")
            assert scheduler.tick() is True
            while not state.done:
                await asyncio.sleep(0.01)

        asyncio.run(scenario())

        assert len(executor.actions) == 2
        assert state.revisions.get("svc") == "2"

    def test_stop_cancels_pass_in_flight(self, listener, make_config, status_client, executor) -> None:
        config = make_config([listener], interval_seconds=3600)
        status_client.set("portus-2.3", "1234")
        scheduler = Scheduler(config, status_client, executor)

        async def scenario() -> None:
            executor.gate = asyncio.Event()
            await scheduler.start()
            await asyncio.sleep(0.01)
            await scheduler.stop()

        asyncio.run(scenario())

        assert executor.actions == []
        assert scheduler.state.done is True

    def test_cancelling_run_stops_loop_and_pass(
        self, listener, make_config, status_client, executor, caplog
    ) -> None:
        """Cancelling run() (what Ctrl-C does) goes through stop() and ends the pass."""
        config = make_config([listener], interval_seconds=3600)
        status_client.set("portus-2.3", "1234")
        scheduler = Scheduler(config, status_client, executor)

        async def scenario() -> None:
            executor.gate = asyncio.Event()
            task = asyncio.create_task(scheduler.run())
            await asyncio.sleep(0.01)
            assert scheduler.pass_in_flight
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        with caplog.at_level(logging.INFO, logger="openhub.sync.scheduler"):
            asyncio.run(scenario())

        assert executor.actions == []
        assert scheduler.state.done is True
        assert "Scheduler stopped" in caplog.text
