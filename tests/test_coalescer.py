"""Tests for per-light command coalescing."""

import threading
from unittest.mock import Mock

import pytest
import requests

from conftest import wait_for
from cuelight.exceptions import (
    CommandError,
    CommandSupersededError,
    DeviceTimeoutError,
    LightValidationError,
    UnknownLightError,
)
from cuelight.models import CommandOutcome, LightTarget
from cuelight.protocols import CommandEvent, CommandObserver


@pytest.mark.integration
class TestCommandCoalescer:
    """Test command lifecycle against the fake module."""

    def test_command_acked_and_reconciled(self, coalescer, polled_reconciler, fake_transport):
        command = coalescer.submit("1", LightTarget(on=True, brightness=75))

        assert command.wait(2.0) is CommandOutcome.ACKED
        light = polled_reconciler.get("1")
        assert (light.on, light.brightness, light.pending) == (True, 75, False)
        assert fake_transport.writes("1") == [{"on": True, "brightness": 75}]

    def test_burst_costs_at_most_two_writes(self, coalescer, polled_reconciler, fake_transport):
        """One in flight, one queued; everything between is superseded."""
        gate = fake_transport.gates["1"] = threading.Event()

        first = coalescer.submit("1", LightTarget(on=True, brightness=10))
        assert wait_for(lambda: len(fake_transport.writes("1")) == 1)

        burst = [coalescer.submit("1", LightTarget(on=True, brightness=b)) for b in range(20, 100, 10)]

        # Everything but the newest was replaced while queued
        for command in burst[:-1]:
            assert command.outcome is CommandOutcome.SUPERSEDED
            assert isinstance(command.error, CommandSupersededError)
        assert polled_reconciler.get("1").pending is True

        gate.set()

        assert burst[-1].wait(2.0) is CommandOutcome.ACKED
        assert first.wait(2.0) is CommandOutcome.SUPERSEDED
        assert len(fake_transport.writes("1")) == 2
        assert polled_reconciler.get("1").brightness == 90
        assert wait_for(lambda: not polled_reconciler.get("1").pending)

    def test_failure_is_not_retried(self, coalescer, polled_reconciler, fake_transport):
        fake_transport.fail_lights["5"] = requests.exceptions.ReadTimeout("timed out")

        command = coalescer.submit("5", LightTarget(on=True, brightness=100))

        assert command.wait(2.0) is CommandOutcome.FAILED
        assert isinstance(command.error, DeviceTimeoutError)
        assert len(fake_transport.writes("5")) == 1
        # Last confirmed state is untouched
        assert polled_reconciler.get("5").on is False
        assert wait_for(lambda: not polled_reconciler.get("5").pending)

    def test_superseded_is_not_failed(self, coalescer, fake_transport):
        gate = fake_transport.gates["2"] = threading.Event()
        coalescer.submit("2", LightTarget(on=True))
        assert wait_for(lambda: len(fake_transport.writes("2")) == 1)

        replaced = coalescer.submit("2", LightTarget(on=False))
        coalescer.submit("2", LightTarget(on=True, brightness=40))
        gate.set()

        assert replaced.outcome is CommandOutcome.SUPERSEDED
        with pytest.raises(CommandSupersededError):
            replaced.raise_for_outcome()

    def test_lights_run_concurrently(self, coalescer, fake_transport):
        """A stuck write on one light does not hold up another."""
        gate = fake_transport.gates["1"] = threading.Event()
        blocked = coalescer.submit("1", LightTarget(on=True))

        other = coalescer.submit("2", LightTarget(on=True))

        assert other.wait(2.0) is CommandOutcome.ACKED
        assert not blocked.done
        gate.set()
        assert blocked.wait(2.0) is CommandOutcome.ACKED

    def test_submit_change_merges_latest_request(self, coalescer, polled_reconciler, fake_transport):
        coalescer.submit("3", LightTarget(on=True, brightness=60)).wait(2.0)

        command = coalescer.submit_change("3", on=False)

        assert command.target == LightTarget(on=False, brightness=60)
        assert command.wait(2.0) is CommandOutcome.ACKED
        assert polled_reconciler.get("3").brightness == 60

    def test_submit_change_builds_on_queued_target(self, coalescer, fake_transport):
        gate = fake_transport.gates["4"] = threading.Event()
        coalescer.submit("4", LightTarget(on=True, brightness=20))
        assert wait_for(lambda: len(fake_transport.writes("4")) == 1)
        coalescer.submit_change("4", brightness=70)

        command = coalescer.submit_change("4", on=False)
        gate.set()

        assert command.target == LightTarget(on=False, brightness=70)
        assert command.wait(2.0) is CommandOutcome.ACKED

    def test_observer_events(self, coalescer):
        observer = Mock(spec=CommandObserver)
        coalescer.register_observer(observer)

        command = coalescer.submit("6", LightTarget(on=True))
        command.wait(2.0)

        assert wait_for(lambda: observer.on_command_event.call_count == 2)
        events = [call.args for call in observer.on_command_event.call_args_list]
        assert events == [(CommandEvent.SUBMITTED, command), (CommandEvent.ACKED, command)]

    def test_pending_count(self, coalescer, fake_transport):
        gate = fake_transport.gates["1"] = threading.Event()
        coalescer.submit("1", LightTarget(on=True))
        coalescer.submit("1", LightTarget(on=False))

        assert coalescer.pending_count() == 2
        assert coalescer.has_pending("1")

        gate.set()
        assert wait_for(lambda: coalescer.pending_count() == 0)


@pytest.mark.integration
class TestCommandValidation:
    """Test rejection before anything reaches the module."""

    def test_unknown_light(self, coalescer, fake_transport):
        with pytest.raises(UnknownLightError):
            coalescer.submit("42", LightTarget(on=True))
        assert fake_transport.writes() == []

    @pytest.mark.parametrize("brightness", [-1, 101, 250])
    def test_brightness_out_of_range(self, coalescer, fake_transport, brightness):
        with pytest.raises(LightValidationError):
            coalescer.submit_change("1", brightness=brightness)
        assert fake_transport.writes() == []

    def test_submit_after_shutdown(self, coalescer):
        coalescer.shutdown()

        with pytest.raises(CommandError):
            coalescer.submit("1", LightTarget(on=True))
