"""Tests for the device link state machine and transaction reporting."""

from unittest.mock import Mock

import pytest
import requests

from conftest import FakeTransport, wait_for
from cuelight.exceptions import DeviceRejectedError, DeviceTimeoutError, DeviceUnreachableError
from cuelight.link import DeviceLink, DeviceRequest, ExponentialBackoff
from cuelight.models import LightTarget, LinkState
from cuelight.protocols import LinkObserver


def make_link(transport):
    return DeviceLink(transport, timeout_ms=500, backoff=ExponentialBackoff(0.01, 0.05))


def state_changes(observer):
    return [call.args for call in observer.on_link_state_changed.call_args_list]


@pytest.mark.unit
class TestDeviceLinkStates:
    """Test reachability transitions driven synchronously."""

    def test_starts_disconnected(self):
        link = make_link(FakeTransport())
        assert link.state is LinkState.DISCONNECTED
        assert not link.is_connected

    def test_connect_once(self):
        """Disconnected -> Connecting -> Connected."""
        link = make_link(FakeTransport())
        observer = Mock(spec=LinkObserver)
        link.register_observer(observer)

        assert link.connect_once() is True

        assert link.state is LinkState.CONNECTED
        assert state_changes(observer) == [
            (LinkState.DISCONNECTED, LinkState.CONNECTING),
            (LinkState.CONNECTING, LinkState.CONNECTED),
        ]

    def test_connect_once_unreachable(self):
        """A failed attempt falls back to Disconnected."""
        transport = FakeTransport()
        transport.reachable = False
        link = make_link(transport)
        observer = Mock(spec=LinkObserver)
        link.register_observer(observer)

        assert link.connect_once() is False

        assert link.state is LinkState.DISCONNECTED
        assert state_changes(observer) == [
            (LinkState.DISCONNECTED, LinkState.CONNECTING),
            (LinkState.CONNECTING, LinkState.DISCONNECTED),
        ]

    def test_connection_error_moves_to_reconnecting(self):
        transport = FakeTransport()
        link = make_link(transport)
        link.connect_once()
        transport.reachable = False

        with pytest.raises(DeviceUnreachableError):
            link.send(DeviceRequest.poll())

        assert link.state is LinkState.RECONNECTING

    def test_timeout_keeps_link_connected(self):
        """A slow reply is a Timeout, not a lost connection."""
        transport = FakeTransport()
        transport.fail_lights["3"] = requests.exceptions.ReadTimeout("read timed out")
        link = make_link(transport)
        link.connect_once()

        with pytest.raises(DeviceTimeoutError) as exc_info:
            link.send(DeviceRequest.set_light("3", LightTarget(on=True, brightness=80)))

        assert exc_info.value.timeout_ms == 500
        assert exc_info.value.light_id == "3"
        assert link.state is LinkState.CONNECTED

    def test_connect_timeout_moves_to_reconnecting(self):
        """A module that stops accepting connections is unreachable, not slow."""
        transport = FakeTransport()
        link = make_link(transport)
        link.connect_once()
        transport.fail_lights["1"] = requests.exceptions.ConnectTimeout("no SYN-ACK")

        with pytest.raises(DeviceUnreachableError):
            link.send(DeviceRequest.set_light("1", LightTarget(on=True)))

        assert link.state is LinkState.RECONNECTING

    def test_reconnect_from_reconnecting(self):
        """Reconnecting -> Connected without passing through Connecting."""
        transport = FakeTransport()
        link = make_link(transport)
        link.connect_once()
        transport.reachable = False
        with pytest.raises(DeviceUnreachableError):
            link.send(DeviceRequest.poll())

        observer = Mock(spec=LinkObserver)
        link.register_observer(observer)
        transport.reachable = True

        assert link.connect_once() is True
        assert state_changes(observer) == [(LinkState.RECONNECTING, LinkState.CONNECTED)]


@pytest.mark.unit
class TestDeviceLinkTransactions:
    """Test send() results and reporting."""

    def test_send_returns_reply(self):
        link = make_link(FakeTransport())
        link.connect_once()

        reply = link.send(DeviceRequest.set_light("2", LightTarget(on=True, brightness=70)))

        assert reply["ok"] is True
        assert reply["light"]["brightness"] == 70

    def test_fast_fail_when_not_connected(self):
        """Unreachable immediately, without touching the transport."""
        transport = FakeTransport()
        link = make_link(transport)

        with pytest.raises(DeviceUnreachableError):
            link.send(DeviceRequest.set_light("1", LightTarget(on=True)))

        assert transport.calls == []

    def test_device_error_code(self):
        transport = FakeTransport()
        transport.reject_lights["4"] = 503
        link = make_link(transport)
        link.connect_once()

        with pytest.raises(DeviceRejectedError) as exc_info:
            link.send(DeviceRequest.set_light("4", LightTarget(on=False)))

        assert exc_info.value.code == 503
        assert link.state is LinkState.CONNECTED

    def test_every_transaction_reported_once(self):
        """Success, failure and fast-fail each produce exactly one report."""
        transport = FakeTransport()
        transport.reject_lights["4"] = 500
        link = make_link(transport)
        observer = Mock(spec=LinkObserver)
        link.register_observer(observer)

        with pytest.raises(DeviceUnreachableError):
            link.send(DeviceRequest.poll())
        link.connect_once()
        link.send(DeviceRequest.poll())
        with pytest.raises(DeviceRejectedError):
            link.send(DeviceRequest.set_light("4", LightTarget(on=True)))

        reports = [call.args for call in observer.on_transaction.call_args_list]
        assert len(reports) == 3
        assert [ok for _, ok, _ in reports] == [False, True, False]
        assert isinstance(reports[0][2], DeviceUnreachableError)
        assert reports[1][2] is None
        assert isinstance(reports[2][2], DeviceRejectedError)


    def test_text_error_code_is_rejected_and_reported(self):
        transport = FakeTransport()
        transport.reject_lights["1"] = "E_RELAY"
        link = make_link(transport)
        link.connect_once()
        observer = Mock(spec=LinkObserver)
        link.register_observer(observer)

        with pytest.raises(DeviceRejectedError) as exc_info:
            link.send(DeviceRequest.set_light("1", LightTarget(on=True)))

        assert exc_info.value.code == "E_RELAY"
        assert observer.on_transaction.call_count == 1
        request, ok, error = observer.on_transaction.call_args.args
        assert request.light_id == "1"
        assert ok is False
        assert error is exc_info.value

@pytest.mark.integration
class TestDeviceLinkMonitor:
    """Test the background reconnect loop."""

    def test_monitor_connects_when_module_appears(self):
        transport = FakeTransport()
        transport.reachable = False
        link = make_link(transport)

        with link:
            assert wait_for(lambda: transport.open_count >= 3)
            assert not link.is_connected

            transport.reachable = True
            assert link.wait_connected(timeout=2.0)

    def test_monitor_reconnects_after_loss(self):
        transport = FakeTransport()
        link = make_link(transport)
        observer = Mock(spec=LinkObserver)
        link.register_observer(observer)

        with link:
            assert link.wait_connected(timeout=2.0)

            transport.reachable = False
            with pytest.raises(DeviceUnreachableError):
                link.send(DeviceRequest.poll())
            assert wait_for(lambda: link.state is LinkState.DISCONNECTED)

            transport.reachable = True
            assert link.wait_connected(timeout=2.0)

        changes = state_changes(observer)
        assert (LinkState.CONNECTED, LinkState.RECONNECTING) in changes
        assert (LinkState.RECONNECTING, LinkState.DISCONNECTED) in changes
        assert changes.count((LinkState.CONNECTING, LinkState.CONNECTED)) == 2

    def test_stop_disconnects(self):
        link = make_link(FakeTransport())
        link.start()
        assert link.wait_connected(timeout=2.0)

        link.stop()

        assert link.state is LinkState.DISCONNECTED
