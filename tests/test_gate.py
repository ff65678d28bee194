"""Tests for provisioning and the WakeOnLanGate."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from wakegate.config.loader import parse_directive
from wakegate.core.gate import (
    DEFAULT_TIMEOUT,
    ProvisionError,
    WakeConfig,
    WakeOnLanGate,
    provision,
)
from wakegate.core.wol import InvalidMACError, NetworkError

MAC = "CC:C4:45:32:7A:51"


def _gate(**overrides: object) -> WakeOnLanGate:
    fields: dict = {"mac": MAC, "broadcast_address": "127.0.0.1:9"}
    fields.update(overrides)
    return WakeOnLanGate(provision(WakeConfig(**fields)))


class TestProvision:
    def test_unset_timeout_gets_default(self) -> None:
        cfg = WakeConfig(mac="00:00:00:00:00:00", broadcast_address="127.0.0.1:9")

        provision(cfg)

        assert cfg.timeout == timedelta(minutes=10) == DEFAULT_TIMEOUT

    def test_nonzero_timeout_unchanged(self) -> None:
        cfg = provision(WakeConfig(mac=MAC, broadcast_address="127.0.0.1:9", timeout=timedelta(seconds=45)))
        assert cfg.timeout == timedelta(seconds=45)

    def test_explicit_zero_timeout_unchanged(self) -> None:
        cfg = provision(WakeConfig(mac=MAC, broadcast_address="127.0.0.1:9", timeout=timedelta(0)))
        assert cfg.timeout == timedelta(0)

    def test_mutates_in_place(self) -> None:
        cfg = WakeConfig(mac=MAC)
        assert provision(cfg) is cfg

    def test_invalid_mac_fails_fast(self) -> None:
        with pytest.raises(InvalidMACError):
            provision(parse_directive("wake_on_lan NOTAMAC"))

    def test_malformed_broadcast_address(self) -> None:
        with pytest.raises(ProvisionError, match="broadcast_address"):
            provision(WakeConfig(mac=MAC, broadcast_address="192.168.1.255"))

    @patch("wakegate.core.gate.socket.getaddrinfo", side_effect=OSError("Name or service not known"))
    def test_unresolvable_address(self, mock_gai: MagicMock) -> None:
        with pytest.raises(ProvisionError, match="cannot resolve"):
            provision(WakeConfig(mac=MAC, broadcast_address="nowhere.invalid:9"))

    def test_malformed_probe_address(self) -> None:
        with pytest.raises(ProvisionError, match="probe_address"):
            provision(WakeConfig(mac=MAC, probe_address="nas.local"))

    def test_negative_timeout(self) -> None:
        with pytest.raises(ProvisionError, match="negative"):
            provision(WakeConfig(mac=MAC, timeout=timedelta(seconds=-1)))

    def test_zero_poll_interval(self) -> None:
        with pytest.raises(ProvisionError, match="poll_interval"):
            provision(WakeConfig(mac=MAC, poll_interval=timedelta(0)))


class TestWakeOnLanGate:
    def test_requires_provisioned_config(self) -> None:
        with pytest.raises(ProvisionError):
            WakeOnLanGate(WakeConfig(mac=MAC))

    @patch("wakegate.core.gate.wait_for_host")
    @patch("wakegate.core.gate.wake", return_value=True)
    def test_zero_timeout_is_fire_and_forget(self, mock_wake: MagicMock, mock_wait: MagicMock) -> None:
        gate = _gate(timeout=timedelta(0))

        result = gate.wake()

        assert gate.waits is False
        assert result.sent is True
        assert result.reachable is None
        mock_wake.assert_called_once_with(MAC, "127.0.0.1:9")
        mock_wait.assert_not_called()

    @patch("wakegate.core.gate.wait_for_host", return_value=True)
    @patch("wakegate.core.gate.wake", return_value=True)
    def test_waits_on_probe_address(self, mock_wake: MagicMock, mock_wait: MagicMock) -> None:
        gate = _gate(
            timeout=timedelta(minutes=2),
            probe_address="127.0.0.1:8080",
            poll_interval=timedelta(seconds=3),
        )

        result = gate.wake()

        assert result.sent is True
        assert result.reachable is True
        mock_wait.assert_called_once_with("127.0.0.1", 8080, timeout=120.0, poll_interval=3.0)

    @patch("wakegate.core.gate.wait_for_host", return_value=False)
    @patch("wakegate.core.gate.wake", return_value=True)
    def test_probe_defaults_to_broadcast_host(self, mock_wake: MagicMock, mock_wait: MagicMock) -> None:
        gate = _gate(broadcast_address="192.168.1.50:9", timeout=timedelta(seconds=30))

        result = gate.wake()

        assert result.reachable is False
        assert mock_wait.call_args.args == ("192.168.1.50", 9)

    @patch("wakegate.core.gate.wait_for_host")
    @patch("wakegate.core.gate.wake", return_value=True)
    def test_limited_broadcast_cannot_be_probed(self, mock_wake: MagicMock, mock_wait: MagicMock) -> None:
        gate = _gate(broadcast_address="255.255.255.255:9")

        result = gate.wake()

        assert gate.waits is False
        assert result.sent is True
        mock_wait.assert_not_called()

    def test_warns_when_waiting_on_subnet_broadcast(self, caplog: pytest.LogCaptureFixture) -> None:
        gate = _gate(broadcast_address="192.168.1.255:9", timeout=timedelta(minutes=5))

        assert gate.waits is True
        assert "No probe_address set" in caplog.text
        assert "192.168.1.255:9" in caplog.text

    def test_no_fallback_warning_with_explicit_target(self, caplog: pytest.LogCaptureFixture) -> None:
        _gate(
            broadcast_address="192.168.1.255:9",
            probe_address="127.0.0.1:8080",
            timeout=timedelta(minutes=5),
        )

        assert "No probe_address set" not in caplog.text

    @patch("wakegate.core.gate.wait_for_host")
    @patch("wakegate.core.gate.wake", side_effect=NetworkError("Network is unreachable"))
    def test_send_failure_is_logged_not_raised(
        self, mock_wake: MagicMock, mock_wait: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        gate = _gate(timeout=timedelta(seconds=30), probe_address="127.0.0.1:8080")

        result = gate.wake()

        assert result.sent is False
        assert result.reachable is None
        mock_wait.assert_not_called()
        assert "Network is unreachable" in caplog.text

    @patch("wakegate.core.gate.wake", return_value=True)
    def test_each_call_sends_again(self, mock_wake: MagicMock) -> None:
        gate = _gate(timeout=timedelta(0))

        gate.wake()
        gate.wake()

        assert mock_wake.call_count == 2

    def test_real_send_to_loopback(self) -> None:
        result = _gate(timeout=timedelta(0)).wake()
        assert result.sent is True
