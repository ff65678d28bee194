"""The Wake-on-LAN request gate: configuration, provisioning, send + wait."""

import logging
import socket
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from wakegate.core.probe import is_probeable, wait_for_host
from wakegate.core.wol import (
    DEFAULT_BROADCAST_ADDRESS,
    InvalidMACError,
    NetworkError,
    parse_mac,
    split_host_port,
    wake,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = timedelta(minutes=10)
DEFAULT_POLL_INTERVAL = timedelta(seconds=1)


class ProvisionError(Exception):
    """Raised when a WakeConfig cannot be made ready for use."""


@dataclass
class WakeConfig:
    """Configuration for one Wake-on-LAN gate."""

    mac: str
    broadcast_address: str = DEFAULT_BROADCAST_ADDRESS
    # None means "not set"; provision() fills in DEFAULT_TIMEOUT.
    # An explicit zero means send and do not wait.
    timeout: Optional[timedelta] = None
    # host:port probed while waiting; falls back to broadcast_address.
    probe_address: Optional[str] = None
    poll_interval: timedelta = DEFAULT_POLL_INTERVAL

    @property
    def probe_target(self) -> str:
        return self.probe_address or self.broadcast_address


@dataclass
class WakeResult:
    """Outcome of a single gate invocation."""

    sent: bool
    reachable: Optional[bool] = None
    elapsed_seconds: float = 0.0


def _check_address(label: str, address: str) -> tuple[str, int]:
    try:
        host, port = split_host_port(address)
    except ValueError as exc:
        raise ProvisionError(f"{label}: {exc}") from exc
    try:
        socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
    except OSError as exc:
        raise ProvisionError(f"{label}: cannot resolve '{address}': {exc}") from exc
    return host, port


def provision(config: WakeConfig) -> WakeConfig:
    """
    Finalize a parsed WakeConfig in place.

    Fills the default timeout when none was set, then validates the MAC
    address, the broadcast and probe addresses, and the timing values.

    Args:
        config: Parsed configuration

    Returns:
        The same config object, ready for use

    Raises:
        InvalidMACError: If the MAC address is malformed
        ProvisionError: If an address or timing value is unusable
    """
    if config.timeout is None:
        config.timeout = DEFAULT_TIMEOUT

    parse_mac(config.mac)
    _check_address("broadcast_address", config.broadcast_address)
    if config.probe_address:
        _check_address("probe_address", config.probe_address)

    if config.timeout < timedelta(0):
        raise ProvisionError(f"timeout must not be negative (got {config.timeout})")
    if config.poll_interval <= timedelta(0):
        raise ProvisionError(f"poll_interval must be positive (got {config.poll_interval})")
    return config


class WakeOnLanGate:
    """
    Sends a magic packet and optionally waits for the target to come up.

    The gate holds no per-request state; concurrent calls each run the full
    send + wait sequence independently.

    Usage::

        gate = WakeOnLanGate(provision(WakeConfig(mac="CC:C4:45:32:7A:51")))
        gate.wake()
    """

    def __init__(self, config: WakeConfig) -> None:
        if config.timeout is None:
            raise ProvisionError("WakeConfig must be provisioned before use")
        self.config = config
        self._probe_host, self._probe_port = split_host_port(config.probe_target)
        self._wait_seconds = config.timeout.total_seconds()
        self._wait_enabled = self._wait_seconds > 0
        if self._wait_enabled and not is_probeable(self._probe_host):
            logger.warning(
                "Probe target %s cannot answer; set probe_address to enable waiting",
                config.probe_target,
            )
            self._wait_enabled = False
        elif self._wait_enabled and not config.probe_address:
            logger.warning(
                "No probe_address set; waiting on broadcast address %s, which only "
                "answers if it is the target's own address",
                config.broadcast_address,
            )

    @property
    def waits(self) -> bool:
        """True when wake() waits for the target after sending."""
        return self._wait_enabled

    def send(self) -> bool:
        """Send the magic packet once. Failures are logged, never raised."""
        try:
            return wake(self.config.mac, self.config.broadcast_address)
        except (InvalidMACError, NetworkError) as exc:
            logger.error("Wake-on-LAN send for %s failed: %s", self.config.mac, exc)
            return False

    def wake(self) -> WakeResult:
        """
        Send the packet, then wait for the target if a timeout is configured.

        Blocks the calling thread for at most the configured timeout. A wait
        that times out is reported through ``reachable=False`` only.
        """
        started = time.monotonic()
        sent = self.send()
        if not sent or not self._wait_enabled:
            return WakeResult(sent=sent, elapsed_seconds=time.monotonic() - started)

        reachable = wait_for_host(
            self._probe_host,
            self._probe_port,
            timeout=self._wait_seconds,
            poll_interval=self.config.poll_interval.total_seconds(),
        )
        elapsed = time.monotonic() - started
        logger.info(
            "Wake gate for %s finished after %.1fs (reachable=%s)",
            self.config.mac,
            elapsed,
            reachable,
        )
        return WakeResult(sent=True, reachable=reachable, elapsed_seconds=elapsed)
