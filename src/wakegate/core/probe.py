"""TCP reachability probing for hosts that are waking up."""

import ipaddress
import logging
import socket
import time

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 1.0


def probe(host: str, port: int, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> bool:
    """
    Attempt one TCP connection to host:port.

    A refused connection counts as reachable: the host's network stack
    answered with a reset, so the machine is up even if nothing listens.

    Returns:
        True if the host answered, False otherwise
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except ConnectionRefusedError:
        return True
    except (OSError, socket.timeout):
        return False


def is_probeable(host: str) -> bool:
    """
    Return False for hosts that can never answer a unicast TCP probe.

    Covers the limited broadcast address, the unspecified address and
    multicast groups. Hostnames and ordinary unicast addresses pass.
    """
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        return True
    if addr.is_unspecified or addr.is_multicast:
        return False
    return not (addr.version == 4 and addr == ipaddress.IPv4Address("255.255.255.255"))


def wait_for_host(
    host: str,
    port: int,
    timeout: float = 600.0,
    poll_interval: float = 1.0,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> bool:
    """
    Wait for a host to answer on host:port, polling until the deadline.

    Args:
        host: Hostname or IP address
        port: TCP port to probe
        timeout: Maximum seconds to wait (default: 600)
        poll_interval: Seconds between attempts (default: 1)
        connect_timeout: Per-attempt connect timeout in seconds (default: 1)

    Returns:
        True if the host answered within the timeout window, False otherwise
    """
    deadline = time.monotonic() + timeout
    attempt = 0
    while time.monotonic() < deadline:
        attempt += 1
        remaining = deadline - time.monotonic()
        if probe(host, port, timeout=min(connect_timeout, max(remaining, 0.01))):
            logger.info("%s:%d reachable (attempt %d)", host, port, attempt)
            return True
        remaining = deadline - time.monotonic()
        logger.debug(
            "%s:%d not yet reachable, %.0f s remaining (attempt %d)",
            host,
            port,
            max(0, remaining),
            attempt,
        )
        if remaining > poll_interval:
            time.sleep(poll_interval)
        else:
            time.sleep(max(0, remaining))
    logger.warning("%s:%d did not become reachable within %.0f s", host, port, timeout)
    return False
