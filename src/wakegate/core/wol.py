"""Wake-on-LAN functionality."""

import logging
import re

from wakeonlan import create_magic_packet as _build_packet
from wakeonlan import send_magic_packet

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST_ADDRESS = "255.255.255.255:9"
MAGIC_PACKET_SIZE = 102

_MAC_RE = re.compile(r"^([0-9A-Fa-f]{2}[:\-]){5}[0-9A-Fa-f]{2}$")


class InvalidMACError(ValueError):
    """Raised when a MAC address does not decode into exactly 6 octets."""


class NetworkError(OSError):
    """Raised when the magic packet cannot be sent."""


def parse_mac(mac_address: str) -> bytes:
    """
    Decode a colon- or hyphen-delimited MAC address into its 6 raw bytes.

    Args:
        mac_address: MAC address (e.g., "CC:C4:45:32:7A:51" or "cc-c4-45-32-7a-51")

    Returns:
        The 6 address octets

    Raises:
        InvalidMACError: If the string is not six hex octets
    """
    if not isinstance(mac_address, str) or not _MAC_RE.match(mac_address.strip()):
        raise InvalidMACError(f"invalid MAC address '{mac_address}'")
    return bytes.fromhex(re.sub(r"[:\-]", "", mac_address.strip()))


def create_magic_packet(mac_address: str) -> bytes:
    """Build the 102-byte magic packet: 6 x 0xFF, then the MAC 16 times."""
    return _build_packet(parse_mac(mac_address).hex())


def split_host_port(address: str) -> tuple[str, int]:
    """
    Split a "host:port" string. IPv6 hosts must be bracketed ("[ff02::1]:9").

    Raises:
        ValueError: If the address is not a valid host:port pair
    """
    if not isinstance(address, str):
        raise ValueError(f"invalid address {address!r}")
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ValueError(f"invalid address '{address}': expected [host]:port")
        port_str = rest[1:]
    else:
        host, sep, port_str = address.rpartition(":")
        if not sep:
            raise ValueError(f"invalid address '{address}': missing port")
        if ":" in host:
            raise ValueError(f"invalid address '{address}': IPv6 hosts must be bracketed")

    if not host:
        raise ValueError(f"invalid address '{address}': missing host")
    if not port_str.isdigit() or not 1 <= int(port_str) <= 65535:
        raise ValueError(f"invalid address '{address}': bad port '{port_str}'")
    return host, int(port_str)


def wake(mac_address: str, broadcast_address: str = DEFAULT_BROADCAST_ADDRESS) -> bool:
    """
    Send a Wake-on-LAN magic packet to wake a remote machine.

    The packet goes out once over a fresh UDP socket with SO_BROADCAST set;
    nothing is awaited from the target.

    Args:
        mac_address: MAC address of the target machine (e.g., "AA:BB:CC:DD:EE:FF")
        broadcast_address: UDP destination as host:port (default: 255.255.255.255:9)

    Returns:
        True if packet was sent successfully

    Raises:
        InvalidMACError: If the MAC address is malformed
        NetworkError: If the address is unusable or the socket write fails
    """
    mac_hex = parse_mac(mac_address).hex()
    try:
        host, port = split_host_port(broadcast_address)
    except ValueError as exc:
        raise NetworkError(str(exc)) from exc

    logger.info("Sending WOL magic packet to %s via %s:%d", mac_address, host, port)
    try:
        send_magic_packet(mac_hex, ip_address=host, port=port)
    except OSError as exc:
        raise NetworkError(f"failed to send magic packet to {broadcast_address}: {exc}") from exc
    logger.debug("WOL packet sent successfully")
    return True
