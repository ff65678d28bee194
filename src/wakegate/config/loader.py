"""Configuration parsing: inline directive lines and YAML documents."""

import math
import shlex
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Sequence
from urllib.parse import urlparse

import yaml

from wakegate.config.duration import parse_duration
from wakegate.core.gate import DEFAULT_TIMEOUT, WakeConfig
from wakegate.core.wol import DEFAULT_BROADCAST_ADDRESS

DIRECTIVE = "wake_on_lan"

# Structured document keys. Both the documented CamelCase names and their
# snake_case spellings are accepted.
_FIELD_ALIASES = {
    "MAC": "mac",
    "mac": "mac",
    "BroadcastAddress": "broadcast_address",
    "broadcast_address": "broadcast_address",
    "Timeout": "timeout",
    "timeout": "timeout",
    "ProbeAddress": "probe_address",
    "probe_address": "probe_address",
    "PollInterval": "poll_interval",
    "poll_interval": "poll_interval",
}


class ConfigError(Exception):
    """Raised for invalid or missing configuration."""


class ConfigParseError(ConfigError):
    """Raised when a directive line or config document cannot be parsed."""


def parse_args(args: Sequence[str]) -> WakeConfig:
    """
    Build a WakeConfig from directive arguments: ``<MAC> [broadcast] [timeout]``.

    Args:
        args: Argument tokens, without the directive name

    Returns:
        A new WakeConfig with defaults applied for omitted arguments

    Raises:
        ConfigParseError: For a missing MAC, too many arguments or a bad duration
    """
    if not args:
        raise ConfigParseError(f"{DIRECTIVE}: missing MAC address")
    if len(args) > 3:
        raise ConfigParseError(
            f"{DIRECTIVE}: too many arguments ({len(args)}); "
            "expected <MAC> [broadcast_address] [timeout]"
        )

    broadcast = args[1] if len(args) > 1 else DEFAULT_BROADCAST_ADDRESS
    timeout = DEFAULT_TIMEOUT
    if len(args) > 2:
        try:
            timeout = parse_duration(args[2])
        except ValueError as exc:
            raise ConfigParseError(f"{DIRECTIVE}: {exc}") from exc

    return WakeConfig(mac=args[0], broadcast_address=broadcast, timeout=timeout)


def parse_directive(line: str) -> WakeConfig:
    """
    Parse a full directive line, e.g. ``wake_on_lan CC:C4:45:32:7A:51 192.168.1.255:9 5m``.

    Raises:
        ConfigParseError: If the line is malformed or names another directive
    """
    try:
        tokens = shlex.split(line)
    except ValueError as exc:
        raise ConfigParseError(f"cannot tokenize directive: {exc}") from exc
    if not tokens:
        raise ConfigParseError("empty directive")
    if tokens[0] != DIRECTIVE:
        raise ConfigParseError(f"unknown directive '{tokens[0]}' (expected '{DIRECTIVE}')")
    return parse_args(tokens[1:])


def _to_timedelta(key: str, value: Any) -> timedelta:
    # bool is an int subclass; "Timeout: yes" is a mistake, not one second.
    if isinstance(value, bool):
        raise ConfigParseError(f"{key}: expected a duration, got {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ConfigParseError(f"{key}: expected a finite duration, got {value!r}")
        try:
            return timedelta(seconds=value)
        except OverflowError as exc:
            raise ConfigParseError(f"{key}: duration {value!r} out of range") from exc
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise ConfigParseError(f"{key}: {exc}") from exc


def config_from_dict(raw: dict[str, Any]) -> WakeConfig:
    """
    Build a WakeConfig from a structured record.

    Recognized fields: ``MAC``, ``BroadcastAddress``, ``Timeout``,
    ``ProbeAddress``, ``PollInterval`` (or their snake_case forms).
    Durations may be strings ("5m") or numbers of seconds. An omitted
    ``Timeout`` is left unset for provisioning to fill in.

    Raises:
        ConfigParseError: For unknown keys, a missing MAC or a bad duration
    """
    if not isinstance(raw, dict):
        raise ConfigParseError(f"{DIRECTIVE}: expected a mapping, got {type(raw).__name__}")

    fields: dict[str, Any] = {}
    for key, value in raw.items():
        name = _FIELD_ALIASES.get(key)
        if name is None:
            raise ConfigParseError(f"{DIRECTIVE}: unknown field '{key}'")
        if name in fields:
            raise ConfigParseError(f"{DIRECTIVE}: field '{key}' given more than once")
        fields[name] = value

    mac = fields.get("mac")
    if not mac or not isinstance(mac, str):
        raise ConfigParseError(f"{DIRECTIVE}: 'MAC' is required")

    config = WakeConfig(mac=mac)
    if fields.get("broadcast_address") is not None:
        config.broadcast_address = str(fields["broadcast_address"])
    if fields.get("timeout") is not None:
        config.timeout = _to_timedelta("Timeout", fields["timeout"])
    if fields.get("probe_address") is not None:
        config.probe_address = str(fields["probe_address"])
    if fields.get("poll_interval") is not None:
        config.poll_interval = _to_timedelta("PollInterval", fields["poll_interval"])
    return config


def load_config(path: Path) -> Optional[dict[str, Any]]:
    """
    Load configuration from a YAML (or JSON) file.

    Args:
        path: Path to the config file

    Returns:
        Parsed configuration dictionary, or None if file is empty

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    with open(path) as f:
        result: Optional[dict[str, Any]] = yaml.safe_load(f)
        return result


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate a loaded configuration dictionary.

    Returns:
        List of validation error messages (empty list = valid)
    """
    errors: list[str] = []

    if not isinstance(config, dict):
        return ["Config root must be a YAML mapping"]

    section = config.get(DIRECTIVE)
    if section is None:
        errors.append(f"'{DIRECTIVE}' key is required")
    elif not isinstance(section, (str, dict)):
        errors.append(f"'{DIRECTIVE}' must be an argument string or a mapping")
    else:
        try:
            gate_config_from_config(config)
        except ConfigError as exc:
            errors.append(str(exc))

    upstream = config.get("upstream")
    if upstream is not None:
        parsed = urlparse(str(upstream))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"invalid upstream '{upstream}' (expected an http(s) URL)")

    return errors


def gate_config_from_config(config: dict[str, Any]) -> WakeConfig:
    """
    Construct the WakeConfig described by the ``wake_on_lan`` section.

    A string section uses the inline argument syntax; a mapping uses the
    structured field names.

    Raises:
        ConfigError: If the section is missing or malformed
    """
    section = config.get(DIRECTIVE)
    if section is None:
        raise ConfigError(f"'{DIRECTIVE}' key is required")
    if isinstance(section, str):
        try:
            return parse_args(shlex.split(section))
        except ValueError as exc:
            raise ConfigParseError(f"{DIRECTIVE}: {exc}") from exc
    return config_from_dict(section)
