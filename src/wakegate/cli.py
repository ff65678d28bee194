"""Command-line interface for wakegate."""

import logging
import sys
from pathlib import Path

import click

from wakegate import __version__
from wakegate.core.gate import WakeConfig

DEFAULT_CONFIG = Path.home() / ".config" / "wakegate" / "config.yaml"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_cfg(config: str) -> tuple[dict, WakeConfig]:
    from wakegate.config.loader import gate_config_from_config, load_config, validate_config
    from wakegate.core.gate import ProvisionError, provision
    from wakegate.core.wol import InvalidMACError

    path = Path(config)
    if not path.exists():
        click.echo(f"Config file not found: {path}", err=True)
        sys.exit(1)
    raw = load_config(path)
    if not raw:
        click.echo("Config file is empty.", err=True)
        sys.exit(1)
    errors = validate_config(raw)
    if errors:
        click.echo("Config validation errors:", err=True)
        for e in errors:
            click.echo(f"  • {e}", err=True)
        sys.exit(1)
    try:
        wake_config = provision(gate_config_from_config(raw))
    except (InvalidMACError, ProvisionError) as exc:
        click.echo(f"Invalid configuration: {exc}", err=True)
        sys.exit(1)
    return raw, wake_config


def _describe(cfg: WakeConfig) -> list[str]:
    from wakegate.config.duration import format_duration

    timeout = format_duration(cfg.timeout) if cfg.timeout is not None else "(default)"
    return [
        f"  MAC:               {cfg.mac}",
        f"  Broadcast address: {cfg.broadcast_address}",
        f"  Timeout:           {timeout}",
        f"  Probe address:     {cfg.probe_address or '(broadcast address)'}",
        f"  Poll interval:     {format_duration(cfg.poll_interval)}",
    ]


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__, prog_name="wakegate")
@click.option(
    "--config",
    "-c",
    default=str(DEFAULT_CONFIG),
    envvar="WAKEGATE_CONFIG",
    show_default=True,
    help="Path to wakegate config.yaml",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config: str, verbose: bool) -> None:
    """wakegate — Wake-on-LAN gate for HTTP services."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ── check command ─────────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Validate the config file and print the resulting settings."""
    raw, cfg = _load_cfg(ctx.obj["config"])
    click.echo(f"Config {ctx.obj['config']} is valid")
    for line in _describe(cfg):
        click.echo(line)
    if raw.get("upstream"):
        click.echo(f"  Upstream:          {raw['upstream']}")


# ── parse command ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("line")
def parse(line: str) -> None:
    """Parse an inline directive, e.g. "wake_on_lan CC:C4:45:32:7A:51 192.168.1.255:9 5m"."""
    from wakegate.config.loader import ConfigParseError, parse_directive

    try:
        cfg = parse_directive(line)
    except ConfigParseError as exc:
        click.echo(f"✗  {exc}", err=True)
        sys.exit(1)
    for out in _describe(cfg):
        click.echo(out)


# ── wake command ──────────────────────────────────────────────────────────────


@main.command()
@click.option("--wait/--no-wait", default=False, help="Wait for the host to become reachable")
@click.pass_context
def wake(ctx: click.Context, wait: bool) -> None:
    """Send a Wake-on-LAN packet for the configured host."""
    from wakegate.core.gate import WakeOnLanGate
    from wakegate.core.wol import wake as do_wake

    _, cfg = _load_cfg(ctx.obj["config"])

    if not wait:
        try:
            do_wake(cfg.mac, cfg.broadcast_address)
        except OSError as exc:
            click.echo(f"✗  WOL send failed: {exc}", err=True)
            sys.exit(2)
        click.echo(f"WOL packet sent to {cfg.mac} via {cfg.broadcast_address}")
        return

    gate = WakeOnLanGate(cfg)
    if not gate.waits:
        click.echo("Waiting is disabled (zero timeout or no probe target); sending only.")
    result = gate.wake()
    if not result.sent:
        click.echo(f"✗  WOL send to {cfg.mac} failed", err=True)
        sys.exit(2)
    click.echo(f"WOL packet sent to {cfg.mac} via {cfg.broadcast_address}")
    if result.reachable is True:
        click.echo(f"✓  {cfg.probe_target} reachable after {result.elapsed_seconds:.1f}s")
    elif result.reachable is False:
        click.echo(f"✗  {cfg.probe_target} not reachable after {result.elapsed_seconds:.1f}s")


# ── serve command ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind host")
@click.option("--port", default=8000, show_default=True, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Start the Wake-on-LAN reverse proxy."""
    import uvicorn

    from wakegate.api.proxy import create_app
    from wakegate.config.loader import ConfigError
    from wakegate.core.gate import ProvisionError
    from wakegate.core.wol import InvalidMACError

    try:
        app = create_app(config_path=ctx.obj["config"])
    except (ConfigError, InvalidMACError, ProvisionError) as exc:
        click.echo(f"Cannot start proxy: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Starting wakegate proxy at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
