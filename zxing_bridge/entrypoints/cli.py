"""zxing-bridge CLI entrypoint.

Command-line interface for decoding barcodes through the decoder server.
"""

from __future__ import annotations

import functools
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from zxing_bridge.core.errors import BridgeCliError, file_not_found_error, spawn_failed_error
from zxing_bridge.domain.exceptions import UndecodableError, ZxingBridgeError
from zxing_bridge.version import __version__

if TYPE_CHECKING:
    from zxing_bridge.domain.config import BridgeConfig
    from zxing_bridge.ports.config import ConfigProvider


def handle_cli_errors(command_name: str):
    """Decorator to handle common CLI errors.

    Domain errors are converted to BridgeCliError with their hints; anything
    unexpected is reported with the command name, with a traceback in
    verbose mode.

    Args:
        command_name: Name of the command for error messages.

    Returns:
        Decorated function with error handling.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (BridgeCliError, click.exceptions.Exit, click.Abort):
                raise
            except UndecodableError as e:
                raise BridgeCliError(e.message, hint=f"No barcode found in {e.path}") from e
            except ZxingBridgeError as e:
                raise BridgeCliError(e.message, hint=e.hint) from e
            except Exception as e:
                ctx = click.get_current_context()
                if ctx.obj.get("verbose", False):
                    import traceback

                    traceback.print_exc()
                raise BridgeCliError(
                    f"Unexpected error in {command_name}: {e}",
                    hint="Run with --verbose for more details",
                ) from e

        return wrapper

    return decorator


def _load_config(ctx: click.Context) -> BridgeConfig:
    """Load configuration for the current invocation.

    Raises:
        BridgeCliError: If an environment override is invalid.
    """
    from zxing_bridge.adapters.config.toml_config_provider import TomlConfigProvider

    provider: ConfigProvider = TomlConfigProvider()

    try:
        return provider.load(ctx.obj.get("config_path"))
    except ValueError as e:
        raise BridgeCliError(str(e), hint="Fix or unset ZXING_PORT") from e


@click.group()
@click.version_option(version=__version__, prog_name="zxing-bridge")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-essential output.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file applied on top of the global config.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, config_path: Path | None) -> None:
    """zxing-bridge - decode barcodes through a local decoder server.

    The decoder server is started on demand and stopped when the command ends.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command()
@click.argument("files", nargs=-1, required=True)
@click.option("--all", "-a", "decode_all", is_flag=True, help="Report every barcode in each image.")
@click.option("--qr", is_flag=True, help="Only look for QR codes.")
@click.option("--strict", is_flag=True, help="Fail on the first image that cannot be decoded.")
@click.option("--retry-once", is_flag=True, help="Restart a dead decoder server once.")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON.")
@click.pass_context
@handle_cli_errors("decode")
def decode(
    ctx: click.Context,
    files: tuple[str, ...],
    decode_all: bool,
    qr: bool,
    strict: bool,
    retry_once: bool,
    json_output: bool,
) -> None:
    """Decode barcodes in one or more image FILES."""
    from zxing_bridge.core.session import DecoderSession

    if qr and decode_all:
        raise BridgeCliError("--qr and --all cannot be combined")

    for file in files:
        if not Path(file).is_file():
            file_not_found_error(file)

    config = _load_config(ctx)
    results: dict[str, str | list[str] | None] = {}

    with DecoderSession(config=config) as session:
        if qr:
            operation = session.qrcode_decode
        elif decode_all:
            operation = session.decode_all_strict if strict else session.decode_all
        else:
            operation = session.decode_strict if strict else session.decode

        try:
            for file in files:
                results[file] = operation(file, retry_once=retry_once)
                # qrcode_decode has no strict variant
                if strict and results[file] is None:
                    raise UndecodableError(file)
        except (FileNotFoundError, PermissionError) as e:
            spawn_failed_error(session.supervisor.command, e)

    if json_output:
        click.echo(json.dumps(results, indent=2))
    else:
        for file, value in results.items():
            prefix = f"{file}: " if len(files) > 1 else ""
            if value is None:
                if not ctx.obj.get("quiet", False):
                    click.echo(f"{prefix}(not decodable)", err=True)
            elif isinstance(value, list):
                for text in value:
                    click.echo(f"{prefix}{text}")
            else:
                click.echo(f"{prefix}{value}")

    if any(value is None for value in results.values()):
        ctx.exit(1)


# Decoder server commands
@cli.group()
def server() -> None:
    """Run or inspect the decoder server.

    Decode commands start their own server; use these to run a shared one
    (pin it with ZXING_PORT) or to check on it.
    """
    pass


@server.command(name="run")
@click.argument("port", type=click.IntRange(1, 65535))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="INFO",
    help="Server log level.",
)
def server_run(port: int, log_level: str) -> None:
    """Run the reference decoder server in the foreground on PORT."""
    from zxing_bridge.adapters.rpc.server import main as server_main

    server_main([str(port), "--log-level", log_level])


@server.command(name="status")
@click.option("--port", "-p", type=click.IntRange(1, 65535), default=None, help="Port to probe.")
@click.pass_context
@handle_cli_errors("server status")
def server_status(ctx: click.Context, port: int | None) -> None:
    """Check whether a decoder server answers on PORT (default: ZXING_PORT)."""
    from zxing_bridge.adapters.rpc.client import RemoteDecoderClient
    from zxing_bridge.adapters.rpc.network import is_responsive
    from zxing_bridge.domain.value_objects import Endpoint

    if port is None:
        port = _load_config(ctx).server.port
    if port is None:
        raise BridgeCliError("No port given", hint="Pass --port or set ZXING_PORT")

    endpoint = Endpoint(port=port)
    if not is_responsive(endpoint, timeout=2.0):
        click.echo(f"✗ No decoder server on {endpoint}")
        ctx.exit(1)

    status = RemoteDecoderClient(endpoint, timeout=5.0).health()
    click.echo(f"✓ Decoder server is running on {endpoint} (PID {status.get('pid')})")
    click.echo("\nDetails:")
    click.echo(f"  Backend: {status.get('backend')}")
    click.echo(f"  Requests served: {status.get('requests_served')}")
    click.echo(f"  Uptime: {status.get('uptime', 0):.0f}s")


# Configuration commands
@cli.group()
def config() -> None:
    """Inspect and create configuration files."""
    pass


@config.command(name="show")
@click.pass_context
@handle_cli_errors("config show")
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration (files + environment)."""
    from zxing_bridge.shared.config_io import config_to_data, get_global_config_path

    effective = _load_config(ctx)
    click.echo(f"Global config: {get_global_config_path()}")
    if ctx.obj.get("config_path"):
        click.echo(f"Local config: {ctx.obj['config_path']}")
    click.echo("\nEffective configuration:")
    for section, values in config_to_data(effective).items():
        click.echo(f"  [{section}]")
        for key, value in values.items():
            click.echo(f"    {key} = {value!r}")


@config.command(name="init")
@click.option("--global", "-g", "init_global", is_flag=True, help="Create the global config.")
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
@click.option(
    "--effective",
    is_flag=True,
    help="Write the effective configuration (files + environment) instead of the template.",
)
@click.pass_context
@handle_cli_errors("config init")
def config_init(ctx: click.Context, init_global: bool, force: bool, effective: bool) -> None:
    """Create a commented default config file.

    With --effective, the current settings are written instead, e.g. to
    persist a ZXING_PORT or server command that is set in the environment.
    """
    from zxing_bridge.adapters.config.toml_config_provider import LOCAL_CONFIG_NAME
    from zxing_bridge.shared.config_io import (
        create_default_config_file,
        get_global_config_path,
        save_config,
    )

    if init_global:
        path = get_global_config_path()
    else:
        path = ctx.obj.get("config_path") or Path.cwd() / LOCAL_CONFIG_NAME

    if path.exists() and not force:
        raise BridgeCliError(
            f"Config file already exists: {path}",
            hint="Use --force to overwrite it",
        )

    if effective:
        save_config(_load_config(ctx), path)
    else:
        create_default_config_file(path)
    click.echo(f"✓ Created {path}")


@config.command(name="path")
@click.option("--global", "-g", "show_global", is_flag=True, help="Show only the global path.")
@click.pass_context
def config_path(ctx: click.Context, show_global: bool) -> None:
    """Print config file path(s) for use in scripts."""
    from zxing_bridge.adapters.config.toml_config_provider import LOCAL_CONFIG_NAME
    from zxing_bridge.shared.config_io import get_global_config_path

    global_path = get_global_config_path()
    if show_global:
        click.echo(global_path)
        return

    local_path = ctx.obj.get("config_path") or Path.cwd() / LOCAL_CONFIG_NAME
    click.echo(f"global:{global_path}")
    click.echo(f"local:{local_path}")


def main() -> int:
    """Main entrypoint for the CLI."""
    try:
        cli(obj={})
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
