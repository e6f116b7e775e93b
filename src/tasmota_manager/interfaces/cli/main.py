import asyncio
from typing import Optional, Tuple

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...connection.http_connection import create_http_connection
from ...exceptions import TasmotaManagerError
from ...models.provider_data import ProviderData, ProviderDataStore
from ...provider.tasmota_provider import TasmotaProvider
from ...provider.worker import ProviderWorker
from ...utils.config import build_settings, load_config_file, provider_data_from_config
from ...utils.logging import LogConfig, get_logger

# Create Typer app
app = typer.Typer(help="Discover, poll and switch Tasmota devices")

# Create console for rich output
console = Console()

# Get logger for this module
logger = get_logger(__name__)

# Creates the HTTP connection of every provider built by the CLI
connection_factory = create_http_connection

# Errors of building a provider from options, config files and stored data
LOAD_ERRORS = (TasmotaManagerError, ValueError, OSError, yaml.YAMLError)


def run_async(coro):
    """Run an async function in a synchronous context"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Optional[str] = typer.Option(None, "--data-dir", help="Directory of stored provider data"),
    locale: str = typer.Option("en", "--locale", help="Language of device texts (en, de)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: bool = typer.Option(True, "--log-file/--no-log-file", help="Also log to logs/")
):
    """Tasmota device manager"""
    LogConfig.setup(app_name="tasmota_manager", debug=debug, log_to_file=log_file, log_to_console=debug)
    ctx.obj = {"store": ProviderDataStore(data_dir), "locale": locale}


def _load_provider(
    ctx: typer.Context,
    name: Optional[str],
    host: Optional[str],
    user: Optional[str],
    password: Optional[str],
    config: Optional[str]
) -> Tuple[TasmotaProvider, ProviderDataStore]:
    """Load stored provider data, or create it from the config file and options"""
    store: ProviderDataStore = ctx.obj["store"]
    file_config = load_config_file(config) if config else {}
    name = name or file_config.get("name") or "tasmota"

    provider_data = store.load(name)
    if provider_data is None:
        logger.debug(f"No stored data for '{name}', creating it")
        provider_data = provider_data_from_config(file_config, name=name)
    provider_data.settings = build_settings(
        host, user, password, base=provider_data.settings.model_dump(exclude_none=True)
    )
    return TasmotaProvider(provider_data, connection_factory, locale=ctx.obj["locale"]), store


def _fail(message: str):
    logger.error(message)
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(code=1)


def _print_commands(provider: TasmotaProvider):
    commands = provider.describe_commands()
    if not commands:
        console.print("[yellow]The device has no switchable relays[/yellow]")
        return

    table = Table(title="Available commands", show_header=True, header_style="bold")
    table.add_column("Channel", style="cyan", no_wrap=True)
    table.add_column("Title", style="green")
    table.add_column("Options")
    table.add_column("Payload", style="dim")
    for command in commands:
        table.add_row(
            str(command["rank"]),
            command["title"],
            ", ".join(option["label"] for option in command["options"]),
            command["options"][0]["value"].rsplit("%20", 1)[0]
        )
    console.print(table)


def _print_fields(provider_data: ProviderData):
    table = Table(title=f"Fields of '{provider_data.name}'", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Source key")
    table.add_column("Kind", style="magenta")
    for field in provider_data.fields:
        table.add_row(field.name, field.source_key, field.inferred_kind.value)
    console.print(table)


@app.command("test")
def test_connection(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Host name or IP address of the device"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Web interface user"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Web interface password"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Provider YAML configuration file")
):
    """
    Check that a device answers with its status.
    """
    try:
        file_config = load_config_file(config) if config else {}
        settings = build_settings(host, user, password, base=file_config.get("settings"))
        provider = TasmotaProvider(
            ProviderData(name="test", settings=settings), connection_factory, locale=ctx.obj["locale"]
        )
        message = run_async(provider.test_provider_connection(settings))
    except LOAD_ERRORS as e:
        _fail(str(e))
    console.print(f"[green]{message}[/green]")


@app.command("discover")
def discover(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Name of the provider"),
    host: Optional[str] = typer.Option(None, "--host", help="Host name or IP address of the device"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Web interface user"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Web interface password"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Provider YAML configuration file")
):
    """
    Discover the fields and relay commands of a device and store them.
    """
    try:
        provider, store = _load_provider(ctx, name, host, user, password, config)
        discovered = run_async(provider.do_on_first_run())
    except LOAD_ERRORS as e:
        _fail(str(e))

    provider_data = provider.provider_data
    if not discovered:
        console.print(
            f"[yellow]'{provider_data.name}' was already discovered, "
            f"run 'reset' first to discover it again[/yellow]"
        )
    elif not store.save(provider_data):
        _fail(f"Could not store provider data of '{provider_data.name}'")

    _print_fields(provider_data)
    _print_commands(provider)


@app.command("commands")
def list_commands(
    ctx: typer.Context,
    name: str = typer.Option("tasmota", "--name", "-n", help="Name of the provider")
):
    """
    List the stored commands of a device.
    """
    try:
        provider, _ = _load_provider(ctx, name, None, None, None, None)
    except LOAD_ERRORS as e:
        _fail(str(e))
    if not provider.is_initialized:
        _fail(f"'{name}' has not been discovered yet")
    _print_commands(provider)


@app.command("poll")
def poll(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Name of the provider"),
    host: Optional[str] = typer.Option(None, "--host", help="Host name or IP address of the device"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Web interface user"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Web interface password"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Provider YAML configuration file")
):
    """
    Read the current values of a device, discovering it first if needed.
    """
    try:
        provider, store = _load_provider(ctx, name, host, user, password, config)
    except LOAD_ERRORS as e:
        _fail(str(e))

    result = run_async(ProviderWorker(provider, store).run_cycle())
    if not result.success:
        _fail(result.error)

    table = Table(title=f"Values of '{provider.provider_data.name}'", show_header=True, header_style="bold")
    table.add_column("Variable", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    for key in sorted(result.variables):
        table.add_row(key, str(result.variables[key]))
    console.print(table)


@app.command("send")
def send(
    ctx: typer.Context,
    name: str = typer.Option("tasmota", "--name", "-n", help="Name of the provider"),
    channel: int = typer.Option(0, "--channel", help="Relay channel (0 for a single relay device)"),
    action: str = typer.Option(..., "--action", "-a", help="Action to perform (on, off, toggle)")
):
    """
    Switch a relay of a discovered device.
    """
    try:
        provider, _ = _load_provider(ctx, name, None, None, None, None)
        if not provider.is_initialized:
            _fail(f"'{name}' has not been discovered yet")
        send_command = provider.select(channel, action)
        run_async(provider.send_command(send_command))
    except LOAD_ERRORS as e:
        _fail(str(e))
    console.print(f"[green]Sent {send_command.send} to '{name}'[/green]")


@app.command("reset")
def reset(
    ctx: typer.Context,
    name: str = typer.Option("tasmota", "--name", "-n", help="Name of the provider")
):
    """
    Forget the discovered fields and commands of a device.
    """
    store: ProviderDataStore = ctx.obj["store"]
    if store.delete(name):
        console.print(f"[green]Removed stored data of '{name}'[/green]")
    else:
        console.print(f"[yellow]No stored data for '{name}'[/yellow]")


@app.command("run")
def run(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Name of the provider"),
    host: Optional[str] = typer.Option(None, "--host", help="Host name or IP address of the device"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Provider YAML configuration file")
):
    """
    Poll a device at its activity interval until interrupted.
    """
    try:
        provider, store = _load_provider(ctx, name, host, None, None, config)
    except LOAD_ERRORS as e:
        _fail(str(e))

    console.print(f"Polling '{provider.provider_data.name}', press Ctrl+C to stop")
    try:
        run_async(ProviderWorker(provider, store).run_forever())
    except KeyboardInterrupt:
        console.print("Stopped")


if __name__ == "__main__":
    app()
