"""Command line interface for the indicator monitor using Typer and Rich."""

import asyncio
import json
import re
import sys
from enum import Enum
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from indicator_system import __version__
from indicator_system.agents.sources.parsers import ChannelMessageParser, WebPageParser
from indicator_system.config.logging import get_logger
from indicator_system.config.settings import settings
from indicator_system.data_management.schemas import INDICATORS

app = typer.Typer(
    help="Indicator Monitor CLI - dual-source extraction with cross-validation",
    add_completion=False,
)

console = Console()

logger = get_logger("cli")

STATUS_STYLES = {
    "VERIFIED": "green",
    "WARNING": "yellow",
    "CRITICAL": "red",
    "SINGLE_SOURCE": "yellow",
    "FAILED": "red",
}


API_HASH_PATTERN = re.compile(r"[a-f0-9]{32}", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"\+?\d{10,15}")


class ExtractionSource(str, Enum):
    webhook = "webhook"
    telegram = "telegram"
    dual = "dual"


class TextFormat(str, Enum):
    page = "page"
    channel = "channel"


@app.command()
def status() -> None:
    """
    Display system configuration.

    Shows source, retry, cache, API and logging settings.
    """
    logger.info("Displaying system status")

    table = Table(title="Indicator Monitor Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=20)
    table.add_column("Status", style="green", width=15)
    table.add_column("Details", style="yellow")

    python_version = f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    table.add_row("Environment", "✓ Ready", python_version)

    table.add_row(
        "Web page source",
        "✓ Configured",
        f"{settings.page_url} (timeout {settings.playwright_timeout_ms} ms)",
    )

    if settings.telegram_transport == "mtproto":
        telegram_ready = bool(
            settings.telegram_api_id and settings.telegram_api_hash and settings.telegram_session
        )
        telegram_details = f"MTProto @{settings.telegram_channel}"
    else:
        telegram_ready = bool(settings.telegram_bot_token and settings.telegram_chat_id)
        telegram_details = f"Bot API chat {settings.telegram_chat_id or '-'}"
    table.add_row(
        "Telegram source",
        "✓ Configured" if telegram_ready else "⚠ Not Configured",
        f"{telegram_details}, last {settings.telegram_message_limit} messages",
    )

    table.add_row(
        "Retries",
        "✓ Active",
        f"webhook {settings.max_retries}, telegram {settings.telegram_max_retries}, "
        f"delay {settings.retry_delay_ms} ms",
    )
    table.add_row("Cache", "✓ Active", f"TTL {settings.cache_ttl_ms} ms")

    api_status = "✓ Configured" if settings.api_key else "⚠ No API key"
    table.add_row(
        "HTTP API",
        api_status,
        f"{settings.host}:{settings.port}, {settings.rate_limit_max_requests} req / "
        f"{settings.rate_limit_window_ms} ms",
    )

    log_details = f"Level: {settings.log_level}, Format: {settings.log_format}"
    table.add_row("Logging", "✓ Active", log_details)

    console.print(table)


def _reading_table(title: str, data: dict[str, Any]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Indicator", style="cyan")
    table.add_column("Value", justify="right")
    for name in INDICATORS:
        value = data.get(name)
        table.add_row(name, f"{value:,}" if value is not None else "-")
    table.add_row("source", str(data.get("source")))
    table.add_row("timestamp", str(data.get("timestamp")))
    return table


async def _run_extraction(source: ExtractionSource, refresh: bool) -> dict[str, Any]:
    from indicator_system.pipeline import IndicatorPipeline

    async with IndicatorPipeline.from_settings(settings) as pipeline:
        if source == ExtractionSource.webhook:
            return await pipeline.extract_webhook()
        if source == ExtractionSource.telegram:
            return await pipeline.extract_telegram()
        return await pipeline.extract_dual(use_cache=not refresh)


@app.command()
def extract(
    source: ExtractionSource = typer.Option(
        ExtractionSource.dual, "--source", "-s", help="Source to extract from"
    ),
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the result cache"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON body"),
) -> None:
    """
    Run one extraction and print the result.

    Exits with status 1 when no usable reading was produced.
    """
    logger.info("Extract command invoked", source=source.value)

    with console.status(f"[bold cyan]Extracting from {source.value}...[/bold cyan]"):
        body = asyncio.run(_run_extraction(source, refresh))

    if as_json:
        console.print_json(json.dumps(body))
    elif body.get("data"):
        console.print(_reading_table(f"Indicators ({source.value})", body["data"]))

    validation = body.get("validation")
    if validation:
        style = STATUS_STYLES.get(validation["status"], "white")
        console.print(Panel(
            validation["recommendation"],
            title=f"Validation: {validation['status']}",
            border_style=style,
        ))

    if not body["success"]:
        console.print(f"\n[red]✗[/red] Extraction failed: {body.get('error')}")
        if body.get("fallback_data") and not as_json:
            console.print(_reading_table("Fallback reading", body["fallback_data"]))
        raise typer.Exit(1)


@app.command("parse-text")
def parse_text(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text file to parse"),
    text_format: TextFormat = typer.Option(
        TextFormat.page, "--format", "-f", help="page body text or channel post"
    ),
) -> None:
    """
    Parse saved page text or a channel post without contacting any source.
    """
    raw_text = file.read_text(encoding="utf-8")

    if text_format == TextFormat.page:
        parser = WebPageParser()
        reading = parser.parse(raw_text)
        if reading is None:
            fields = parser.extract_fields(raw_text)
            missing = ", ".join(name for name, value in fields.items() if value is None)
            console.print(f"[red]✗[/red] Incomplete data, missing: {missing}")
            raise typer.Exit(1)
    else:
        parser = ChannelMessageParser()
        reading = parser.parse(raw_text)
        if reading is None:
            console.print("[red]✗[/red] No positive Total found in message")
            raise typer.Exit(1)
        breakdown = parser.liquidity_breakdown(raw_text)
        console.print(f"[dim]Liquidity breakdown: {breakdown}[/dim]")

    console.print(_reading_table(f"Parsed {text_format.value} text", reading.to_dict()))


@app.command("telegram-login")
def telegram_login(
    api_id: int = typer.Option(None, "--api-id", help="Defaults to TELEGRAM_API_ID"),
    api_hash: str = typer.Option(None, "--api-hash", help="Defaults to TELEGRAM_API_HASH"),
    phone: str = typer.Option(..., prompt="Phone number (international format)"),
) -> None:
    """
    Log in to Telegram once and print the session for TELEGRAM_SESSION.

    Telegram sends a login code to the account; a 2FA password is asked for
    only when the account has one.
    """
    from indicator_system.agents.sources.mtproto_channel_source import create_session_string

    api_id = api_id or settings.telegram_api_id
    api_hash = api_hash or settings.telegram_api_hash

    if not api_id or api_id <= 0:
        console.print("[red]✗[/red] A positive API id is required (--api-id or TELEGRAM_API_ID)")
        raise typer.Exit(1)
    if not api_hash or not API_HASH_PATTERN.fullmatch(api_hash):
        console.print("[red]✗[/red] API hash must be 32 hexadecimal characters")
        raise typer.Exit(1)
    if not PHONE_PATTERN.fullmatch(phone):
        console.print("[red]✗[/red] Phone number must look like +33612345678")
        raise typer.Exit(1)

    logger.info("Telegram login started", api_id=api_id)
    session = asyncio.run(create_session_string(
        api_id,
        api_hash,
        phone,
        code_callback=lambda: typer.prompt("Login code"),
        password_callback=lambda: typer.prompt("2FA password", hide_input=True),
    ))

    console.print(Panel(
        session,
        title="TELEGRAM_SESSION",
        subtitle="Store it in .env and keep it secret",
        border_style="green",
    ))


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (defaults to HOST)"),
    port: int = typer.Option(None, help="Port (defaults to PORT)"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    from indicator_system.api.server import create_app

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting API server", host=bind_host, port=bind_port)

    uvicorn.run(create_app(), host=bind_host, port=bind_port, log_level=settings.log_level.lower())


@app.command()
def version() -> None:
    """Display version information."""
    console.print("[bold]Indicator Monitor[/bold]")
    console.print(f"Version: {__version__}")


if __name__ == "__main__":
    app()
