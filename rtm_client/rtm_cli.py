#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import json
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import aioconsole
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rtm_client.config import Settings, load_settings
from rtm_client.lookups import get_channel_info, get_user_info
from rtm_client.pending import PendingRequests
from rtm_client.ws_client import RealTimeSession
from rtm_shared.envelope import InboundMessage, MessageAck, OutboundMessage
from rtm_shared.errors import RTMError, TransportError
from rtm_shared.log import configure_root_logging, get_logger
from rtm_shared.message_types import ACK_HANDLER_KEY, CLOSING_EVENTS, EventType

app = typer.Typer(help="Real-time messaging client")
console = Console()
logger = get_logger(__name__)

TokenOption = typer.Option(..., "--token", envvar="RTM_TOKEN", help="API token (or set RTM_TOKEN)")
ConfigOption = typer.Option(None, "--config", help="YAML settings file")


def _settings(config: Optional[Path]) -> Settings:
    try:
        return load_settings(config)
    except (OSError, ValueError) as e:
        console.print(f"[red]Bad config[/]: {escape(str(e))}")
        raise typer.Exit(code=2)


def _print_inbound(message: InboundMessage) -> None:
    # everything that came off the wire goes through escape()
    if isinstance(message, MessageAck):
        if message.ok:
            console.print(f"[dim]ack {message.reply_to}[/] ts={escape(str(message.ts))} {escape(message.text or '')}")
        else:
            err = message.error
            detail = escape(f"{err.code} {err.msg}") if err else "no details"
            console.print(f"[red]nack {message.reply_to}[/]: {detail}")
        return

    kind = escape(message.type)
    if message.type == EventType.MESSAGE.value:
        console.print(f"[bold cyan]{escape(str(message.channel))}[/] "
                      f"<{escape(str(message.user))}> {escape(str(message.text))}")
    elif message.type == EventType.ERROR.value:
        console.print(f"[red]ERROR[/]: {escape(json.dumps(message.data.get('error')))}")
    elif message.type == EventType.HELLO.value:
        console.print("[bold green]Connected[/]")
    elif message.type in CLOSING_EVENTS:
        console.print("[yellow]Server is closing the connection[/]")
    elif EventType.is_valid(message.type):
        console.print(f"[dim]recv {kind}[/]")
    else:
        console.print(f"[dim]recv {kind} (unrecognised)[/]")


async def _print_handler(message: InboundMessage) -> None:
    _print_inbound(message)


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        pass
    except RTMError as e:
        console.print(f"[red]{type(e).__name__}[/]: {escape(str(e))}")
        raise typer.Exit(code=1)


@app.command()
def listen(token: str = TokenOption, config: Optional[Path] = ConfigOption):
    """Connect and print every inbound frame until interrupted."""

    async def main_loop() -> None:
        async with RealTimeSession(token, _settings(config)) as session:
            await session.recv_loop(_print_handler)

    _run(main_loop())


@app.command()
def send(
    channel: str = typer.Argument(..., help="Channel ID"),
    text: str = typer.Argument(..., help="Message text"),
    token: str = TokenOption,
    config: Optional[Path] = ConfigOption,
):
    """Send one message and wait for its acknowledgement."""

    async def main_loop() -> None:
        async with RealTimeSession(token, _settings(config)) as session:
            pending = PendingRequests(session)
            session.on(ACK_HANDLER_KEY, pending.handle)
            reader = asyncio.create_task(session.recv_loop())

            message = OutboundMessage(type=EventType.MESSAGE.value, channel=channel, text=text)
            future = await pending.send(message)
            console.print(f"Sent request {message.id}")
            done, _ = await asyncio.wait({future, reader}, return_when=asyncio.FIRST_COMPLETED)
            if future not in done:
                # reader ended first: surface its TransportError
                reader.result()
                raise TransportError("receive", "connection ended before the ack arrived")

            ack = future.result()
            _print_inbound(ack)
            reader.cancel()
            ack.raise_for_error()

    _run(main_loop())


@app.command()
def chat(
    channel: str = typer.Option(..., help="Channel ID to post into"),
    token: str = TokenOption,
    config: Optional[Path] = ConfigOption,
):
    """Interactive loop: each line typed is sent to the channel. /quit to exit."""
    console.print(f"[bold green]RTM chat[/] on {escape(channel)}. /quit to exit")

    async def main_loop() -> None:
        async with RealTimeSession(token, _settings(config)) as session:
            pending = PendingRequests(session)
            session.on(ACK_HANDLER_KEY, pending.handle)

            async def reader() -> None:
                try:
                    await session.recv_loop(_print_handler)
                except TransportError as e:
                    pending.fail_all(e)
                    console.print(f"[red]Connection lost[/]: {escape(str(e))}")

            recv_task = asyncio.create_task(reader())
            try:
                while not recv_task.done():
                    line = (await aioconsole.ainput(": ")).strip()
                    if not line:
                        continue
                    if line in {"/quit", "/exit"}:
                        break
                    message = OutboundMessage(type=EventType.MESSAGE.value, channel=channel, text=line)
                    future = await pending.send(message)
                    future.add_done_callback(_report_ack)
            finally:
                recv_task.cancel()

    _run(main_loop())


def _report_ack(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    if future.exception() is not None:
        logger.warning("Request abandoned: %s", future.exception())
        return
    ack = future.result()
    if not ack.ok:
        _print_inbound(ack)


@app.command()
def channel(
    channel_id: str = typer.Argument(..., help="Channel ID"),
    token: str = TokenOption,
    config: Optional[Path] = ConfigOption,
):
    """Show channel metadata."""
    try:
        info = get_channel_info(token, channel_id, _settings(config))
    except (RTMError, ValueError) as e:
        console.print(f"[red]{type(e).__name__}[/]: {escape(str(e))}")
        raise typer.Exit(code=1)

    table = Table(title=escape(f"#{info.name}"))
    table.add_column("Field")
    table.add_column("Value")
    for key, value in asdict(info).items():
        if key in ("topic", "purpose"):
            value = value["value"]
        elif key == "members":
            value = ", ".join(value)
        table.add_row(key, escape(str(value)))
    console.print(table)


@app.command()
def user(
    user_id: str = typer.Argument(..., help="User ID"),
    token: str = TokenOption,
    config: Optional[Path] = ConfigOption,
):
    """Show user profile."""
    try:
        info = get_user_info(token, user_id, _settings(config))
    except RTMError as e:
        console.print(f"[red]{type(e).__name__}[/]: {escape(str(e))}")
        raise typer.Exit(code=1)

    table = Table(title=escape(f"@{info.name}"))
    table.add_column("Field")
    table.add_column("Value")
    for key, value in asdict(info).items():
        if key == "profile":
            for pkey, pvalue in value.items():
                if pvalue:
                    table.add_row(f"profile.{pkey}", escape(str(pvalue)))
            continue
        table.add_row(key, escape(str(value)))
    console.print(table)


@app.callback()
def main_callback(log_level: str = typer.Option("WARNING", "--log-level", envvar="RTM_LOG_LEVEL")):
    configure_root_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
