#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import os
from typing import Optional

import typer
from aioconsole import ainput
from rich.console import Console
from rich.table import Table

from shared.log import configure_root_logging, get_logger
from showdown.config import load_config
from showdown.entities import ChatMessage, PrivateMessage, User
from showdown.errors import ShowdownError
from showdown.server_info import resolve_server
from showdown.session import Session

app = typer.Typer(help="Pokémon Showdown chat client")
console = Console()
logger = get_logger(__name__)


def _default_server() -> str:
    return os.getenv("SHOWDOWN_SERVER", "showdown")


@app.command()
def resolve(
    server: str = typer.Argument(_default_server(), help="Server name or host:port"),
    config: Optional[str] = typer.Option(None, help="YAML config file"),
):
    """Resolve a server name and print its address."""
    cfg = load_config(config)

    async def run() -> None:
        info = await resolve_server(server, crossdomain_url=cfg.crossdomain_url)
        table = Table(title=f"Server {server}")
        table.add_column("Host")
        table.add_column("Port")
        table.add_column("Server ID")
        table.add_row(info.host, str(info.port), info.server_id)
        console.print(table)

    try:
        asyncio.run(run())
    except ShowdownError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)


@app.command()
def chat(
    server: str = typer.Option(_default_server(), help="Server name or host:port"),
    room: Optional[str] = typer.Option(None, help="Room to join (default room if omitted)"),
    name: Optional[str] = typer.Option(os.getenv("SHOWDOWN_NAME"), help="User name to log in as"),
    password: Optional[str] = typer.Option(os.getenv("SHOWDOWN_PASSWORD"), help="Password"),
    config: Optional[str] = typer.Option(None, help="YAML config file"),
    debug: bool = typer.Option(False, help="Log every frame sent and received"),
):
    """Start an interactive chat loop."""
    cfg = load_config(config)
    if debug:
        configure_root_logging("DEBUG")
    target_room = room or cfg.default_room

    async def main_loop() -> None:
        nonlocal target_room
        session = Session(cfg, debug=debug)

        def show(message) -> None:
            if isinstance(message, ChatMessage):
                console.print(f"[bold yellow]{message.room}[/] [cyan]{message.user}[/]: {message.text}")
            elif isinstance(message, PrivateMessage):
                console.print(f"[bold cyan]PM[/] from {message.user}: {message.text}")

        session.on("message", show)
        session.on("error", lambda exc: console.print(f"[red]error[/]: {exc}"))
        session.on("disconnect", lambda _: console.print("[dim]disconnected[/]"))

        await session.connect(server)
        console.print(f"[bold green]Connected[/] to {session.server.host}:{session.server.port}")
        if name and password:
            await session.login(name, password)
            console.print(f"Logged in as [bold]{name}[/]")
        session.join_room(target_room)

        try:
            while session.connected:
                line = (await ainput(": ")).strip()
                if not line:
                    continue
                if line in {"/quit", "/exit"}:
                    break
                if line == "/help":
                    console.print("/join <room>, /leave <room>, /pm <user> <msg>, /quit; anything else is said in the room")
                    continue
                if line.startswith("/join "):
                    target_room = line[len("/join "):].strip()
                    session.join_room(target_room)
                    continue
                if line.startswith("/leave "):
                    session.leave_room(line[len("/leave "):].strip())
                    continue
                if line.startswith("/pm "):
                    parts = line.split(" ", 2)
                    if len(parts) < 3:
                        console.print("Usage: /pm <user> <message>")
                        continue
                    User(parts[1], session).pm(parts[2])
                    continue
                session.say(line, target_room)
            await session.outbound.flush()
        finally:
            await session.disconnect()

    try:
        asyncio.run(main_loop())
    except ShowdownError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
