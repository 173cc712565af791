"""Main CLI application using Typer."""
import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import AppSettings, ServerConfig, load_settings
from ..llm import ConnectionProbe, ModelCatalog, OllamaError
from ..memory import ChangeKind, Sender, SessionManager, SessionTransferError, StoreChange
from ..memory.store import ERROR_PREFIX
from .providers import (
    configure_logging,
    configure_tui_logging,
    get_controller,
    get_monitor,
    get_session_manager,
)

# Create Typer app
app = typer.Typer(
    name="ownai",
    help="Chat with local models served by Ollama",
    no_args_is_help=True,
    add_completion=True,
)

sessions_app = typer.Typer(help="Manage saved chat sessions", no_args_is_help=True)
app.add_typer(sessions_app, name="sessions")

# Console for rich output
console = Console()

_state: dict[str, AppSettings] = {}


def _settings() -> AppSettings:
    if "settings" not in _state:
        _state["settings"] = load_settings()
    return _state["settings"]


def _server_config(address: str | None, port: str | None, model: str | None = None) -> ServerConfig:
    """Apply command-line overrides to the configured server settings."""
    updates = {}
    if address is not None:
        updates["address"] = address
    if port is not None:
        updates["port"] = port
    if model is not None:
        updates["model"] = model
    return _settings().server.model_copy(update=updates)


@app.callback()
def main_callback(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error (default: OWNAI_LOG_LEVEL or warning)"
    )
):
    """Configure settings and logging shared by all commands."""
    settings = _settings()
    if log_level is not None:
        settings = settings.model_copy(update={"log_level": log_level})
        _state["settings"] = settings
    configure_logging(settings.log_level)


ADDRESS_OPTION = typer.Option(None, "--address", "-a", help="Server address (default: OLLAMA_ADDRESS)")
PORT_OPTION = typer.Option(None, "--port", "-p", help="Server port (default: OLLAMA_PORT)")


@app.command()
def probe(
    address: str | None = ADDRESS_OPTION,
    port: str | None = PORT_OPTION,
):
    """Check that the Ollama server is reachable and show its version."""
    async def _probe():
        config = _server_config(address, port)
        async with ConnectionProbe() as client:
            try:
                version = await client.probe(config)
            except OllamaError as e:
                console.print(f"[red]x[/red] Error: {e.message}")
                raise typer.Exit(code=1)
        console.print(f"[green]+[/green] Connected to Ollama v{version}.")

    asyncio.run(_probe())


@app.command()
def models(
    address: str | None = ADDRESS_OPTION,
    port: str | None = PORT_OPTION,
):
    """List the models installed on the server."""
    async def _models():
        config = _server_config(address, port)
        async with ModelCatalog() as catalog:
            try:
                names = await catalog.fetch(config)
            except OllamaError as e:
                console.print(f"[red]Error fetching models: {e.message}[/red]")
                raise typer.Exit(code=1)

        if not names:
            console.print("[yellow]No models found on the server. Install models using Ollama CLI.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Model", style="cyan")
        table.add_column("Selected", width=8)
        for name in names:
            table.add_row(name, "*" if name == config.model else "")
        console.print(table)

    asyncio.run(_models())


@app.command()
def chat(
    model: str | None = typer.Option(None, "--model", "-m", help="Model to chat with (default: OLLAMA_MODEL)"),
    address: str | None = ADDRESS_OPTION,
    port: str | None = PORT_OPTION,
    new: bool = typer.Option(False, "--new", "-n", help="Start a new session instead of continuing the current one"),
):
    """Interactive chat in the terminal, streaming replies as they arrive."""
    async def _chat():
        settings = _settings()
        config = _server_config(address, port, model)
        monitor = get_monitor(settings.model_copy(update={"server": config}))
        controller = get_controller(settings)

        printed: dict[str, int] = {}

        def on_change(change: StoreChange) -> None:
            if change.message_id is None:
                return
            message = controller.store.get(change.message_id)
            if message is None or message.sender != Sender.MODEL:
                return
            if change.kind == ChangeKind.UPDATED:
                offset = printed.get(message.id, 0)
                console.print(message.content[offset:], end="", markup=False, highlight=False)
                printed[message.id] = len(message.content)
            elif change.kind == ChangeKind.FINALIZED:
                if message.content.startswith(ERROR_PREFIX) and message.stats is None:
                    console.print(f"\n[red]{escape(message.content)}[/red]")
                elif message.stats:
                    console.print(f"\n[dim]{message.stats}[/dim]")
                else:
                    console.print()

        try:
            await monitor.check(config, fetch_models=True)
            console.print(f"[dim]{monitor.status}[/dim]")
            if not monitor.selected_model:
                console.print("[red]Error: no model available; pass --model or install one with the Ollama CLI[/red]")
                raise typer.Exit(code=1)
            config = config.with_model(monitor.selected_model)

            await controller.start()
            if new:
                await controller.new_session()
            controller.subscribe(on_change)

            session = controller.current_session
            console.print(f"[bold cyan]ownai[/bold cyan] [dim]{config.model} | {session.display_title if session else ''}[/dim]")
            console.print("[dim]Type 'exit', 'quit', or 'q' to leave[/dim]\n")

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                if not user_input.strip():
                    continue
                if user_input.strip().lower() in ('exit', 'quit', 'q'):
                    console.print("[dim]Goodbye![/dim]")
                    break

                console.print("[bold green]Model:[/bold green] ", end="")
                await controller.send(user_input, config)
                await controller.wait()
                console.print()
        finally:
            await monitor.close()
            await controller.close()

    asyncio.run(_chat())


@app.command(name="tui")
def tui_command(
    address: str | None = ADDRESS_OPTION,
    port: str | None = PORT_OPTION,
):
    """Launch the Textual TUI."""
    async def _tui():
        from ..ui import run_textual_tui

        settings = _settings()
        configure_tui_logging(settings.log_level)
        config = _server_config(address, port)
        await run_textual_tui(
            controller=get_controller(settings),
            monitor=get_monitor(settings),
            config=config,
        )

    asyncio.run(_tui())


async def _open_sessions() -> SessionManager:
    manager = get_session_manager(_settings())
    await manager.load()
    return manager


def _resolve_session(manager: SessionManager, prefix: str) -> str:
    """Accept a full session id or an unambiguous prefix of one."""
    matches = [session.id for session in manager.sessions if session.id.startswith(prefix)]
    if len(matches) != 1:
        reason = "No session matches" if not matches else "Ambiguous session id"
        console.print(f"[red]Error: {reason} '{prefix}'[/red]")
        raise typer.Exit(code=1)
    return matches[0]


@sessions_app.command(name="list")
def list_sessions():
    """List saved sessions."""
    async def _list():
        manager = await _open_sessions()
        try:
            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("", width=1)
            table.add_column("ID", style="dim")
            table.add_column("Title", style="cyan")
            table.add_column("Messages", justify="right")
            table.add_column("Created")
            for session in manager.sessions:
                table.add_row(
                    "*" if session.id == manager.current_session_id else "",
                    session.id[:8],
                    session.display_title,
                    str(len(session.messages)),
                    session.created_at.astimezone().strftime("%Y-%m-%d %H:%M"),
                )
            console.print(table)
        finally:
            await manager.close()

    asyncio.run(_list())


@sessions_app.command(name="export")
def export_session(
    session_id: str = typer.Argument(..., help="Session id or unique prefix"),
    destination: Path = typer.Argument(..., help="JSON file to write"),
):
    """Export one session to a JSON file."""
    async def _export():
        manager = await _open_sessions()
        try:
            resolved = _resolve_session(manager, session_id)
            path = manager.export_to_file(resolved, destination)
            console.print(f"[green]Exported session to {path}[/green]")
        except SessionTransferError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await manager.close()

    asyncio.run(_export())


@sessions_app.command(name="import")
def import_session(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file to import"),
):
    """Import a session from a JSON file and make it current."""
    async def _import():
        manager = await _open_sessions()
        try:
            new_id = await manager.import_from_file(source)
            console.print(f"[green]Imported session {new_id[:8]}[/green]")
        except SessionTransferError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await manager.close()

    asyncio.run(_import())


@sessions_app.command(name="rename")
def rename_session(
    session_id: str = typer.Argument(..., help="Session id or unique prefix"),
    title: str = typer.Argument("", help="New title; empty restores the default"),
):
    """Rename a session."""
    async def _rename():
        manager = await _open_sessions()
        try:
            resolved = _resolve_session(manager, session_id)
            await manager.rename(resolved, title)
            console.print(f"[green]Renamed to '{manager.get(resolved).display_title}'[/green]")
        finally:
            await manager.close()

    asyncio.run(_rename())


@sessions_app.command(name="delete")
def delete_session(
    session_id: str = typer.Argument(..., help="Session id or unique prefix"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    )
):
    """Delete a session."""
    async def _delete():
        manager = await _open_sessions()
        try:
            resolved = _resolve_session(manager, session_id)
            title = manager.get(resolved).display_title
            if not yes:
                confirm = typer.confirm(f"Delete session '{title}'?")
                if not confirm:
                    console.print("[dim]Aborted.[/dim]")
                    return
            await manager.delete(resolved)
            console.print(f"[green]Deleted session '{title}'[/green]")
        finally:
            await manager.close()

    asyncio.run(_delete())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
