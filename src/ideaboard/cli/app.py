"""ideaboard command line."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Annotated, Optional

import typer

from ..board.errors import BoardError
from ..board.models import CommitStatus
from .output import console, print_board, print_error, print_info, print_warning

app = typer.Typer(
    name="ideaboard",
    help="Idea and task board server and client",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

ServerOption = Annotated[
    str,
    typer.Option("--server", "-s", envvar="IDEABOARD_SERVER_URL", help="Server base URL"),
]
TokenOption = Annotated[
    str,
    typer.Option("--token", envvar="IDEABOARD_TOKEN", help="Bearer token for the owner"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose logging")] = False,
):
    """Idea and task board."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("serve")
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Port")] = None,
    db_path: Annotated[Optional[str], typer.Option("--db", help="SQLite database path")] = None,
):
    """Run the HTTP server."""
    import uvicorn

    from ..web.app import create_app
    from ..web.config import WebConfig

    config = WebConfig.load()
    if host:
        config.host = host
    if port:
        config.port = port
    if db_path:
        config.db_path = db_path

    console.print(f"[cyan]Serving on http://{config.host}:{config.port}[/cyan]")
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level="info")


@app.command("token")
def token(
    owner_id: Annotated[str, typer.Argument(help="Owner id to put in the token")],
    hours: Annotated[int, typer.Option("--hours", help="Lifetime in hours")] = 24,
):
    """Print a bearer token signed with the server's secret (development)."""
    from ..web.auth import create_token, init_auth
    from ..web.config import WebConfig

    config = WebConfig.load()
    init_auth(config)
    if not os.environ.get("IDEABOARD_JWT_SECRET"):
        print_warning("IDEABOARD_JWT_SECRET is not set; a running server will reject this token")
    typer.echo(create_token(owner_id, expire_hours=hours))


@app.command("board")
def board(
    server: ServerOption = "http://localhost:8000",
    token: TokenOption = "",
    label: Annotated[
        Optional[list[str]], typer.Option("--label", "-l", help="Label ids (one chip, any match)")
    ] = None,
    priority: Annotated[
        Optional[list[str]], typer.Option("--priority", help="Priorities (one chip, any match)")
    ] = None,
    idea: Annotated[
        Optional[list[str]], typer.Option("--idea", help="Linked idea ids (one chip, any match)")
    ] = None,
    due: Annotated[
        Optional[str],
        typer.Option("--due", help="overdue, today, this-week, this-month or no-date"),
    ] = None,
    search: Annotated[Optional[str], typer.Option("--search", "-q", help="Text search")] = None,
):
    """Show the board, filtered by the given chips."""
    from ..board.filters import parse_chips

    raw: list[dict] = []
    if idea:
        raw.append({"field": "idea", "value": idea})
    if label:
        raw.append({"field": "label", "value": label})
    if priority:
        raw.append({"field": "priority", "value": priority})
    if due:
        raw.append({"field": "date", "target": "due", "operator": due})
    if search:
        raw.append({"field": "text", "value": search})

    try:
        chips = parse_chips(raw)
    except ValueError as e:
        print_error(f"Invalid filter: {e}")
        raise typer.Exit(2) from None

    async def _run() -> None:
        from ..board.client import HttpCardStore
        from ..board.view_model import BoardViewModel

        store = HttpCardStore(server, token=token)
        try:
            view = BoardViewModel(store, owner_id="")
            await view.load()
            view.set_filter_chips(chips)
            total = sum(len(view.cards_in(c)) for c in view.board())
            print_board(view.board(), total=total)
        finally:
            await store.close()

    try:
        asyncio.run(_run())
    except BoardError as e:
        print_error(str(e))
        raise typer.Exit(1) from None


@app.command("move")
def move(
    card_id: Annotated[str, typer.Argument(help="Card to move")],
    column: Annotated[str, typer.Argument(help="Target column")],
    index: Annotated[int, typer.Argument(help="Slot in the target column (0 = top)")],
    server: ServerOption = "http://localhost:8000",
    token: TokenOption = "",
):
    """Move a card, planning the new position locally."""

    async def _run() -> CommitStatus:
        from ..board.client import HttpCardStore
        from ..board.view_model import BoardViewModel

        store = HttpCardStore(server, token=token)
        try:
            view = BoardViewModel(store, owner_id="")
            await view.load()
            outcome = await view.move_card(card_id, column, index)
            if outcome.status == CommitStatus.NOOP:
                print_info("Card is already in that slot")
            elif outcome.ok:
                moved = view.card(card_id)
                console.print(f"[green]v[/green] Moved to {moved.column} at {moved.position}")
                if outcome.plan.renumbered:
                    print_info(f"Column {column} was renumbered")
            else:
                print_error(f"Could not save change ({outcome.status.value}): {outcome.error}")
            return outcome.status
        finally:
            await store.close()

    try:
        status = asyncio.run(_run())
    except BoardError as e:
        print_error(str(e))
        raise typer.Exit(1) from None
    if status not in (CommitStatus.OK, CommitStatus.NOOP):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
