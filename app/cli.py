from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from adapters.export.c_initializer import render_c_initializer
from app.config import AppSettings, load_settings
from app.map_wiring import build_layout_engine, build_session
from domain.bounds import coerce_len, coerce_pos
from domain.errors import MapPersistenceError
from domain.models import Direction, MapDocument
from domain.services.map_editing_session import MapEditingSession
from domain.services.map_health import inspect_map

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    ctx.obj = load_settings(config)


def _settings(ctx: typer.Context) -> AppSettings:
    settings = ctx.obj
    if not isinstance(settings, AppSettings):
        settings = load_settings()
        ctx.obj = settings
    return settings


def _open_session(ctx: typer.Context) -> MapEditingSession:
    session = build_session(_settings(ctx))
    try:
        session.load()
    except MapPersistenceError as exc:
        console.print(f"[red]Load failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    return session


def _save(session: MapEditingSession) -> None:
    try:
        location = session.save()
    except MapPersistenceError as exc:
        console.print(f"[red]Save failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[green]Saved[/] {location}")


def _render_table(document: MapDocument) -> Table:
    table = Table(title="Map nodes")
    table.add_column("id", justify="right")
    table.add_column("name")
    for direction in Direction:
        table.add_column(direction.short_label, justify="center")
    for node in document.nodes:
        cells = [
            f"{connection.pos}/{connection.length}" if connection.is_set else "-"
            for connection in node.connect
        ]
        table.add_row(str(node.id), node.name, *cells)
    return table


@app.command("show")
def show(ctx: typer.Context) -> None:
    session = _open_session(ctx)
    console.print(_render_table(session.document))


@app.command("add")
def add(
    ctx: typer.Context,
    name: str = typer.Option("", help="Name for the new node."),
) -> None:
    session = _open_session(ctx)
    node = session.add_node()
    if node is None:
        console.print("[yellow]Node id space exhausted, nothing added[/]")
        raise typer.Exit(code=1)
    if name:
        session.rename_node(node.id, name)
    console.print(f"[green]Added node[/] {node.id}")
    _save(session)


@app.command("remove")
def remove(
    ctx: typer.Context,
    node_id: int = typer.Argument(..., help="Id of the node to remove."),
) -> None:
    session = _open_session(ctx)
    if not session.remove_node(node_id):
        console.print(f"[yellow]Node {node_id} was not removed[/]")
        raise typer.Exit(code=1)
    console.print(f"[green]Removed node[/] {node_id}; ids renumbered 1..{session.next_id - 1}")
    _save(session)


@app.command("rename")
def rename(
    ctx: typer.Context,
    node_id: int = typer.Argument(..., help="Id of the node to rename."),
    name: str = typer.Argument(..., help="New name."),
) -> None:
    session = _open_session(ctx)
    if not session.rename_node(node_id, name):
        console.print(f"[red]Node not found:[/] {node_id}")
        raise typer.Exit(code=1)
    _save(session)


@app.command("connect")
def connect(
    ctx: typer.Context,
    node_id: int = typer.Argument(..., help="Id of the node that owns the slot."),
    direction: str = typer.Argument(..., help="Slot index 0-7 or a name such as N, NE, East."),
    pos: Optional[float] = typer.Option(None, "--pos", help="Target node id, 0 to unset."),
    length: Optional[float] = typer.Option(None, "--len", help="Link length, 0 to unset."),
) -> None:
    try:
        slot = Direction.parse(direction)
    except ValueError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    session = _open_session(ctx)
    if session.document.find(node_id) is None:
        console.print(f"[red]Node not found:[/] {node_id}")
        raise typer.Exit(code=1)
    if pos is not None:
        if coerce_pos(pos) != pos:
            console.print(f"[yellow]pos {pos} out of range, stored as 0[/]")
        session.update_connection(node_id, slot, "pos", pos)
    if length is not None:
        if coerce_len(length) != length:
            console.print(f"[yellow]len {length} out of range, stored as 0[/]")
        session.update_connection(node_id, slot, "len", length)
    _save(session)


@app.command("layout")
def layout(ctx: typer.Context) -> None:
    session = _open_session(ctx)
    engine = build_layout_engine(_settings(ctx))
    typer.echo(json.dumps(session.layout(engine).to_dict(), ensure_ascii=False, indent=2))


@app.command("validate")
def validate(ctx: typer.Context) -> None:
    session = _open_session(ctx)
    health = inspect_map(session.document)
    if not health.is_problem:
        console.print(
            f"[green]Map is consistent:[/] {health.node_count} nodes, {health.link_count} links"
        )
        return
    for issue in health.issues:
        console.print(f"[yellow]{issue.code}[/] {issue.describe()}")
    raise typer.Exit(code=1)


@app.command("export-c")
def export_c(ctx: typer.Context) -> None:
    session = _open_session(ctx)
    typer.echo(render_c_initializer(session.document), nl=False)


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8080, help="Port to listen on."),
) -> None:
    from app.web_main import create_app

    uvicorn.run(create_app(_settings(ctx)), host=host, port=port)


if __name__ == "__main__":
    app()
