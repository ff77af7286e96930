"""Command-line interface for labelcanvas."""

import logging
import os
import sys
from pathlib import Path
from typing import Annotated

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from labelcanvas import __version__
from labelcanvas.config import get_api_url, get_timeout
from labelcanvas.errors import ImageLoadFailure, SyncFailure
from labelcanvas.services.renderer import (
    ImageDecoder,
    render_error_frame,
    render_frame,
)
from labelcanvas.services.sync_gateway import AnnotationSyncGateway
from labelcanvas.services.workspace import AnnotationWorkspace

app = typer.Typer(
    name="labelcanvas",
    help="Bounding box annotation canvas and reference annotation store.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]labelcanvas[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Show debug logging."),
    ] = False,
) -> None:
    """Labelcanvas - draw, label and sync bounding boxes on images."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _make_client(api_url: str | None) -> httpx.Client:
    """HTTP client pointed at the annotation store."""
    return httpx.Client(base_url=api_url or get_api_url(), timeout=get_timeout())


ApiUrlOption = Annotated[
    str | None,
    typer.Option(
        "--api-url",
        help="Annotation store URL (defaults to $LABELCANVAS_API_URL).",
    ),
]


@app.command()
def serve(
    host: Annotated[
        str,
        typer.Option("--host", "-h", help="Host to bind the server to."),
    ] = "127.0.0.1",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port to bind the server to."),
    ] = 8000,
    reload: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Enable auto-reload for development."),
    ] = False,
    data_dir: Annotated[
        Path | None,
        typer.Option(
            "--data-dir",
            "-d",
            help="Directory for storing data (defaults to ./data).",
        ),
    ] = None,
) -> None:
    """Run the reference annotation store."""
    if data_dir:
        os.environ["LABELCANVAS_DATA_DIR"] = str(data_dir.resolve())

    url = f"http://{host}:{port}"
    console.print(
        Panel(
            f"[bold green]Starting annotation store[/bold green]\n\n"
            f"  URL: [link={url}]{url}[/link]\n"
            f"  Host: {host}\n"
            f"  Port: {port}\n"
            f"  Reload: {'enabled' if reload else 'disabled'}",
            title="Labelcanvas",
            border_style="blue",
        )
    )

    import uvicorn

    uvicorn.run(
        "labelcanvas.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def labels(
    create: Annotated[
        str | None,
        typer.Option("--create", "-c", help="Create a label with this name."),
    ] = None,
    api_url: ApiUrlOption = None,
) -> None:
    """List labels, or create one."""
    with _make_client(api_url) as client:
        gateway = AnnotationSyncGateway(client)
        try:
            if create is not None:
                label = gateway.create_label(create)
                console.print(
                    f"[green]✓[/green] Created label {label.id}: {label.name}"
                )
                return
            items = gateway.list_labels()
        except SyncFailure as err:
            console.print(f"[red]Error:[/red] {err.detail}")
            raise typer.Exit(1) from err

    if not items:
        console.print("[yellow]No labels yet.[/yellow] Create one with --create.")
        return
    table = Table(title="Labels")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    for label in items:
        table.add_row(str(label.id), label.name)
    console.print(table)


@app.command()
def render(
    image_id: Annotated[int, typer.Argument(help="Image to render.")],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Where to write the PNG frame."),
    ] = Path("frame.png"),
    hover: Annotated[
        int | None,
        typer.Option("--hover", help="Render this annotation as hovered."),
    ] = None,
    api_url: ApiUrlOption = None,
) -> None:
    """Render an image with its annotations to a PNG file."""
    with _make_client(api_url) as client:
        gateway = AnnotationSyncGateway(client)
        workspace = AnnotationWorkspace(gateway)
        try:
            workspace.load()
        except SyncFailure as err:
            console.print(f"[red]Error:[/red] {err.detail}")
            raise typer.Exit(1) from err

        image = workspace.get_image(image_id)
        if image is None:
            console.print(f"[red]Error:[/red] Image not found: {image_id}")
            raise typer.Exit(1)

        try:
            bitmap = ImageDecoder(client).decode(image)
        except ImageLoadFailure as err:
            console.print(f"[yellow]Warning:[/yellow] {err}")
            frame = render_error_frame()
        else:
            frame = render_frame(
                bitmap,
                workspace.annotations_for(image_id),
                None,
                hover,
                workspace.labels_by_id(),
            )

    frame.save(output, format="PNG")
    count = len(workspace.annotations_for(image_id))
    console.print(
        f"[green]✓[/green] Rendered {image.original_filename} "
        f"with {count} annotation(s) to {output}"
    )


@app.command()
def info() -> None:
    """Show information about the current installation."""
    console.print(
        Panel(
            f"[bold blue]labelcanvas[/bold blue] v{__version__}\n\n"
            f"[bold]Python:[/bold] {sys.version}\n"
            f"[bold]Store URL:[/bold] {get_api_url()}",
            title="Installation Info",
            border_style="blue",
        )
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
