"""
CLI module - Command line interface for Media Toolbelt

Entry point for the `mtb` command using Typer. Every tool is also available
as `mtb <tool> ...`; its arguments are passed through untouched to the
tool's own parser, so `mtb trimvid --help` shows the tool's help.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table
from typer.core import TyperCommand

from . import __version__
from .config import load_config
from .dependencies import KNOWN_DEPENDENCIES, check_tools_status
from .frontend import ToolSpec, configure_logging, run_tool
from .tools import REGISTRY

console = Console()
app = typer.Typer(
    name="mtb",
    help="Media Toolbelt - small wrappers around ffmpeg, ImageMagick, exiftool and friends.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    if value:
        console.print(f"mtb version {__version__}")
        raise typer.Exit()


ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
    config: ConfigOption = None,
):
    """Media Toolbelt - small wrappers around ffmpeg, ImageMagick, exiftool and friends."""
    ctx.obj = load_config(config)
    configure_logging(ctx.obj.logging.level)


@app.command("tools")
def list_tools():
    """List the available tools."""
    table = Table(title="Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Description")
    table.add_column("Requires", style="dim")

    for tool in REGISTRY.values():
        table.add_row(tool.name, tool.summary, ", ".join(tool.requires) or "-")

    console.print(table)
    console.print("\nRun [cyan]mtb <tool> --help[/cyan] for a tool's options")


@app.command()
def check(ctx: typer.Context):
    """Check external dependencies and show their locations."""
    tools = check_tools_status(ctx.obj.tools if ctx.obj else None)

    table = Table(title="External Dependencies")
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Path", style="dim")

    for name, path in tools.items():
        if path:
            status_str = "[green]Available[/green]"
            path_str = str(path)
        else:
            status_str = "[red]Missing[/red]"
            path_str = "-"
        table.add_row(name, status_str, path_str)

    console.print(table)

    missing = [name for name, path in tools.items() if path is None]
    if missing:
        console.print("\n[yellow]Warning:[/yellow] Some dependencies are missing.")
        packages = sorted({KNOWN_DEPENDENCIES[name].package for name in missing if KNOWN_DEPENDENCIES[name].package})
        if packages:
            console.print(f"Install system packages: sudo apt install {' '.join(packages)}")


class PassThroughCommand(TyperCommand):
    """A command that leaves its arguments unparsed, ``--`` included, for the tool's own parser."""

    def parse_args(self, ctx, args):
        ctx.args = list(args)
        return ctx.args


def _register_tool(tool: ToolSpec) -> None:
    @app.command(
        tool.name,
        cls=PassThroughCommand,
        help=tool.summary,
        add_help_option=False,
        context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
    )
    def _command(ctx: typer.Context):
        raise typer.Exit(run_tool(tool, ctx.args, ctx.obj))


for _tool in REGISTRY.values():
    _register_tool(_tool)


def main_cli():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main_cli()
