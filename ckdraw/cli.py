"""CLI entrypoint for ckdraw."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import resolve_config
from .errors import ValidationError


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="ckdraw")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to ckdraw.toml (defaults to the nearest one above the working directory)",
)
@click.option("--verbose", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """ckdraw - Render circuit schematics into editable draw.io projects.

    Turn schematic descriptions into symbol and schematic diagrams, restyle
    them, and pack everything into a portable project archive.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = resolve_config(config_path)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}")


@cli.command()
@click.argument("description", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output archive (defaults to <design cell>.zip)",
)
@click.option("--preset", type=str, default=None, help="Style preset to render with")
@click.option(
    "--style",
    "style_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML or JSON style file to render with",
)
@click.pass_context
def render(ctx: click.Context, description: Path, out: Path | None, preset: str | None, style_file: Path | None) -> None:
    """Render a schematic description into a project archive.

    Examples:

        ckdraw render inverter.json

        ckdraw render inverter.json --preset dark -o build/inverter.zip
    """
    from .commands.project_cmd import run_render

    sys.exit(run_render(ctx.obj["config"], description, out, preset, style_file))


@cli.command()
@click.argument("project", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def info(ctx: click.Context, project: Path) -> None:
    """Show the diagrams, style and presets inside a project archive."""
    from .commands.project_cmd import run_info

    sys.exit(run_info(ctx.obj["config"], project))


@cli.command()
@click.argument("project", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("path")
@click.pass_context
def route(ctx: click.Context, project: Path, path: str) -> None:
    """Print the diagram the viewer would receive for PATH.

    Examples:

        ckdraw route inverter.zip /embedded/schematic.drawio

        ckdraw route inverter.zip "/app/embedded/symbols/analogLib/nmos4.drawio?t=1"
    """
    from .commands.project_cmd import run_route

    sys.exit(run_route(ctx.obj["config"], project, path))


@cli.command()
@click.argument("project", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def extract(ctx: click.Context, project: Path, directory: Path) -> None:
    """Write every diagram of a project into DIRECTORY."""
    from .commands.project_cmd import run_extract

    sys.exit(run_extract(ctx.obj["config"], project, directory))


@cli.command()
@click.argument("project", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--style",
    "style_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML or JSON style file to apply",
)
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output archive (defaults to <project>.restyled.zip)",
)
@click.pass_context
def restyle(ctx: click.Context, project: Path, style_file: Path, out: Path | None) -> None:
    """Apply a style to every diagram of a project."""
    from .commands.project_cmd import run_restyle

    sys.exit(run_restyle(ctx.obj["config"], project, style_file, out))


@cli.command()
@click.pass_context
def demos(ctx: click.Context) -> None:
    """List bundled demos."""
    from .commands.demo_cmd import run_demos

    sys.exit(run_demos(ctx.obj["config"]))


@cli.command()
@click.argument("name")
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output archive (defaults to <design cell>.zip)",
)
@click.pass_context
def demo(ctx: click.Context, name: str, out: Path | None) -> None:
    """Render a bundled demo into a project archive."""
    from .commands.demo_cmd import run_demo

    sys.exit(run_demo(ctx.obj["config"], name, out))


@cli.command()
@click.pass_context
def presets(ctx: click.Context) -> None:
    """List built-in and configured style presets."""
    from .commands.style_cmd import run_presets

    sys.exit(run_presets(ctx.obj["config"]))


@cli.command()
@click.option("--last", "-n", "last_n", type=int, default=None, help="Show only the last N entries")
@click.pass_context
def journal(ctx: click.Context, last_n: int | None) -> None:
    """Show the operation journal."""
    from .commands.journal_cmd import run_journal

    sys.exit(run_journal(ctx.obj["config"], last_n))


if __name__ == "__main__":
    cli()
