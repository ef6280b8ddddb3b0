"""Main CLI application using Typer."""

from pathlib import Path
from typing import Annotated

import typer

from icetray.core.errors import FrameError, UsageError
from icetray.core.file import FileMode, FrameFile
from icetray.core.registry import default_registry

app = typer.Typer(help="icetray: frames, modules and trays for event processing")

MAX_VALUE_WIDTH = 60


def _open_for_reading(path: Path) -> FrameFile:
    try:
        return FrameFile(path, FileMode.READ)
    except UsageError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None


def _short_repr(value: object) -> str:
    text = " ".join(repr(value).split())
    if len(text) > MAX_VALUE_WIDTH:
        return text[: MAX_VALUE_WIDTH - 3] + "..."
    return text


@app.command()
def info(
    path: Annotated[Path, typer.Argument(help="Frame file to inspect")],
) -> None:
    """Count the frames in a file and list the keys they use."""
    registry = default_registry()
    key_tags: dict[str, set[str]] = {}
    count = 0

    with _open_for_reading(path) as frame_file:
        try:
            for frame in frame_file:
                count += 1
                for key, value in frame.items():
                    key_tags.setdefault(key, set()).add(registry.spec_for(value).tag)
        except (FrameError, OSError) as e:
            typer.echo(f"Error: frame {count}: {e}", err=True)
            raise typer.Exit(code=1) from None

    typer.echo(f"{path}: {count} frames")
    if key_tags:
        typer.echo("Keys:")
        for key in sorted(key_tags):
            typer.echo(f"  {key}  [{', '.join(sorted(key_tags[key]))}]")


@app.command()
def dump(
    path: Annotated[Path, typer.Argument(help="Frame file to print")],
    limit: Annotated[int | None, typer.Option(help="Stop after this many frames", min=0)] = None,
) -> None:
    """Print the contents of every frame in a file."""
    registry = default_registry()
    shown = 0

    with _open_for_reading(path) as frame_file:
        while limit is None or shown < limit:
            try:
                frame = frame_file.read_frame()
            except (FrameError, OSError) as e:
                typer.echo(f"Error: frame {shown}: {e}", err=True)
                raise typer.Exit(code=1) from None
            if frame is None:
                break

            typer.echo(f"Frame {shown}:")
            for key in sorted(frame.keys()):
                value = frame.get(key)
                tag = registry.spec_for(value).tag
                typer.echo(f"  {key} [{tag}] = {_short_repr(value)}")
            shown += 1

    if shown == 0:
        typer.echo("No frames")


@app.command()
def run(
    config: str = typer.Option(..., help="Path to tray config YAML"),
) -> None:
    """
    Run a tray described by a configuration file.

    Example:
        icetray run --config configs/copy.yaml
    """
    from icetray.core.schema import load_tray_config
    from icetray.core.tray import run_config

    try:
        tray_config = load_tray_config(config)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None
    except ValueError as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from None

    try:
        processed = run_config(tray_config)
    except (FrameError, UsageError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"Processed {processed} frames")


@app.command()
def validate(
    config: str = typer.Option(..., help="Path to tray config YAML to validate"),
) -> None:
    """Validate a tray configuration file."""
    from icetray.core.schema import load_tray_config

    try:
        load_tray_config(config)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None
    except ValueError as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"✓ Valid tray configuration: {config}")


@app.command()
def list_value_types() -> None:
    """List registered value types."""
    specs = default_registry().list()

    typer.echo("Registered value types:")
    for spec in specs:
        typer.echo(f"  {spec.tag}  [{spec.py_type.__module__}.{spec.py_type.__qualname__}]")
        if spec.description:
            typer.echo(f"      {spec.description}")


@app.command()
def version() -> None:
    """Show icetray version."""
    from icetray import __version__

    typer.echo(f"icetray version {__version__}")


if __name__ == "__main__":
    app()
