"""CLI entrypoint for tooldiff."""

from __future__ import annotations

import json

import click
from rich.console import Console

from tooldiff.diff.presets import PresetRegistry
from tooldiff.diff.schema import CodeDiff, DiffValidationError, load_code_diff
from tooldiff.paths import settings_path
from tooldiff.ui.diff import DiffDisplayOptions, RenderErr, isolated, render_code_diff
from tooldiff.version import __version__


def _load_diff(path: str | None, preset: str | None) -> CodeDiff:
    if path is not None and preset is not None:
        raise click.UsageError("Pass either a payload path or --preset, not both.")
    if path is not None:
        try:
            return load_code_diff(path)
        except FileNotFoundError as exc:
            raise click.ClickException(f"File not found: {exc.filename}")
        except DiffValidationError as exc:
            raise click.ClickException(str(exc))

    loaded = PresetRegistry().load()
    for warning in loaded.warnings:
        click.echo(f"warning: {warning}", err=True)
    name = preset or "workspace-sync"
    found = loaded.get(name)
    if found is None:
        raise click.ClickException(f"Unknown preset: {name} (available: {', '.join(loaded.names)})")
    return found.diff


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def main() -> None:
    """tooldiff: render and interact with structured code diffs."""


@main.command()
@click.argument("path", required=False)
@click.option("--preset", help="Packaged or user preset name")
@click.option("--split", is_flag=True, help="Start in split view")
@click.option("--stream", is_flag=True, help="Replay the payload as a progressive stream")
@click.option("--confirm/--no-confirm", default=None, help="Ask before committing actions")
@click.option("--freeze-on-action", is_flag=True, help="Answer committed actions with a receipt")
def view(
    path: str | None,
    preset: str | None,
    split: bool,
    stream: bool,
    confirm: bool | None,
    freeze_on_action: bool,
) -> None:
    """Open a diff payload in the interactive workbench."""
    from tooldiff.app import DiffWorkbenchApp

    diff = _load_diff(path, preset) if path is not None else None
    try:
        app = DiffWorkbenchApp(
            diff=diff,
            preset=preset,
            split=split,
            stream=stream,
            confirm=confirm,
            freeze_on_action=freeze_on_action,
        )
    except LookupError as exc:
        raise click.ClickException(str(exc))
    app.run()


@main.command()
@click.argument("path", required=False)
@click.option("--preset", help="Packaged or user preset name")
@click.option("--mode", type=click.Choice(["unified", "split"]), default="unified", show_default=True)
@click.option("--no-line-numbers", is_flag=True)
@click.option("--wrap", is_flag=True, help="Wrap long lines instead of truncating")
@click.option("--width", type=int, default=None, help="Console width")
def render(
    path: str | None,
    preset: str | None,
    mode: str,
    no_line_numbers: bool,
    wrap: bool,
    width: int | None,
) -> None:
    """Print a diff payload rendered with rich."""
    diff = _load_diff(path, preset)
    options = DiffDisplayOptions(
        view_mode=mode,  # type: ignore[arg-type]
        show_line_numbers=not no_line_numbers,
        wrap_lines=wrap,
        variant="full",
    )
    console = Console(width=width)

    def _layout() -> str:
        with console.capture() as capture:
            console.print(render_code_diff(diff, options=options))
        return capture.get()

    result = isolated(_layout, diff_id=diff.id)
    if isinstance(result, RenderErr):
        raise click.ClickException(str(result.fault))
    click.echo(result.value, nl=False)


@main.command()
@click.argument("path")
def validate(path: str) -> None:
    """Check a diff payload against the wire schema."""
    diff = _load_diff(path, None)
    lines = sum(len(hunk.lines) for file in diff.files for hunk in file.hunks)
    state = "frozen" if diff.receipt is not None else "interactive"
    click.echo(f"ok: {diff.id} ({len(diff.files)} file(s), {lines} line(s), {state})")


@main.command()
def presets() -> None:
    """List available presets."""
    loaded = PresetRegistry().load()
    for preset in loaded.presets:
        click.echo(f"{preset.name}\t{preset.description}")
    for warning in loaded.warnings:
        click.echo(f"warning: {warning}", err=True)


@main.command("settings-path")
def settings_path_command() -> None:
    """Print settings file path."""
    click.echo(str(settings_path()))


@main.command()
def about() -> None:
    """Show version and project summary."""
    payload = {
        "name": "tooldiff",
        "version": __version__,
        "description": "Presentation engine and workbench for structured code diffs",
    }
    click.echo(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
