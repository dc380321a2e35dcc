# src/lutify/cli.py

import logging
from pathlib import Path
from typing import Optional

import colour
import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import FloatPrompt
from rich import print as rprint
from rich.table import Table

from .atlas import Atlas, build_atlas
from .config import (
    check_session_keys,
    config_from_session,
    load_config,
    params_from_config,
    save_config,
)
from .data import CANONICAL_SIZE, CONVENTIONAL_SIZES
from .errors import LutifyError
from .parser import identity_lattice, load_lattice, parse_cube, validate_lattice
from .pipeline import RenderParams, preview_frame, render
from .presets import PARAMETERS, clamp_value, format_value

app = typer.Typer(help="Grade photos with 3D .cube LUTs")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging from the LUT pipeline."
    ),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def fail(error: Exception) -> None:
    rprint(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(1)


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        fail(e)


# ---------------------------------------------------------------------------
# inspect command
# ---------------------------------------------------------------------------


@app.command()
def inspect(
    cube: Path = typer.Argument(..., help=".cube file to check.", exists=True, dir_okay=False),
):
    """Parse a .cube file and report its size, domain and validity."""
    try:
        lattice = parse_cube(read_text(cube))
    except LutifyError as e:
        fail(e)

    valid = validate_lattice(lattice)

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="dim", justify="right")
    table.add_column("Value")
    table.add_row("file", f"[bold]{escape(str(cube))}[/bold]")
    table.add_row("title", escape(lattice.title) if lattice.title else "[dim]none[/dim]")
    conventional = lattice.size in CONVENTIONAL_SIZES
    table.add_row(
        "size",
        f"{lattice.size}³" + ("" if conventional else "  [yellow](unusual)[/yellow]"),
    )
    table.add_row("domain min", " ".join(f"{v:g}" for v in lattice.domain_min))
    table.add_row("domain max", " ".join(f"{v:g}" for v in lattice.domain_max))
    table.add_row("samples", str(len(lattice.samples)))
    table.add_row(
        "output range",
        f"{lattice.samples.min():.4f} → {lattice.samples.max():.4f}",
    )
    table.add_row("valid", "[green]yes[/green]" if valid else "[red]no[/red]")
    console.print(table)

    if not valid:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# bake command
# ---------------------------------------------------------------------------


@app.command()
def bake(
    cube: Path = typer.Argument(..., help=".cube file to import.", exists=True, dir_okay=False),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Where to write the raw 512x512 RGBA atlas. Defaults to <cube>.atlas.",
    ),
):
    """
    Import a .cube LUT and write its canonical atlas blob.

    The blob can be passed to `grade --atlas` later without re-parsing:

        lutify bake Kodak2383.cube -o kodak.atlas
    """
    out_path = output or cube.with_suffix(".atlas")

    with console.status("[bold green]Building atlas..."):
        try:
            lattice = load_lattice(read_text(cube))
            atlas = build_atlas(lattice)
            out_path.write_bytes(atlas.to_bytes())
        except (LutifyError, OSError) as e:
            fail(e)

    path_label = "direct" if lattice.size == CANONICAL_SIZE else f"resampled from {lattice.size}³"
    rprint(f"\n[bold green]✓ Done![/bold green]  {out_path}  [dim]({path_label})[/dim]")


# ---------------------------------------------------------------------------
# identity command
# ---------------------------------------------------------------------------


@app.command()
def identity(
    size: int = typer.Argument(33, help="Lattice points per axis."),
    output: Path = typer.Option(
        Path("identity.cube"), "--output", "-o", help="Where to write the .cube file."
    ),
):
    """Write an identity .cube LUT (every colour maps to itself)."""
    if size < 2:
        fail(ValueError("Size must be at least 2."))
    if output.suffix.lower() != ".cube":
        output = output.with_suffix(".cube")

    lattice = identity_lattice(size, title=f"Identity {size}")
    colour.write_LUT(lattice.to_lut3d(), str(output))
    rprint(f"[bold green]✓ Done![/bold green]  {output}")


# ---------------------------------------------------------------------------
# params command
# ---------------------------------------------------------------------------


@app.command()
def params():
    """List the grading controls and their ranges."""
    table = Table(title="Grading Controls", box=None, padding=(0, 2))
    # Option names must print whole; the description takes the wrapping.
    table.add_column("Option", style="bold cyan", no_wrap=True, min_width=13)
    table.add_column("Label", style="white", no_wrap=True)
    table.add_column("Range", style="dim", justify="right", no_wrap=True)
    table.add_column("Default", style="dim", justify="right", no_wrap=True)
    table.add_column("Effect", style="dim", ratio=1, overflow="fold")

    for p in PARAMETERS:
        table.add_row(
            f"--{p['name']}",
            p["label"],
            f"{p['min']:g} … {p['max']:g}{p['unit']}",
            format_value(p["name"], p["default"]),
            p["description"],
        )

    console.print()
    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# grade command
# ---------------------------------------------------------------------------


def prompt_params(current: RenderParams) -> RenderParams:
    """Ask for each control in pipeline order, pre-filled with `current`."""
    console.print("\n[bold]Adjustments[/bold]  [dim](Enter keeps the value shown)[/dim]")
    values = {}
    for p in PARAMETERS:
        name = p["name"]
        while True:
            value = FloatPrompt.ask(
                f"  {p['label']} [dim]({p['min']:g} to {p['max']:g})[/dim]",
                default=getattr(current, name),
            )
            if p["min"] <= value <= p["max"]:
                break
            console.print(f"  [red]Enter a value between {p['min']:g} and {p['max']:g}.[/red]")
        values[name] = clamp_value(name, value)
    return RenderParams(**values)


def load_atlas(lut: Optional[Path], atlas: Optional[Path]) -> Atlas:
    if lut is not None:
        return build_atlas(load_lattice(read_text(lut)))
    return Atlas.from_bytes(atlas.read_bytes())


@app.command()
def grade(
    image: Path = typer.Argument(..., help="Photo to grade.", exists=True, dir_okay=False),
    lut: Optional[Path] = typer.Option(
        None, "--lut", "-l", help=".cube LUT to apply.", exists=True, dir_okay=False
    ),
    atlas: Optional[Path] = typer.Option(
        None, "--atlas", "-a", help="Atlas blob written by `bake`.", exists=True, dir_okay=False
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a JSON config file with grading values.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Where to write the graded image (PNG by default)."
    ),
    strength: Optional[float] = typer.Option(None, help="LUT strength, 0-100 %."),
    exposure: Optional[float] = typer.Option(None, help="Exposure, -2 to 2 stops."),
    contrast: Optional[float] = typer.Option(None, help="Contrast, -1 to 1."),
    saturation: Optional[float] = typer.Option(None, help="Saturation, -1 to 1."),
    temperature: Optional[float] = typer.Option(None, help="Temperature, -1 to 1."),
    tint: Optional[float] = typer.Option(None, help="Tint, -1 to 1."),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Prompt for each grading value."
    ),
    preview: Optional[int] = typer.Option(
        None, "--preview", "-p", min=1, help="Render a quick preview at most N pixels on the long side."
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", min=1, help="Threads to split the frame across."
    ),
    save_config_to: Optional[Path] = typer.Option(
        None, "--save-config", help="Save the grading values as a JSON config for reuse."
    ),
):
    """
    Apply a LUT plus tone adjustments to a photo.

    Values come from --config first, then any command line option on top:

        lutify grade photo.jpg --lut Kodak2383.cube --strength 80 --exposure 0.3
    """
    try:
        cfg = load_config(config) if config is not None else {}
        check_session_keys(cfg)
    except LutifyError as e:
        fail(e)

    if lut is None and atlas is None and cfg.get("lut"):
        lut = Path(cfg["lut"])
    if lut is None and atlas is None:
        fail(ValueError("Pass --lut or --atlas (or set \"lut\" in the config)."))

    overrides = {
        "strength": strength,
        "exposure": exposure,
        "contrast": contrast,
        "saturation": saturation,
        "temperature": temperature,
        "tint": tint,
    }
    try:
        render_params = params_from_config(cfg, overrides)
    except LutifyError as e:
        fail(e)

    if interactive:
        render_params = prompt_params(render_params)

    workers = workers if workers is not None else cfg.get("workers")
    preview = preview if preview is not None else cfg.get("preview_size")
    suffix = "_preview.png" if preview else "_graded.png"
    out_path = output or Path(cfg.get("output") or image.with_name(image.stem + suffix))

    summary = Table(show_header=False, box=None, padding=(0, 1))
    summary.add_column("Key", style="dim", justify="right")
    summary.add_column("Value")
    summary.add_row("image", f"[bold]{escape(str(image))}[/bold]")
    summary.add_row("lut", escape(str(lut)) if lut is not None else f"{escape(str(atlas))} [dim](atlas)[/dim]")
    for p in PARAMETERS:
        summary.add_row(p["name"], format_value(p["name"], getattr(render_params, p["name"])))
    summary.add_row("mode", f"preview ≤ {preview}px" if preview else "full resolution")
    summary.add_row("output", f"[bold]{escape(str(out_path))}[/bold]")
    console.print(Panel.fit("[bold cyan]lutify[/bold cyan]"))
    console.print(summary)
    console.print()

    with console.status("[bold green]Grading..."):
        try:
            lut_atlas = load_atlas(lut, atlas)
            pixels = colour.read_image(str(image), bit_depth="float32", method="Imageio")
            if pixels.ndim == 2:
                pixels = np.repeat(pixels[..., None], 3, axis=-1)
            if preview:
                pixels = preview_frame(pixels, preview)
            graded = render(lut_atlas, render_params, pixels, workers=workers)
            colour.write_image(graded, str(out_path), bit_depth="uint8", method="Imageio")
        except (LutifyError, OSError, ValueError) as e:
            fail(e)

    rprint(f"\n[bold green]✓ Done![/bold green]  {out_path}")

    if save_config_to is not None:
        save_config(
            save_config_to,
            config_from_session(
                render_params,
                lut=str(lut) if lut is not None else None,
                output=str(out_path),
                workers=workers,
                preview_size=preview,
            ),
        )
        console.print(f"\n  [green]✓[/green] Config saved to [bold]{save_config_to}[/bold]")


if __name__ == "__main__":
    app()
