"""tensorcam command line tool."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tensorcam import __version__
from tensorcam.common.events import TOPIC_LABELS, Event, EventBus
from tensorcam.config import Config, load_config
from tensorcam.foundation.classifier import PRETRAINED_VARIANTS

app = typer.Typer(
    name="tensorcam",
    help="Live camera classification with a pretrained MobileNet",
    no_args_is_help=True,
)
console = Console()


def get_config(config_path: Optional[Path] = None) -> Config:
    """Get configuration."""
    return load_config(config_path)


class ConsoleReporter:
    """Prints screen state changes and label updates as they are published."""

    def __init__(self, console: Console) -> None:
        self.console = console
        self.labels: list[str] = []

    def attach(self, bus: EventBus) -> None:
        bus.subscribe("screen.*", self.on_screen)
        bus.subscribe(TOPIC_LABELS, self.on_labels)

    async def on_screen(self, event: Event) -> None:
        for key, value in event.data.items():
            self.console.print(f"[dim]{key}:[/] {escape(str(value))}")

    async def on_labels(self, event: Event) -> None:
        self.labels = list(event.data["labels"])
        self.console.print(f"[bold green]{escape(', '.join(self.labels))}[/]")


@app.command()
def run(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    mock: bool = typer.Option(False, "--mock", help="Use mock camera and classifier"),
    headless: bool = typer.Option(False, "--headless", help="No window; log labels instead"),
    platform: Optional[str] = typer.Option(None, help="Texture dims platform (ios, android)"),
    interval: Optional[int] = typer.Option(None, help="Display ticks between inferences"),
):
    """Open the camera and show the classifier's top labels."""
    from tensorcam.runtime import CameraScreen

    cfg = get_config(config_path)
    if headless:
        cfg.display.backend = "headless"
    if platform:
        if platform not in cfg.camera.texture:
            console.print(f"[red]Error:[/] unknown platform {platform!r}")
            raise typer.Exit(code=2)
        cfg.camera.platform = platform
    if interval is not None:
        if interval < 1:
            console.print("[red]Error:[/] interval must be at least 1")
            raise typer.Exit(code=2)
        cfg.sampling.interval = interval

    screen = CameraScreen(cfg, mock_mode=mock)
    reporter = ConsoleReporter(console)
    reporter.attach(screen.event_bus)
    try:
        screen.run()
    except Exception as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    if reporter.labels:
        console.print(f"Last labels: {escape(', '.join(reporter.labels))}")


@app.command()
def models():
    """List classifier variants with pretrained weights."""
    table = Table(title="Classifier Variants")
    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Width multiplier")
    table.add_column("Checkpoint", style="dim", no_wrap=True)

    for name, widths in PRETRAINED_VARIANTS.items():
        for width, checkpoint in sorted(widths.items()):
            table.add_row(name, f"{width:g}", checkpoint)

    console.print(table)


@app.command()
def config(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    json_output: bool = False,
):
    """Show configuration."""
    cfg = get_config(config_path)

    if json_output:
        print(json.dumps(cfg.model_dump(), indent=2, default=str))
        return

    dims = cfg.camera.texture_dims()
    console.print("[bold]Configuration[/]")
    console.print(f"  Device: {cfg.device.name}")
    console.print(f"  Mode: {cfg.device.mode}")
    console.print(f"  Mock Mode: {cfg.mock_mode}")
    console.print("\n[bold]Camera[/]")
    console.print(f"  Platform: {cfg.camera.resolve_platform()}")
    console.print(f"  Texture: {dims.width}x{dims.height}")
    console.print(
        f"  Classifier input: {cfg.camera.resize_width}x{cfg.camera.resize_height}"
        f"x{cfg.camera.resize_depth}"
    )
    console.print("\n[bold]Classifier[/]")
    console.print(f"  Model: {cfg.classifier.model}")
    console.print(f"  Width multiplier: {cfg.classifier.width_multiplier:g}")
    console.print(f"  Top k: {cfg.classifier.top_k}")
    console.print("\n[bold]Sampling[/]")
    console.print(f"  Interval: {cfg.sampling.interval} ticks")
    console.print(f"  Single flight: {cfg.sampling.single_flight}")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]tensorcam[/] v{__version__}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
