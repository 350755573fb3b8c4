"""Command-line interface for captionator."""

import asyncio
import time
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .conditions import SystemConditionsProvider, should_bypass_vision
from .gallery import CaptionedImage, CaptionGallery
from .image_processor import SUPPORTED_EXTENSIONS, DirectoryNotFoundError, find_images
from .logging import configure_logging
from .models import CaptionStyle
from .ollama_backend import DEFAULT_MODEL, DEFAULT_OLLAMA_HOST, OllamaVisionBackend
from .performance_tracker import CaptionTracker
from .service import CaptionService

console = Console()
app = typer.Typer(
    name="captionator",
    help="Caption photos with vision analysis and pixel-statistics fallbacks"
)

STYLE_COLORS = {
    CaptionStyle.CREATIVE: "magenta",
    CaptionStyle.FACTUAL: "cyan",
    CaptionStyle.ERROR: "red",
}


class CaptionRunner:
    """Captions batches of image files through one service."""

    def __init__(self, service: CaptionService, style: CaptionStyle):
        """
        Initialize the runner.

        Args:
            service: Caption service shared by every image in the run
            style: Creative or factual
        """
        self.service = service
        self.style = style
        self.gallery = CaptionGallery(service)
        self.tracker = CaptionTracker()

    async def caption_file(self, image_path: Path) -> CaptionedImage:
        with self.tracker.track():
            entry = await self.gallery.process_image(image_path, self.style, source_name=image_path.name)

        self.tracker.record(entry.strategy or "unknown", failed=entry.caption_type == CaptionStyle.ERROR)
        return entry

    async def caption_files(self, image_files: List[Path], concurrent: int = 2) -> Dict[str, int]:
        """
        Caption images in concurrent batches.

        Args:
            image_files: Image files to caption
            concurrent: Number of images submitted together

        Returns:
            Dictionary with captioning statistics
        """
        stats = {"captioned": 0, "errors": 0}

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("•"),
            TimeElapsedColumn(),
            console=console,
            transient=True
        ) as progress:
            task = progress.add_task("[green]Captioning images", total=len(image_files))

            for i in range(0, len(image_files), concurrent):
                batch = image_files[i:i + concurrent]
                entries = await asyncio.gather(*(self.caption_file(path) for path in batch))

                for entry in entries:
                    if entry.caption_type == CaptionStyle.ERROR:
                        stats["errors"] += 1
                    else:
                        stats["captioned"] += 1
                    progress.advance(task)

        return stats


def collect_images(paths: List[Path]) -> List[Path]:
    """Expand directories into their image files, keeping explicit files as given."""
    images: List[Path] = []
    for path in paths:
        if path.is_dir():
            images.extend(find_images(path))
        elif path.suffix.lower() in SUPPORTED_EXTENSIONS or path.exists():
            images.append(path)
        else:
            raise DirectoryNotFoundError(f"{path} does not exist")
    return images


def display_entry(entry: CaptionedImage) -> None:
    color = STYLE_COLORS.get(entry.caption_type, "white")
    console.print(f"\n[bold]{entry.source_name}[/bold] [dim]({entry.strategy})[/dim]")
    console.print(f"  [{color}]{entry.caption}[/{color}]")


def display_conditions() -> None:
    conditions = SystemConditionsProvider().current()

    table = Table(title="System Conditions")
    table.add_column("Probe", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Thermal State", conditions.thermal_state.value)
    table.add_row("Physical Memory", f"{conditions.physical_memory // 1_000_000} MB")
    if conditions.available_memory is not None:
        table.add_row("Available Memory", f"{conditions.available_memory // 1_000_000} MB")
    table.add_row("Low Power Mode", str(conditions.low_power_mode))
    table.add_row("Bypass Vision", str(should_bypass_vision(conditions)))
    console.print(table)


@app.command()
def main(
    paths: Optional[List[Path]] = typer.Argument(None, help="Image files or directories to caption"),
    style: CaptionStyle = typer.Option(CaptionStyle.CREATIVE, "--style", "-s", help="Caption style: creative or factual"),
    model: str = typer.Option(DEFAULT_MODEL, "--model", envvar="CAPTIONATOR_MODEL", help="Ollama vision model to use"),
    host: str = typer.Option(DEFAULT_OLLAMA_HOST, "--host", envvar="CAPTIONATOR_OLLAMA_HOST", help="Ollama host URL (e.g., http://192.168.1.100:11434)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds before a vision request counts as cancelled"),
    concurrent: int = typer.Option(2, "--concurrent", "-c", help="Number of images submitted together (default: 2)"),
    no_vision: bool = typer.Option(False, "--no-vision", help="Skip the vision backend and caption from pixels only"),
    conditions: bool = typer.Option(False, "--conditions", help="Show system conditions and the bypass decision"),
    test: bool = typer.Option(False, "--test", help="Test the Ollama connection"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")
):
    """Caption photos with on-device style vision analysis."""
    configure_logging(verbose, console)

    if conditions:
        display_conditions()
        return

    if test:
        test_backend(model, host)
        return

    if not paths:
        console.print("[red]Error: At least one image or directory is required (unless using --test or --conditions)[/red]")
        console.print("Use --help for usage information")
        raise typer.Exit(1)

    if not style.renderable:
        console.print(f"[red]Error: '{style.value}' is not a caption style; use creative or factual[/red]")
        raise typer.Exit(1)

    try:
        image_files = collect_images(paths)
    except DirectoryNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not image_files:
        console.print("[yellow]No image files found[/yellow]")
        return

    backend = None if no_vision else OllamaVisionBackend(model, host)
    service = CaptionService(backend=backend, request_timeout=timeout)
    runner = CaptionRunner(service, style)

    console.print(f"[green]Found {len(image_files)} image files[/green]")
    if backend is not None:
        console.print(f"[blue]Using model: {model}[/blue]")

    start_time = time.time()
    stats = asyncio.run(runner.caption_files(image_files, concurrent))
    elapsed = time.time() - start_time

    for entry in reversed(runner.gallery.images):
        display_entry(entry)

    console.print("\n[bold]Summary[/bold]")
    console.print(f"Captioned: [green]{stats['captioned']}[/green]")
    console.print(f"Errors: [red]{stats['errors']}[/red]")
    console.print(f"Total time: {elapsed:.1f}s")

    runner.tracker.display_summary(service.health)


def test_backend(model: str, host: str) -> None:
    """Test Ollama availability."""
    console.print("[bold]🧪 Testing Vision Backend[/bold]\n")
    backend = OllamaVisionBackend(model, host)

    if backend.test_connection():
        console.print(f"  ✅ {host} reachable, using {model}")
    else:
        console.print(f"  ❌ {host} connection failed, captions will use pixel analysis")


if __name__ == "__main__":
    app()
