"""Tracks which strategies produced captions and how long they took."""

import time
from collections import Counter
from contextlib import contextmanager
from typing import Dict, Generator

from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from .models import HealthState

console = Console()


class CaptionRunStats(BaseModel):
    """Aggregate statistics for a captioning run."""

    caption_count: int = 0
    error_count: int = 0
    total_time: float = 0.0
    strategy_counts: Dict[str, int] = Field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        """Fraction of images that got a real caption."""
        total = self.caption_count + self.error_count
        return self.caption_count / total if total > 0 else 0.0

    @property
    def avg_time_per_image(self) -> float:
        total = self.caption_count + self.error_count
        return self.total_time / total if total > 0 else 0.0


class CaptionTracker:
    """Collects per-image outcomes and renders a summary table."""

    def __init__(self):
        self.stats = CaptionRunStats()
        self._strategies: Counter = Counter()

    @contextmanager
    def track(self) -> Generator[None, None, None]:
        """
        Context manager to time one captioning call.

        Usage:
            with tracker.track():
                outcome = await service.caption(image, style)
        """
        start_time = time.perf_counter()
        try:
            yield
        finally:
            self.stats.total_time += time.perf_counter() - start_time

    def record(self, strategy: str, failed: bool = False) -> None:
        if failed:
            self.stats.error_count += 1
        else:
            self.stats.caption_count += 1

        self._strategies[strategy] += 1
        self.stats.strategy_counts = dict(self._strategies)

    def display_summary(self, health: HealthState) -> None:
        """Display run statistics and final vision health."""
        console.print("\n[bold]Caption Summary[/bold]")

        table = Table()
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="magenta")

        table.add_row("Captioned", str(self.stats.caption_count))
        table.add_row("Errors", str(self.stats.error_count))
        table.add_row("Success Rate", f"{self.stats.success_rate:.1%}")
        table.add_row("Average Time/Image", f"{self.stats.avg_time_per_image:.2f}s")
        for strategy, count in self._strategies.most_common():
            table.add_row(f"Strategy: {strategy}", str(count))
        table.add_row("Vision Health", f"{health.score:.1f}")
        table.add_row("Consecutive Failures", str(health.consecutive_failures))

        console.print(table)
