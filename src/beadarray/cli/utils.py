"""
CLI utility functions.

Output formatting and progress reporting shared by the commands.
"""

import click
from typing import Optional


# Color definitions for consistent styling
COLORS = {
    "success": "green",
    "error": "red",
    "warning": "yellow",
    "info": "blue",
    "highlight": "cyan",
}


def echo_success(message: str) -> None:
    """Print success message with green checkmark."""
    click.echo(click.style("✓ ", fg=COLORS["success"]) + message)


def echo_error(message: str) -> None:
    """Print error message with red X."""
    click.echo(click.style("✗ ", fg=COLORS["error"]) + message, err=True)


def echo_warning(message: str) -> None:
    click.echo(click.style("! ", fg=COLORS["warning"]) + message)


def echo_info(message: str) -> None:
    click.echo(click.style("→ ", fg=COLORS["info"]) + message)


def echo_field(name: str, value: object) -> None:
    """Print an aligned `name: value` line."""
    click.echo(f"  {click.style(name, fg=COLORS['highlight'])}: {value}")


def format_number(n: int) -> str:
    """Format large numbers with thousand separators."""
    return f"{n:,}"


class ProgressReporter:
    """
    Progress line for long decodes, usable as a decoder progress callback.

    Usage:
        with ProgressReporter("Decoding loci", total=n) as progress:
            read_bpm(path, progress=progress)
    """

    def __init__(self, task: str, total: Optional[int] = None, quiet: bool = False, every: int = 10000):
        self.task = task
        self.total = total
        self.current = 0
        self.quiet = quiet
        self.every = every

    def __enter__(self) -> "ProgressReporter":
        if not self.quiet:
            click.echo(f"{self.task}...", nl=False, err=True)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self.quiet:
            click.echo(" done", err=True)

    def __call__(self, current: int) -> None:
        self.current = current
        if not self.quiet and current % self.every == 0:
            suffix = f"/{format_number(self.total)}" if self.total else ""
            click.echo(f"\r{self.task} ({format_number(current)}{suffix})...", nl=False, err=True)
