"""Rich console utilities for depure.

This module provides a shared Rich Console instance and helper functions
for CLI output, with plain annotations when running in GitHub Actions.
"""

import os
from typing import Any, List, Optional, Tuple

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from .dependencies import DependencySet
from .engine import ResolutionResult

# Detect CI environments
IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"
IS_GITLAB_CI = os.getenv("GITLAB_CI") == "true"
IS_CI = os.getenv("CI") == "true" or IS_GITHUB_ACTIONS or IS_GITLAB_CI

BRAND_COLORS_HEX = {
    "green": "#2E9E6B",
    "teal": "#2A9D8F",
    "blue": "#3A7BD5",
    "purple": "#7C5BC8",
}

# Standard ANSI color names adapt to light and dark CI log themes
BRAND_COLORS_ADAPTIVE = {
    "green": "green",
    "teal": "cyan",
    "blue": "blue",
    "purple": "magenta",
}

BRAND_COLORS = BRAND_COLORS_ADAPTIVE if IS_CI else BRAND_COLORS_HEX

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "step": "bold blue",
        "highlight": "magenta",
        "dev": "magenta",
        "prod": "green",
    }
)

# Shared console instance
# Force colors ON in GitHub Actions (it supports ANSI colors but Rich may incorrectly disable them)
console = Console(
    theme=custom_theme,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
)

_BANNER_LINES = (
    ("       __                          \n", "green"),
    ("  ____/ /__  ____  __  __________  \n", "teal"),
    (" / __  / _ \\/ __ \\/ / / / ___/ _ \\ \n", "teal"),
    ("/ /_/ /  __/ /_/ / /_/ / /  /  __/ \n", "blue"),
    ("\\__,_/\\___/ .___/\\__,_/_/   \\___/  \n", "blue"),
    ("         /_/                       \n", "purple"),
)


def print_banner(version: str = "unknown") -> None:
    """Print the depure banner."""
    banner = Text()
    for line, color in _BANNER_LINES:
        banner.append(line, style=BRAND_COLORS[color])
    # Only prefix with 'v' if version looks like semver (starts with digit)
    version_display = f"v{version}" if version and version[0:1].isdigit() else version
    banner.append(f" {version_display}", style=BRAND_COLORS["purple"])
    banner.append(" - imports in, requirements out\n", style=BRAND_COLORS["teal"])

    console.print(banner)


def print_step_header(step_num: int, title: str) -> None:
    """
    Print a styled step header.

    In GitHub Actions, uses ::group:: for collapsible sections.
    """
    step_title = f"STEP {step_num}: {title}"

    if IS_GITHUB_ACTIONS:
        print(f"::group::{step_title}")
        console.print(f"[bold blue]{step_title}[/bold blue]")
    else:
        console.print()
        console.rule(f"[bold blue]{step_title}[/bold blue]", style="blue")


def print_step_end(step_num: int, success: bool = True) -> None:
    """Print step completion status and close the GitHub Actions group."""
    if success:
        console.print(f"[success]✓ Step {step_num} completed successfully[/success]")
    else:
        console.print(f"[error]✗ Step {step_num} failed[/error]")

    if IS_GITHUB_ACTIONS:
        print("::endgroup::")
    else:
        console.print()


def gha_warning(message: str, title: Optional[str] = None) -> None:
    """Emit a warning that appears in the GitHub Actions job summary."""
    if IS_GITHUB_ACTIONS:
        if title:
            print(f"::warning title={title}::{message}")
        else:
            print(f"::warning::{message}")
    else:
        if title:
            console.print(f"[warning]Warning ({title}):[/warning] {message}")
        else:
            console.print(f"[warning]Warning:[/warning] {message}")


def gha_error(message: str, title: Optional[str] = None) -> None:
    """Emit an error that appears in the GitHub Actions job summary."""
    if IS_GITHUB_ACTIONS:
        if title:
            print(f"::error title={title}::{message}")
        else:
            print(f"::error::{message}")
    else:
        if title:
            console.print(f"[error]Error ({title}):[/error] {message}")
        else:
            console.print(f"[error]Error:[/error] {message}")


def print_summary_table(
    title: str,
    data: List[Tuple[str, Any]],
    show_if_empty: bool = False,
) -> None:
    """
    Print a summary table.

    Args:
        title: Table title
        data: List of (label, value) tuples
        show_if_empty: Whether to show the table if all values are 0/empty
    """
    if not show_if_empty:
        data = [(label, value) for label, value in data if value]

    if not data:
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    for label, value in data:
        table.add_row(label, str(value))

    console.print(table)


def print_dependency_table(dependencies: DependencySet) -> None:
    """Print resolved dependencies with their group, versions and update flag."""
    if not len(dependencies):
        return

    table = Table(title="Resolved Dependencies", show_header=True, header_style="bold")
    table.add_column("Package", style="cyan")
    table.add_column("Group")
    table.add_column("Pinned", justify="right")
    table.add_column("Latest", justify="right")
    table.add_column("Update")

    for dep in sorted(dependencies, key=lambda d: (d.is_dev, d.name)):
        group = "[dev]dev[/dev]" if dep.is_dev else "[prod]prod[/prod]"
        update = "[warning]↑ available[/warning]" if dep.update_available else ""
        table.add_row(dep.name, group, dep.pinned_version or "-", dep.registry_version or "-", update)

    console.print(table)


def print_resolution_summary(result: ResolutionResult) -> None:
    """Print the dependency table and a counts table for a resolution run."""
    print_dependency_table(result.dependencies)

    data = [
        ("Import candidates", len(result.candidates)),
        ("Packages identified", len(result.classified)),
        ("Production dependencies", len(result.dependencies.prod)),
        ("Development dependencies", len(result.dependencies.dev)),
        ("Transitive packages", len(result.graph.transitive())),
        ("Updates available", len(result.dependencies.updates())),
    ]
    print_summary_table("Resolution Summary", data)


def print_final_success(message: str = "All steps completed successfully!") -> None:
    """Print final success message."""
    console.print()
    if IS_GITHUB_ACTIONS:
        console.print(f"[bold green]✓ SUCCESS![/bold green] {message}")
    else:
        console.rule("[bold green]SUCCESS[/bold green]", style="green")
        console.print(f"[bold green]{message}[/bold green]", justify="center")
    console.print()


def print_final_failure(message: str) -> None:
    """Print final failure message."""
    console.print()
    gha_error(message, title="Dependency Resolution Failed")
    if not IS_GITHUB_ACTIONS:
        console.rule("[bold red]FAILED[/bold red]", style="red")
        console.print(f"[bold red]{message}[/bold red]", justify="center")
    console.print()
