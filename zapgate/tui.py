"""Terminal output helpers for the zapgate CLI."""

import sys
from typing import Iterable


def print_error(message: str) -> None:
    """Print an error message."""
    print(f"Error: {message}", file=sys.stderr)


def print_success(message: str) -> None:
    """Print a success message."""
    print(message)


def print_info(message: str) -> None:
    """Print an info message."""
    print(message)


def print_groups(groups: Iterable[dict]) -> None:
    """Print groups as an aligned two-column table."""
    groups = list(groups)
    if not groups:
        print_info("No groups found")
        return

    width = max(len(g.get("id", "")) for g in groups)
    for group in sorted(groups, key=lambda g: g.get("name", "").lower()):
        print(f"{group.get('id', ''):<{width}}  {group.get('name', '')}")
