"""Console output shared by the CLI and the pipeline."""

from __future__ import annotations

from rich.console import Console

console_out = Console(highlight=False)
console_err = Console(stderr=True, highlight=False)


def say(message: str = "") -> None:
    # Titles routinely contain [brackets]; never treat them as markup
    console_out.print(message, markup=False, soft_wrap=True)


def error(message: str) -> None:
    console_err.print(message, markup=False, style="bold red", soft_wrap=True)
