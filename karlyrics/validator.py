"""Lyrics validation error record."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["ValidatorError"]


@dataclass(frozen=True, order=True)
class ValidatorError:
    """An error found at a line and column of the lyrics text."""

    line: int = 0
    column: int = 0
    error: str = ""

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}: {self.error}"