"""Warnings collected while building the block graph."""

from dataclasses import dataclass
from typing import Callable, Optional

from .result import ErrorKind


@dataclass
class BuildWarning:
    """A recoverable problem that excluded a file or directory from the graph.

    Attributes:
        kind: ErrorKind.UNSUPPORTED_FILE or ErrorKind.SUBDIRECTORY_DISALLOWED
        path: Offending path, relative to the project root
        message: Human-readable description
        hint: Optional action that makes the warning go away
    """

    kind: ErrorKind
    path: str
    message: str
    hint: Optional[str] = None

    def __str__(self) -> str:
        text = f"⚠ Skipped `{self.path}`: {self.message}"
        if self.hint:
            text += f" {self.hint}"
        return text


WarningSink = Callable[[BuildWarning], None]

