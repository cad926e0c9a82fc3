# File: relcheck/utils.py
"""
RelCheck - Utility Functions & Helpers
=======================================
Small formatting helpers shared by the violation messages, and a timer used
by the command-line front end.
"""

from __future__ import annotations

import logging
import time
from typing import Any, List, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("relcheck.utils")


# ---------------------------------------------------------------------------
# Message formatting
# ---------------------------------------------------------------------------


def format_names(names: Sequence[str]) -> str:
    """
    Render an ordered list of names the way violation messages show them.

    Example:
        >>> format_names(["Id", "Name"])
        "{'Id', 'Name'}"
    """
    return "{" + ", ".join(f"'{n}'" for n in names) + "}"


def format_value(value: Any) -> str:
    """Render a literal for a message; ``None`` becomes ``NULL``."""
    if value is None:
        return "NULL"
    return repr(value) if isinstance(value, str) else str(value)


def join_identifier(*parts: str) -> str:
    """Join non-empty name parts with underscores (``PK_Orders``)."""
    return "_".join(p for p in parts if p)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling validation passes.

    Usage:
        with Timer("validation") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.info(
            "Timer [%s]: %.4f seconds",
            self.label,
            self.elapsed,
        )

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


__all__: List[str] = [
    "format_names",
    "format_value",
    "join_identifier",
    "Timer",
]
