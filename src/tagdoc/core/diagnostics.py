"""Diagnostic sinks for non-fatal warnings (duplicate pages, colliding plugin keys)"""

import logging
from dataclasses import dataclass, field
from typing import Protocol


logger = logging.getLogger("tagdoc")


class Diagnostics(Protocol):
    def warn(self, message: str) -> None: ...


class LoggingDiagnostics:
    """Default sink: forwards warnings to the `tagdoc` logger."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def warn(self, message: str) -> None:
        self.log.warning(message)


@dataclass
class CollectingDiagnostics:
    """Records warnings in memory so callers can inspect them after a run."""
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
