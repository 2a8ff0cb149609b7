"""
Data classes passed between the traversal engine, the document assembler
and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class TraversalState(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    CAPTURING = "capturing"
    ADVANCING = "advancing"
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass(frozen=True)
class SlideCapture:
    ordinal: int  # 1-based, gapless
    image: bytes  # PNG straight from the renderer
    text: str = ""


@dataclass
class AdvanceDecision:
    stop: bool
    reason: str  # "missing" | "disabled" | "activated"
    selector: Optional[str] = None


@dataclass
class TraversalResult:
    state: TraversalState
    captured: int = 0
    submitted: list[int] = field(default_factory=list)
    dropped: list[int] = field(default_factory=list)
    stop_reason: str = ""

    @property
    def finished(self) -> bool:
        return self.state is TraversalState.FINISHED


@dataclass
class ConversionReport:
    package: Path
    entry_url: str
    traversal: TraversalResult
    output_path: Path
    saved: bool = False

    def summary(self) -> str:
        """One-line human summary for the CLI."""
        t = self.traversal
        line = (
            f"{t.state.value}: {len(t.submitted)} slide(s) written, "
            f"{len(t.dropped)} dropped ({t.stop_reason or 'no reason'})"
        )
        if self.saved:
            return f"{line} -> {self.output_path}"
        return f"{line}, output NOT saved"
