"""
Exception hierarchy for the course-to-deck converter.

Setup errors abort a run before any slide exists.  Session errors come from
a live browser that stopped answering.  Submission errors belong to one
slide only.
"""

from __future__ import annotations


class ConverterError(Exception):
    """Base class for every error raised by storydeck."""


# ── Setup (fatal, no output) ──────────────────────────────────────────


class SetupError(ConverterError):
    """The run cannot start; nothing has been captured yet."""


class CoursePackageNotFoundError(SetupError):
    pass


class ExtractionError(SetupError):
    pass


class EntryPageNotFoundError(SetupError):
    pass


class ServerError(SetupError):
    pass


class SessionLaunchError(SetupError):
    pass


class NavigationError(SetupError):
    pass


# ── Runtime ───────────────────────────────────────────────────────────


class SessionError(ConverterError):
    """A command against the live render session failed."""


class SlideSubmissionError(ConverterError):
    """One capture could not be added to the output document."""

    def __init__(self, ordinal: int, message: str):
        super().__init__(f"slide {ordinal}: {message}")
        self.ordinal = ordinal
