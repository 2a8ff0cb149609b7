"""
storydeck: turn a packaged story-player course into a PowerPoint deck.

Unpacks the course disc image, serves it on loopback, walks the player page
by page in headless Chromium and writes one slide per page.
"""

from storydeck.config import ConverterConfig, find_course_package, find_entry_page
from storydeck.deck import DeckAssembler
from storydeck.errors import ConverterError, SetupError
from storydeck.pipeline import convert_course
from storydeck.schema import ConversionReport, SlideCapture, TraversalResult, TraversalState
from storydeck.traversal import PageTraversalEngine, find_first_match

__all__ = [
    "ConverterConfig",
    "ConversionReport",
    "ConverterError",
    "DeckAssembler",
    "PageTraversalEngine",
    "SetupError",
    "SlideCapture",
    "TraversalResult",
    "TraversalState",
    "convert_course",
    "find_course_package",
    "find_entry_page",
    "find_first_match",
]
