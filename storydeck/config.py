"""
Path configuration and constants for the course converter.

The module-level constants are the defaults of a run.  ConverterConfig
bundles them into one value that is handed to every component, so nothing
below reads global state at call time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from storydeck.errors import CoursePackageNotFoundError, EntryPageNotFoundError

log = logging.getLogger(__name__)

# ── Filesystem layout ─────────────────────────────────────────────────
CONTENT_DIR = Path("../content")
SCRATCH_DIR = Path("temp_extracted")
OUTPUT_PPTX = Path("../output.pptx")
PACKAGE_SUFFIX = ".iso"
ENTRY_PAGE = "story.html"

# ── Browser ───────────────────────────────────────────────────────────
VIEWPORT = {"width": 1280, "height": 720}
NAVIGATION_TIMEOUT_MS = 60000
INITIAL_SETTLE_MS = 5000   # player boot after the first load
SLIDE_SETTLE_MS = 2000     # per-slide transitions and animations

# ── Traversal ─────────────────────────────────────────────────────────
MAX_SLIDES = 100

# Tried in order: player id, player class, generic accessible label.
NEXT_SELECTORS = (
    "#next",
    ".next-button",
    "button[aria-label='next' i], [role='button'][aria-label='next' i]",
)

HIDE_CONTROLS_CSS = (
    ".controls-group, .cs-controls, .area-primary "
    "{ display: none !important; }"
)

TEXT_SCRIPT = "() => document.body ? document.body.innerText : ''"

# ── Output document ───────────────────────────────────────────────────
SLIDE_WIDTH_IN = 13.33
SLIDE_HEIGHT_IN = 7.5
JPEG_QUALITY = 90
CAPTION_LEFT_IN = 0.5
CAPTION_TOP_IN = 7.6   # just below the visible canvas, still editable
CAPTION_WIDTH_IN = 12.0
CAPTION_HEIGHT_IN = 2.0
CAPTION_FONT_PT = 10
CAPTION_PREFIX = "Extracted Text: "


@dataclass
class ConverterConfig:
    content_dir: Path = CONTENT_DIR
    scratch_dir: Path = SCRATCH_DIR
    output_path: Path = OUTPUT_PPTX
    package_suffix: str = PACKAGE_SUFFIX
    entry_page: str = ENTRY_PAGE

    viewport: dict = field(default_factory=lambda: dict(VIEWPORT))
    headless: bool = True
    navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS
    initial_settle_ms: int = INITIAL_SETTLE_MS
    slide_settle_ms: int = SLIDE_SETTLE_MS

    max_slides: int = MAX_SLIDES
    next_selectors: tuple[str, ...] = NEXT_SELECTORS
    hide_controls_css: str = HIDE_CONTROLS_CSS
    text_script: str = TEXT_SCRIPT

    slide_width_in: float = SLIDE_WIDTH_IN
    slide_height_in: float = SLIDE_HEIGHT_IN
    jpeg_quality: int = JPEG_QUALITY
    caption_left_in: float = CAPTION_LEFT_IN
    caption_top_in: float = CAPTION_TOP_IN
    caption_width_in: float = CAPTION_WIDTH_IN
    caption_height_in: float = CAPTION_HEIGHT_IN
    caption_font_pt: int = CAPTION_FONT_PT
    caption_prefix: str = CAPTION_PREFIX

    def __post_init__(self) -> None:
        self.content_dir = Path(self.content_dir)
        self.scratch_dir = Path(self.scratch_dir)
        self.output_path = Path(self.output_path)
        self.next_selectors = tuple(self.next_selectors)
        if self.max_slides < 1:
            raise ValueError("max_slides must be at least 1")
        if not self.next_selectors:
            raise ValueError("at least one next-control selector is required")


def find_course_package(content_dir: Path, suffix: str = PACKAGE_SUFFIX) -> Path:
    """Return the course image inside *content_dir* (searched recursively).

    Candidates are ordered by their path relative to *content_dir*; the first
    one wins and any others are reported as ignored.
    """
    content_dir = Path(content_dir)
    if not content_dir.is_dir():
        raise CoursePackageNotFoundError(f"content directory not found: {content_dir}")

    suffix = suffix.lower()
    candidates = sorted(
        (p for p in content_dir.rglob("*") if p.is_file() and p.suffix.lower() == suffix),
        key=lambda p: p.relative_to(content_dir).as_posix(),
    )
    if not candidates:
        raise CoursePackageNotFoundError(f"no {suffix} file found in {content_dir}")

    if len(candidates) > 1:
        log.warning(
            "Found %d course packages, using %s and ignoring: %s",
            len(candidates), candidates[0],
            ", ".join(str(p) for p in candidates[1:]),
        )
    return candidates[0]


def find_entry_page(root: Path, name: str = ENTRY_PAGE) -> str:
    """Find the player page under *root* and return its URL path."""
    root = Path(root)
    if (root / name).is_file():
        return name

    nested = sorted(
        (p for p in root.rglob("*") if p.is_file() and p.name.lower() == name.lower()),
        key=lambda p: p.relative_to(root).as_posix(),
    )
    if not nested:
        raise EntryPageNotFoundError(f"{name} not found in {root}")
    rel = nested[0].relative_to(root).as_posix()
    log.info("Entry page is not at the root, using %s", rel)
    return rel
