"""
PowerPoint assembly for captured slides.

Each capture becomes one blank-layout slide: the screenshot stretched over
the whole canvas, the extracted text in a caption box and in the speaker
notes.  Screenshots are re-encoded as JPEG through Pillow before python-pptx
sees them, which both validates the bytes and keeps the deck to a single
image format.
"""

from __future__ import annotations

import io
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from PIL import Image
from pptx import Presentation
from pptx.util import Inches, Pt

from storydeck.config import ConverterConfig
from storydeck.errors import SlideSubmissionError

log = logging.getLogger(__name__)

_BLANK_LAYOUT = 6

# Characters XML 1.0 cannot carry: C0 controls, surrogates, U+FFFE and U+FFFF
_XML_INVALID_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def normalize_image(data: bytes, quality: int = 90) -> bytes:
    """Decode *data* and return it re-encoded as an RGB JPEG."""
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        rgb = img.convert("RGB")
    buf = io.BytesIO()
    rgb.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def clean_text(text: str) -> str:
    return _XML_INVALID_RE.sub("", text or "")


class DeckAssembler:
    """Accumulates slides in memory; save() writes the .pptx once."""

    def __init__(self, config: Optional[ConverterConfig] = None, temp_dir: Optional[Path] = None):
        self.config = config or ConverterConfig()
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self.prs = Presentation()
        self.prs.slide_width = Inches(self.config.slide_width_in)
        self.prs.slide_height = Inches(self.config.slide_height_in)
        self._last_ordinal = 0

    @property
    def slide_count(self) -> int:
        return len(self.prs.slides)

    def submit(self, ordinal: int, image: bytes, text: str) -> None:
        """Append one slide.  Raises SlideSubmissionError if the image is unusable."""
        if ordinal <= self._last_ordinal:
            raise ValueError(
                f"slides must arrive in increasing order ({ordinal} after {self._last_ordinal})"
            )
        self._last_ordinal = ordinal

        try:
            jpeg = normalize_image(image, self.config.jpeg_quality)
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
            raise SlideSubmissionError(ordinal, f"failed to decode screenshot: {e}") from e

        tmp_path = self._write_temp(ordinal, jpeg)
        try:
            self._verify(tmp_path, ordinal)
            self._add_slide(tmp_path, clean_text(text))
        except (OSError, ValueError, SyntaxError) as e:
            raise SlideSubmissionError(ordinal, str(e)) from e
        finally:
            tmp_path.unlink(missing_ok=True)

        log.info("Added slide %d to deck", ordinal)

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.prs.save(str(path))
        log.info("Saved PowerPoint with %d slide(s) to %s", self.slide_count, path)
        return path

    # ── Internals ────────────────────────────────────────────────────

    def _write_temp(self, ordinal: int, jpeg: bytes) -> Path:
        if self.temp_dir is not None:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        try:
            fd, name = tempfile.mkstemp(
                prefix=f"slide-{ordinal:03d}-", suffix=".jpg",
                dir=str(self.temp_dir) if self.temp_dir else None,
            )
            with os.fdopen(fd, "wb") as f:
                f.write(jpeg)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise SlideSubmissionError(ordinal, f"could not write temp image: {e}") from e
        return Path(name)

    def _verify(self, path: Path, ordinal: int) -> None:
        with Image.open(path) as img:
            width, height = img.size
        if width == 0 or height == 0:
            raise ValueError("image has no size")
        log.debug(
            "Slide %d image verified at %s (%d bytes, %dx%d)",
            ordinal, path, path.stat().st_size, width, height,
        )

    def _add_slide(self, image_path: Path, text: str) -> None:
        """Append one complete slide, or leave the deck unchanged on failure."""
        slide = self.prs.slides.add_slide(self.prs.slide_layouts[_BLANK_LAYOUT])
        try:
            self._fill_slide(slide, image_path, text)
        except Exception:
            self._remove_last_slide()
            raise

    def _remove_last_slide(self) -> None:
        sld_id_lst = self.prs.slides._sldIdLst
        sld_id = sld_id_lst[-1]
        sld_id_lst.remove(sld_id)
        self.prs.part.drop_rel(sld_id.rId)

    def _fill_slide(self, slide, image_path: Path, text: str) -> None:
        cfg = self.config
        slide.shapes.add_picture(
            str(image_path), 0, 0,
            width=self.prs.slide_width, height=self.prs.slide_height,
        )

        box = slide.shapes.add_textbox(
            Inches(cfg.caption_left_in), Inches(cfg.caption_top_in),
            Inches(cfg.caption_width_in), Inches(cfg.caption_height_in),
        )
        frame = box.text_frame
        frame.word_wrap = True
        run = frame.paragraphs[0].add_run()
        run.text = cfg.caption_prefix + " ".join(text.splitlines())
        run.font.size = Pt(cfg.caption_font_pt)

        if text:
            slide.notes_slide.notes_text_frame.text = text
