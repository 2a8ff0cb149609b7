import io
from pathlib import Path, PurePosixPath

import pycdlib
import pytest
from PIL import Image

from storydeck.config import ConverterConfig
from storydeck.errors import NavigationError, SessionError, SlideSubmissionError


def png_bytes(color=(200, 30, 30), size=(64, 36), mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


# ── Fake collaborators ────────────────────────────────────────────────


class FakeControl:
    def __init__(self, session, selector, disabled=False):
        self.session = session
        self.selector = selector
        self.disabled = disabled

    def is_disabled(self):
        return self.disabled

    def activate(self):
        self.session.activations.append((self.session.index, self.selector))
        if self.session.index < len(self.session.pages) - 1:
            self.session.index += 1


class FakeSession:
    """Scripted player.

    Each page is a dict with:
      text              visible text
      controls          {selector: {"disabled": bool}}
      screenshot_error  raise on screenshot
      text_error        raise on text extraction
      query_error       raise while looking for the next control

    Activating a control on the last page stays on the last page, so a
    course whose last page keeps an enabled control never ends by itself.
    """

    def __init__(self, pages, fail_navigate=False, fail_hide=False):
        self.pages = pages
        self.index = 0
        self.fail_navigate = fail_navigate
        self.fail_hide = fail_hide
        self.opened = False
        self.closed = False
        self.navigated = []
        self.waits = []
        self.styles = []
        self.screenshots = 0
        self.activations = []

    @property
    def page(self):
        return self.pages[self.index]

    def open(self):
        self.opened = True
        return self

    def close(self):
        self.closed = True

    def navigate(self, url):
        if self.fail_navigate:
            raise NavigationError(f"could not load {url}")
        self.navigated.append(url)

    def wait(self, ms):
        self.waits.append(ms)

    def evaluate(self, script, arg=None):
        if arg is not None:
            if self.fail_hide:
                raise SessionError("style injection failed")
            self.styles.append(arg)
            return None
        if self.page.get("text_error"):
            raise SessionError("innerText unavailable")
        return self.page.get("text", "")

    def screenshot(self):
        if self.page.get("screenshot_error"):
            raise SessionError("renderer gone")
        self.screenshots += 1
        return png_bytes(color=(10 * self.index % 255, 80, 160))

    def query(self, selector):
        if self.page.get("query_error"):
            raise SessionError("execution context destroyed")
        state = self.page.get("controls", {}).get(selector)
        if state is None:
            return None
        return FakeControl(self, selector, state.get("disabled", False))


class FakeAssembler:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.submissions = []

    def submit(self, ordinal, image, text):
        if ordinal in self.fail_on:
            raise SlideSubmissionError(ordinal, "backend rejected image")
        self.submissions.append((ordinal, text))


def linear_pages(n, selector="#next"):
    """n pages, enabled next control everywhere except a disabled one on the last."""
    pages = []
    for i in range(1, n + 1):
        pages.append({
            "text": f"Page {i}",
            "controls": {selector: {"disabled": i == n}},
        })
    return pages


# ── Disc images ───────────────────────────────────────────────────────


def _iso_name(name, is_dir=False):
    stem, dot, ext = name.partition(".")
    stem = stem.upper()[:8]
    if is_dir:
        return stem
    return f"{stem}.{ext.upper()[:3]};1"


def make_iso(path, files, joliet=True, rock_ridge=False):
    """Write an ISO holding *files* ({"dir/name.ext": bytes}) to *path*."""
    iso = pycdlib.PyCdlib()
    kwargs = {}
    if joliet:
        kwargs["joliet"] = 3
    if rock_ridge:
        kwargs["rock_ridge"] = "1.09"
    iso.new(**kwargs)

    made_dirs = set()
    for rel, data in sorted(files.items()):
        parts = PurePosixPath(rel).parts
        iso_parts = []
        for depth, part in enumerate(parts[:-1]):
            iso_parts.append(_iso_name(part, is_dir=True))
            if tuple(parts[:depth + 1]) in made_dirs:
                continue
            extra = {}
            if joliet:
                extra["joliet_path"] = "/" + "/".join(parts[:depth + 1])
            if rock_ridge:
                extra["rr_name"] = part
            iso.add_directory("/" + "/".join(iso_parts), **extra)
            made_dirs.add(tuple(parts[:depth + 1]))

        iso_path = "/" + "/".join(iso_parts + [_iso_name(parts[-1])])
        extra = {}
        if joliet:
            extra["joliet_path"] = "/" + rel
        if rock_ridge:
            extra["rr_name"] = parts[-1]
        iso.add_fp(io.BytesIO(data), len(data), iso_path, **extra)

    iso.write(str(path))
    iso.close()
    return Path(path)


STORY_HTML = b"<html><head><title>Course</title></head><body><p>Hello</p></body></html>"


@pytest.fixture
def course_iso(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    return make_iso(content / "course.iso", {
        "story.html": STORY_HTML,
        "html5/data/js/data.js": b"window.data = {};",
    })


@pytest.fixture
def fast_config(tmp_path):
    return ConverterConfig(
        content_dir=tmp_path / "content",
        scratch_dir=tmp_path / "temp_extracted",
        output_path=tmp_path / "out" / "output.pptx",
        initial_settle_ms=0,
        slide_settle_ms=0,
    )
