import socket
from urllib.parse import urlsplit

import pytest
from pptx import Presentation

from storydeck.deck import DeckAssembler
from storydeck.errors import CoursePackageNotFoundError, NavigationError, SessionLaunchError
from storydeck.pipeline import convert_course
from storydeck.schema import TraversalState

from conftest import FakeSession, linear_pages


def _port_is_free(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", port))
    return True


def _factory(session):
    def build(config):
        return session
    return build


def test_normal_run_writes_deck_and_releases_everything(course_iso, fast_config):
    session = FakeSession(linear_pages(3))
    report = convert_course(fast_config, session_factory=_factory(session))

    assert report.traversal.state is TraversalState.FINISHED
    assert report.saved
    assert report.package == course_iso
    assert session.opened and session.closed
    assert session.navigated == [report.entry_url]
    assert report.entry_url.endswith("/story.html")

    prs = Presentation(str(fast_config.output_path))
    assert len(prs.slides) == 3

    assert not fast_config.scratch_dir.exists()
    assert _port_is_free(urlsplit(report.entry_url).port)


def test_loop_abort_keeps_partial_deck_and_releases_everything(course_iso, fast_config):
    pages = linear_pages(5)
    pages[2]["screenshot_error"] = True
    session = FakeSession(pages)
    report = convert_course(fast_config, session_factory=_factory(session))

    assert report.traversal.state is TraversalState.ABORTED
    assert report.saved
    assert len(Presentation(str(fast_config.output_path)).slides) == 2
    assert session.closed
    assert not fast_config.scratch_dir.exists()
    assert _port_is_free(urlsplit(report.entry_url).port)


def test_no_package_aborts_before_scratch_or_output(tmp_path, fast_config):
    (tmp_path / "content").mkdir()
    with pytest.raises(CoursePackageNotFoundError):
        convert_course(fast_config, session_factory=_factory(FakeSession([])))

    assert not fast_config.scratch_dir.exists()
    assert not fast_config.output_path.exists()


def test_navigation_failure_leaves_no_output(course_iso, fast_config):
    session = FakeSession(linear_pages(2), fail_navigate=True)
    with pytest.raises(NavigationError):
        convert_course(fast_config, session_factory=_factory(session))

    assert session.closed
    assert not fast_config.scratch_dir.exists()
    assert not fast_config.output_path.exists()


def test_launch_failure_leaves_no_output(course_iso, fast_config):
    class Unlaunchable(FakeSession):
        def open(self):
            raise SessionLaunchError("no chromium")

    with pytest.raises(SessionLaunchError):
        convert_course(fast_config, session_factory=_factory(Unlaunchable([])))

    assert not fast_config.scratch_dir.exists()
    assert not fast_config.output_path.exists()


def test_existing_scratch_directory_content_is_left_alone(course_iso, fast_config):
    fast_config.scratch_dir.mkdir()
    keep = fast_config.scratch_dir / "thesis.docx"
    keep.write_text("user data")

    report = convert_course(fast_config, session_factory=_factory(FakeSession(linear_pages(1))))

    assert report.saved
    assert keep.read_text() == "user data"
    assert [p.name for p in fast_config.scratch_dir.iterdir()] == ["thesis.docx"]


def test_unexpected_assembler_error_still_writes_partial_deck(
    monkeypatch, course_iso, fast_config,
):
    original = DeckAssembler.submit

    def submit(self, ordinal, image, text):
        if ordinal == 3:
            raise RuntimeError("decoder exploded")
        return original(self, ordinal, image, text)

    monkeypatch.setattr(DeckAssembler, "submit", submit)
    session = FakeSession(linear_pages(5))

    with pytest.raises(RuntimeError):
        convert_course(fast_config, session_factory=_factory(session))

    assert session.closed
    assert len(Presentation(str(fast_config.output_path)).slides) == 2
    assert not fast_config.scratch_dir.exists()
