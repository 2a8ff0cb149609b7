"""
End-to-end conversion: disc image -> served course -> browser -> .pptx.

Resources are acquired in order (a run-owned scratch tree, HTTP server,
browser) and released in reverse.  The deck is written last, after every
resource has been let go, and only if the traversal actually started.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

from storydeck.archive import extract_iso
from storydeck.config import ConverterConfig, find_course_package, find_entry_page
from storydeck.deck import DeckAssembler
from storydeck.errors import ExtractionError
from storydeck.schema import ConversionReport
from storydeck.server import ContentServer
from storydeck.session import RenderSession
from storydeck.traversal import PageTraversalEngine

log = logging.getLogger(__name__)

_TREE_DIR = "content"
_IMAGE_DIR = "images"


def default_session(config: ConverterConfig) -> RenderSession:
    return RenderSession(
        viewport=config.viewport,
        headless=config.headless,
        navigation_timeout_ms=config.navigation_timeout_ms,
    )


def _prepare_scratch(scratch: Path) -> tuple[Path, bool]:
    """Create a run-owned directory inside *scratch*.

    Returns the run directory and whether *scratch* itself was created by
    this run.  Existing content of *scratch* is never touched.
    """
    created = not scratch.exists()
    try:
        scratch.mkdir(parents=True, exist_ok=True)
        run_dir = Path(tempfile.mkdtemp(prefix="run-", dir=str(scratch)))
    except OSError as e:
        raise ExtractionError(f"cannot prepare scratch directory {scratch}: {e}") from e
    return run_dir, created


def _remove_scratch(run_dir: Path, scratch: Path, created: bool) -> None:
    try:
        shutil.rmtree(run_dir)
        if created:
            scratch.rmdir()  # only succeeds if nothing else appeared there
    except OSError as e:
        log.warning("Could not remove scratch directory %s: %s", run_dir, e)
        return
    log.debug("Removed scratch directory %s", run_dir)


def _persist(assembler: DeckAssembler, path: Path) -> bool:
    try:
        assembler.save(path)
    except OSError as e:
        log.error("Error saving PowerPoint to %s: %s", path, e)
        return False
    return True


def convert_course(
    config: Optional[ConverterConfig] = None,
    session_factory: Optional[Callable[[ConverterConfig], object]] = None,
) -> ConversionReport:
    """Convert the course package found under ``config.content_dir``.

    Setup failures raise a SetupError subclass and leave no output behind.
    Once traversal has started the deck is always written, even when the
    loop was aborted or an unexpected error escaped it.
    """
    config = config or ConverterConfig()
    session_factory = session_factory or default_session

    package = find_course_package(config.content_dir, config.package_suffix)
    log.info("Found course package: %s", package)

    scratch = config.scratch_dir
    run_dir, created = _prepare_scratch(scratch)
    assembler = DeckAssembler(config, temp_dir=run_dir / _IMAGE_DIR)
    started = False
    saved = False
    try:
        tree = run_dir / _TREE_DIR
        extract_iso(package, tree)
        entry = find_entry_page(tree, config.entry_page)

        with ContentServer(tree) as server:
            url = server.url_for(entry)
            log.info("Serving course at %s", url)

            session = session_factory(config)
            session.open()
            try:
                engine = PageTraversalEngine(session, assembler, config)
                engine.start(url)
                started = True
                result = engine.traverse()
            finally:
                session.close()
    finally:
        _remove_scratch(run_dir, scratch, created)
        if started:
            saved = _persist(assembler, config.output_path)

    return ConversionReport(
        package=package,
        entry_url=url,
        traversal=result,
        output_path=config.output_path,
        saved=saved,
    )
