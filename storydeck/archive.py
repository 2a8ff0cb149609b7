"""
Unpack a course disc image into a plain directory tree.

Uses pycdlib to read the ISO 9660 image.  Authoring tools usually write
Joliet or UDF names alongside the 8.3 ISO names, so the richest name space
present on the disc is the one that gets extracted.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

import pycdlib
from pycdlib.pycdlibexception import PyCdlibException

from storydeck.errors import ExtractionError

log = logging.getLogger(__name__)


def _pick_namespace(iso: pycdlib.PyCdlib) -> str:
    """Return the walk/get keyword for the best name space on the disc."""
    if iso.has_udf():
        return "udf_path"
    if iso.has_rock_ridge():
        return "rr_path"
    if iso.has_joliet():
        return "joliet_path"
    return "iso_path"


def _local_name(name: str, namespace: str) -> str:
    """Strip ISO 9660 version suffixes ("STORY.HTM;1" -> "STORY.HTM")."""
    if namespace != "iso_path":
        return name
    name = name.split(";", 1)[0]
    return name.rstrip(".") or name


def _safe_target(dest: Path, rel: PurePosixPath) -> Path:
    target = (dest / Path(*rel.parts)).resolve()
    if dest != target and dest not in target.parents:
        raise ExtractionError(f"refusing to write outside {dest}: {rel}")
    return target


def extract_iso(iso_path: Path, dest: Path) -> int:
    """Extract every file of *iso_path* into *dest*.

    Returns the number of files written.  Any read or write failure is
    raised as ExtractionError.
    """
    iso_path = Path(iso_path)
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    dest = dest.resolve()

    iso = pycdlib.PyCdlib()
    try:
        iso.open(str(iso_path))
    except (PyCdlibException, OSError) as e:
        raise ExtractionError(f"failed to open ISO {iso_path}: {e}") from e

    written = 0
    try:
        namespace = _pick_namespace(iso)
        log.info("Extracting %s using %s names", iso_path.name, namespace.split("_")[0])

        for dirpath, dirlist, filelist in iso.walk(**{namespace: "/"}):
            rel_dir = PurePosixPath(*[
                _local_name(part, namespace)
                for part in PurePosixPath(dirpath).parts[1:]
            ])
            for d in dirlist:
                _safe_target(dest, rel_dir / _local_name(d, namespace)).mkdir(
                    parents=True, exist_ok=True,
                )
            for name in filelist:
                target = _safe_target(dest, rel_dir / _local_name(name, namespace))
                target.parent.mkdir(parents=True, exist_ok=True)
                source = dirpath.rstrip("/") + "/" + name
                iso.get_file_from_iso(str(target), **{namespace: source})
                written += 1
    except (PyCdlibException, OSError) as e:
        raise ExtractionError(f"failed to extract {iso_path}: {e}") from e
    finally:
        iso.close()

    log.info("Extracted %d files to %s", written, dest)
    return written
