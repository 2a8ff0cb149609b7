"""
Serve an unpacked course over loopback HTTP.

A stdlib HTTP server on a background daemon thread, bound to an ephemeral
port.  The browser is the only client.
"""

from __future__ import annotations

import http.server
import logging
import threading
from pathlib import Path
from typing import Optional

from storydeck.errors import ServerError

log = logging.getLogger(__name__)


def _handler_for(root: Path) -> type[http.server.SimpleHTTPRequestHandler]:
    class _Handler(http.server.SimpleHTTPRequestHandler):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, directory=str(root), **kwargs)

        def log_message(self, format, *args):
            pass  # suppress per-request access logs

        def log_error(self, format, *args):
            log.debug("HTTP %s", format % args)

    return _Handler


class ContentServer:
    """Serve *root* on 127.0.0.1 until stop() is called.

    Usable as a context manager::

        with ContentServer(tree) as server:
            page.goto(server.url_for("story.html"))
    """

    def __init__(self, root: Path, host: str = "127.0.0.1"):
        self.root = Path(root)
        self.host = host
        self._server: Optional[http.server.ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        if self._server is None:
            raise ServerError("server is not running")
        return self._server.server_address[1]

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def start(self) -> "ContentServer":
        if not self.root.is_dir():
            raise ServerError(f"cannot serve missing directory {self.root}")
        try:
            server = http.server.ThreadingHTTPServer((self.host, 0), _handler_for(self.root))
        except OSError as e:
            raise ServerError(f"could not bind {self.host}: {e}") from e
        server.daemon_threads = True

        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever, name="storydeck-http", daemon=True,
        )
        self._thread.start()
        log.info("Serving %s at %s", self.root, self.base_url)
        return self

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        log.info("Stopped content server")
        self._server = None
        self._thread = None

    def __enter__(self) -> "ContentServer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def serve_directory(root: Path) -> ContentServer:
    """Start serving *root* and return the running server."""
    return ContentServer(root).start()
