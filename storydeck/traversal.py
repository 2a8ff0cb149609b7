"""
Page traversal: walk a story player one slide at a time.

Each iteration waits for the slide to settle, captures a screenshot and the
visible text, hands both to the assembler and then looks for an enabled
"next" control to press.  There is no explicit end-of-course signal; the run
ends when no enabled control is found, when the browser stops answering, or
when the safety bound on slide count is reached.

The engine only needs two collaborators:

- a session with navigate / wait / evaluate / screenshot / query
  (see storydeck.session.RenderSession)
- an assembler with submit(ordinal, image_bytes, text)
  (see storydeck.deck.DeckAssembler)
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from storydeck.config import ConverterConfig
from storydeck.errors import NavigationError, SessionError, SlideSubmissionError
from storydeck.schema import AdvanceDecision, SlideCapture, TraversalResult, TraversalState

log = logging.getLogger(__name__)

_INJECT_STYLE_JS = """css => {
    const style = document.createElement('style');
    style.textContent = css;
    document.head.appendChild(style);
}"""


def find_first_match(session, selectors: Sequence[str]):
    """Return ``(selector, handle)`` for the first selector that matches, else None."""
    for selector in selectors:
        handle = session.query(selector)
        if handle is not None:
            return selector, handle
    return None


def decide_advance(session, selectors: Sequence[str]) -> AdvanceDecision:
    """Press the next control if there is an enabled one.

    Raises SessionError when the page could not be inspected at all.
    """
    match = find_first_match(session, selectors)
    if match is None:
        return AdvanceDecision(stop=True, reason="missing")

    selector, handle = match
    if handle.is_disabled():
        return AdvanceDecision(stop=True, reason="disabled", selector=selector)

    handle.activate()
    return AdvanceDecision(stop=False, reason="activated", selector=selector)


class PageTraversalEngine:
    """Drive *session* through the course and feed *assembler* in order."""

    def __init__(self, session, assembler, config: Optional[ConverterConfig] = None):
        self.session = session
        self.assembler = assembler
        self.config = config or ConverterConfig()
        self.state = TraversalState.INITIALIZING

    # ── Initializing -> Ready ────────────────────────────────────────

    def start(self, url: str) -> None:
        """Load the player and hide its chrome.  Failures here are fatal."""
        self.state = TraversalState.INITIALIZING
        log.info("Navigating to %s", url)
        self.session.navigate(url)
        try:
            self.session.wait(self.config.initial_settle_ms)
        except SessionError as e:
            raise NavigationError(f"player did not finish loading: {e}") from e

        try:
            self.session.evaluate(_INJECT_STYLE_JS, self.config.hide_controls_css)
        except SessionError as e:
            log.warning("Could not hide player controls: %s", e)

        self.state = TraversalState.READY

    # ── Per-slide steps ──────────────────────────────────────────────

    def capture(self, ordinal: int) -> SlideCapture:
        """Settle, screenshot, read text.  Raises SessionError on screenshot failure."""
        self.state = TraversalState.CAPTURING
        self.session.wait(self.config.slide_settle_ms)
        image = self.session.screenshot()

        text = ""
        try:
            raw = self.session.evaluate(self.config.text_script)
            text = raw if isinstance(raw, str) else ""
        except SessionError as e:
            log.warning("Could not extract text for slide %d: %s", ordinal, e)

        return SlideCapture(ordinal=ordinal, image=image, text=text)

    def submit(self, capture: SlideCapture, result: TraversalResult) -> None:
        try:
            self.assembler.submit(capture.ordinal, capture.image, capture.text)
        except SlideSubmissionError as e:
            log.warning("Dropping slide %d: %s", capture.ordinal, e)
            result.dropped.append(capture.ordinal)
            return
        result.submitted.append(capture.ordinal)

    # ── Main loop ────────────────────────────────────────────────────

    def run(self, url: str) -> TraversalResult:
        """Traverse from *url* until the course ends or traversal has to stop.

        Setup failures (navigation) propagate.  Everything after the first
        capture is reported through the returned TraversalResult.
        """
        self.start(url)
        return self.traverse()

    def traverse(self) -> TraversalResult:
        """Capture and advance from the page loaded by start()."""
        result = TraversalResult(state=self.state)
        ordinal = 1

        while True:
            log.info("Processing slide %d...", ordinal)
            try:
                capture = self.capture(ordinal)
            except SessionError as e:
                log.error("Screenshot of slide %d failed: %s", ordinal, e)
                return self._end(result, TraversalState.ABORTED, "screenshot failed")
            result.captured += 1

            self.submit(capture, result)

            self.state = TraversalState.ADVANCING
            try:
                decision = decide_advance(self.session, self.config.next_selectors)
            except SessionError as e:
                log.error("Could not check the next control on slide %d: %s", ordinal, e)
                return self._end(result, TraversalState.ABORTED, "next control unreadable")

            if decision.stop:
                log.info("End of presentation reached (next control %s)", decision.reason)
                return self._end(result, TraversalState.FINISHED, f"next control {decision.reason}")

            log.debug("Advanced past slide %d via %s", ordinal, decision.selector)
            if ordinal >= self.config.max_slides:
                log.warning("Max slides reached (%d), stopping.", self.config.max_slides)
                return self._end(result, TraversalState.FINISHED, "safety bound")

            ordinal += 1
            self.state = TraversalState.READY

    def _end(self, result: TraversalResult, state: TraversalState, reason: str) -> TraversalResult:
        self.state = state
        result.state = state
        result.stop_reason = reason
        return result
