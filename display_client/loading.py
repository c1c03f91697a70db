"""Rotating loading messages shown while a request is in flight.

The ticker is cosmetic: it runs on its own daemon thread and never touches
the request. Callers must stop() it on every exit path.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)

LOADING_MESSAGES = (
    "Waking up free-tier servers...",
    "Fetching BBC News & Al Jazeera feeds...",
    "Querying memory buffer (last 10 headlines)...",
    "AI agent analyzing global impact...",
    "Gemini evaluating headline uniqueness...",
    "Selecting most relevant story...",
    "Generating 20-word visual prompt...",
    "Flux1 creating artistic representation...",
    "Uploading to Cloudinary CDN...",
    "Saving to PostgreSQL database...",
    "Updating active entry status...",
    "Almost there...",
)

DEFAULT_INTERVAL_S = 2.5


class LoadingTicker:
    """Cycles through ``messages`` every ``interval`` seconds, wrapping at the end.

    Parameters
    ----------
    interval : float
        Seconds between message changes.
    on_change : callable, optional
        Called with the new message after every advance and on reset.
    messages : sequence of str
        Fixed, ordered message list.
    """

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL_S,
        on_change: Optional[Callable[[str], None]] = None,
        messages: Sequence[str] = LOADING_MESSAGES,
    ) -> None:
        if not messages:
            raise ValueError("messages must not be empty")
        self.interval = interval
        self.messages = tuple(messages)
        self._on_change = on_change
        self._lock = threading.Lock()
        self._index = 0
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def index(self) -> int:
        return self._index

    @property
    def message(self) -> str:
        return self.messages[self._index]

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Reset to the first message and (re)start the rotation."""
        self.stop()
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run, args=(stop_event,), name="loading-ticker", daemon=True,
        )
        with self._lock:
            self._stop_event = stop_event
            self._thread = thread
        thread.start()

    def stop(self) -> None:
        """Cancel the rotation and reset to the first message. Idempotent."""
        with self._lock:
            stop_event, thread = self._stop_event, self._thread
            self._stop_event = None
            self._thread = None
        if stop_event is not None:
            stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1.0)
        self._set_index(0)

    def advance(self) -> str:
        """Move to the next message, wrapping to the start after the last one."""
        return self._set_index((self._index + 1) % len(self.messages))

    def _set_index(self, index: int) -> str:
        with self._lock:
            self._index = index
            message = self.messages[index]
        if self._on_change is not None:
            self._on_change(message)
        return message

    def _run(self, stop_event: threading.Event) -> None:
        # wait() returns True once stop() sets the event
        while not stop_event.wait(self.interval):
            message = self.advance()
            logger.debug("loading message -> %s", message)
