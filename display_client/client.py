"""Workflow display client.

Drives the two request flows of the news page:

  static   POST to the query service, show the stored active entry
  dynamic  POST to the workflow webhook, show the freshly generated entry

Usage::

    from display_client import NewsWorkflowClient

    client = NewsWorkflowClient()
    client.subscribe(lambda state: print(state))
    client.mount()            # background static fetch
    client.trigger_dynamic()  # background webhook call
    ...
    client.close()

Each trigger takes a sequence token. Only the completion carrying the most
recent token is applied; older responses that land later are dropped.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import requests

from .errors import (
    ConfigurationError,
    HTTPStatusError,
    NewsClientError,
    TransportError,
    error_message,
    status_message,
)
from .loading import LoadingTicker
from .normalize import normalize_news
from .settings import get_settings
from .state import DYNAMIC, STATIC, DisplayState, Errored, Idle, Loaded, Loading, loaded

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}

STATIC_FALLBACK = "Failed to fetch news from static API"
DYNAMIC_FALLBACK = "Failed to trigger workflow"

_INVALID_JSON = object()

Listener = Callable[[DisplayState], None]


class NewsWorkflowClient:
    """State container for the news display.

    Parameters
    ----------
    news_api_url : str, optional
        Query service endpoint. Defaults to ``NEWS_API_URL``.
    webhook_url : str, optional
        External workflow trigger. Defaults to ``WORKFLOW_WEBHOOK_URL``.
    session : requests.Session, optional
        HTTP session; one is created (and owned) when omitted.
    static_timeout, dynamic_timeout : float, optional
        Per-request timeouts in seconds.
    loading_interval : float, optional
        Seconds between loading message changes.
    clock : callable, optional
        Returns the completion time used for ``updated_at``.
    """

    def __init__(
        self,
        news_api_url: Optional[str] = None,
        webhook_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        static_timeout: Optional[float] = None,
        dynamic_timeout: Optional[float] = None,
        loading_interval: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        settings = get_settings()
        self.news_api_url = news_api_url if news_api_url is not None else settings["NEWS_API_URL"]
        self.webhook_url = webhook_url if webhook_url is not None else settings["WORKFLOW_WEBHOOK_URL"]
        self.static_timeout = static_timeout or settings["STATIC_TIMEOUT"]
        self.dynamic_timeout = dynamic_timeout or settings["DYNAMIC_TIMEOUT"]
        self.auto_fetch_on_mount = settings["AUTO_FETCH_ON_MOUNT"]

        self._owns_session = session is None
        self._session = session or requests.Session()
        self._clock = clock or datetime.now

        self._lock = threading.Lock()
        self._ticker_lock = threading.Lock()
        self._seq = 0
        self._state: DisplayState = Idle()
        self._last_loaded: Optional[Loaded] = None
        self._listeners: List[Listener] = []

        self.ticker = LoadingTicker(
            interval=loading_interval or settings["LOADING_INTERVAL"],
            on_change=self._on_loading_message,
        )

    # ── read-only views ──

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def last_loaded(self) -> Optional[Loaded]:
        """Most recent successful fetch, kept visible while a new one is loading."""
        return self._last_loaded

    @property
    def is_loading(self) -> bool:
        return isinstance(self._state, Loading)

    @property
    def is_static_mode(self) -> bool:
        return self._last_loaded is None or self._last_loaded.is_static_mode

    @property
    def news(self) -> Optional[Dict[str, str]]:
        return self._last_loaded.entry if self._last_loaded else None

    @property
    def sequence(self) -> int:
        return self._seq

    @property
    def session(self) -> requests.Session:
        return self._session

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    # ── operations ──

    def mount(self) -> Optional[threading.Thread]:
        """Enter Loading now and run the initial static fetch in the background."""
        if not self.auto_fetch_on_mount:
            return None
        return self.trigger_static()

    def fetch_static(self) -> DisplayState:
        return self._complete(self._begin(STATIC), STATIC)

    def fetch_dynamic(self) -> DisplayState:
        return self._complete(self._begin(DYNAMIC), DYNAMIC)

    def trigger_static(self) -> threading.Thread:
        return self._spawn(STATIC, "news-static-fetch")

    def trigger_dynamic(self) -> threading.Thread:
        return self._spawn(DYNAMIC, "news-dynamic-fetch")

    def close(self) -> None:
        """Teardown: stop the ticker and ignore any response still in flight."""
        with self._ticker_lock:
            with self._lock:
                self._seq += 1
                if isinstance(self._state, Loading):
                    self._state = Idle()
            self.ticker.stop()
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "NewsWorkflowClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ── internals ──

    def _spawn(self, source: str, name: str) -> threading.Thread:
        # token is taken on the caller's thread so trigger order decides the winner
        token = self._begin(source)
        thread = threading.Thread(target=self._complete, args=(token, source), name=name, daemon=True)
        thread.start()
        return thread

    def _endpoint(self, source: str):
        if source == DYNAMIC:
            return self.webhook_url, self.dynamic_timeout, DYNAMIC_FALLBACK
        return self.news_api_url, self.static_timeout, STATIC_FALLBACK

    def _complete(self, token: int, source: str) -> DisplayState:
        url, timeout, fallback = self._endpoint(source)
        try:
            if not url:
                raise ConfigurationError(
                    "Workflow webhook URL is not configured" if source == DYNAMIC
                    else "News API URL is not configured"
                )
            entry = self._post(url, timeout)
        except NewsClientError as e:
            logger.error("Failed to fetch %s news: %s", source, e)
            return self._finish(token, Errored(error_message(e, fallback)))
        except Exception:
            logger.exception("Failed to fetch %s news", source)
            return self._finish(token, Errored(fallback))

        return self._finish(token, loaded(entry, source, self._clock()))

    def _post(self, url: str, timeout: float) -> Optional[Dict[str, str]]:
        try:
            resp = self._session.post(url, headers=JSON_HEADERS, timeout=timeout)
        except requests.Timeout as e:
            raise TransportError(f"Request timed out after {timeout:g}s") from e
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        body = _json_body(resp)
        if not resp.ok:
            raise HTTPStatusError(resp.status_code, status_message(resp.status_code, body))
        if body is _INVALID_JSON:
            raise TransportError("Response body is not valid JSON")
        return normalize_news(body)

    def _begin(self, source: str) -> int:
        with self._ticker_lock:
            with self._lock:
                self._seq += 1
                token = self._seq
                state = Loading(source=source, message=self.ticker.messages[0])
                self._state = state
            self.ticker.start()
        self._notify(state)
        return token

    def _finish(self, token: int, result: DisplayState) -> DisplayState:
        with self._ticker_lock:
            with self._lock:
                if token != self._seq:
                    logger.debug("Dropping stale response (token %d, latest %d)", token, self._seq)
                    return self._state
                self._state = result
                if isinstance(result, Loaded):
                    self._last_loaded = result
            self.ticker.stop()
        self._notify(result)
        return result

    def _on_loading_message(self, message: str) -> None:
        with self._lock:
            if not isinstance(self._state, Loading) or self._state.message == message:
                return
            self._state = Loading(source=self._state.source, message=message)
            state = self._state
        self._notify(state)

    def _notify(self, state: DisplayState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed")


def _json_body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return _INVALID_JSON
