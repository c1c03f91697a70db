"""Tests for display_client.client — request flows, error states, sequencing."""
from __future__ import annotations

import json
import os
import sys
import threading
import time
from datetime import datetime
from unittest.mock import MagicMock

import requests

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from display_client import NewsWorkflowClient
from display_client.loading import LOADING_MESSAGES
from display_client.state import DYNAMIC, STATIC, Errored, Idle, Loaded, Loading

STATIC_URL = "http://query.test/api/v1/news"
WEBHOOK_URL = "http://workflow.test/webhook/news"
NOW = datetime(2025, 6, 3, 14, 5, 9)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _response(status: int, payload=None, raw: bytes | None = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = STATIC_URL
    resp._content = raw if raw is not None else json.dumps(payload).encode()
    resp.encoding = "utf-8"
    resp.headers["Content-Type"] = "application/json"
    return resp


def _session(*responses) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.post.side_effect = list(responses)
    return session


def _client(session, **kwargs) -> NewsWorkflowClient:
    kwargs.setdefault("news_api_url", STATIC_URL)
    kwargs.setdefault("webhook_url", WEBHOOK_URL)
    kwargs.setdefault("loading_interval", 0.01)
    return NewsWorkflowClient(session=session, clock=lambda: NOW, **kwargs)


def _wait_for(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


# ---------------------------------------------------------------------------
# Static mode
# ---------------------------------------------------------------------------


class TestFetchStatic:
    def test_enveloped_entry(self):
        session = _session(_response(200, {
            "getActiveNews": {"headline": "X", "description": "Y", "image_url": "Z.png"},
        }))
        client = _client(session)

        state = client.fetch_static()

        assert isinstance(state, Loaded)
        assert state.is_static_mode
        assert client.is_static_mode
        assert client.news["headline"] == "X"
        assert client.news["description"] == "Y"
        assert client.news["imageUrl"] == "Z.png"
        assert client.news["timestamp"] == state.updated_at == "06/03/2025, 02:05:09 PM"

    def test_posts_json_without_body(self):
        session = _session(_response(200, {"getActiveNews": None}))
        client = _client(session, static_timeout=7)

        client.fetch_static()

        session.post.assert_called_once_with(
            STATIC_URL, headers={"Content-Type": "application/json"}, timeout=7,
        )

    def test_empty_store_is_not_an_error(self):
        client = _client(_session(_response(200, {"getActiveNews": None})))

        state = client.fetch_static()

        assert isinstance(state, Loaded)
        assert state.is_empty
        assert client.news is None

    def test_bare_shape(self):
        client = _client(_session(_response(200, {"headline": "H", "description": "D", "imageUrl": "U"})))
        client.fetch_static()
        assert {k: client.news[k] for k in ("headline", "description", "imageUrl")} == {
            "headline": "H", "description": "D", "imageUrl": "U",
        }


# ---------------------------------------------------------------------------
# Dynamic mode
# ---------------------------------------------------------------------------


class TestFetchDynamic:
    def test_replaces_static_entry(self):
        session = _session(
            _response(200, {"getActiveNews": {"headline": "X", "description": "Y", "image_url": "Z.png"}}),
            _response(200, {"headline": "A", "description": "B", "imageUrl": "C.png"}),
        )
        client = _client(session)

        client.fetch_static()
        state = client.fetch_dynamic()

        assert isinstance(state, Loaded)
        assert state.source == DYNAMIC
        assert not client.is_static_mode
        assert client.news == {
            "headline": "A", "description": "B", "imageUrl": "C.png", "timestamp": state.updated_at,
        }
        assert session.post.call_args.args == (WEBHOOK_URL,)

    def test_long_timeout(self):
        session = _session(_response(200, {"headline": "A", "description": "B", "imageUrl": "C.png"}))
        client = _client(session, dynamic_timeout=180)
        client.fetch_dynamic()
        assert session.post.call_args.kwargs["timeout"] == 180

    def test_missing_webhook_url(self):
        session = _session()
        client = _client(session, webhook_url="")

        state = client.fetch_dynamic()

        assert state == Errored("Workflow webhook URL is not configured")
        session.post.assert_not_called()
        assert not client.ticker.is_running


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_server_error_message_and_ticker_stopped(self):
        client = _client(_session(_response(500, {"error": "db down"})))

        state = client.fetch_static()

        assert state == Errored("db down")
        assert client.state == Errored("db down")
        assert not client.is_loading
        assert not client.ticker.is_running
        assert client.ticker.message == LOADING_MESSAGES[0]

    def test_stack_field_is_optional(self):
        client = _client(_session(_response(500, {"error": "db down", "stack": "Traceback ..."})))
        assert client.fetch_static() == Errored("db down")

    def test_status_code_without_error_field(self):
        client = _client(_session(_response(502, raw=b"<html>Bad Gateway</html>")))
        assert client.fetch_static() == Errored("HTTP error! status: 502")

    def test_transport_failure(self):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = requests.ConnectionError("Connection refused")
        client = _client(session)

        assert client.fetch_static() == Errored("Connection refused")

    def test_transport_failure_without_message(self):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = requests.ConnectionError()
        client = _client(session)

        assert client.fetch_dynamic() == Errored("Failed to trigger workflow")

    def test_timeout(self):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = requests.Timeout("read timed out")
        client = _client(session, dynamic_timeout=2)

        assert client.fetch_dynamic() == Errored("Request timed out after 2s")

    def test_invalid_json_on_success(self):
        client = _client(_session(_response(200, raw=b"not json")))
        assert client.fetch_static() == Errored("Response body is not valid JSON")

    def test_non_object_payload(self):
        client = _client(_session(_response(200, ["X"])))
        state = client.fetch_static()
        assert isinstance(state, Errored)
        assert "list" in state.message

    def test_error_keeps_last_entry(self):
        session = _session(
            _response(200, {"getActiveNews": {"headline": "X", "description": "Y", "image_url": "Z.png"}}),
            _response(500, {"error": "db down"}),
        )
        client = _client(session)

        client.fetch_static()
        client.fetch_static()

        assert isinstance(client.state, Errored)
        assert client.news["headline"] == "X"

    def test_unexpected_exception_becomes_error_state(self):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = KeyError("boom")
        client = _client(session)

        state = client.fetch_static()

        assert state == Errored("Failed to fetch news from static API")
        assert client.state == state
        assert not client.ticker.is_running

    def test_unexpected_exception_on_background_trigger(self):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = KeyError("boom")
        client = _client(session)
        hook_calls = []
        original_hook = threading.excepthook
        threading.excepthook = hook_calls.append
        try:
            client.trigger_dynamic().join(2.0)
        finally:
            threading.excepthook = original_hook

        assert hook_calls == []
        assert client.state == Errored("Failed to trigger workflow")


# ---------------------------------------------------------------------------
# Loading messages and concurrency
# ---------------------------------------------------------------------------


class TestLoading:
    def test_message_rotates_during_slow_request(self):
        seen = []
        session = MagicMock(spec=requests.Session)

        def _slow_post(*args, **kwargs):
            _wait_for(lambda: len(seen) > len(LOADING_MESSAGES) + 1)
            return _response(200, {"getActiveNews": None})

        session.post.side_effect = _slow_post
        client = _client(session)
        client.subscribe(lambda s: seen.append(s.message) if isinstance(s, Loading) else None)

        client.fetch_static()

        assert seen[0] == LOADING_MESSAGES[0]
        assert seen[1] == LOADING_MESSAGES[1]
        # wrapped back to the first message after the last one
        assert seen[len(LOADING_MESSAGES)] == LOADING_MESSAGES[0]
        assert not client.ticker.is_running
        assert client.ticker.message == LOADING_MESSAGES[0]

    def test_listeners_see_loading_then_result(self):
        states = []
        client = _client(_session(_response(200, {"getActiveNews": None})), loading_interval=60)
        client.subscribe(states.append)

        client.fetch_static()

        assert states[0] == Loading(source=STATIC, message=LOADING_MESSAGES[0])
        assert isinstance(states[-1], Loaded)

    def test_unsubscribe(self):
        states = []
        client = _client(_session(_response(200, {"getActiveNews": None})), loading_interval=60)
        unsubscribe = client.subscribe(states.append)
        unsubscribe()

        client.fetch_static()

        assert states == []

    def test_failing_listener_does_not_break_fetch(self):
        client = _client(_session(_response(200, {"getActiveNews": None})), loading_interval=60)

        def _bad_listener(state):
            raise RuntimeError("render failed")

        client.subscribe(_bad_listener)
        assert isinstance(client.fetch_static(), Loaded)

    def test_stale_response_is_discarded(self):
        release_static = threading.Event()
        session = MagicMock(spec=requests.Session)

        def _post(url, **kwargs):
            if url == STATIC_URL:
                release_static.wait(2.0)
                return _response(200, {"getActiveNews": {"headline": "old", "description": "d", "image_url": "o.png"}})
            return _response(200, {"headline": "new", "description": "d", "imageUrl": "n.png"})

        session.post.side_effect = _post
        client = _client(session)

        static_thread = client.trigger_static()
        assert _wait_for(lambda: client.sequence == 1)
        client.trigger_dynamic().join(2.0)
        release_static.set()
        static_thread.join(2.0)

        assert isinstance(client.state, Loaded)
        assert client.state.source == DYNAMIC
        assert client.news["headline"] == "new"

    def test_mount_enters_loading_before_returning(self):
        release = threading.Event()
        session = MagicMock(spec=requests.Session)

        def _post(url, **kwargs):
            release.wait(2.0)
            return _response(200, {"getActiveNews": None})

        session.post.side_effect = _post
        client = _client(session)

        thread = client.mount()
        assert client.state == Loading(source=STATIC, message=LOADING_MESSAGES[0])
        assert client.sequence == 1
        release.set()
        thread.join(2.0)
        assert isinstance(client.state, Loaded)

    def test_last_issued_trigger_wins_when_earlier_worker_is_slow(self):
        release_dynamic = threading.Event()
        session = MagicMock(spec=requests.Session)

        def _post(url, **kwargs):
            if url == WEBHOOK_URL:
                release_dynamic.wait(2.0)
                return _response(200, {"headline": "first", "description": "d", "imageUrl": "f.png"})
            return _response(200, {"getActiveNews": {"headline": "last", "description": "d", "image_url": "l.png"}})

        session.post.side_effect = _post
        client = _client(session)

        dynamic_thread = client.trigger_dynamic()
        static_thread = client.trigger_static()
        assert client.sequence == 2
        static_thread.join(2.0)
        release_dynamic.set()
        dynamic_thread.join(2.0)

        assert client.state.source == STATIC
        assert client.news["headline"] == "last"

    def test_stale_synchronous_fetch_returns_current_state(self):
        session = MagicMock(spec=requests.Session)
        client = _client(session)

        def _post(url, **kwargs):
            if url == STATIC_URL:
                client.trigger_dynamic().join(2.0)
                return _response(200, {"getActiveNews": {"headline": "old", "description": "d", "image_url": "o.png"}})
            return _response(200, {"headline": "new", "description": "d", "imageUrl": "n.png"})

        session.post.side_effect = _post

        state = client.fetch_static()

        assert state is client.state
        assert state.source == DYNAMIC
        assert client.news["headline"] == "new"

    def test_mount_fetches_static_in_background(self):
        client = _client(_session(_response(200, {"getActiveNews": {
            "headline": "X", "description": "Y", "image_url": "Z.png",
        }})))

        thread = client.mount()
        thread.join(2.0)

        assert client.state.source == STATIC
        assert client.news["imageUrl"] == "Z.png"

    def test_mount_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("AUTO_FETCH_ON_MOUNT", "0")
        session = _session()
        client = _client(session)

        assert client.mount() is None
        assert isinstance(client.state, Idle)
        session.post.assert_not_called()

    def test_close_discards_in_flight_response(self):
        release = threading.Event()
        session = MagicMock(spec=requests.Session)

        def _post(url, **kwargs):
            release.wait(2.0)
            return _response(200, {"headline": "late", "description": "d", "imageUrl": "l.png"})

        session.post.side_effect = _post
        client = _client(session)

        thread = client.trigger_dynamic()
        assert _wait_for(lambda: client.is_loading)
        client.close()
        release.set()
        thread.join(2.0)

        assert isinstance(client.state, Idle)
        assert client.news is None
        assert not client.ticker.is_running

    def test_context_manager_closes_owned_session(self, monkeypatch):
        session = MagicMock(spec=requests.Session)
        monkeypatch.setattr(requests, "Session", lambda: session)

        with NewsWorkflowClient(news_api_url=STATIC_URL, webhook_url=WEBHOOK_URL):
            pass

        session.close.assert_called_once()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCli:
    def test_static_command_prints_entry(self, capsys):
        from news_cli import run_fetch

        client = _client(_session(_response(200, {"getActiveNews": {
            "headline": "X", "description": "Y", "image_url": "Z.png",
        }})), loading_interval=60)

        assert run_fetch("static", client=client) == 0
        out = capsys.readouterr().out
        assert f"... {LOADING_MESSAGES[0]}" in out
        assert "X\nY\nImage: Z.png" in out

    def test_dynamic_failure_exit_code(self, capsys):
        from news_cli import run_fetch

        client = _client(_session(_response(500, {"error": "workflow crashed"})), loading_interval=60)

        assert run_fetch("dynamic", client=client) == 1
        assert "Error: workflow crashed" in capsys.readouterr().out

    def test_seed_command(self, tmp_path, monkeypatch):
        import db
        from news_cli import main
        from seed_data import DEMO_ENTRIES

        monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "seed.db"))

        assert main(["seed"]) == 0
        assert db.get_active_news()["headline"] == DEMO_ENTRIES[-1]["headline"]
