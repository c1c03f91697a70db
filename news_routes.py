"""
News Query Service — active entry read API
POST /api/v1/news  (and POST / for the root-mounted deployment)

Usage in app.py:
    from news_routes import news_bp
    app.register_blueprint(news_bp)
"""

import time
import traceback

from flask import Blueprint, jsonify

import db as database
from display_client.settings import env_bool
from observability import log_json_line, capture_error, current_trace_id, traced

news_bp = Blueprint("news", __name__)

ENVELOPE_KEY = "getActiveNews"


def use_envelope() -> bool:
    """Wrap the entry under getActiveNews (default) or return it bare."""
    return env_bool("NEWS_RESPONSE_ENVELOPE", True)


def expose_error_stack() -> bool:
    return env_bool("EXPOSE_ERROR_STACK", False)


def error_body(exc: Exception) -> dict:
    body = {"error": str(exc) or exc.__class__.__name__}
    if expose_error_stack():
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


@news_bp.route("/api/v1/news", methods=["POST"])
@news_bp.route("/", methods=["POST"])
@traced("get_active_news")
def get_active_news():
    """Return the currently active entry. The request body is ignored."""
    t0 = time.time()
    try:
        entry = database.get_active_news()
    except Exception as e:
        capture_error(e)
        log_json_line("news_read_error", {
            "trace_id": current_trace_id(),
            "error": str(e),
            "error_type": e.__class__.__name__,
        })
        return jsonify(error_body(e)), 500

    log_json_line("news_read", {
        "trace_id": current_trace_id(),
        "found": entry is not None,
        "latency_ms": int((time.time() - t0) * 1000),
    })

    if use_envelope():
        return jsonify({ENVELOPE_KEY: entry})
    return jsonify(entry)
