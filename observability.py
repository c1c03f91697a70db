"""
observability.py — Observability Layer
=======================================
Covers: OpenTelemetry tracing, Sentry error tracking, request timing
headers, structured JSON event lines, database health probe.

Setup in app.py:
    from observability import init_observability, metrics_bp
    init_observability(app)
    app.register_blueprint(metrics_bp)
"""

import os
import time
import json
import uuid
from datetime import datetime, timezone
from functools import wraps

from flask import Blueprint, request, jsonify, g

# ── OpenTelemetry: distributed tracing ──
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource

# ── Sentry: error tracking ──
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration

from db import db_connection, backend_name

SERVICE_NAME = "news-art-gateway"
SERVICE_VERSION = os.getenv("NEWS_SERVICE_VERSION", "1.0")
SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "1000"))

metrics_bp = Blueprint("metrics", __name__)

# ── Tracer ──
_tracer = None


def init_observability(app):
    """Initialize tracing, error tracking and request timing. Call once at app startup."""
    global _tracer

    # ── 1. OpenTelemetry distributed tracing ──
    otlp_endpoint = os.getenv("OTLP_ENDPOINT")
    resource = Resource.create({"service.name": SERVICE_NAME, "service.version": SERVICE_VERSION})
    provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        print(f"[OBS] Exporting traces to {otlp_endpoint}")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(SERVICE_NAME)

    # ── 2. Sentry error tracking ──
    sentry_dsn = os.getenv("SENTRY_DSN")
    if sentry_dsn:
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_RATE", "0.1")),
            environment=os.getenv("ENVIRONMENT", "production"),
            release=SERVICE_VERSION,
        )
        print("[OBS] Sentry initialized")

    # ── 3. Request timing middleware ──
    @app.before_request
    def _start_timer():
        g.start_time = time.time()
        g.trace_id = request.headers.get("X-Trace-Id", str(uuid.uuid4())[:16])

    @app.after_request
    def _record_timing(response):
        if hasattr(g, "start_time"):
            latency = (time.time() - g.start_time) * 1000
            response.headers["X-Response-Time-Ms"] = str(int(latency))
            response.headers["X-Trace-Id"] = getattr(g, "trace_id", "")

            if latency > SLOW_REQUEST_MS:
                log_json_line("slow_request", {
                    "path": request.path,
                    "method": request.method,
                    "latency_ms": int(latency),
                    "status": response.status_code,
                })
        return response

    print("[OBS] Observability initialized (tracing, error-tracking, timing)")


def log_json_line(event: str, payload: dict) -> None:
    """Print one structured event line to stdout."""
    record = {"event": event, "ts": datetime.now(timezone.utc).isoformat(), **payload}
    print(json.dumps(record, ensure_ascii=False))


def capture_error(exc: Exception) -> None:
    """Forward a handled exception to Sentry. No-op when Sentry is not initialized."""
    sentry_sdk.capture_exception(exc)


def current_trace_id() -> str:
    return getattr(g, "trace_id", "")


# ══════════════════════════════════════════════
# TRACING HELPERS
# ══════════════════════════════════════════════
def traced(name: str = None):
    """Decorator: add OpenTelemetry span to a function."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            span_name = name or f.__name__
            if _tracer is None:
                return f(*args, **kwargs)
            with _tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function", f.__name__)
                try:
                    result = f(*args, **kwargs)
                    span.set_attribute("status", "ok")
                    return result
                except Exception as e:
                    span.set_attribute("status", "error")
                    span.record_exception(e)
                    raise
        return wrapper
    return decorator


# ══════════════════════════════════════════════
# ROUTES
# ══════════════════════════════════════════════
@metrics_bp.route("/api/v1/health", methods=["GET"])
def detailed_health():
    """Detailed health check for monitoring systems."""
    checks = {}

    try:
        with db_connection() as conn:
            cur = conn.cursor()
            cur.execute("SELECT 1")
        checks["database"] = {"status": "ok", "backend": backend_name()}
    except Exception as e:
        checks["database"] = {"status": "degraded", "backend": backend_name(), "error": str(e)}

    overall = "ok" if all(c["status"] == "ok" for c in checks.values()) else "degraded"
    return jsonify({"status": overall, "checks": checks, "timestamp": datetime.now(timezone.utc).isoformat()})
