import os
import traceback

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

import db as database
from display_client.settings import env_bool
from news_routes import news_bp, error_body
from observability import init_observability, metrics_bp, log_json_line, capture_error, SERVICE_VERSION

# ============================================================
# NEWS ART GATEWAY
#
# Read-only JSON API over the daily_news_art table. Entries are
# generated, stored and rotated by the external workflow pipeline.
# ============================================================
DEFAULT_CORS_ORIGINS = ",".join([
    "https://agentic-ai-news-to-image.pages.dev",
    "https://jonathan-orlowski.dev",
])


def cors_origins():
    raw = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if origins == ["*"]:
        return "*"
    return origins


app = Flask(__name__)

CORS(app, resources={r"/*": {"origins": cors_origins()}})
init_observability(app)

app.register_blueprint(news_bp)
app.register_blueprint(metrics_bp)

# Dev convenience: the production schema belongs to the workflow pipeline
if not database.USE_POSTGRES and env_bool("NEWS_DB_AUTO_INIT", True):
    database.db_init()


# ==========================
# ERROR HANDLING
# ==========================
@app.errorhandler(HTTPException)
def handle_http_error(e):
    return jsonify({"error": e.description}), e.code


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    traceback.print_exception(type(e), e, e.__traceback__)
    capture_error(e)
    log_json_line("unhandled_error", {"error": str(e), "error_type": e.__class__.__name__})
    return jsonify(error_body(e)), 500


# ==========================
# ROUTES
# ==========================
@app.route("/health")
def health():
    return jsonify({"status": "ok", "version": SERVICE_VERSION, "database": database.backend_name()})


if __name__ == "__main__":
    port = int(os.getenv("PORT", "3000"))
    print(f"Listening on port {port}")
    app.run(host="0.0.0.0", port=port)
