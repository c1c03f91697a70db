"""
News Art command line
=====================
    python news_cli.py serve [--port 3000]
    python news_cli.py static
    python news_cli.py dynamic
    python news_cli.py seed
"""

import logging
import os
import sys

from display_client import NewsWorkflowClient, Loaded, Loading, render_text
from display_client.render import head_check

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
log = logging.getLogger("news-cli")


def run_fetch(mode, check_images=False, client=None):
    """Run one fetch, echoing loading messages, and print the rendered result."""
    client = client or NewsWorkflowClient()

    def _echo(state):
        if isinstance(state, Loading):
            print(f"... {state.message}", flush=True)

    unsubscribe = client.subscribe(_echo)
    try:
        state = client.fetch_static() if mode == "static" else client.fetch_dynamic()
        image_ok = head_check(client.session) if check_images else None
        print(render_text(state, client.last_loaded, image_ok=image_ok))
    finally:
        unsubscribe()
        client.close()
    return 0 if isinstance(state, Loaded) else 1


def run_serve(port):
    from app import app
    log.info("Listening on port %s", port)
    app.run(host="0.0.0.0", port=port)
    return 0


def run_seed():
    from seed_data import seed_news
    seed_news()
    return 0


def main(argv=None):
    import argparse
    p = argparse.ArgumentParser(description="Agentic news art: query service and display client")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the news query service")
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")))

    for name, helptext in (("static", "Show the stored active entry"),
                           ("dynamic", "Trigger the workflow and show the new entry")):
        cmd = sub.add_parser(name, help=helptext)
        cmd.add_argument("--check-images", action="store_true", help="HEAD-check the image URL")

    sub.add_parser("seed", help="Create the local table and insert demo entries")

    a = p.parse_args(argv)
    if a.command == "serve":
        return run_serve(a.port)
    if a.command == "seed":
        return run_seed()
    return run_fetch(a.command, check_images=a.check_images)


if __name__ == "__main__":
    sys.exit(main())
