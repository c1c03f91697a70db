from typing import Callable, List, Optional

import requests

from .state import DisplayState, Errored, Idle, Loaded, Loading

EMPTY_PLACEHOLDER = "No news generated yet. Trigger the workflow to create one."
IMAGE_PLACEHOLDER = "[image unavailable]"


def image_line(url: str, image_ok: Optional[Callable[[str], bool]] = None) -> str:
    """Image source, or a placeholder when the URL is missing or fails to load."""
    if not url:
        return IMAGE_PLACEHOLDER
    if image_ok is not None and not image_ok(url):
        return IMAGE_PLACEHOLDER
    return url


def render_entry(result: Loaded, image_ok: Optional[Callable[[str], bool]] = None) -> List[str]:
    if result.entry is None:
        return [EMPTY_PLACEHOLDER]
    mode = "static" if result.is_static_mode else "live workflow"
    return [
        result.entry["headline"],
        result.entry["description"],
        f"Image: {image_line(result.entry['imageUrl'], image_ok)}",
        f"Source: {mode} | Last updated: {result.updated_at}",
    ]


def render_text(
    state: DisplayState,
    last_loaded: Optional[Loaded] = None,
    image_ok: Optional[Callable[[str], bool]] = None,
) -> str:
    """Plain-text projection of the display state.

    A broken image only swaps in the placeholder; headline and description
    still render and the state is untouched.
    """
    if isinstance(state, Idle):
        lines = [] if last_loaded is None else render_entry(last_loaded, image_ok)
    elif isinstance(state, Loading):
        lines = [f"... {state.message}"]
    elif isinstance(state, Errored):
        lines = [f"Error: {state.message}"]
        if last_loaded is not None:
            lines += [""] + render_entry(last_loaded, image_ok)
    else:
        lines = render_entry(state, image_ok)
    return "\n".join(lines)


def head_check(session, timeout: float = 5.0) -> Callable[[str], bool]:
    """Build an image_ok predicate that issues a HEAD request per URL."""
    def _ok(url: str) -> bool:
        try:
            resp = session.head(url, timeout=timeout, allow_redirects=True)
        except requests.RequestException:
            return False
        return resp.ok

    return _ok
