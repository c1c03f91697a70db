"""
Boundary normalization for news payloads.

Both endpoints answer with slightly different shapes:
  query service (enveloped):  {"getActiveNews": {"headline", "description", "image_url"}}
  query service (bare):       {"headline", "description", "image_url"}
  workflow webhook:           {"headline", "description", "imageUrl" | "image_url"}

Everything past this module sees one view shape:
  {"headline": str, "description": str, "imageUrl": str}
"""

from typing import Any, Dict, Optional

from .errors import MalformedPayloadError

ENVELOPE_KEY = "getActiveNews"
IMAGE_KEYS = ("image_url", "imageUrl")


def unwrap(data: Any) -> Any:
    """Return the enveloped entry when the wrapper key is present, else the raw payload."""
    if isinstance(data, dict) and ENVELOPE_KEY in data:
        return data[ENVELOPE_KEY]
    return data


def pick_image_url(item: Dict[str, Any]) -> str:
    # snake_case first, then camelCase; an empty value falls through
    for key in IMAGE_KEYS:
        value = item.get(key)
        if value:
            return str(value)
    return ""


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def normalize_news(data: Any) -> Optional[Dict[str, str]]:
    """
    Convert any accepted response shape into a view dict.
    Returns None for the empty state (null entry or empty object).
    Missing fields become empty strings; they are not treated as errors.
    """
    item = unwrap(data)
    if item is None:
        return None
    if not isinstance(item, dict):
        raise MalformedPayloadError(f"Unexpected response payload: {type(item).__name__}")
    if not item:
        return None

    return {
        "headline": _text(item.get("headline")),
        "description": _text(item.get("description")),
        "imageUrl": pick_image_url(item),
    }
