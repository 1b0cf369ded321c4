"""Pull the JSON object out of a raw analysis response and validate its shape."""

import json
import logging
import re
from typing import Any

from aethel.models import REQUIRED_FIELDS, AuthVoid

logger = logging.getLogger(__name__)

# Greedy: first '{' through last '}', tolerating prose or markdown fences around it
_JSON_SPAN = re.compile(r"\{[\s\S]*\}")


class ParseError(Exception):
    """Raised when a response does not hold a valid analysis object."""


def extract_json(raw_text: str) -> dict[str, Any]:
    """Return the analysis object embedded in raw_text.

    Raises:
        ParseError: No parseable JSON object, or a required field is missing.
    """
    if raw_text is None:
        raise ParseError("Empty response text")

    text = raw_text.strip()
    match = _JSON_SPAN.search(text)
    json_str = match.group(0) if match else text

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")

    missing = [name for name in REQUIRED_FIELDS if name not in data]
    if missing:
        raise ParseError(f"Missing required fields: {', '.join(missing)}")

    return data


def parse_auth_void(raw_text: str) -> AuthVoid:
    """Extract and convert a raw response into an AuthVoid."""
    data = extract_json(raw_text)
    try:
        return AuthVoid.from_dict(data)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ParseError(f"Invalid field value: {exc}") from exc
