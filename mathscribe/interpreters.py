"""
Response Interpreters
Turn raw model output into structured data. The list and verdict parsers
never raise: malformed output degrades to a best-effort result.
"""

import json
import re

from .errors import NoImageProducedError
from .gateway import ModelResponse
from .models import ValidationVerdict


BYPASS_REASON = "validation bypassed due to system error"


def strip_fences(text: str) -> str:
    """Remove markdown code block markers."""
    return text.replace("```json", "").replace("```", "").strip()


def parse_solution_pages(text: str) -> list[str]:
    """
    Parse the solver's JSON array of page strings.

    Args:
        text: Raw model text

    Returns:
        One string per page. When the text is not a JSON array the whole raw
        text becomes a single page.
    """
    raw = text or ""
    try:
        result = json.loads(strip_fences(raw) or "[]")
    except (json.JSONDecodeError, RecursionError):
        return [raw]

    if not isinstance(result, list):
        return [raw]

    return [item if isinstance(item, str) else json.dumps(item) for item in result]


def parse_verdict(text: str) -> ValidationVerdict:
    """Parse ``{"valid": bool, "reason": str}``; unreadable output passes."""
    try:
        data = json.loads(strip_fences(text or ""))
    except (json.JSONDecodeError, RecursionError):
        return ValidationVerdict(valid=True, reason=BYPASS_REASON)

    if not isinstance(data, dict):
        return ValidationVerdict(valid=True, reason=BYPASS_REASON)

    return ValidationVerdict(
        valid=data.get("valid") is True,
        reason=str(data.get("reason") or "Unknown"),
    )


def extract_image(response: ModelResponse) -> str:
    """Return the first inline image of the response as a data URI."""
    for image in response.images:
        return image.to_data_uri()
    raise NoImageProducedError("No image generated in response")


_HEADING = re.compile(r"#{1,6}\s?")


def clean_text_for_handwriting(text: str) -> str:
    """Strip markdown so the page writer does not draw it as handwriting."""
    text = text.replace("**", "")  # bold
    text = text.replace("*", "")  # italics / bullets
    text = _HEADING.sub("", text)
    text = text.replace("`", "")
    text = text.replace("[", "").replace("]", "")
    return text.strip()
