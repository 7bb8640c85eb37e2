"""Response parsing for the remote completion endpoint.

The endpoint answers with a list of candidate generations. Only the first
text part of the first candidate is used: it is split into lines, blank lines
and echoed format markers are dropped, and the first few lines become the
suggestions. Unknown fields are ignored.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3

# Matches the COMPLETION1..COMPLETIONn labels the prompt asks the model to use.
FORMAT_MARKER_RE = re.compile(r"^COMPLETION\d*:?$")


class ParseError(Exception):
    """The response body could not be turned into suggestions."""


class EmptyResultError(ParseError):
    """The response decoded fine but held no usable suggestion lines."""


@dataclass(frozen=True)
class Suggestion:
    text: str
    index: int = 0

    @property
    def label(self) -> str:
        """Single-line display label: the first line of the payload, trimmed."""
        lines = self.text.splitlines()
        return lines[0].strip() if lines else ""


def to_suggestions(texts: Iterable[str]) -> list[Suggestion]:
    return [Suggestion(text=text, index=i) for i, text in enumerate(texts)]


def extract_text(payload: object) -> str:
    """Pull the first candidate's first text part out of a decoded payload."""
    if not isinstance(payload, dict):
        raise ParseError("Response payload is not an object")

    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise ParseError("Response has no candidates")

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise ParseError("Candidate is not an object")

    finish_reason = candidate.get("finishReason")
    if finish_reason:
        logger.debug(f"Candidate finish reason: {finish_reason}")

    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts:
        raise ParseError("Candidate has no content parts")

    part = parts[0]
    text = part.get("text") if isinstance(part, dict) else None
    if not isinstance(text, str):
        raise ParseError("First content part has no text")
    return text


def parse_text(text: str, limit: int = MAX_SUGGESTIONS) -> list[Suggestion]:
    """Split generated text into at most ``limit`` suggestions."""
    if not text.strip():
        raise ParseError("Generated text is blank")

    lines = [
        line
        for line in text.splitlines()
        if line.strip() and not FORMAT_MARKER_RE.match(line.strip())
    ]
    if not lines:
        raise EmptyResultError("No suggestion lines left after filtering")
    return to_suggestions(lines[:limit])


def parse_response(body: str | bytes, limit: int = MAX_SUGGESTIONS) -> list[Suggestion]:
    """Parse a raw response body into an ordered list of suggestions.

    Raises:
        ParseError: if the body is not valid JSON, has no candidates, or
            the generated text yields no suggestion lines.
    """
    try:
        payload = json.loads(body)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Invalid JSON in response: {e}") from e
    return parse_text(extract_text(payload), limit=limit)
