"""Pull the JSON object out of a chatty model response."""
from __future__ import annotations

import json
import re
from typing import Iterator, Optional

_FENCE_PATTERN = re.compile(r"```[ \t]*(?:json)?[ \t]*", re.IGNORECASE)
_GREEDY_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(text: str) -> str:
    """Drop markdown code fence markers, keeping what they wrapped."""
    return _FENCE_PATTERN.sub("", text).strip()


def extract_json(raw_text: str) -> str:
    """Return the candidate JSON object text found in ``raw_text``.

    The first top-level ``{`` that starts a complete, decodable object wins, so
    braces in leading prose are skipped. Objects nested inside an outer object
    that does not decode (a truncated or malformed reply) are never returned on
    their own. When nothing decodes, the first-``{``-to-last-``}`` span is
    returned, and failing that the cleaned text itself; callers must be ready
    for either to fail ``json.loads``.
    """
    cleaned = strip_code_fences(raw_text or "")

    candidate = _first_decodable_object(cleaned)
    if candidate is not None:
        return candidate

    match = _GREEDY_OBJECT_PATTERN.search(cleaned)
    if match:
        return match.group(0)
    return cleaned


def _first_decodable_object(text: str) -> Optional[str]:
    decoder = json.JSONDecoder()
    for start in _top_level_braces(text):
        try:
            _, end = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            continue
        return text[start:end]
    return None


def _top_level_braces(text: str) -> Iterator[int]:
    """Yield offsets of ``{`` not nested inside an earlier, still-open ``{``.

    Objects nested in a truncated or malformed outer object are never
    candidates; string contents are skipped once inside an object.
    """
    depth = 0
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"' and depth > 0:
            in_string = True
        elif char == "{":
            if depth == 0:
                yield index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
