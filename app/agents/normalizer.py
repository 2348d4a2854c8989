"""Field lookup and coercion helpers for untrusted LLM payloads.

The search model is free to label fields ``Minimum`` or ``min``, to quote
numbers, and to paste URLs into prose. Every lookup here goes through an
ordered alias table so the rules stay declarative: the first alias holding a
usable value wins, and exact spellings are tried before a case-insensitive
pass over the same aliases.
"""
from __future__ import annotations

import math
import re
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

URL_PATTERN = re.compile(r"https?://[^\s]+")
_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")

TIER_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "min": ("Minimum", "min"),
    "max": ("Maximum", "max"),
    "average": ("Average", "average"),
    "confidence": ("Confidence", "confidence"),
    "source": ("Source", "source"),
    "references": ("Examples", "References", "references"),
}

REFERENCE_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "provider": ("provider", "airline"),
    "details": ("details", "description"),
    "price": ("price", "totalPrice"),
    "link": ("link",),
}

FLIGHT_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "airline": ("airline", "provider"),
    "route": ("route",),
    "outbound": ("outbound", "outboundFlight"),
    "inbound": ("inbound", "inboundFlight"),
    "outbound_date": ("outboundDate",),
    "inbound_date": ("inboundDate",),
    "layovers": ("layovers",),
    "duration": ("duration",),
    "baggage": ("baggage",),
    "cabin_class": ("class", "cabinClass"),
}


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def pick(payload: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """Return the value of the first alias present in ``payload`` or ``None``."""
    for alias in aliases:
        if alias in payload and _present(payload[alias]):
            return payload[alias]

    # Second pass tolerates odd casing such as "MINIMUM" or "examples".
    folded = {str(key).casefold(): value for key, value in payload.items()}
    for alias in aliases:
        value = folded.get(alias.casefold())
        if _present(value):
            return value
    return None


def coerce_number(value: Any, default: float) -> float:
    """Coerce ints, floats and numeric strings (``"$1,200"``) into a float."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMBER_PATTERN.search(value.replace(",", ""))
        if not match:
            return default
        number = float(match.group(0))
    else:
        return default
    if not math.isfinite(number):
        return default
    return number


def coerce_int(value: Any, default: int) -> int:
    number = coerce_number(value, float(default))
    return int(number)


def coerce_text(value: Any, default: Optional[str] = None) -> Optional[str]:
    if not _present(value):
        return default
    if isinstance(value, (dict, list)):
        return default
    return str(value).strip()


def split_link(text: str) -> Tuple[str, Optional[str]]:
    """Pull the first URL out of ``text``.

    Returns the text with that URL removed and the URL itself, or the
    unchanged text and ``None`` when no URL is present.
    """
    match = URL_PATTERN.search(text)
    if not match:
        return text.strip(), None
    link = match.group(0)
    details = (text[: match.start()] + text[match.end():]).strip()
    details = re.sub(r"\s{2,}", " ", details)
    return details, link
