"""Turn one loosely-shaped tier object into a canonical ``Tier``."""
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Union

from app.agents.normalizer import (
    FLIGHT_FIELD_ALIASES,
    REFERENCE_FIELD_ALIASES,
    TIER_FIELD_ALIASES,
    coerce_int,
    coerce_number,
    coerce_text,
    pick,
    split_link,
)
from app.log import get_logger
from app.schemas import FlightReference, Reference, Tier

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.7
DEFAULT_SOURCE = "default"
DEFAULT_PROVIDER = "Unknown"


def normalize_tier(raw_tier: Any, category: str) -> Tier:
    """Normalize ``raw_tier`` for ``category``; never raises.

    Anything that is not a mapping yields a fully defaulted tier, and missing
    or malformed fields fall back to their defaults individually. A confidence
    in (1, 100] is read as a percentage; anything else outside [0, 1] is
    clamped.
    """
    if not isinstance(raw_tier, Mapping):
        logger.info("No usable %s tier data (%s); using defaults", category, type(raw_tier).__name__)
        return Tier()

    minimum = max(coerce_number(pick(raw_tier, TIER_FIELD_ALIASES["min"]), 0.0), 0.0)
    maximum = max(coerce_number(pick(raw_tier, TIER_FIELD_ALIASES["max"]), 0.0), 0.0)
    average = max(coerce_number(pick(raw_tier, TIER_FIELD_ALIASES["average"]), 0.0), 0.0)
    confidence = coerce_number(pick(raw_tier, TIER_FIELD_ALIASES["confidence"]), DEFAULT_CONFIDENCE)
    if 1.0 < confidence <= 100.0:
        confidence /= 100.0
    confidence = min(max(confidence, 0.0), 1.0)

    tier = Tier(
        min=minimum,
        max=maximum,
        average=average,
        confidence=confidence,
        source=coerce_text(pick(raw_tier, TIER_FIELD_ALIASES["source"]), DEFAULT_SOURCE),
        references=normalize_references(pick(raw_tier, TIER_FIELD_ALIASES["references"]), category),
    )
    if not tier.is_consistent:
        logger.warning(
            "%s tier violates min <= average <= max (min=%s average=%s max=%s); keeping reported values",
            category,
            tier.min,
            tier.average,
            tier.max,
        )
    return tier


def normalize_references(raw_references: Any, category: str) -> List[Union[FlightReference, Reference]]:
    if not isinstance(raw_references, list):
        return []
    references: List[Union[FlightReference, Reference]] = []
    for entry in raw_references:
        reference = normalize_reference(entry, category)
        if reference is None:
            logger.debug("Skipping %s reference of type %s", category, type(entry).__name__)
            continue
        references.append(reference)
    return references


def normalize_reference(entry: Any, category: str) -> Optional[Reference]:
    if isinstance(entry, str):
        details, link = split_link(entry.strip())
        fields = {"provider": DEFAULT_PROVIDER, "details": details, "price": 0.0, "link": link}
        raw: Mapping[str, Any] = {}
    elif isinstance(entry, Mapping):
        raw = entry
        fields = _generic_fields(raw)
    else:
        return None

    if category == "flight":
        return FlightReference(**fields, **_flight_fields(raw, fields["provider"]))
    return Reference(**fields)


def _generic_fields(raw: Mapping[str, Any]) -> dict:
    details = coerce_text(pick(raw, REFERENCE_FIELD_ALIASES["details"]), "") or ""
    link = coerce_text(pick(raw, REFERENCE_FIELD_ALIASES["link"]))
    if link is None:
        details, link = split_link(details)
    return {
        "provider": coerce_text(pick(raw, REFERENCE_FIELD_ALIASES["provider"]), DEFAULT_PROVIDER),
        "details": details,
        "price": max(coerce_number(pick(raw, REFERENCE_FIELD_ALIASES["price"]), 0.0), 0.0),
        "link": link,
    }


def _flight_fields(raw: Mapping[str, Any], provider: str) -> dict:
    text = {
        name: coerce_text(pick(raw, FLIGHT_FIELD_ALIASES[name]))
        for name in ("route", "outbound", "inbound", "outbound_date", "inbound_date", "duration", "baggage", "cabin_class")
    }
    return {
        "airline": coerce_text(pick(raw, FLIGHT_FIELD_ALIASES["airline"]), provider),
        "layovers": max(coerce_int(pick(raw, FLIGHT_FIELD_ALIASES["layovers"]), 0), 0),
        **text,
    }
