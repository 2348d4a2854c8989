"""Estimate one expense category end to end."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from app.agents.json_extraction import extract_json
from app.agents.prompt_builder import build_prompt
from app.agents.tier_normalizer import normalize_tier
from app.exceptions import CategoryParseError
from app.llm import EstimateQueryClient
from app.log import get_logger
from app.schemas import TIER_NAMES, CategoryEstimate, TripParameters

logger = get_logger(__name__)


class CategoryProcessor:
    """Prompt the search model for one category and normalize its three tiers.

    Parsing is strict at the response level and lenient at the field level: a
    response without a decodable JSON object fails the category with
    ``CategoryParseError``, while gaps inside a parsed tier are defaulted by
    the tier normalizer.
    """

    def __init__(self, query_client: Optional[EstimateQueryClient] = None):
        self.query_client = query_client or EstimateQueryClient()

    async def process(self, category: str, params: TripParameters) -> CategoryEstimate:
        scoped = params.model_copy(update={"selected_categories": [category]})
        logger.info("[%s] Generating prompt", category.upper())
        prompt = build_prompt(category, scoped)

        raw = await self.query_client.query(prompt, category=category)
        cleaned = extract_json(raw)
        logger.debug("[%s] Attempting to parse: %s", category.upper(), cleaned)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            logger.error("[%s] JSON parse error: %s", category.upper(), exc)
            logger.debug("[%s] Failed content: %s", category.upper(), raw)
            raise CategoryParseError(category, raw, str(exc)) from exc

        if not isinstance(parsed, dict):
            logger.error("[%s] Parsed %s instead of a JSON object", category.upper(), type(parsed).__name__)
            raise CategoryParseError(category, raw, "response is not a JSON object")

        estimate = CategoryEstimate(
            **{tier: normalize_tier(lookup_tier(parsed, category, tier), category) for tier in TIER_NAMES}
        )
        logger.info(
            "[%s] Normalized tiers: budget %.2f, medium %.2f, premium %.2f (average)",
            category.upper(),
            estimate.budget.average,
            estimate.medium.average,
            estimate.premium.average,
        )
        return estimate


def lookup_tier(parsed: Dict[str, Any], category: str, tier: str) -> Any:
    """Find ``tier`` under ``parsed[category]`` first, then at the top level."""
    scoped = parsed.get(category)
    if isinstance(scoped, dict) and isinstance(scoped.get(tier), dict):
        return scoped[tier]
    return parsed.get(tier)
