"""Rating-weighted budget distribution across categories and tiers.

Each business contributes ``(rating / 5) * weight`` to its tier's score, where
the weight comes from ``CATEGORY_WEIGHTS``. Businesses rated below their
tier's minimum count at half weight, and the tier the traveller prefers for a
category gets a 1.5x boost on its total. A category's budget is then split
across its tiers in proportion to their scores:

    allocation = round((total_budget / duration) * share * duration * travelers)

Ratings come from a ``RatingService`` and are memoized in the allocator's own
``RatingCache``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from app.log import get_logger
from app.schemas import (
    TIER_NAMES,
    BudgetMetrics,
    BudgetRequest,
    BudgetResult,
    Business,
    RecommendationRequest,
    ScoredBusiness,
)
from app.tools.ratings import RatingCache, RatingService

logger = get_logger(__name__)

MINIMUM_ACCEPTABLE_RATING = 3.0
PREFERENCE_BOOST = 1.5
BELOW_MINIMUM_PENALTY = 0.5
MAX_RATING = 5.0


@dataclass(frozen=True)
class TierWeight:
    weight: float
    min_rating: float


CATEGORY_WEIGHTS: Dict[str, Dict[str, TierWeight]] = {
    "flight": {
        "budget": TierWeight(30, 3.0),
        "medium": TierWeight(25, 3.5),
        "premium": TierWeight(20, 4.0),
    },
    "hotel": {
        "budget": TierWeight(25, 3.0),
        "medium": TierWeight(30, 3.5),
        "premium": TierWeight(35, 4.0),
    },
    "restaurant": {
        "budget": TierWeight(15, 3.0),
        "medium": TierWeight(20, 3.5),
        "premium": TierWeight(25, 4.0),
    },
    "activity": {
        "budget": TierWeight(10, 3.0),
        "medium": TierWeight(15, 3.5),
        "premium": TierWeight(20, 4.0),
    },
}


def tier_weight(category: str, tier: str) -> Optional[TierWeight]:
    return CATEGORY_WEIGHTS.get(category, {}).get(tier)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class BudgetAllocator:
    def __init__(self, rating_service: Optional[RatingService] = None, cache: Optional[RatingCache] = None):
        self.rating_service = rating_service or RatingService()
        self.rating_cache = cache if cache is not None else RatingCache.from_env()

    async def get_business_rating(self, business_name: str, category: str) -> Optional[float]:
        cached = self.rating_cache.get(business_name, category)
        if cached is not None:
            return cached

        info = await self.rating_service.fetch_rating(business_name, category)
        if info.rating:
            self.rating_cache.set(business_name, category, info.rating)
            return info.rating
        return None

    async def calculate_business_score(self, business: Business, category: str, tier: str) -> float:
        config = tier_weight(category, tier)
        if config is None:
            return 0.0
        rating = await self.get_business_rating(business.name, category)
        if not rating:
            return 0.0

        score = (rating / MAX_RATING) * config.weight
        if rating < config.min_rating:
            return score * BELOW_MINIMUM_PENALTY
        return score

    async def calculate_optimal_budget(self, request: BudgetRequest) -> BudgetResult:
        budget_per_day = request.total_budget / request.duration
        distributions: Dict[str, Dict[str, float]] = {}
        total_score = 0.0

        for category, tiers in request.businesses.items():
            if category not in CATEGORY_WEIGHTS:
                logger.warning("No weights configured for category %s; it will receive no allocation", category)
            distributions[category] = {tier: 0.0 for tier in TIER_NAMES}
            for tier, businesses in tiers.items():
                if tier not in distributions[category]:
                    logger.warning("Ignoring unknown tier %s for category %s", tier, category)
                    continue
                tier_score = 0.0
                for business in businesses:
                    tier_score += await self.calculate_business_score(business, category, tier)
                if request.preferences.get(category) == tier:
                    tier_score *= PREFERENCE_BOOST
                distributions[category][tier] = tier_score
                total_score += tier_score

        allocations: Dict[str, Dict[str, int]] = {}
        for category, scores in distributions.items():
            allocations[category] = {tier: 0 for tier in TIER_NAMES}
            category_total = sum(scores.values())
            if category_total <= 0:
                continue
            for tier in TIER_NAMES:
                share = scores[tier] / category_total
                allocations[category][tier] = round_half_up(
                    budget_per_day * share * request.duration * request.travelers
                )

        logger.info(
            "Allocated %.2f over %d day(s) for %d traveller(s) across %d categories (total score %.2f)",
            request.total_budget,
            request.duration,
            request.travelers,
            len(allocations),
            total_score,
        )
        return BudgetResult(
            allocations=allocations,
            metrics=BudgetMetrics(
                total_score=total_score,
                score_distribution=distributions,
                per_day=budget_per_day,
                per_person=request.total_budget / request.travelers,
            ),
        )

    async def validate_budget_fit(self, business: Business, category: str, tier: str, allocation: float) -> bool:
        rating = await self.get_business_rating(business.name, category)
        if not rating or rating < MINIMUM_ACCEPTABLE_RATING:
            return False

        config = tier_weight(category, tier)
        if config is None:
            return False
        if business.price > allocation:
            return False
        if tier == "premium" and rating < config.min_rating:
            return False
        return True

    async def get_recommended_businesses(self, request: RecommendationRequest) -> List[ScoredBusiness]:
        allocation = request.budget_allocations.get(request.category, {}).get(request.tier, 0)
        valid: List[ScoredBusiness] = []
        for business in request.businesses:
            if not await self.validate_budget_fit(business, request.category, request.tier, allocation):
                continue
            score = await self.calculate_business_score(business, request.category, request.tier)
            valid.append(ScoredBusiness(**{**business.model_dump(), "score": score}))

        valid.sort(key=lambda b: b.score, reverse=True)
        logger.info(
            "%d of %d %s/%s businesses fit an allocation of %s",
            len(valid),
            len(request.businesses),
            request.category,
            request.tier,
            allocation,
        )
        return valid[: request.max_results]
