from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from app.agents.category_processor import CategoryProcessor
from app.exceptions import EstimateError, InvalidRequestTypeError
from app.history import EstimateHistory
from app.log import get_logger
from app.schemas import CategoryEstimate, ResponseEnvelope, TripParameters

logger = get_logger(__name__)

# request type -> [(response key, category)]; single-category requests return
# the estimate itself rather than a keyed mapping.
REQUEST_CATEGORIES: Dict[str, List[Tuple[str, str]]] = {
    "flights": [("flights", "flight")],
    "hotels": [("hotels", "accommodation")],
    "full": [("flights", "flight"), ("hotels", "accommodation")],
}


async def handle_travel_request(
    request_type: str,
    params: TripParameters,
    *,
    processor: CategoryProcessor,
    history: Optional[EstimateHistory] = None,
) -> ResponseEnvelope:
    """Run the categories implied by ``request_type`` and wrap the outcome.

    ``full`` requests are all-or-nothing: both categories run concurrently and
    are awaited to completion, then the first failure (flight before hotel)
    fails the whole request.
    """
    logger.info(
        "Processing %s travel request: country=%s travelers=%s currency=%s departure=%s",
        request_type,
        params.country,
        params.travelers,
        params.currency,
        params.departure_location.name if params.departure_location else None,
    )
    try:
        data = await _run_request(request_type, params, processor, history)
    except EstimateError as exc:
        logger.error("Travel request (%s) failed with status %d: %s", request_type, exc.status_code, exc)
        return ResponseEnvelope(success=False, error=str(exc), status_code=exc.status_code)
    except Exception as exc:
        logger.exception("Unexpected error processing %s travel request", request_type)
        return ResponseEnvelope(success=False, error=str(exc) or "Internal server error", status_code=500)

    return ResponseEnvelope(success=True, data=data)


async def _run_request(
    request_type: str,
    params: TripParameters,
    processor: CategoryProcessor,
    history: Optional[EstimateHistory],
) -> Dict[str, Any]:
    plan = REQUEST_CATEGORIES.get(request_type)
    if plan is None:
        raise InvalidRequestTypeError(request_type)

    results = await asyncio.gather(
        *[processor.process(category, params) for _, category in plan],
        return_exceptions=True,
    )

    failures = [(category, res) for (_, category), res in zip(plan, results) if isinstance(res, BaseException)]
    for category, exc in failures:
        logger.warning("Category %s failed: %s", category, exc)
    if failures:
        raise failures[0][1]

    estimates: Dict[str, CategoryEstimate] = {}
    for (key, category), estimate in zip(plan, results):
        estimates[key] = estimate
        if history is not None:
            history.record(category, estimate)

    if len(plan) == 1:
        return _dump(next(iter(estimates.values())))
    return {key: _dump(estimate) for key, estimate in estimates.items()}


def _dump(estimate: CategoryEstimate) -> Dict[str, Any]:
    return estimate.model_dump(mode="json", by_alias=True)
