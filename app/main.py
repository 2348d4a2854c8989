from __future__ import annotations

import os
from typing import Any, Dict, Type, TypeVar

from fastapi import Body, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from app.agents.category_processor import CategoryProcessor
from app.allocation import BudgetAllocator
from app.history import EstimateHistory
from app.log import get_logger
from app.orchestrator import handle_travel_request
from app.schemas import BudgetRequest, RecommendationRequest, ResponseEnvelope, TripParameters

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

app = FastAPI(title="Vacation Budget Agent API")

# Frontends are served from other origins during development; operators can
# narrow this with VACATION_BUDGET_ALLOWED_ORIGINS.
raw_origins = os.getenv("VACATION_BUDGET_ALLOWED_ORIGINS") or "*"
allowed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

processor = CategoryProcessor()
history = EstimateHistory()
allocator = BudgetAllocator()


def _respond(envelope: ResponseEnvelope) -> JSONResponse:
    return JSONResponse(status_code=envelope.status_code, content=envelope.to_payload())


def _parse(model: Type[ModelT], payload: Dict[str, Any]) -> ModelT | ResponseEnvelope:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}" for err in exc.errors()
        )
        logger.info("Rejected %s payload: %s", model.__name__, problems)
        return ResponseEnvelope(success=False, error=f"Invalid request: {problems}", status_code=422)


@app.post("/api/estimates")
async def api_estimates(
    payload: Dict[str, Any] = Body(...),
    request_type: str = Query("", alias="type"),
) -> JSONResponse:
    """Price flights, hotels or both for the trip described in the body."""
    params = _parse(TripParameters, payload)
    if isinstance(params, ResponseEnvelope):
        return _respond(params)
    envelope = await handle_travel_request(request_type, params, processor=processor, history=history)
    return _respond(envelope)


@app.get("/api/estimates/{category}/history")
async def api_estimate_history(category: str, limit: int = Query(5, ge=1, le=50)) -> JSONResponse:
    return _respond(ResponseEnvelope(success=True, data=history.latest(category, limit)))


@app.post("/api/budget/optimize")
async def api_budget_optimize(payload: Dict[str, Any] = Body(...)) -> JSONResponse:
    request = _parse(BudgetRequest, payload)
    if isinstance(request, ResponseEnvelope):
        return _respond(request)
    try:
        result = await allocator.calculate_optimal_budget(request)
    except Exception as exc:
        logger.exception("Budget optimisation failed")
        return _respond(ResponseEnvelope(success=False, error=str(exc) or "Internal server error", status_code=500))
    return _respond(ResponseEnvelope(success=True, data=result.model_dump(mode="json", by_alias=True)))


@app.post("/api/budget/recommendations")
async def api_budget_recommendations(payload: Dict[str, Any] = Body(...)) -> JSONResponse:
    request = _parse(RecommendationRequest, payload)
    if isinstance(request, ResponseEnvelope):
        return _respond(request)
    try:
        recommended = await allocator.get_recommended_businesses(request)
    except Exception as exc:
        logger.exception("Business recommendation failed")
        return _respond(ResponseEnvelope(success=False, error=str(exc) or "Internal server error", status_code=500))
    return _respond(
        ResponseEnvelope(success=True, data=[business.model_dump(mode="json") for business in recommended])
    )
