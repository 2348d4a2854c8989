from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

TierName = Literal["budget", "medium", "premium"]
TIER_NAMES = ("budget", "medium", "premium")


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


# ------- Request models -------
class DepartureLocation(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    name: str = Field(..., min_length=1, validation_alias=AliasChoices("name", "label"))
    is_round_trip: bool = Field(False, alias="isRoundTrip")
    outbound_date: Optional[str] = Field(None, alias="outboundDate")
    inbound_date: Optional[str] = Field(None, alias="inboundDate")


class TripParameters(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    country: str = Field(..., min_length=1, validation_alias=AliasChoices("country", "destination"))
    travelers: int = Field(1, ge=1)
    currency: str = "USD"
    departure_location: Optional[DepartureLocation] = Field(None, alias="departureLocation")
    selected_categories: List[str] = Field(default_factory=list, alias="selectedCategories")
    budget: Optional[float] = Field(None, ge=0)
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, value: str) -> str:
        code = value.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError("currency must be a 3-letter code")
        return code

    @field_validator("selected_categories")
    @classmethod
    def _unique_categories(cls, value: List[str]) -> List[str]:
        seen: List[str] = []
        for key in value:
            key = key.strip()
            if key and key not in seen:
                seen.append(key)
        return seen


class Business(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    price: float = 0.0
    category: Optional[str] = None
    tier: Optional[str] = None


class BudgetRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_budget: float = Field(..., gt=0, alias="totalBudget")
    preferences: Dict[str, str] = Field(default_factory=dict)
    businesses: Dict[str, Dict[str, List[Business]]] = Field(default_factory=dict)
    duration: int = Field(1, ge=1)
    travelers: int = Field(1, ge=1)


class RecommendationRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    businesses: List[Business] = Field(default_factory=list)
    budget_allocations: Dict[str, Dict[str, float]] = Field(..., alias="budgetAllocations")
    category: str
    tier: str
    max_results: int = Field(5, ge=1, alias="maxResults")


# ------- Response models -------
class Reference(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str = "Unknown"
    details: str = ""
    price: float = 0.0
    link: Optional[str] = None


class FlightReference(Reference):
    airline: str = "Unknown"
    route: Optional[str] = None
    outbound: Optional[str] = None
    inbound: Optional[str] = None
    outbound_date: Optional[str] = Field(None, alias="outboundDate")
    inbound_date: Optional[str] = Field(None, alias="inboundDate")
    layovers: int = Field(0, ge=0)
    duration: Optional[str] = None
    baggage: Optional[str] = None
    cabin_class: Optional[str] = Field(None, alias="class")


class Tier(BaseModel):
    min: float = 0.0
    max: float = 0.0
    average: float = 0.0
    confidence: float = 0.7
    source: str = "default"
    references: List[Union[FlightReference, Reference]] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return self.min <= self.average <= self.max


class CategoryEstimate(BaseModel):
    budget: Tier = Field(default_factory=Tier)
    medium: Tier = Field(default_factory=Tier)
    premium: Tier = Field(default_factory=Tier)


class ScoredBusiness(Business):
    score: float = 0.0


class BudgetMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_score: float = Field(0.0, alias="totalScore")
    score_distribution: Dict[str, Dict[str, float]] = Field(default_factory=dict, alias="scoreDistribution")
    per_day: float = Field(0.0, alias="perDay")
    per_person: float = Field(0.0, alias="perPerson")


class BudgetResult(BaseModel):
    allocations: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    metrics: BudgetMetrics = Field(default_factory=BudgetMetrics)


class ResponseEnvelope(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)
    status_code: int = Field(200, exclude=True)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.success:
            payload["data"] = self.data
        else:
            payload["error"] = self.error
        payload["timestamp"] = self.timestamp
        return payload
