import asyncio
from typing import List, Tuple

import pytest

from app.agents.category_processor import CategoryProcessor, lookup_tier
from app.exceptions import CategoryParseError, EstimateQueryError
from app.schemas import Tier, TripParameters

SCENARIO_A = (
    '```json\n{"flight":{"budget":{"Minimum":200,"Maximum":400,"Average":300,'
    '"Confidence":0.8,"Source":"Skyscanner","Examples":["Delta $300 https://delta.com"]}}}\n```'
)


class FakeQueryClient:
    def __init__(self, response: str):
        self.response = response
        self.calls: List[Tuple[str, str]] = []

    async def query(self, prompt: str, *, category: str = "general") -> str:
        self.calls.append((category, prompt))
        return self.response


class FailingQueryClient:
    async def query(self, prompt: str, *, category: str = "general") -> str:
        raise EstimateQueryError(category, "API error for flight: 503")


def _params(**overrides) -> TripParameters:
    payload = {
        "country": "France",
        "travelers": 2,
        "currency": "USD",
        "departureLocation": {"name": "New York", "isRoundTrip": True},
    }
    payload.update(overrides)
    return TripParameters.model_validate(payload)


def test_fenced_flight_response_is_normalized():
    client = FakeQueryClient(SCENARIO_A)
    estimate = asyncio.run(CategoryProcessor(client).process("flight", _params()))

    assert estimate.budget.model_dump(by_alias=True) == {
        "min": 200,
        "max": 400,
        "average": 300,
        "confidence": 0.8,
        "source": "Skyscanner",
        "references": [
            {
                "provider": "Unknown",
                "details": "Delta $300",
                "price": 0,
                "link": "https://delta.com",
                "airline": "Unknown",
                "route": None,
                "outbound": None,
                "inbound": None,
                "outboundDate": None,
                "inboundDate": None,
                "layovers": 0,
                "duration": None,
                "baggage": None,
                "class": None,
            }
        ],
    }
    assert estimate.medium == Tier()
    assert estimate.premium == Tier()

    category, prompt = client.calls[0]
    assert category == "flight"
    assert prompt.startswith("Search for current flight prices from New York to France.")


def test_unparseable_response_fails_the_category():
    client = FakeQueryClient("not json at all")

    with pytest.raises(CategoryParseError) as excinfo:
        asyncio.run(CategoryProcessor(client).process("flight", _params()))

    assert excinfo.value.category == "flight"
    assert excinfo.value.raw_content == "not json at all"
    assert excinfo.value.status_code == 500
    assert "flight" in str(excinfo.value)


def test_non_object_json_fails_the_category():
    client = FakeQueryClient('"just a string"')

    with pytest.raises(CategoryParseError):
        asyncio.run(CategoryProcessor(client).process("food", _params()))


def test_bare_tier_keys_are_accepted():
    client = FakeQueryClient('{"budget": {"min": 10}, "medium": {"min": 20}, "premium": {"min": 30}}')
    estimate = asyncio.run(CategoryProcessor(client).process("food", _params()))

    assert (estimate.budget.min, estimate.medium.min, estimate.premium.min) == (10, 20, 30)


def test_category_qualified_tier_wins_over_bare_key():
    parsed = {"food": {"budget": {"min": 1}}, "budget": {"min": 99}, "medium": {"min": 5}}

    assert lookup_tier(parsed, "food", "budget") == {"min": 1}
    assert lookup_tier(parsed, "food", "medium") == {"min": 5}
    assert lookup_tier(parsed, "food", "premium") is None


def test_query_failures_propagate():
    with pytest.raises(EstimateQueryError) as excinfo:
        asyncio.run(CategoryProcessor(FailingQueryClient()).process("flight", _params()))
    assert excinfo.value.category == "flight"


def test_prompt_is_scoped_to_the_processed_category():
    client = FakeQueryClient('{"food": {}}')
    params = _params(selectedCategories=["food", "shopping"])
    asyncio.run(CategoryProcessor(client).process("food", params))

    _, prompt = client.calls[0]
    assert '"food" (Food)' in prompt
    assert "shopping" not in prompt.lower()
    assert params.selected_categories == ["food", "shopping"]


def test_truncated_response_fails_instead_of_defaulting():
    truncated = (
        '{"flight": {"searchDetails": {"from": "New York", "to": "France"}, '
        '"budget": {"Minimum": 200, "Maximum": 400, "Average": 300}, '
        '"medium": {"min": 500, "max'
    )
    client = FakeQueryClient(truncated)

    with pytest.raises(CategoryParseError) as excinfo:
        asyncio.run(CategoryProcessor(client).process("flight", _params()))

    assert excinfo.value.category == "flight"
    assert excinfo.value.raw_content == truncated
