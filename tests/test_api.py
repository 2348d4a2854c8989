from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from app.history import EstimateHistory
from app.main import app
from app.schemas import BudgetMetrics, BudgetResult, CategoryEstimate, ResponseEnvelope, ScoredBusiness, Tier


def _trip_payload() -> dict:
    return {
        "country": "Italy",
        "travelers": 2,
        "currency": "eur",
        "departureLocation": {"name": "London", "isRoundTrip": True, "outboundDate": "2025-05-02"},
    }


def test_estimates_endpoint_passes_request_type(monkeypatch):
    client = TestClient(app)
    handler = AsyncMock(return_value=ResponseEnvelope(success=True, data={"budget": {}}))
    monkeypatch.setattr("app.main.handle_travel_request", handler)

    response = client.post("/api/estimates?type=flights", json=_trip_payload())

    assert response.status_code == 200
    handler.assert_awaited_once()
    request_type, params = handler.await_args.args
    assert request_type == "flights"
    assert params.country == "Italy"
    assert params.currency == "EUR"
    assert params.departure_location.name == "London"
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"budget": {}}
    assert body["timestamp"].endswith("Z")


def test_estimates_endpoint_surfaces_envelope_status(monkeypatch):
    client = TestClient(app)
    handler = AsyncMock(
        return_value=ResponseEnvelope(success=False, error="[flight] Failed to parse response", status_code=500)
    )
    monkeypatch.setattr("app.main.handle_travel_request", handler)

    response = client.post("/api/estimates?type=flights", json=_trip_payload())

    assert response.status_code == 500
    assert response.json()["error"] == "[flight] Failed to parse response"
    assert "data" not in response.json()


def test_estimates_endpoint_rejects_invalid_body(monkeypatch):
    client = TestClient(app)
    handler = AsyncMock()
    monkeypatch.setattr("app.main.handle_travel_request", handler)

    response = client.post("/api/estimates?type=full", json={"travelers": 0})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("Invalid request:")
    handler.assert_not_awaited()


class FakeProcessor:
    def __init__(self):
        self.calls = []

    async def process(self, category, params):
        self.calls.append(category)
        tier = Tier(min=10, max=30, average=20, source=category)
        return CategoryEstimate(budget=tier, medium=tier, premium=tier)


def test_invalid_request_type_returns_400(monkeypatch):
    client = TestClient(app)
    processor = FakeProcessor()
    monkeypatch.setattr("app.main.processor", processor)

    response = client.post("/api/estimates?type=cruise", json=_trip_payload())

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert processor.calls == []


def test_full_estimate_is_recorded_in_history(monkeypatch):
    client = TestClient(app)
    monkeypatch.setattr("app.main.processor", FakeProcessor())
    monkeypatch.setattr("app.main.history", EstimateHistory())

    response = client.post("/api/estimates?type=full", json=_trip_payload())
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["flights"]["budget"]["source"] == "flight"
    assert data["hotels"]["premium"]["average"] == 20

    history = client.get("/api/estimates/accommodation/history")
    assert history.status_code == 200
    entries = history.json()["data"]
    assert len(entries) == 1
    assert entries[0]["category"] == "accommodation"
    assert entries[0]["estimates"]["budget"]["source"] == "accommodation"


def test_budget_optimize_endpoint(monkeypatch):
    client = TestClient(app)
    allocator = AsyncMock()
    allocator.calculate_optimal_budget.return_value = BudgetResult(
        allocations={"hotel": {"budget": 2000, "medium": 0, "premium": 0}},
        metrics=BudgetMetrics(total_score=20, score_distribution={"hotel": {"budget": 20}}, per_day=200, per_person=500),
    )
    monkeypatch.setattr("app.main.allocator", allocator)

    response = client.post(
        "/api/budget/optimize",
        json={
            "totalBudget": 1000,
            "duration": 5,
            "travelers": 2,
            "businesses": {"hotel": {"budget": [{"name": "H", "price": 80}]}},
        },
    )

    assert response.status_code == 200
    request = allocator.calculate_optimal_budget.await_args.args[0]
    assert request.total_budget == 1000
    assert request.businesses["hotel"]["budget"][0].name == "H"
    data = response.json()["data"]
    assert data["allocations"]["hotel"]["budget"] == 2000
    assert data["metrics"]["perDay"] == 200
    assert data["metrics"]["perPerson"] == 500


def test_budget_optimize_rejects_non_positive_budget():
    client = TestClient(app)
    response = client.post("/api/budget/optimize", json={"totalBudget": 0})

    assert response.status_code == 422
    assert "totalBudget" in response.json()["error"]


def test_budget_optimize_failure_is_500(monkeypatch):
    client = TestClient(app)
    allocator = AsyncMock()
    allocator.calculate_optimal_budget.side_effect = RuntimeError("ratings down")
    monkeypatch.setattr("app.main.allocator", allocator)

    response = client.post("/api/budget/optimize", json={"totalBudget": 100})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "ratings down", "timestamp": response.json()["timestamp"]}


def test_budget_recommendations_endpoint(monkeypatch):
    client = TestClient(app)
    allocator = AsyncMock()
    allocator.get_recommended_businesses.return_value = [ScoredBusiness(name="B", price=250, score=25)]
    monkeypatch.setattr("app.main.allocator", allocator)

    response = client.post(
        "/api/budget/recommendations",
        json={
            "category": "hotel",
            "tier": "budget",
            "budgetAllocations": {"hotel": {"budget": 300}},
            "businesses": [{"name": "B", "price": 250}],
        },
    )

    assert response.status_code == 200
    request = allocator.get_recommended_businesses.await_args.args[0]
    assert request.max_results == 5
    assert response.json()["data"] == [
        {"name": "B", "price": 250.0, "category": None, "tier": None, "score": 25.0}
    ]
