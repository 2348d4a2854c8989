"""In-process record of recent category estimates."""
from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List

from app.schemas import CategoryEstimate, utc_timestamp

DEFAULT_HISTORY_SIZE = 50


class EstimateHistory:
    """Keeps the most recent estimates per category, newest first on read."""

    def __init__(self, max_per_category: int = DEFAULT_HISTORY_SIZE):
        self.max_per_category = max_per_category
        self._entries: Dict[str, Deque[Dict[str, Any]]] = {}

    def record(self, category: str, estimate: CategoryEstimate) -> None:
        bucket = self._entries.setdefault(category.lower(), deque(maxlen=self.max_per_category))
        bucket.append(
            {
                "category": category.lower(),
                "estimates": estimate.model_dump(mode="json", by_alias=True),
                "updatedAt": utc_timestamp(),
            }
        )

    def latest(self, category: str, limit: int = 5) -> List[Dict[str, Any]]:
        bucket = self._entries.get(category.lower())
        if not bucket:
            return []
        return list(reversed(bucket))[: max(limit, 0)]

    def clear(self) -> None:
        self._entries.clear()
