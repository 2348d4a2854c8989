from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
import os
import time

import httpx

from app.agents.normalizer import coerce_number
from app.log import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_SIZE = 1024

# Allocation categories -> business types understood by the rating providers.
BUSINESS_TYPES: Dict[str, str] = {
    "flight": "airline",
    "hotel": "hotel",
    "restaurant": "restaurant",
    "activity": "activity",
}


@dataclass(frozen=True)
class RatingInfo:
    rating: Optional[float] = None
    source: Optional[str] = None


class RatingCache:
    """``category:name -> rating`` map with least-recently-used eviction.

    ``max_entries=None`` keeps every rating for the life of the cache.
    """

    def __init__(self, max_entries: Optional[int] = DEFAULT_CACHE_SIZE):
        self.max_entries = max_entries
        self._store: "OrderedDict[str, float]" = OrderedDict()

    @staticmethod
    def key(business_name: str, category: str) -> str:
        return f"{category}:{business_name}"

    def get(self, business_name: str, category: str) -> Optional[float]:
        key = self.key(business_name, category)
        if key not in self._store:
            return None
        self._store.move_to_end(key)
        return self._store[key]

    def set(self, business_name: str, category: str, rating: float) -> None:
        key = self.key(business_name, category)
        self._store[key] = rating
        self._store.move_to_end(key)
        if self.max_entries is not None:
            while len(self._store) > self.max_entries:
                self._store.popitem(last=False)

    def __len__(self) -> int:
        return len(self._store)

    def contains(self, business_name: str, category: str) -> bool:
        """Membership check that leaves the eviction order untouched."""
        return self.key(business_name, category) in self._store

    @classmethod
    def from_env(cls) -> "RatingCache":
        raw = os.getenv("RATING_CACHE_MAX_ENTRIES")
        if raw is None or not raw.strip():
            return cls()
        try:
            size = int(raw)
        except ValueError:
            logger.warning("Ignoring non-numeric RATING_CACHE_MAX_ENTRIES=%r; using %d", raw, DEFAULT_CACHE_SIZE)
            return cls()
        return cls(max_entries=size if size > 0 else None)


class RatingService:
    """Best-effort business ratings from Amadeus, Tripadvisor and Trustpilot.

    Providers are tried in order for the business type and skipped when their
    credentials are missing. Every failure path yields ``RatingInfo()`` (no
    rating, no source) instead of raising.
    """

    AMADEUS_BASE_URL = "https://test.api.amadeus.com"
    AMADEUS_ENDPOINTS = {
        "hotel": "/v3/reference-data/locations/hotels",
        "airline": "/v1/reference-data/airlines",
    }
    TRIPADVISOR_ENDPOINT = "https://api.tripadvisor.com/data/v1/{business_type}s"
    TRUSTPILOT_ENDPOINT = "https://api.trustpilot.com/v1/business-units/find"

    def __init__(
        self,
        *,
        amadeus_key: Optional[str] = None,
        amadeus_secret: Optional[str] = None,
        tripadvisor_key: Optional[str] = None,
        trustpilot_key: Optional[str] = None,
        amadeus_base_url: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.amadeus_key = amadeus_key or os.getenv("AMADEUS_API_KEY")
        self.amadeus_secret = amadeus_secret or os.getenv("AMADEUS_API_SECRET")
        self.tripadvisor_key = tripadvisor_key or os.getenv("TRIPADVISOR_API_KEY")
        self.trustpilot_key = trustpilot_key or os.getenv("TRUSTPILOT_API_KEY")
        self.amadeus_base_url = amadeus_base_url or os.getenv("AMADEUS_BASE_URL") or self.AMADEUS_BASE_URL
        self.timeout = timeout
        self._amadeus_token: Optional[str] = None
        self._amadeus_token_expiry = 0.0

    async def fetch_rating(self, business_name: str, category: str) -> RatingInfo:
        business_type = BUSINESS_TYPES.get(category, category)
        for source, fetcher in self._providers_for(business_type):
            try:
                rating = await fetcher(business_name, business_type)
            except Exception:
                logger.warning("Rating lookup via %s failed for %s (%s)", source, business_name, business_type, exc_info=True)
                continue
            if rating is not None:
                logger.info("Rating for %s (%s) from %s: %.1f", business_name, business_type, source, rating)
                return RatingInfo(rating=rating, source=source)
        logger.info("No rating found for %s (%s)", business_name, business_type)
        return RatingInfo()

    def _providers_for(self, business_type: str) -> List[Tuple[str, Callable[[str, str], Awaitable[Optional[float]]]]]:
        providers: List[Tuple[str, Callable[[str, str], Awaitable[Optional[float]]]]] = []
        if business_type in self.AMADEUS_ENDPOINTS and self.amadeus_key and self.amadeus_secret:
            providers.append(("amadeus", self._fetch_from_amadeus))
        if business_type in ("hotel", "restaurant") and self.tripadvisor_key:
            providers.append(("tripadvisor", self._fetch_from_tripadvisor))
        if business_type == "airline" and self.trustpilot_key:
            providers.append(("trustpilot", self._fetch_from_trustpilot))
        return providers

    async def _fetch_from_amadeus(self, business_name: str, business_type: str) -> Optional[float]:
        token = await self._get_amadeus_token()
        endpoint = self.AMADEUS_ENDPOINTS[business_type]
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(
                f"{self.amadeus_base_url}{endpoint}",
                headers={"Authorization": f"Bearer {token}"},
                params={"keyword": business_name},
            )
            r.raise_for_status()
            data = r.json()
        return self._parse_rating(data.get("rating"))

    async def _get_amadeus_token(self) -> str:
        if self._amadeus_token and time.monotonic() < self._amadeus_token_expiry:
            return self._amadeus_token
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                f"{self.amadeus_base_url}/v1/security/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.amadeus_key,
                    "client_secret": self.amadeus_secret,
                },
            )
            r.raise_for_status()
            payload = r.json()
        self._amadeus_token = payload["access_token"]
        # Treat the token as expired one minute early.
        self._amadeus_token_expiry = time.monotonic() + float(payload.get("expires_in", 1799)) - 60
        return self._amadeus_token

    async def _fetch_from_tripadvisor(self, business_name: str, business_type: str) -> Optional[float]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(
                self.TRIPADVISOR_ENDPOINT.format(business_type=business_type),
                params={"key": self.tripadvisor_key, "q": business_name},
            )
            r.raise_for_status()
            data = r.json()
        return self._parse_rating(data.get("rating"))

    async def _fetch_from_trustpilot(self, business_name: str, business_type: str) -> Optional[float]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(
                self.TRUSTPILOT_ENDPOINT,
                headers={"ApiKey": self.trustpilot_key},
                params={"name": business_name},
            )
            r.raise_for_status()
            data = r.json()
        return self._parse_rating(data.get("stars"))

    @staticmethod
    def _parse_rating(value: object) -> Optional[float]:
        rating = coerce_number(value, 0.0)
        return rating if rating > 0 else None
