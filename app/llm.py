import os
from typing import Any, Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI, OpenAIError

from app.exceptions import EstimateQueryError
from app.log import get_logger

logger = get_logger(__name__)

# Load .env file if present
load_dotenv()

DEFAULT_BASE_URL = "https://api.perplexity.ai"
DEFAULT_MODEL = "llama-3.1-sonar-small-128k-online"
DEFAULT_MAX_RETRIES = 3
MAX_TOKENS = 4096

SYSTEM_PROMPT = "You are a helpful assistant that provides accurate travel cost estimates in JSON format."


def _env_retries() -> int:
    raw = os.getenv("PERPLEXITY_MAX_RETRIES")
    if raw is None or not raw.strip():
        return DEFAULT_MAX_RETRIES
    try:
        return max(int(raw), 0)
    except ValueError:
        logger.warning("Ignoring non-numeric PERPLEXITY_MAX_RETRIES=%r; using %d", raw, DEFAULT_MAX_RETRIES)
        return DEFAULT_MAX_RETRIES


class EstimateQueryClient:
    """Async client for the LLM search endpoint used to price trip categories.

    Perplexity speaks the OpenAI chat-completions protocol, so the official
    ``openai`` SDK is pointed at its base URL. Transient failures (connection
    errors, 408/429/5xx) are retried by the SDK with exponential backoff; any
    error that survives the retries is raised as ``EstimateQueryError``.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        client: Any = None,
    ):
        self.model = model or os.getenv("PERPLEXITY_MODEL") or DEFAULT_MODEL
        api_key = api_key or os.getenv("PERPLEXITY_API_KEY")
        if max_retries is None:
            max_retries = _env_retries()

        if client is not None:
            self._client = client
        elif api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url or os.getenv("PERPLEXITY_BASE_URL") or DEFAULT_BASE_URL,
                max_retries=max_retries,
            )
        else:
            self._client = None
            logger.warning("PERPLEXITY_API_KEY not set; estimate queries will fail until it is configured")

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def query(self, prompt: str, *, category: str = "general") -> str:
        """Send ``prompt`` and return the raw completion text."""
        if self._client is None:
            raise EstimateQueryError(category, "PERPLEXITY_API_KEY environment variable not configured")

        logger.info("[%s] Querying %s (%d prompt chars)", category.upper(), self.model, len(prompt))
        try:
            resp = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=MAX_TOKENS,
            )
        except OpenAIError as exc:
            logger.error("[%s] Estimate API error: %s", category.upper(), exc)
            raise EstimateQueryError(category, f"API error for {category}: {exc}") from exc

        choices = getattr(resp, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            raise EstimateQueryError(category, f"Empty response for {category}")

        logger.debug("[%s] Raw API response: %s", category.upper(), content)
        return content
