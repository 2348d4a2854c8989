"""Errors raised by the estimate pipeline.

Every error carries an HTTP-style ``status_code`` so the orchestrator can turn
it into a response envelope without knowing the concrete type.
"""


class EstimateError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code = 500


class InvalidRequestTypeError(EstimateError):
    """The caller asked for a request type the orchestrator does not serve."""

    status_code = 400

    def __init__(self, request_type: str):
        self.request_type = request_type
        super().__init__(f"Invalid request type: {request_type!r}")


class CategoryProcessingError(EstimateError):
    """One expense category could not be estimated."""

    def __init__(self, category: str, message: str):
        self.category = category
        super().__init__(f"[{category}] {message}")


class EstimateQueryError(CategoryProcessingError):
    """The LLM search endpoint failed or returned nothing usable."""


class CategoryParseError(CategoryProcessingError):
    """The LLM response for a category did not contain a JSON object."""

    def __init__(self, category: str, raw_content: str, reason: str = ""):
        self.raw_content = raw_content
        message = f"Failed to parse response for {category}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(category, message)
