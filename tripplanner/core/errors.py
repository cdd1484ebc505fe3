"""
Error taxonomy for itinerary generation and normalization.

ConfigurationError is never retried. TransientServiceError, the
MalformedResponse family and ValidationError fail the current generation
attempt and send the orchestrator into its retry loop.
"""


class ItineraryError(Exception):
    """Base class for all itinerary pipeline errors."""


class ConfigurationError(ItineraryError):
    """Missing or invalid configuration, e.g. an absent API credential."""


class TransientServiceError(ItineraryError):
    """Network, quota or provider-side failure of the generation service."""


class MalformedResponse(ItineraryError):
    """The model output cannot be turned into a JSON array."""


class ParseError(MalformedResponse):
    """Structural failure after repair. Carries a snippet around the failure offset."""

    def __init__(self, message: str, context: str = "", offset: int | None = None) -> None:
        self.context = context
        self.offset = offset
        if context:
            message = f"{message} near [...{context}...]"
        super().__init__(message)


class NotAnArray(ParseError):
    pass


class EmptyArray(ParseError):
    pass


class InvalidJson(ParseError):
    pass


class ValidationError(ItineraryError):
    """A parsed entry violates the response contract."""


class MissingRequiredField(ValidationError):
    def __init__(self, index: int, field: str) -> None:
        self.index = index
        self.field = field
        super().__init__(f"Invalid location data at index {index}: missing required field '{field}'")


class GenerationFailed(ItineraryError):
    """All generation attempts failed; wraps the last error."""

    def __init__(self, attempts: int, last_error: Exception | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to generate itinerary after {attempts} attempts. Last error: {last_error}"
        )
