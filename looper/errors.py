"""Exception hierarchy for the research engine.

Provider errors are recovered per call inside the loop. Everything else
either rejects the request up front (``InvalidInputError``) or ends the
session (``EngineFailureError``).
"""


class LooperError(Exception):
    """Base class for all research engine errors."""


class InvalidInputError(LooperError, ValueError):
    """The request was rejected before the loop started (e.g. empty query)."""


class ProviderError(LooperError):
    """A capability provider call failed. Recoverable at the call site."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """Transport failure, timeout, or exhausted retries."""


class ContentUnreadableError(ProviderError):
    """The reference could not be turned into text (paywall, binary, empty)."""


class ProvenanceError(LooperError):
    """A ReadContent was ingested without its Reference."""


class EngineFailureError(LooperError):
    """Unexpected failure while planning, ingesting, evaluating or synthesizing."""

    def __init__(self, message: str, phase: str | None = None):
        super().__init__(message)
        self.phase = phase
