"""Error taxonomy for the transcription and summarization pipelines."""

from __future__ import annotations


class TranscriberError(Exception):
    """Base class for all application errors."""


class ConfigurationError(TranscriberError):
    """A required setting (API key, base URL) is missing or unusable."""


class MediaProcessingError(TranscriberError):
    """The media toolchain is missing or could not read the input."""


class EmptyMediaError(TranscriberError):
    """No audio segments could be extracted from the upload."""


class ProviderError(TranscriberError):
    """An external speech or LLM service call failed."""


class ProviderTimeoutError(ProviderError):
    """The external call did not complete within its timeout."""


class ProviderResponseError(ProviderError):
    """The external service answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderContentError(ProviderError):
    """The response body was missing the expected text or could not be parsed."""


class QuotaExceededError(TranscriberError):
    """The requester has used all free uploads."""

    def __init__(self, used: int, limit: int) -> None:
        super().__init__(
            f"You've used all {limit} free uploads. Create an account to continue."
        )
        self.used = used
        self.limit = limit
        self.remaining = 0
