"""LLM backends used by the summarizer: Anthropic Messages and OpenAI-compatible chat."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import anthropic
import openai
from anthropic import Anthropic
from anthropic.types import TextBlock
from openai import OpenAI

from src.config import settings
from src.errors import (
    ConfigurationError,
    ProviderContentError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from src.pipeline_config import SummaryProvider, resolve_provider

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    SummaryProvider.ANTHROPIC: "claude-opus-4-5-20251101",
    SummaryProvider.OPENAI_COMPATIBLE: "opus-4.5",
}

# Sample .env files ship this host; treat it as "not configured".
PLACEHOLDER_HOST = "your-opus-provider"


def _api_root(url: str, endpoint_suffix: str) -> str:
    """Accept either an API root or a full endpoint URL and return the root."""
    url = url.strip().rstrip("/")
    if url.endswith(endpoint_suffix):
        url = url[: -len(endpoint_suffix)]
    return url


def _configured_base_url(raw: str) -> str | None:
    raw = raw.strip()
    if not raw or PLACEHOLDER_HOST in raw:
        return None
    return raw


class SummaryClient(ABC):
    """One system + user prompt in, one text completion out."""

    provider: SummaryProvider

    def __init__(
        self,
        model: str,
        *,
        temperature: float = 0.2,
        max_tokens: int = 800,
        timeout: float = 90.0,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    @abstractmethod
    def complete(self, system: str, user: str) -> str:
        """Return the stripped completion text.

        Raises:
            ProviderTimeoutError: The call exceeded ``timeout``.
            ProviderResponseError: The service returned a non-2xx status.
            ProviderContentError: The response had no usable text.
            ProviderError: Any other transport failure.
        """


class AnthropicSummaryClient(SummaryClient):
    provider = SummaryProvider.ANTHROPIC

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str | None = None,
        client: Anthropic | None = None,
        temperature: float = 0.2,
        max_tokens: int = 800,
        timeout: float = 90.0,
    ) -> None:
        super().__init__(
            model, temperature=temperature, max_tokens=max_tokens, timeout=timeout
        )
        if client is None:
            client = Anthropic(
                api_key=api_key,
                base_url=_api_root(base_url, "/v1/messages") if base_url else None,
                timeout=self.timeout,
                max_retries=0,
            )
        self._client = client

    def complete(self, system: str, user: str) -> str:
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except anthropic.APITimeoutError as exc:
            raise ProviderTimeoutError(
                f"Anthropic request timed out after {self.timeout:g}s"
            ) from exc
        except anthropic.APIStatusError as exc:
            raise ProviderResponseError(
                f"Anthropic request failed ({exc.status_code}): {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except anthropic.APIResponseValidationError as exc:
            raise ProviderContentError(f"Anthropic response could not be parsed: {exc}") from exc
        except anthropic.APIError as exc:
            raise ProviderError(f"Anthropic request failed: {exc}") from exc

        for block in response.content:
            if isinstance(block, TextBlock) and block.text.strip():
                return block.text.strip()
        raise ProviderContentError("Anthropic response missing text.")


class OpenAICompatibleSummaryClient(SummaryClient):
    provider = SummaryProvider.OPENAI_COMPATIBLE

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str | None = None,
        client: OpenAI | None = None,
        temperature: float = 0.2,
        max_tokens: int = 800,
        timeout: float = 90.0,
    ) -> None:
        super().__init__(
            model, temperature=temperature, max_tokens=max_tokens, timeout=timeout
        )
        if client is None:
            if not base_url:
                raise ConfigurationError(
                    "Missing SUMMARY_API_BASE_URL for openai-compatible provider. "
                    "Set it to something like https://.../v1/chat/completions"
                )
            client = OpenAI(
                api_key=api_key,
                base_url=_api_root(base_url, "/chat/completions"),
                timeout=self.timeout,
                max_retries=0,
            )
        self._client = client

    def complete(self, system: str, user: str) -> str:
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=False,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
        except openai.APITimeoutError as exc:
            raise ProviderTimeoutError(
                f"Summary request timed out after {self.timeout:g}s"
            ) from exc
        except openai.APIStatusError as exc:
            raise ProviderResponseError(
                f"Summary request failed ({exc.status_code}): {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except openai.APIResponseValidationError as exc:
            raise ProviderContentError(f"Summary response could not be parsed: {exc}") from exc
        except openai.APIError as exc:
            raise ProviderError(f"Summary request failed: {exc}") from exc

        choices = completion.choices or []
        content = choices[0].message.content if choices and choices[0].message else None
        if not content or not content.strip():
            raise ProviderContentError("Summary response missing content.")
        return content.strip()


def get_summary_client() -> SummaryClient:
    """Build the configured summarization backend from settings."""
    api_key = settings.summary_api_key
    if not api_key:
        raise ConfigurationError("Missing SUMMARY_API_KEY in environment.")

    try:
        provider = resolve_provider(settings.summary_provider, api_key)
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown SUMMARY_PROVIDER {settings.summary_provider!r}"
        ) from exc

    model = settings.summary_model or DEFAULT_MODELS[provider]
    base_url = _configured_base_url(settings.summary_api_base_url)
    logger.debug("Using %s summary provider with model %s", provider.value, model)

    cls = (
        AnthropicSummaryClient
        if provider is SummaryProvider.ANTHROPIC
        else OpenAICompatibleSummaryClient
    )
    return cls(
        api_key,
        model,
        base_url=base_url,
        temperature=settings.summary_temperature,
        max_tokens=settings.summary_max_tokens,
        timeout=settings.summary_timeout_seconds,
    )
