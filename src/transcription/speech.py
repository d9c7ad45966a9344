"""Speech-to-text via the OpenAI audio transcriptions API."""

from __future__ import annotations

import openai
from openai import OpenAI

from src.config import settings
from src.errors import (
    ConfigurationError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from src.transcription.models import AudioSegment

AUDIO_MIME_TYPE = "audio/mpeg"


class SpeechTranscriber:
    """Transcribe one audio segment per call.

    Each call is independent and is never retried; any failure is raised so
    the caller can abort.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.model = model or settings.openai_audio_model
        if client is None:
            key = api_key if api_key is not None else settings.openai_api_key
            if not key:
                raise ConfigurationError("Missing OPENAI_API_KEY in environment.")
            client = OpenAI(api_key=key, max_retries=0)
        self._client = client

    def transcribe(self, segment: AudioSegment) -> str:
        """Return the text for *segment* (may be empty)."""
        audio = segment.path.read_bytes()
        try:
            result = self._client.audio.transcriptions.create(
                file=(segment.filename, audio, AUDIO_MIME_TYPE),
                model=self.model,
            )
        except openai.APITimeoutError as exc:
            raise ProviderTimeoutError(
                f"Transcription of {segment.filename} timed out: {exc}"
            ) from exc
        except openai.APIStatusError as exc:
            raise ProviderResponseError(
                f"Transcription request failed ({exc.status_code}): {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(f"Transcription request failed: {exc}") from exc

        return getattr(result, "text", None) or ""
