"""ChatCompletionCleanupAdapter: transcript cleanup through an OpenAI-compatible chat API."""

import logging
from typing import Optional

import httpx

from talkcut.domain.errors import CleanupServiceError
from talkcut.ports.cleanup import TextCleanupPort

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a transcription correction assistant. Fix word fragments and spelling "
    "errors in speech-to-text transcriptions while keeping the same word count and order."
)

USER_PROMPT = """Fix this {language}transcription from a speech recognizer. It has word fragments that need to be joined.

Rules:
1. Join word fragments (e.g. "nego cios" -> "negocios")
2. Fix obvious spelling errors
3. Keep the same approximate word count (don't add or remove content)
4. Minimal punctuation
5. Return ONLY the corrected text, no explanations

Original: {text}

Corrected:"""


class ChatCompletionCleanupAdapter(TextCleanupPort):
    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        timeout: float = 60.0,
        language: Optional[str] = None,
        temperature: float = 0.3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_url = api_url
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._language = language
        self._temperature = temperature
        self._transport = transport

    def _payload(self, text: str) -> dict:
        language = f"{self._language} " if self._language else ""
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": USER_PROMPT.format(language=language, text=text)},
            ],
            "temperature": self._temperature,
        }

    async def clean(self, text: str) -> str:
        logger.info(f"Cleaning transcript with {self._model} ({len(text)} chars)")
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._api_url,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=self._payload(text),
                )
        except httpx.TimeoutException as e:
            raise CleanupServiceError(f"Cleanup request timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise CleanupServiceError(f"Cleanup request failed: {e}") from e

        if response.status_code != 200:
            raise CleanupServiceError(f"Cleanup API error {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
            cleaned = data["choices"][0]["message"]["content"].strip()
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise CleanupServiceError(f"Unexpected cleanup response: {response.text[:200]}") from e

        logger.info(f"Cleaned text length: {len(cleaned)} chars")
        return cleaned
