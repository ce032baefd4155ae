import json
import logging
from typing import Any, Dict, Iterator, Optional

import requests

from config import settings
from core.domain import LLMServiceError
from core.interfaces import ILLMClient

logger = logging.getLogger(settings.LOGGER_NAME)


def parse_sse_line(line: str) -> Optional[str]:
    """
    Text carried by one server-sent event line of streamGenerateContent.

    Returns None for keep-alives, blank lines and events without text.
    Raises LLMServiceError when the event reports an error.
    """
    if not line or not line.startswith("data:"):
        return None
    raw = line[len("data:"):].strip()
    if not raw or raw == "[DONE]":
        return None

    try:
        payload: Dict[str, Any] = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Skipping malformed stream event: {raw[:200]}")
        return None

    if "error" in payload:
        error = payload["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise LLMServiceError(message or "LLM streaming error")

    texts = []
    for candidate in payload.get("candidates") or []:
        for part in (candidate.get("content") or {}).get("parts") or []:
            if part.get("text"):
                texts.append(part["text"])
    return "".join(texts) or None


class GeminiClient(ILLMClient):
    """A client for the Gemini generative language REST API (streaming)."""

    def __init__(
        self,
        api_key: str = settings.GEMINI_API_KEY,
        model: str = settings.GEMINI_MODEL,
        base_url: str = settings.GEMINI_API_URL,
        timeout: int = settings.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def stream_generate(self, prompt: str) -> Iterator[str]:
        if not self.api_key:
            raise LLMServiceError("GEMINI_API_KEY is not configured")
        if not prompt or not prompt.strip():
            raise LLMServiceError("Empty prompt provided")

        logger.info(f"Sending prompt to LLM model '{self.model}' ({len(prompt)} chars)...")
        try:
            with self.session.post(
                f"{self.base_url}/models/{self.model}:streamGenerateContent",
                params={"alt": "sse"},
                headers={"x-goog-api-key": self.api_key},
                json={"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
                stream=True,
                timeout=self.timeout,
            ) as response:
                if response.status_code >= 400:
                    logger.error(f"LLM service returned an error: {response.status_code} {response.text}")
                    raise LLMServiceError(f"LLM error: {response.status_code}")

                response.encoding = "utf-8"
                for line in response.iter_lines(decode_unicode=True):
                    text = parse_sse_line(line)
                    if text:
                        yield text
        except requests.exceptions.Timeout:
            logger.error(f"LLM request timed out after {self.timeout} seconds.")
            raise LLMServiceError("LLM request timed out")
        except requests.exceptions.ConnectionError:
            logger.error(f"Cannot connect to LLM at {self.base_url}.")
            raise LLMServiceError("Cannot connect to LLM service")

        logger.info("Successfully received streamed response from LLM.")
