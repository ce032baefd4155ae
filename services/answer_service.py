# services/answer_service.py
"""Prompt construction and streamed answers from the language model."""
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence

from config import settings
from core.domain import AnswerOutcome, InvalidPromptError, LLMServiceError, SearchResult
from core.interfaces import ILLMClient

logger = logging.getLogger(settings.LOGGER_NAME)

NO_RESULTS_ANSWER = "Geen relevante bestanden gevonden voor je zoekopdracht."
STOPPED_ANSWER = "AI response gestopt door gebruiker."


# ============= Prompts =============

def build_search_prompt(query: str, results: Sequence[SearchResult]) -> str:
    """Prompt that asks the model to answer from the matched file snippets."""
    context = "\n".join(
        f"[Bestand {index}: {result.document.name}]\n"
        f"Pad: {result.document.path}\n"
        f"Inhoud:\n{result.matched_content}\n\n---\n"
        for index, result in enumerate(results, start=1)
    )
    return (
        f'Gebaseerd op de volgende bestanden uit de Dropbox van de gebruiker, beantwoord de vraag: "{query}"\n'
        f"\n"
        f"GEVONDEN BESTANDEN:\n"
        f"{context}\n"
        f"\n"
        f"Geef een uitgebreid en nuttig antwoord gebaseerd op de inhoud van deze bestanden. "
        f"Verwijs specifiek naar de bestandsnamen en paden waar relevant. "
        f"Als de informatie niet volledig is, geef dan aan wat er ontbreekt."
    )


def build_direct_prompt(query: str) -> str:
    return (
        f'Beantwoord de volgende vraag op een behulpzame en informatieve manier: "{query}"\n'
        f"\n"
        f"Geef een duidelijk en uitgebreid antwoord. "
        f"Als je aanvullende context of verduidelijking nodig hebt, geef dat dan aan."
    )


# ============= Server-sent events =============

def sse_frame(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def parse_sse_frame(frame: str) -> Iterator[Dict[str, Any]]:
    """Decoded JSON payloads of the data lines in one frame; malformed lines are skipped."""
    for line in frame.splitlines():
        if not line.startswith("data: "):
            continue
        try:
            yield json.loads(line[len("data: "):])
        except json.JSONDecodeError:
            logger.warning(f"Skipping malformed event line: {line[:200]}")


class AnswerService:
    def __init__(self, llm_client: ILLMClient, max_prompt_chars: int = settings.MAX_PROMPT_CHARS):
        self.llm_client = llm_client
        self.max_prompt_chars = max_prompt_chars

    @property
    def is_configured(self) -> bool:
        return self.llm_client.is_configured

    def validate_prompt(self, prompt: Any) -> str:
        if not prompt:
            raise InvalidPromptError("Prompt is vereist")
        if not isinstance(prompt, str) or len(prompt) > self.max_prompt_chars:
            raise InvalidPromptError(
                f"Prompt moet een string zijn van maximaal {self.max_prompt_chars:,} karakters".replace(",", ".")
            )
        return prompt

    def stream_events(self, prompt: str) -> Iterator[str]:
        """
        Server-sent event frames for one prompt.

        Each token arrives as {"token", "timestamp"}, a successful stream ends
        with {"done": true} and a failure ends it with {"error": true, "message"}.
        """
        tokens = 0
        try:
            for token in self.llm_client.stream_generate(prompt):
                tokens += 1
                yield sse_frame({"token": token, "timestamp": datetime.now(timezone.utc).isoformat()})
        except LLMServiceError as e:
            logger.error(f"AI streaming error after {tokens} tokens: {e}")
            yield sse_frame({"error": True, "message": str(e) or "AI streaming error occurred"})
            return
        logger.info(f"AI stream finished with {tokens} tokens")
        yield sse_frame({"done": True})

    def collect(
        self,
        frames: Iterable[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> AnswerOutcome:
        """
        Assemble a stream of frames into one answer.

        Text received before a cancellation or a mid-stream error is kept and
        reported with complete=False. An error before any text raises.
        """
        parts = []
        for frame in frames:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Answer stream stopped by client")
                return AnswerOutcome(text="".join(parts) or STOPPED_ANSWER, complete=False)

            for payload in parse_sse_frame(frame):
                if payload.get("error"):
                    message = payload.get("message") or "AI streaming error occurred"
                    if not parts:
                        raise LLMServiceError(message)
                    logger.warning(f"Answer stream failed after partial output: {message}")
                    return AnswerOutcome(text="".join(parts), complete=False)
                if payload.get("done"):
                    return AnswerOutcome(text="".join(parts), complete=True)
                if payload.get("token"):
                    parts.append(payload["token"])

        return AnswerOutcome(text="".join(parts), complete=False)

    def answer_search(
        self,
        query: str,
        results: Sequence[SearchResult],
        cancel_event: Optional[threading.Event] = None,
    ) -> AnswerOutcome:
        if not results:
            return AnswerOutcome(text=NO_RESULTS_ANSWER, complete=True)
        prompt = self.validate_prompt(build_search_prompt(query, results))
        return self.collect(self.stream_events(prompt), cancel_event)

    def answer_direct(self, query: str, cancel_event: Optional[threading.Event] = None) -> AnswerOutcome:
        prompt = self.validate_prompt(build_direct_prompt(query))
        return self.collect(self.stream_events(prompt), cancel_event)
