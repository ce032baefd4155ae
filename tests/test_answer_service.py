"""Tests for prompt building, SSE framing and answer collection."""
import json
import threading

import pytest

from core.domain import InvalidPromptError, LLMServiceError, SearchResult
from services.answer_service import (
    NO_RESULTS_ANSWER,
    AnswerService,
    build_direct_prompt,
    build_search_prompt,
    parse_sse_frame,
    sse_frame,
)
from tests.conftest import FakeLLM, make_document


def _payloads(frames):
    return [payload for frame in frames for payload in parse_sse_frame(frame)]


def _result(name="rubriek.txt", snippet="de rubriek voor beoordeling"):
    return SearchResult(document=make_document(name, snippet), relevance_score=0.5, matched_content=snippet)


class TestPrompts:
    def test_search_prompt_lists_files(self):
        prompt = build_search_prompt("Wat zijn de criteria?", [_result(), _result("b.txt", "tweede")])
        assert 'beantwoord de vraag: "Wat zijn de criteria?"' in prompt
        assert "[Bestand 1: rubriek.txt]\nPad: /Documenten/rubriek.txt\nInhoud:\nde rubriek voor beoordeling" in prompt
        assert "[Bestand 2: b.txt]" in prompt
        assert "GEVONDEN BESTANDEN:" in prompt

    def test_direct_prompt(self):
        assert '"Wat is een rubriek?"' in build_direct_prompt("Wat is een rubriek?")


class TestStreamEvents:
    def test_tokens_then_done(self):
        frames = list(AnswerService(FakeLLM(["Hallo", " wereld"])).stream_events("vraag"))
        payloads = _payloads(frames)

        assert all(frame.startswith("data: ") and frame.endswith("\n\n") for frame in frames)
        assert [p.get("token") for p in payloads[:2]] == ["Hallo", " wereld"]
        assert all("timestamp" in p for p in payloads[:2])
        assert payloads[-1] == {"done": True}

    def test_error_frame(self):
        frames = list(AnswerService(FakeLLM(["Hallo"], fail_after=1)).stream_events("vraag"))
        payloads = _payloads(frames)
        assert payloads[0]["token"] == "Hallo"
        assert payloads[-1] == {"error": True, "message": "quota exceeded"}
        assert {"done": True} not in payloads


class TestCollect:
    def test_complete_answer(self):
        service = AnswerService(FakeLLM(["Het ", "antwoord"]))
        outcome = service.collect(service.stream_events("vraag"))
        assert outcome.text == "Het antwoord"
        assert outcome.complete

    def test_cancel_keeps_partial_text(self):
        service = AnswerService(FakeLLM(["Eerste ", "tweede ", "derde"]))
        cancel = threading.Event()

        def frames():
            stream = service.stream_events("vraag")
            yield next(stream)
            cancel.set()
            yield from stream

        outcome = service.collect(frames(), cancel)
        assert outcome.text == "Eerste "
        assert not outcome.complete

    def test_error_after_text_returns_partial(self):
        service = AnswerService(FakeLLM(["Deels"], fail_after=1))
        outcome = service.collect(service.stream_events("vraag"))
        assert outcome.text == "Deels"
        assert not outcome.complete

    def test_error_before_text_raises(self):
        service = AnswerService(FakeLLM([], fail_after=0))
        with pytest.raises(LLMServiceError):
            service.collect(service.stream_events("vraag"))

    def test_malformed_frames_are_skipped(self):
        frames = ["data: {kapot\n\n", sse_frame({"token": "ok"}), ": keep-alive\n\n", sse_frame({"done": True})]
        outcome = AnswerService(FakeLLM([])).collect(frames)
        assert outcome.text == "ok"
        assert outcome.complete

    def test_stream_without_done_is_incomplete(self):
        outcome = AnswerService(FakeLLM([])).collect([sse_frame({"token": "half"})])
        assert outcome.text == "half"
        assert not outcome.complete


class TestValidation:
    @pytest.mark.parametrize("prompt", [None, "", 123])
    def test_rejects_invalid_prompts(self, prompt):
        with pytest.raises(InvalidPromptError):
            AnswerService(FakeLLM([])).validate_prompt(prompt)

    def test_rejects_oversized_prompt(self):
        with pytest.raises(InvalidPromptError) as excinfo:
            AnswerService(FakeLLM([]), max_prompt_chars=10).validate_prompt("x" * 11)
        assert "maximaal 10 karakters" in str(excinfo.value)

    def test_default_limit_message(self):
        with pytest.raises(InvalidPromptError) as excinfo:
            AnswerService(FakeLLM([])).validate_prompt("x" * 100_001)
        assert "100.000" in str(excinfo.value)


class TestAnswers:
    def test_no_results_skips_the_model(self):
        llm = FakeLLM(["niet gebruikt"])
        outcome = AnswerService(llm).answer_search("vraag", [])
        assert outcome.text == NO_RESULTS_ANSWER
        assert outcome.complete
        assert llm.prompts == []

    def test_search_answer_uses_results(self):
        llm = FakeLLM(["Zie ", "rubriek.txt"])
        outcome = AnswerService(llm).answer_search("criteria?", [_result()])
        assert outcome.text == "Zie rubriek.txt"
        assert "[Bestand 1: rubriek.txt]" in llm.prompts[0]

    def test_direct_answer(self):
        llm = FakeLLM(["Direct"])
        outcome = AnswerService(llm).answer_direct("Wat is een rubriek?")
        assert outcome.text == "Direct"
        assert json.dumps("Wat is een rubriek?") in llm.prompts[0]
