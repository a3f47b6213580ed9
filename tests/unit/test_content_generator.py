"""Unit tests for content generation routing with a fake model client."""

import asyncio
import json
import re

import pytest

from lesson_relay.config import BatchConfig, ContentSettings
from lesson_relay.generation import (
    Chapter,
    ContentGenerator,
    ContentType,
    InMemoryUsageStore,
    LessonRequest,
    QuizAttempt,
    QuotaGuard,
)
from lesson_relay.generation.content_generator import FALLBACK_CHAPTERS
from lesson_relay.transport import ParseError, UpstreamError

BATCH_PATTERN = re.compile(r"BATCH (\d+)/(\d+)")


def _mcqs(prefix: str, count: int) -> list[dict]:
    return [
        {
            "question": f"{prefix} question {n}",
            "options": ["A", "B", "C", "D"],
            "correctAnswer": n % 4,
        }
        for n in range(count)
    ]


class FakeClient:
    """Records prompts and answers them through ``respond``."""

    def __init__(self, respond) -> None:
        self._respond = respond
        self.calls = []

    async def generate(self, prompt, model=None, on_chunk=None):
        self.calls.append({"prompt": prompt, "model": model, "on_chunk": on_chunk})
        text = self._respond(prompt)
        if isinstance(text, Exception):
            raise text
        if on_chunk is not None and text:
            on_chunk(text)
        return text


def _request(**overrides) -> LessonRequest:
    values = dict(
        board="CBSE",
        class_level="10",
        subject="Science",
        chapter=Chapter(id="ch-1", title="Light"),
    )
    values.update(overrides)
    return LessonRequest(**values)


def _generator(client, **kwargs) -> ContentGenerator:
    kwargs.setdefault("settings", ContentSettings(model="gemini-test"))
    return ContentGenerator(client, **kwargs)


def _is_translation(prompt: str) -> bool:
    return prompt.startswith("You are an expert translator")


def test_small_mcq_request_uses_single_call_and_translates():
    def respond(prompt):
        if _is_translation(prompt):
            return "```json\n" + json.dumps(_mcqs("hi", 20), ensure_ascii=False) + "\n```"
        return json.dumps(_mcqs("en", 20))

    client = FakeClient(respond)
    content = asyncio.run(_generator(client).generate_mcqs(_request(), target_questions=15))

    assert len(client.calls) == 2
    assert "Create 20 MCQs" in client.calls[0]["prompt"]
    assert client.calls[0]["model"] == "gemini-test"
    assert content.subtitle == "20 Questions"
    assert content.title == "MCQ Test: Light"
    assert content.mcq_data[0]["question"] == "en question 0"
    assert content.mcq_data_hi[0]["question"] == "hi question 0"
    record = content.to_record()
    assert record["type"] == "MCQ_SIMPLE"
    assert len(record["manualMcqData_HI"]) == 20


def test_single_mcq_call_surfaces_parse_errors():
    client = FakeClient(lambda prompt: "Sorry, I cannot help with that.")

    with pytest.raises(ParseError):
        asyncio.run(_generator(client).generate_mcqs(_request(language="Hindi")))


def test_bulk_mcq_request_fans_out_and_counts_usage_once():
    def respond(prompt):
        index, total = BATCH_PATTERN.search(prompt).groups()
        assert total == "3"
        assert "Create 20 MCQs" in prompt
        return json.dumps(_mcqs(f"b{index}", 20))

    store = InMemoryUsageStore()
    client = FakeClient(respond)
    generator = _generator(
        client,
        batch=BatchConfig(batch_size=20, concurrency=2, bulk_threshold=30),
        quota=QuotaGuard(store),
    )

    content = asyncio.run(
        generator.generate_mcqs(_request(language="Hindi"), target_questions=45)
    )

    assert len(client.calls) == 3
    assert len(content.mcq_data) == 45
    assert content.mcq_data[0]["question"] == "b1 question 0"
    assert content.mcq_data[-1]["question"] == "b3 question 4"
    assert content.mcq_data_hi is None
    assert asyncio.run(store.get_usage()).student_count == 1


def test_bulk_mcq_request_drops_failed_batches():
    def respond(prompt):
        index = BATCH_PATTERN.search(prompt).group(1)
        if index == "2":
            return "not json at all"
        return json.dumps(_mcqs(f"b{index}", 20))

    client = FakeClient(respond)
    generator = _generator(client, batch=BatchConfig(batch_size=20, concurrency=3))

    content = asyncio.run(
        generator.generate_mcqs(_request(language="Hindi"), target_questions=60)
    )

    assert len(content.mcq_data) == 40
    assert all(not item["question"].startswith("b2 ") for item in content.mcq_data)


def test_notes_stream_through_and_translation_failure_is_tolerated():
    def respond(prompt):
        if _is_translation(prompt):
            return UpstreamError("Gemini API Error: overloaded", status_code=503)
        return "# Light\nReflection and refraction."

    deltas = []
    client = FakeClient(respond)
    content = asyncio.run(
        _generator(client).generate_lesson(
            _request(), ContentType.NOTES_PREMIUM, on_chunk=deltas.append
        )
    )

    assert content.content == "# Light\nReflection and refraction."
    assert content.subtitle == "Premium Study Notes"
    assert content.content_hi is None
    assert deltas == ["# Light\nReflection and refraction."]
    assert "PREMIUM DEEP DIVE NOTES" in client.calls[0]["prompt"]


def test_dual_notes_are_split_and_recorded():
    def respond(prompt):
        if _is_translation(prompt):
            return "अनुवाद"
        return "<<<PREMIUM>>>\nLong notes\n<<<SUMMARY>>>\nShort notes"

    client = FakeClient(respond)
    content = asyncio.run(
        _generator(client).generate_lesson(_request(), ContentType.NOTES_PREMIUM, dual=True)
    )

    assert content.content == "Long notes"
    assert content.summary == "Short notes"
    record = content.to_record()
    assert record["schoolPremiumNotesHtml"] == "Long notes"
    assert record["schoolFreeNotesHtml"] == "Short notes"
    assert record["schoolFreeNotesHtml_HI"] == "अनुवाद"
    assert record["schoolPremiumNotesHtml_HI"] == "अनुवाद"
    assert len(client.calls) == 3


def test_pdf_types_are_never_generated():
    client = FakeClient(lambda prompt: "unused")

    content = asyncio.run(_generator(client).generate_lesson(_request(), ContentType.PDF_FREE))

    assert content.is_coming_soon is True
    assert content.subtitle == "Content Unavailable"
    assert client.calls == []


def test_fetch_chapters_is_cached_per_key():
    client = FakeClient(
        lambda prompt: '[{"title": "Motion", "description": "Speed"}, {"title": "Force"}]'
    )
    generator = _generator(client)

    first = asyncio.run(generator.fetch_chapters("CBSE", "9", "Science", "English"))
    second = asyncio.run(generator.fetch_chapters("CBSE", "9", "Science", "English"))

    assert [chapter.title for chapter in first] == ["Motion", "Force"]
    assert first[0] == Chapter(id="ch-1", title="Motion", description="Speed")
    assert second == first
    assert len(client.calls) == 1


def test_fetch_chapters_falls_back_on_failure():
    client = FakeClient(lambda prompt: UpstreamError("down", status_code=502))

    chapters = asyncio.run(
        _generator(client).fetch_chapters("CBSE", "11", "Physics", "English", "Science")
    )

    assert chapters == list(FALLBACK_CHAPTERS)


def test_custom_notes_use_requested_model():
    client = FakeClient(lambda prompt: "notes on tides")

    text = asyncio.run(_generator(client).generate_custom_notes("Tides", model="gemini-pro"))

    assert text == "notes on tides"
    assert client.calls[0]["model"] == "gemini-pro"


def test_performance_analysis_returns_clean_json():
    attempt = QuizAttempt(
        questions=_mcqs("q", 2),
        user_answers={0: 0, 1: 3},
        score=1,
        total=2,
        subject="Science",
        chapter="Light",
        class_level="10",
    )
    client = FakeClient(lambda prompt: '```json\n{"topics": []}\n```')

    analysis = asyncio.run(_generator(client).generate_performance_analysis(attempt))

    assert json.loads(analysis) == {"topics": []}
    assert '"userSelected": "D"' in client.calls[0]["prompt"]


def test_performance_analysis_of_empty_output():
    attempt = QuizAttempt(
        questions=[], user_answers={}, score=0, total=0, subject="S", chapter="C", class_level="9"
    )
    client = FakeClient(lambda prompt: "")

    assert asyncio.run(_generator(client).generate_performance_analysis(attempt)) == "{}"
