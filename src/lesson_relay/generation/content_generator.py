"""Lesson content generation: MCQ sets, notes, translations and analysis."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import Any, Optional, Protocol

from ..config.schemas import BatchConfig, ContentSettings
from ..transport.errors import ParseError, RelayError
from ..transport.stream_decoder import DeltaCallback
from .batching import BatchOrchestrator
from .parsing import (
    CHAPTER_ITEM_SCHEMA,
    MCQ_ITEM_SCHEMA,
    clean_json,
    parse_json_document,
    parse_json_items,
)
from .prompts import (
    analysis_prompt,
    batch_instruction,
    chapters_prompt,
    custom_notes_prompt,
    dual_notes_prompt,
    mcq_prompt,
    notes_prompt,
    split_dual_notes,
    translation_prompt,
)
from .quota import QuotaGuard
from .records import Chapter, ContentType, LessonContent, LessonRequest, QuizAttempt, UsageType

logger = logging.getLogger(__name__)

FALLBACK_CHAPTERS = (Chapter(id="1", title="Chapter 1"), Chapter(id="2", title="Chapter 2"))


class TextGenerator(Protocol):
    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        on_chunk: Optional[DeltaCallback] = None,
    ) -> str: ...


class ContentGenerator:
    """Builds prompts, calls the model and packs results into content records."""

    def __init__(
        self,
        client: TextGenerator,
        *,
        settings: ContentSettings | None = None,
        batch: BatchConfig | None = None,
        quota: QuotaGuard | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or ContentSettings()
        self._batch = batch or BatchConfig()
        self._orchestrator = BatchOrchestrator(self._batch)
        self._quota = quota or QuotaGuard()
        self._chapter_cache: dict[str, list[Chapter]] = {}

    @property
    def model(self) -> str:
        return self._settings.model

    async def generate_lesson(
        self,
        request: LessonRequest,
        content_type: ContentType,
        *,
        target_questions: int = 15,
        allow_generation: bool = True,
        dual: bool = False,
        on_chunk: Optional[DeltaCallback] = None,
    ) -> LessonContent:
        """Route a content type to the matching generator."""

        if content_type.is_pdf or not allow_generation:
            return LessonContent(
                title=request.chapter.title,
                subtitle="Content Unavailable",
                content_type=content_type,
                subject_name=request.subject,
                syllabus_mode=request.syllabus_mode,
                is_coming_soon=True,
            )
        if content_type.is_mcq:
            return await self.generate_mcqs(
                request, target_questions=target_questions, content_type=content_type
            )
        if dual and content_type in (ContentType.NOTES_PREMIUM, ContentType.NOTES_SIMPLE):
            return await self.generate_dual_notes(request, on_chunk=on_chunk)
        return await self.generate_notes(
            request,
            detailed=content_type.is_premium_notes,
            on_chunk=on_chunk,
            content_type=content_type,
        )

    async def generate_mcqs(
        self,
        request: LessonRequest,
        *,
        target_questions: int = 15,
        content_type: ContentType = ContentType.MCQ_SIMPLE,
    ) -> LessonContent:
        count = max(target_questions, self._batch.min_questions)
        if count > self._batch.bulk_threshold:
            items = await self._quota.run(
                lambda: self._generate_mcq_batches(request, count), request.usage_type
            )
        else:
            prompt = mcq_prompt(request, self._settings, count)

            async def _single() -> list[Any]:
                text = await self._client.generate(prompt, self.model)
                return parse_json_items(text, MCQ_ITEM_SCHEMA)

            items = await self._quota.run(_single, request.usage_type)

        items = list(items)
        items_hi = None
        if request.language == "English":
            items_hi = await self._translate_items(items, request.usage_type)
        return LessonContent(
            title=f"MCQ Test: {request.chapter.title}",
            subtitle=f"{len(items)} Questions",
            content_type=content_type,
            subject_name=request.subject,
            syllabus_mode=request.syllabus_mode,
            mcq_data=items,
            mcq_data_hi=items_hi,
        )

    async def _generate_mcq_batches(self, request: LessonRequest, count: int) -> tuple[Any, ...]:
        total = math.ceil(count / self._batch.batch_size)

        def prompt_for_batch(index: int, size: int) -> str:
            return mcq_prompt(
                request,
                self._settings,
                size,
                extra_instruction=batch_instruction(index, total),
            )

        async def execute(prompt: str) -> list[Any]:
            text = await self._client.generate(prompt, self.model)
            return parse_json_items(text, MCQ_ITEM_SCHEMA)

        return await self._orchestrator.run(
            count, prompt_for_batch, execute, dedup_key=self._batch.dedup_key
        )

    async def generate_notes(
        self,
        request: LessonRequest,
        *,
        detailed: bool,
        on_chunk: Optional[DeltaCallback] = None,
        content_type: ContentType | None = None,
    ) -> LessonContent:
        prompt = notes_prompt(request, self._settings, detailed=detailed)
        text = await self._quota.run(
            lambda: self._client.generate(prompt, self.model, on_chunk), request.usage_type
        )
        text_hi = None
        if request.language == "English":
            text_hi = await self._translate_text(text, request.usage_type)
        if content_type is None:
            content_type = ContentType.NOTES_PREMIUM if detailed else ContentType.NOTES_SIMPLE
        return LessonContent(
            title=request.chapter.title,
            subtitle="Premium Study Notes" if detailed else "Quick Revision Notes",
            content=text,
            content_type=content_type,
            subject_name=request.subject,
            syllabus_mode=request.syllabus_mode,
            content_hi=text_hi,
        )

    async def generate_dual_notes(
        self,
        request: LessonRequest,
        *,
        on_chunk: Optional[DeltaCallback] = None,
    ) -> LessonContent:
        """One request producing premium notes plus a free summary."""

        prompt = dual_notes_prompt(request, self._settings)
        raw = await self._quota.run(
            lambda: self._client.generate(prompt, self.model, on_chunk), request.usage_type
        )
        premium, summary = split_dual_notes(raw)
        premium_hi = summary_hi = None
        if request.language == "English":
            premium_hi, summary_hi = await asyncio.gather(
                self._translate_text(premium, request.usage_type),
                self._translate_text(summary, request.usage_type),
            )
        return LessonContent(
            title=request.chapter.title,
            subtitle="Premium & Free Notes (Dual)",
            content=premium,
            content_type=ContentType.NOTES_PREMIUM,
            subject_name=request.subject,
            syllabus_mode=request.syllabus_mode,
            content_hi=premium_hi,
            summary=summary,
            summary_hi=summary_hi,
        )

    async def translate_to_hindi(
        self,
        content: str,
        *,
        is_json: bool = False,
        usage_type: UsageType = "STUDENT",
    ) -> str:
        prompt = translation_prompt(content, is_json=is_json)

        async def _translate() -> str:
            text = await self._client.generate(prompt, self.model)
            return clean_json(text) if is_json else text

        return await self._quota.run(_translate, usage_type)

    async def _translate_text(self, text: str, usage_type: UsageType) -> str | None:
        try:
            return await self.translate_to_hindi(text, usage_type=usage_type)
        except RelayError as exc:
            logger.error("Translation failed: %s", exc)
            return None

    async def _translate_items(self, items: list[Any], usage_type: UsageType) -> list[Any] | None:
        try:
            translated = await self.translate_to_hindi(
                json.dumps(items, ensure_ascii=False), is_json=True, usage_type=usage_type
            )
            parsed = parse_json_document(translated)
        except RelayError as exc:
            logger.error("Translation failed: %s", exc)
            return None
        if not isinstance(parsed, list):
            logger.error("Translation returned %s instead of a list", type(parsed).__name__)
            return None
        return parsed

    async def fetch_chapters(
        self,
        board: str,
        class_level: str,
        subject: str,
        language: str,
        stream: Optional[str] = None,
    ) -> list[Chapter]:
        """Ask the model for a chapter list; memoised per generator instance."""

        stream_key = f"-{stream}" if stream and class_level in ("11", "12") else ""
        cache_key = f"{board}-{class_level}{stream_key}-{subject}-{language}"
        cached = self._chapter_cache.get(cache_key)
        if cached is not None:
            return list(cached)

        prompt = chapters_prompt(board, class_level, stream, subject)

        async def _list_chapters() -> list[Any]:
            text = await self._client.generate(prompt, self.model)
            return parse_json_items(text or "[]", CHAPTER_ITEM_SCHEMA)

        try:
            items = await self._quota.run(_list_chapters, "STUDENT")
            chapters = [
                Chapter(
                    id=f"ch-{index + 1}",
                    title=str(item["title"]),
                    description=str(item.get("description") or ""),
                )
                for index, item in enumerate(items)
                if isinstance(item, dict) and item.get("title")
            ]
            if not chapters and items:
                raise ParseError("Chapter list contained no titled entries")
        except RelayError as exc:
            logger.error("Chapter fetch failed for %s: %s", cache_key, exc)
            chapters = list(FALLBACK_CHAPTERS)
        self._chapter_cache[cache_key] = chapters
        return list(chapters)

    async def generate_custom_notes(
        self,
        topic: str,
        admin_prompt: str = "",
        model: Optional[str] = None,
    ) -> str:
        prompt = custom_notes_prompt(topic, admin_prompt)
        return await self._quota.run(
            lambda: self._client.generate(prompt, model or self.model), "STUDENT"
        )

    async def generate_performance_analysis(
        self,
        attempt: QuizAttempt,
        usage_type: UsageType = "STUDENT",
    ) -> str:
        """Return the analysis as JSON text (``{}`` when the model says nothing)."""

        prompt = analysis_prompt(attempt, self._settings.instruction)

        async def _analyse() -> str:
            text = await self._client.generate(prompt, self.model)
            return clean_json(text or "{}") or "{}"

        return await self._quota.run(_analyse, usage_type)


__all__ = ["ContentGenerator", "FALLBACK_CHAPTERS", "TextGenerator"]
