"""Prompt building, bulk batching and lesson content generation."""

from .batching import (
    BatchOrchestrator,
    BatchOutcome,
    BatchTask,
    deduplicate,
    generate_in_batches,
    split_batches,
)
from .content_generator import ContentGenerator
from .parsing import MCQ_ITEM_SCHEMA, clean_json, parse_json_document, parse_json_items
from .prompts import process_template, split_dual_notes
from .quota import InMemoryUsageStore, QuotaGuard, UsageSnapshot, UsageStore
from .records import Chapter, ContentType, LessonContent, LessonRequest, QuizAttempt

__all__ = [
    "BatchOrchestrator",
    "BatchOutcome",
    "BatchTask",
    "Chapter",
    "ContentGenerator",
    "ContentType",
    "InMemoryUsageStore",
    "LessonContent",
    "LessonRequest",
    "MCQ_ITEM_SCHEMA",
    "QuizAttempt",
    "QuotaGuard",
    "UsageSnapshot",
    "UsageStore",
    "clean_json",
    "deduplicate",
    "generate_in_batches",
    "parse_json_document",
    "parse_json_items",
    "process_template",
    "split_batches",
    "split_dual_notes",
]
