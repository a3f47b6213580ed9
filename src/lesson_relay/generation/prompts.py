"""Prompt templates and builders for notes, MCQs, translation and analysis.

Built-in prompts use the same ``{placeholder}`` syntax as the admin templates
stored in :class:`ContentSettings`, so both go through :func:`process_template`.
"""

from __future__ import annotations

import json
import re
from textwrap import dedent
from typing import Mapping, Optional

from ..config.schemas import ContentSettings, PromptTemplates
from .records import LessonRequest, QuizAttempt

PREMIUM_MARKER = "<<<PREMIUM>>>"
SUMMARY_MARKER = "<<<SUMMARY>>>"
MISSING_SUMMARY = "Summary not generated."

COMPETITION_STYLE = (
    "STYLE: Fact-Heavy, Direct. HIGHLIGHT PYQs (Previous Year Questions) if relevant."
)
SCHOOL_STYLE = "STYLE: Strict NCERT Pattern."

MCQ_TEMPLATE = dedent(
    """\
    {instruction}
    Create {count} MCQs for {board} Class {class} {subject}, Chapter: "{chapter}".
    Language: {language}.
    {style}

    STRICT FORMAT RULE:
    Return ONLY a valid JSON array. No markdown blocks, no extra text.
    [
      {
        "question": "Question text",
        "options": ["A", "B", "C", "D"],
        "correctAnswer": 0,
        "explanation": "Logical explanation here",
        "mnemonic": "Short memory trick",
        "concept": "Core concept"
      }
    ]
    "correctAnswer" is the index (0-3) of the right option.

    CRITICAL: You MUST return EXACTLY {count} questions.
    Provide a very diverse set of questions covering every small detail of the chapter."""
)

PREMIUM_NOTES_TEMPLATE = dedent(
    """\
    {instruction}

    Write PREMIUM DEEP DIVE NOTES for {board} Class {class} {subject}, Chapter: "{chapter}".
    Language: {language}.
    {style}

    STRICT TARGET: 1000-1500 Words.

    TONE: Detailed, Conversational, Analytical.

    STRUCTURE:
    1. Introduction (Hook with a real-life example or Thinking Question)
    2. Detailed Explanation (Step-by-step breakdown of every concept)
    3. Text-Based Diagrams / Flowcharts (Use ASCII arrows e.g. Sun -> Plant -> Herbivore)
    4. Deep Dive Section (Deep Logic behind concepts)
    5. Examples & Case Studies
    6. Exam Alerts (Common Mistakes & Exam Traps)
    7. Topper's Trick (Mnemonics)
    8. 20 Practice MCQs (At the very end, with Answer Key and Solutions)

    Use bold text for keywords. Make it comprehensive."""
)

SUMMARY_NOTES_TEMPLATE = dedent(
    """\
    {instruction}

    Write SHORT SUMMARY NOTES for {board} Class {class} {subject}, Chapter: "{chapter}".
    Language: {language}.

    STRICT TARGET: 200-300 Words.

    STRUCTURE:
    1. Basic Definition (Simple & Clear)
    2. Key Points (Bullet points summary)
    3. 5 Practice MCQs (with Answer Key)

    Keep it concise. Focus on quick revision."""
)

DUAL_NOTES_TEMPLATE = dedent(
    """\
    {instruction}

    TASK:
    1. Generate Premium Detailed Analysis Notes for {board} Class {class} {subject}, Chapter: "{chapter}".
    2. Generate a 100-word Summary for Free Notes.

    Language: {language}.
    {style}

    OUTPUT FORMAT STRICTLY:
    <<<PREMIUM>>>
    [Detailed Content Here including Introduction, Key Concepts, Tables, Flowcharts, Formulas, Exam Alerts etc.]
    <<<SUMMARY>>>
    [Short 100-word Summary Here]"""
)

TRANSLATION_TEMPLATE = dedent(
    """\
    You are an expert translator for Bihar Board students.
    Translate the following {kind} into Hindi (Devanagari).

    Style Guide:
    - Use "Hinglish" for technical terms (e.g., "Force" -> "Force (बल)").
    - Keep tone simple and student-friendly.
    - {rule}

    CONTENT:
    {content}"""
)

ANALYSIS_TEMPLATE = dedent(
    """\
    {instruction}

    ROLE: Expert Educational Mentor & Analyst.

    CONTEXT:
    Student Class: {class}
    Subject: {subject}
    Chapter: {chapter}
    Score: {score}/{total}

    TASK:
    Analyze the student's performance and provide a structured JSON analysis grouped by topics.

    DATA:
    {data}

    OUTPUT FORMAT (STRICT JSON ONLY, NO MARKDOWN):
    {
      "topics": [
        {
          "name": "Topic Name",
          "status": "WEAK" | "AVERAGE" | "STRONG",
          "questions": [
            {"text": "Question text...", "status": "CORRECT" | "WRONG", "correctAnswer": "Option text (if wrong)"}
          ],
          "actionPlan": "Specific advice on how to work on this topic...",
          "studyMode": "REVISION" | "DEEP_STUDY"
        }
      ],
      "motivation": "One short punchy motivational line",
      "nextSteps": {"duration": "2 Days", "focusTopics": ["Topic A", "Topic B"], "action": "Brief instructions."},
      "weakToStrongPath": [{"step": 1, "action": "Step-by-step action to improve weak areas..."}]
    }

    Ensure the response is valid JSON. Do not wrap in markdown code blocks."""
)


def process_template(template: str, replacements: Mapping[str, str]) -> str:
    """Replace every ``{key}`` placeholder, case-insensitively."""

    result = template
    for key, value in replacements.items():
        pattern = re.compile(re.escape(f"{{{key}}}"), re.IGNORECASE)
        result = pattern.sub(lambda _match, value=value: value, result)
    return result


def resolve_templates(settings: ContentSettings, request: LessonRequest) -> PromptTemplates:
    """Pick admin templates field by field; CBSE overrides win over generic ones."""

    is_cbse = request.board == "CBSE"
    if request.is_competition:
        chain = [settings.competition_cbse] if is_cbse else []
        chain.append(settings.competition)
    else:
        chain = [settings.cbse] if is_cbse else []
        chain.append(settings.default)

    def first(attr: str) -> str:
        for templates in chain:
            value = getattr(templates, attr)
            if value:
                return value
        return ""

    return PromptTemplates(
        notes=first("notes"),
        notes_premium=first("notes_premium"),
        mcq=first("mcq"),
    )


def style_constraints(request: LessonRequest) -> str:
    return COMPETITION_STYLE if request.is_competition else SCHOOL_STYLE


def _join(*parts: str) -> str:
    return "\n".join(part for part in parts if part)


def _replacements(
    request: LessonRequest, instruction: str, count: Optional[int] = None
) -> dict[str, str]:
    values = {
        "board": request.board or "",
        "class": request.class_level,
        "stream": request.stream or "",
        "subject": request.subject,
        "chapter": request.chapter.title,
        "language": request.language,
        "instruction": instruction,
        "style": style_constraints(request),
    }
    if count is not None:
        values["count"] = str(count)
    return values


def batch_instruction(index: int, total: int) -> str:
    return (
        f"BATCH {index + 1}/{total}. Ensure diversity. "
        "Avoid duplicates from previous batches if possible."
    )


def mcq_prompt(
    request: LessonRequest,
    settings: ContentSettings,
    count: int,
    *,
    extra_instruction: str = "",
) -> str:
    instruction = _join(settings.custom_instruction, extra_instruction)
    admin_line = f"INSTRUCTION: {request.admin_prompt}" if request.admin_prompt else ""
    template = resolve_templates(settings, request).mcq
    if template:
        prompt = process_template(template, _replacements(request, instruction, count))
        return _join(prompt, admin_line)
    return process_template(
        MCQ_TEMPLATE, _replacements(request, _join(instruction, admin_line), count)
    ).strip()


def notes_prompt(request: LessonRequest, settings: ContentSettings, *, detailed: bool) -> str:
    templates = resolve_templates(settings, request)
    template = templates.notes_premium if detailed else templates.notes
    if template:
        return process_template(template, _replacements(request, settings.custom_instruction))
    builtin = PREMIUM_NOTES_TEMPLATE if detailed else SUMMARY_NOTES_TEMPLATE
    instruction = _join(settings.custom_instruction, request.admin_prompt)
    return process_template(builtin, _replacements(request, instruction)).strip()


def dual_notes_prompt(request: LessonRequest, settings: ContentSettings) -> str:
    instruction = _join(settings.custom_instruction, request.admin_prompt)
    return process_template(DUAL_NOTES_TEMPLATE, _replacements(request, instruction)).strip()


def split_dual_notes(text: str) -> tuple[str, str]:
    """Split a dual-notes answer into ``(premium, summary)``."""

    if PREMIUM_MARKER not in text:
        return text, MISSING_SUMMARY
    after_premium = text.split(PREMIUM_MARKER, 1)[1]
    premium, _, summary = after_premium.partition(SUMMARY_MARKER)
    return premium.strip(), summary.strip()


def translation_prompt(content: str, *, is_json: bool = False) -> str:
    if is_json:
        kind = "JSON Data"
        rule = (
            "Maintain strict JSON structure. Only translate values (question, options, "
            "explanation, etc). Do NOT translate keys."
        )
    else:
        kind = "Educational Content"
        rule = "Keep Markdown formatting intact."
    # content last: it may itself contain "{...}" sequences
    prompt = process_template(TRANSLATION_TEMPLATE, {"kind": kind, "rule": rule})
    return prompt.replace("{content}", content)


def chapters_prompt(board: str, class_level: str, stream: Optional[str], subject: str) -> str:
    audience = "Competitive Exam" if class_level == "COMPETITION" else f"Class {class_level}"
    stream_part = f" {stream}" if stream else ""
    return (
        f"List 15 standard chapters for {audience}{stream_part} Subject: {subject} ({board}). "
        'Return JSON array: [{"title": "...", "description": "..."}].'
    )


def custom_notes_prompt(topic: str, admin_prompt: str = "") -> str:
    lead = admin_prompt or "Generate detailed notes for the following topic:"
    return (
        f"{lead}\n\nTOPIC: {topic}\n\n"
        "Ensure the content is well-structured with headings and bullet points."
    )


def analysis_prompt(attempt: QuizAttempt, instruction: str = "") -> str:
    data = json.dumps(attempt.attempted_questions(), indent=2, ensure_ascii=False)
    prompt = process_template(
        ANALYSIS_TEMPLATE,
        {
            "instruction": instruction,
            "class": attempt.class_level,
            "subject": attempt.subject,
            "chapter": attempt.chapter,
            "score": str(attempt.score),
            "total": str(attempt.total),
        },
    )
    return prompt.replace("{data}", data).strip()


__all__ = [
    "MISSING_SUMMARY",
    "PREMIUM_MARKER",
    "SUMMARY_MARKER",
    "analysis_prompt",
    "batch_instruction",
    "chapters_prompt",
    "custom_notes_prompt",
    "dual_notes_prompt",
    "mcq_prompt",
    "notes_prompt",
    "process_template",
    "resolve_templates",
    "split_dual_notes",
    "style_constraints",
    "translation_prompt",
]
