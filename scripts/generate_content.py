#!/usr/bin/env python3
"""Generate lesson content (MCQs, notes, chapters) through the relay proxy."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
if _SRC.exists():
    sys.path.insert(0, str(_SRC))

from lesson_relay.config import load_config
from lesson_relay.generation import (
    Chapter,
    ContentGenerator,
    ContentType,
    LessonRequest,
    QuotaGuard,
)
from lesson_relay.transport import GeminiClient, RelayError
from lesson_relay.utils import configure_logging

logger = logging.getLogger("lesson_relay.scripts.generate_content")

KINDS = ("mcq", "notes", "premium-notes", "dual-notes", "chapters", "custom-notes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("kind", choices=KINDS, help="What to generate")
    parser.add_argument("--config", type=Path, help="Path to a RelayConfig YAML/JSON override")
    parser.add_argument("--endpoint", help="Relay proxy endpoint override")
    parser.add_argument("--model", help="Model override for this run")
    parser.add_argument("--board", default="CBSE")
    parser.add_argument("--class-level", default="10")
    parser.add_argument("--stream", dest="academic_stream", help="Stream for classes 11/12")
    parser.add_argument("--subject", default="Science")
    parser.add_argument("--chapter", default="", help="Chapter title (or topic for custom notes)")
    parser.add_argument("--language", default="English")
    parser.add_argument(
        "--syllabus-mode", choices=("SCHOOL", "COMPETITION"), default="SCHOOL"
    )
    parser.add_argument("--admin-prompt", default="", help="Extra instruction appended to prompts")
    parser.add_argument("--usage-type", choices=("PILOT", "STUDENT"), default="STUDENT")
    parser.add_argument("--questions", type=int, default=15, help="Target MCQ count")
    parser.add_argument(
        "--live", action="store_true", help="Echo notes to stderr while they are generated"
    )
    parser.add_argument("--progress", action="store_true", help="Show a bulk batch progress bar")
    parser.add_argument("--output", type=Path, help="Write the JSON result here instead of stdout")
    parser.add_argument("--log-level", default="INFO")
    return parser


class _LivePrinter:
    """Prints only the newly arrived suffix of the accumulated text."""

    def __init__(self) -> None:
        self._shown = 0

    def __call__(self, text: str) -> None:
        sys.stderr.write(text[self._shown :])
        sys.stderr.flush()
        self._shown = len(text)


async def _run(args: argparse.Namespace) -> object:
    cfg = load_config(args.config)
    if args.endpoint:
        cfg.gemini.endpoint = args.endpoint
    if args.model:
        cfg.gemini.model = args.model
        cfg.content.model = args.model
    if args.progress:
        cfg.batch.show_progress = True

    async with GeminiClient(cfg.gemini) as client:
        generator = ContentGenerator(
            client,
            settings=cfg.content,
            batch=cfg.batch,
            quota=QuotaGuard(config=cfg.quota),
        )
        if args.kind == "chapters":
            chapters = await generator.fetch_chapters(
                args.board, args.class_level, args.subject, args.language, args.academic_stream
            )
            return [{"id": ch.id, "title": ch.title, "description": ch.description} for ch in chapters]
        if args.kind == "custom-notes":
            if not args.chapter:
                raise SystemExit("--chapter is required as the topic for custom notes")
            return {"content": await generator.generate_custom_notes(args.chapter, args.admin_prompt)}

        if not args.chapter:
            raise SystemExit(f"--chapter is required for {args.kind}")
        request = LessonRequest(
            board=args.board,
            class_level=args.class_level,
            subject=args.subject,
            chapter=Chapter(id="cli", title=args.chapter),
            language=args.language,
            stream=args.academic_stream,
            syllabus_mode=args.syllabus_mode,
            admin_prompt=args.admin_prompt,
            usage_type=args.usage_type,
        )
        on_chunk = _LivePrinter() if args.live else None
        if args.kind == "mcq":
            content = await generator.generate_mcqs(request, target_questions=args.questions)
        elif args.kind == "dual-notes":
            content = await generator.generate_dual_notes(request, on_chunk=on_chunk)
        else:
            content_type = (
                ContentType.NOTES_PREMIUM if args.kind == "premium-notes" else ContentType.NOTES_SIMPLE
            )
            content = await generator.generate_lesson(request, content_type, on_chunk=on_chunk)
        if on_chunk is not None:
            sys.stderr.write("\n")
        return content.to_record()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, str(args.log_level).upper(), logging.INFO))
    try:
        result = asyncio.run(_run(args))
    except RelayError as exc:
        logger.error("Generation failed (%s): %s", exc.error_type, exc)
        raise SystemExit(1) from exc
    text = json.dumps(result, indent=2, ensure_ascii=False)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(text + "\n", encoding="utf-8")
        logger.info("Wrote %s", args.output)
    else:
        print(text)


if __name__ == "__main__":
    main()
