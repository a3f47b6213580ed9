"""Fan-out/fan-in generation of large item counts in fixed-size sub-batches."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence

from tqdm import tqdm

from ..config.schemas import BatchConfig
from ..transport.errors import ParseError

logger = logging.getLogger(__name__)

_UNHASHABLE = object()

PromptForBatch = Callable[[int, int], str]
BatchExecutor = Callable[[str], Awaitable[Sequence[Any]]]


@dataclass(slots=True)
class BatchTask:
    """One deferred sub-batch request; identified only by its index."""

    index: int
    prompt: str
    requested: int


@dataclass(slots=True)
class BatchOutcome:
    """Settled sub-batch: its items on success, its error otherwise."""

    task: BatchTask
    items: list[Any] = field(default_factory=list)
    error: BaseException | None = None


def split_batches(
    target: int, batch_size: int, prompt_for_batch: PromptForBatch
) -> list[BatchTask]:
    """Split ``target`` into ``ceil(target / batch_size)`` tasks of ``batch_size`` each.

    The final task also requests a full ``batch_size``; any overshoot is
    trimmed after the merge.
    """

    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if target <= 0:
        return []
    count = math.ceil(target / batch_size)
    return [
        BatchTask(index=index, prompt=prompt_for_batch(index, batch_size), requested=batch_size)
        for index in range(count)
    ]


def dedup_value(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        value = item.get(key)
    else:
        value = getattr(item, key, None)
    try:
        hash(value)
    except TypeError:
        # tagged so a list key never equals the string of its repr
        return (_UNHASHABLE, repr(value))
    return value


def deduplicate(items: Iterable[Any], key: str) -> list[Any]:
    """Keep the first item for every distinct ``key`` value, preserving order."""

    seen: set[Any] = set()
    unique: list[Any] = []
    for item in items:
        value = dedup_value(item, key)
        if value in seen:
            continue
        seen.add(value)
        unique.append(item)
    return unique


def merge_outcomes(outcomes: Sequence[BatchOutcome]) -> list[Any]:
    """Concatenate surviving items in task-submission order."""

    merged: list[Any] = []
    for outcome in sorted(outcomes, key=lambda item: item.task.index):
        merged.extend(outcome.items)
    return merged


class BatchOrchestrator:
    """Runs sub-batches under a concurrency ceiling, then merges, dedups and trims."""

    def __init__(self, config: BatchConfig | None = None) -> None:
        self._config = config or BatchConfig()
        if self._config.concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {self._config.concurrency}")

    @property
    def config(self) -> BatchConfig:
        return self._config

    async def run(
        self,
        target: int,
        prompt_for_batch: PromptForBatch,
        execute: BatchExecutor,
        *,
        dedup_key: str | None = None,
    ) -> tuple[Any, ...]:
        """Return at most ``target`` unique items; failed sub-batches contribute nothing."""

        key = dedup_key or self._config.dedup_key
        tasks = split_batches(target, self._config.batch_size, prompt_for_batch)
        if not tasks:
            return ()
        logger.info(
            "Starting bulk generation: %d items in %d sub-batches of %d (concurrency %d)",
            target,
            len(tasks),
            self._config.batch_size,
            self._config.concurrency,
        )
        sem = asyncio.Semaphore(self._config.concurrency)
        progress = tqdm(
            total=len(tasks),
            desc="batches",
            unit="batch",
            disable=not self._config.show_progress,
        )
        try:
            outcomes = await asyncio.gather(
                *(self._run_with_capture(sem, task, execute, progress) for task in tasks)
            )
        finally:
            progress.close()

        failed = sum(1 for outcome in outcomes if outcome.error is not None)
        merged = merge_outcomes(outcomes)
        unique = deduplicate(merged, key)
        if len(unique) > target:
            unique = unique[:target]
        logger.info(
            "Bulk generation finished: %d/%d items kept (%d merged, %d sub-batches failed)",
            len(unique),
            target,
            len(merged),
            failed,
        )
        return tuple(unique)

    async def _run_with_capture(
        self,
        sem: asyncio.Semaphore,
        task: BatchTask,
        execute: BatchExecutor,
        progress: tqdm,
    ) -> BatchOutcome:
        try:
            async with sem:
                items = await execute(task.prompt)
            if isinstance(items, (str, bytes, Mapping)):
                raise ParseError(
                    f"Sub-batch {task.index + 1} returned {type(items).__name__}, expected a list"
                )
            return BatchOutcome(task=task, items=list(items))
        except Exception as exc:
            logger.warning(
                "Sub-batch %d failed (%s): %s",
                task.index + 1,
                exc.__class__.__name__,
                exc,
            )
            return BatchOutcome(task=task, error=exc)
        finally:
            progress.update(1)


async def generate_in_batches(
    target: int,
    *,
    batch_size: int,
    prompt_for_batch: PromptForBatch,
    execute: BatchExecutor,
    concurrency: int,
    dedup_key: str = "question",
) -> tuple[Any, ...]:
    """Functional entry point around :class:`BatchOrchestrator`."""

    orchestrator = BatchOrchestrator(
        BatchConfig(batch_size=batch_size, concurrency=concurrency, dedup_key=dedup_key)
    )
    return await orchestrator.run(target, prompt_for_batch, execute)


__all__ = [
    "BatchExecutor",
    "BatchOrchestrator",
    "BatchOutcome",
    "BatchTask",
    "PromptForBatch",
    "deduplicate",
    "generate_in_batches",
    "merge_outcomes",
    "split_batches",
]
