"""Configuration schema for the relay client, proxy and content generator."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from omegaconf import OmegaConf

from ..utils.env import load_repo_dotenv

DEFAULT_MODEL = "gemini-1.5-flash"


@dataclass(slots=True)
class GeminiConfig:
    """Client side settings for reaching the relay proxy."""

    endpoint: str = "http://localhost:8080/api/gemini"
    model: str = DEFAULT_MODEL
    # None means no client-side timeout; a hung upstream blocks the caller.
    timeout_seconds: Optional[float] = None


@dataclass(slots=True)
class ProxyConfig:
    """Settings for the key-holding proxy in front of the Gemini REST API."""

    api_base: str = "https://generativelanguage.googleapis.com/v1beta/models"
    default_model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_output_tokens: int = 8192
    host: str = "0.0.0.0"
    port: int = 8080
    route: str = "/api/gemini"
    key_rotation: str = "random"  # options: random, round_robin
    keys_env_var: str = "GEMINI_API_KEYS"


@dataclass(slots=True)
class BatchConfig:
    """Fan-out parameters for bulk item generation."""

    batch_size: int = 20
    concurrency: int = 20
    # MCQ requests above this count are split into sub-batches.
    bulk_threshold: int = 30
    min_questions: int = 20
    dedup_key: str = "question"
    show_progress: bool = False


@dataclass(slots=True)
class QuotaConfig:
    """Advisory usage split between admin (pilot) and student traffic."""

    pilot_ratio: int = 80
    total_capacity: int = 50_000

    @property
    def pilot_limit(self) -> int:
        return (self.total_capacity * self.pilot_ratio) // 100

    @property
    def student_limit(self) -> int:
        return self.total_capacity - self.pilot_limit


@dataclass(slots=True)
class PromptTemplates:
    """Admin supplied prompt templates; empty strings fall through to built-ins."""

    notes: str = ""
    notes_premium: str = ""
    mcq: str = ""


@dataclass(slots=True)
class ContentSettings:
    """Generation settings normally edited from the admin dashboard."""

    model: str = DEFAULT_MODEL
    instruction: str = ""
    default: PromptTemplates = field(default_factory=PromptTemplates)
    cbse: PromptTemplates = field(default_factory=PromptTemplates)
    competition: PromptTemplates = field(default_factory=PromptTemplates)
    competition_cbse: PromptTemplates = field(default_factory=PromptTemplates)

    @property
    def custom_instruction(self) -> str:
        if not self.instruction:
            return ""
        return f"IMPORTANT INSTRUCTION: {self.instruction}"


@dataclass(slots=True)
class RelayConfig:
    """Aggregated configuration for every relay component."""

    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    content: ContentSettings = field(default_factory=ContentSettings)


def _apply_env_overrides(cfg: RelayConfig) -> RelayConfig:
    endpoint = os.getenv("LESSON_RELAY_ENDPOINT")
    if endpoint:
        cfg.gemini.endpoint = endpoint
    api_base = os.getenv("GEMINI_API_BASE")
    if api_base:
        cfg.proxy.api_base = api_base
    return cfg


def load_config(path: Optional[Path] = None) -> RelayConfig:
    """Merge a YAML/JSON override file onto the structured defaults."""

    load_repo_dotenv()
    if path is None:
        return _apply_env_overrides(RelayConfig())
    base = OmegaConf.structured(RelayConfig())
    overrides = OmegaConf.load(path)
    merged = OmegaConf.merge(base, overrides)
    cfg = OmegaConf.to_object(merged)
    return _apply_env_overrides(cfg)  # type: ignore[arg-type]


__all__ = [
    "BatchConfig",
    "ContentSettings",
    "DEFAULT_MODEL",
    "GeminiConfig",
    "PromptTemplates",
    "ProxyConfig",
    "QuotaConfig",
    "RelayConfig",
    "load_config",
]
