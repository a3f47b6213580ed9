"""Configuration helpers for the lesson relay."""

from .schemas import (
    DEFAULT_MODEL,
    BatchConfig,
    ContentSettings,
    GeminiConfig,
    PromptTemplates,
    ProxyConfig,
    QuotaConfig,
    RelayConfig,
    load_config,
)

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
