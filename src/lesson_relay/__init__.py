"""Lesson Relay: streaming Gemini client, bulk batching and content generation.

Subpackages load on first attribute access, so ``import lesson_relay`` stays
cheap for the proxy process, which never touches ``generation``.
"""

from importlib import import_module
from typing import Any

from .utils.env import load_repo_dotenv

# GEMINI_API_KEYS / LESSON_RELAY_ENDPOINT may live in the repo .env
load_repo_dotenv()

__version__ = "0.1.0"
__all__ = ("config", "generation", "proxy", "transport", "utils")


def __getattr__(name: str) -> Any:
    if name not in __all__:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(f"{__name__}.{name}")
    globals()[name] = module
    return module
