"""Environment helpers for resolving repository-local .env files."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_REPO_ROOT = Path(__file__).resolve().parents[3]


@lru_cache(maxsize=1)
def load_repo_dotenv() -> bool:
    """Load the .env file at the repository root once."""

    env_path = _REPO_ROOT / ".env"
    if not env_path.exists():
        return False
    load_dotenv(env_path, override=False)
    return True


def env_list(name: str) -> list[str]:
    """Return a comma separated environment variable as a list of trimmed values."""

    load_repo_dotenv()
    raw = os.getenv(name, "")
    return [value.strip() for value in raw.split(",") if value.strip()]


__all__ = ["env_list", "load_repo_dotenv"]
