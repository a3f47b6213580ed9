"""Utility helpers for logging and environment resolution."""

from .env import env_list, load_repo_dotenv
from .logging import configure_logging

__all__ = [
    "configure_logging",
    "env_list",
    "load_repo_dotenv",
]
