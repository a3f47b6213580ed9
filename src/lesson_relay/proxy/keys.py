"""API key rotation for the proxy."""

from __future__ import annotations

import logging
import random
from typing import Iterable, Optional

from ..utils.env import env_list

logger = logging.getLogger(__name__)

ROTATION_POLICIES = ("random", "round_robin")


class KeyRing:
    """Picks an upstream API key per request.

    ``random`` draws uniformly from the ring; ``round_robin`` walks it in order
    and wraps around. The rotation index lives on the instance.
    """

    def __init__(
        self,
        keys: Iterable[str],
        policy: str = "random",
        rng: Optional[random.Random] = None,
    ) -> None:
        if policy not in ROTATION_POLICIES:
            raise ValueError(f"Unknown key rotation policy {policy!r}; expected {ROTATION_POLICIES}")
        self._keys = [key.strip() for key in keys if key and key.strip()]
        self._policy = policy
        self._rng = rng or random.Random()
        self._index = 0

    @classmethod
    def from_env(cls, var: str = "GEMINI_API_KEYS", policy: str = "random") -> "KeyRing":
        ring = cls(env_list(var), policy=policy)
        if not ring:
            logger.warning("No Gemini API keys found in $%s", var)
        return ring

    @property
    def policy(self) -> str:
        return self._policy

    def __len__(self) -> int:
        return len(self._keys)

    def next_key(self) -> Optional[str]:
        if not self._keys:
            return None
        if self._policy == "round_robin":
            key = self._keys[self._index % len(self._keys)]
            self._index = (self._index + 1) % len(self._keys)
            return key
        return self._rng.choice(self._keys)


__all__ = ["KeyRing", "ROTATION_POLICIES"]
