"""Key-holding proxy between relay clients and the Gemini REST API."""

from .app import build_upstream_payload, create_app, upstream_url
from .keys import KeyRing

__all__ = ["KeyRing", "build_upstream_payload", "create_app", "upstream_url"]
