"""Key-holding HTTP proxy in front of the Gemini REST API.

Clients post ``{"contents": ..., "model": ..., "stream": ...}``; the proxy
picks an API key, forwards the request upstream and relays the answer. In
streaming mode the upstream body is passed through chunk by chunk.
"""

from __future__ import annotations

import logging
import time
from typing import Any, AsyncIterator, Optional

import aiohttp
from aiohttp import web

from ..config.schemas import ProxyConfig
from .keys import KeyRing

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", ProxyConfig)
KEY_RING_KEY = web.AppKey("key_ring", KeyRing)
SESSION_KEY = web.AppKey("session", aiohttp.ClientSession)

NO_KEYS_MESSAGE = "Server Configuration Error: No valid Gemini keys found."


def _error(status: int, error: str, detail: Optional[str] = None) -> web.Response:
    body: dict[str, Any] = {"error": error}
    if detail is not None:
        body["detail"] = detail
    return web.json_response(body, status=status)


def build_upstream_payload(body: dict[str, Any], config: ProxyConfig) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "contents": body.get("contents"),
        "generationConfig": {
            "temperature": config.temperature,
            "maxOutputTokens": config.max_output_tokens,
        },
    }
    if body.get("system_instruction"):
        payload["systemInstruction"] = body["system_instruction"]
    if body.get("tools"):
        payload["tools"] = body["tools"]
    if body.get("tool_config"):
        payload["toolConfig"] = body["tool_config"]
    return payload


def upstream_url(config: ProxyConfig, model: Optional[str], *, stream: bool) -> str:
    method = "streamGenerateContent" if stream else "generateContent"
    return f"{config.api_base.rstrip('/')}/{model or config.default_model}:{method}"


async def _relay_stream(
    request: web.Request, upstream: aiohttp.ClientResponse
) -> web.StreamResponse:
    response = web.StreamResponse(status=200, headers={"Content-Type": "application/json"})
    response.enable_chunked_encoding()
    await response.prepare(request)
    async for chunk in upstream.content.iter_any():
        await response.write(chunk)
    await response.write_eof()
    return response


async def handle_gemini(request: web.Request) -> web.StreamResponse:
    if request.method != "POST":
        return _error(405, "Method not allowed")
    try:
        body = await request.json()
    except ValueError:
        return _error(400, "Invalid JSON body")
    if not isinstance(body, dict):
        return _error(400, "Invalid JSON body")

    config = request.app[CONFIG_KEY]
    api_key = body.get("key") or request.app[KEY_RING_KEY].next_key()
    if not api_key:
        logger.error("Rejecting request: no Gemini API key configured")
        return _error(500, NO_KEYS_MESSAGE)

    stream = bool(body.get("stream"))
    model = body.get("model") or config.default_model
    url = upstream_url(config, model, stream=stream)
    payload = build_upstream_payload(body, config)
    session = request.app[SESSION_KEY]

    streaming_started = False
    start = time.perf_counter()
    try:
        async with session.post(url, params={"key": api_key}, json=payload) as upstream:
            if upstream.status >= 400:
                detail = await upstream.text()
                logger.error(
                    "Upstream %s returned HTTP %d: %s", model, upstream.status, detail[:200]
                )
                return _error(upstream.status, "Gemini API Error", detail)
            if stream:
                streaming_started = True
                response = await _relay_stream(request, upstream)
            else:
                response = web.json_response(await upstream.json(content_type=None))
    except Exception as exc:
        if streaming_started:
            # headers are already on the wire; let aiohttp abort the connection
            logger.error("Stream relay for %s aborted: %s", model, exc)
            raise
        logger.exception("Proxy request for %s failed", model)
        return _error(500, "Server Internal Error", str(exc))
    logger.info(
        "Relayed %s (stream=%s) in %.0f ms",
        model,
        stream,
        (time.perf_counter() - start) * 1000.0,
    )
    return response


def create_app(config: ProxyConfig | None = None, key_ring: KeyRing | None = None) -> web.Application:
    """Build the proxy application.

    Without ``key_ring`` the keys are read from ``config.keys_env_var``.
    """

    cfg = config or ProxyConfig()
    ring = key_ring if key_ring is not None else KeyRing.from_env(
        cfg.keys_env_var, policy=cfg.key_rotation
    )

    app = web.Application()
    app[CONFIG_KEY] = cfg
    app[KEY_RING_KEY] = ring

    async def upstream_session(app: web.Application) -> AsyncIterator[None]:
        async with aiohttp.ClientSession() as session:
            app[SESSION_KEY] = session
            yield

    app.cleanup_ctx.append(upstream_session)
    app.router.add_route("*", cfg.route, handle_gemini)
    logger.info(
        "Proxy configured: route=%s keys=%d rotation=%s", cfg.route, len(ring), ring.policy
    )
    return app


__all__ = ["build_upstream_payload", "create_app", "handle_gemini", "upstream_url"]
