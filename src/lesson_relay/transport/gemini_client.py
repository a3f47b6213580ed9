"""Async client for the relay proxy's Gemini endpoint."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from ..config.schemas import GeminiConfig
from .errors import ParseError, ResponseShapeError, UpstreamError
from .responses import SingleResponse, extract_text
from .stream_decoder import DeltaCallback, decode_stream

logger = logging.getLogger(__name__)


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def build_request_body(prompt: str, model: str, *, stream: bool) -> dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "model": model,
        "stream": stream,
    }


class GeminiClient:
    """Single-request path: one POST, one attempt, streamed or buffered."""

    def __init__(
        self,
        config: GeminiConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or GeminiConfig()
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout_seconds),
            transport=transport,
        )

    @property
    def model(self) -> str:
        return self._config.model

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        on_chunk: Optional[DeltaCallback] = None,
    ) -> str:
        """Return the generated text for ``prompt``.

        With ``on_chunk`` the proxy is asked to stream and ``on_chunk`` receives
        the full accumulated text every time it grows.
        """

        model_name = model or self._config.model
        stream = on_chunk is not None
        body = build_request_body(prompt, model_name, stream=stream)
        logger.debug(
            "Gemini request model=%s stream=%s prompt_chars=%d", model_name, stream, len(prompt)
        )
        start = time.perf_counter()
        try:
            if stream:
                text = await self._generate_streaming(body, on_chunk)
            else:
                text = await self._generate_buffered(body)
        except httpx.HTTPError as exc:
            logger.error("Gemini transport error (%s): %s", exc.__class__.__name__, exc)
            raise UpstreamError(
                f"Transport error calling {self._config.endpoint}: {exc}",
                detail=str(exc),
            ) from exc
        logger.info(
            "Gemini request (%s) finished in %.0f ms with %d characters",
            model_name,
            (time.perf_counter() - start) * 1000.0,
            len(text),
        )
        return text

    async def _generate_streaming(self, body: dict[str, Any], on_chunk: DeltaCallback) -> str:
        async with self._http.stream("POST", self._config.endpoint, json=body) as response:
            if not _is_success(response.status_code):
                detail = (await response.aread()).decode("utf-8", errors="replace")
                raise self._upstream_error(response.status_code, detail)
            return await decode_stream(response.aiter_bytes(), on_chunk)

    async def _generate_buffered(self, body: dict[str, Any]) -> str:
        response = await self._http.post(self._config.endpoint, json=body)
        if not _is_success(response.status_code):
            raise self._upstream_error(response.status_code, response.text)
        try:
            payload = response.json()
        except ValueError as exc:
            excerpt = response.text.strip().replace("\n", " ")[:200]
            raise ParseError(
                f"Gemini response is not valid JSON: {excerpt}", excerpt=excerpt
            ) from exc
        try:
            return extract_text(SingleResponse(payload))
        except ResponseShapeError as exc:
            logger.warning("Gemini response had no candidate text: %s", exc)
            return ""

    @staticmethod
    def _upstream_error(status_code: int, detail: str) -> UpstreamError:
        logger.error("Gemini request failed with HTTP %d: %s", status_code, detail[:200])
        return UpstreamError(
            f"Gemini API Error: {detail}",
            status_code=status_code,
            detail=detail,
        )


__all__ = ["GeminiClient", "build_request_body"]
