"""Unit tests for the relay client against a mocked HTTP transport."""

import asyncio
import json

import httpx
import pytest

from lesson_relay.config import GeminiConfig
from lesson_relay.transport import GeminiClient, ParseError, UpstreamError, build_request_body

ENDPOINT = "http://relay.test/api/gemini"


def _run(handler, coro_factory):
    async def _inner():
        config = GeminiConfig(endpoint=ENDPOINT, model="gemini-test")
        async with GeminiClient(config, transport=httpx.MockTransport(handler)) as client:
            return await coro_factory(client)

    return asyncio.run(_inner())


def _candidate(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_build_request_body_shape():
    body = build_request_body("Hi", "gemini-x", stream=True)

    assert body == {
        "contents": [{"role": "user", "parts": [{"text": "Hi"}]}],
        "model": "gemini-x",
        "stream": True,
    }


def test_buffered_request_returns_candidate_text():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=_candidate("plain answer"))

    text = _run(handler, lambda client: client.generate("Explain photosynthesis"))

    assert text == "plain answer"
    assert seen[0]["stream"] is False
    assert seen[0]["model"] == "gemini-test"
    assert seen[0]["contents"][0]["parts"][0]["text"] == "Explain photosynthesis"


def test_model_override_is_sent():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content)["model"])
        return httpx.Response(200, json=_candidate("ok"))

    _run(handler, lambda client: client.generate("x", "gemini-pro"))

    assert seen == ["gemini-pro"]


def test_missing_candidates_yield_empty_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": [{"finishReason": "SAFETY"}]})

    assert _run(handler, lambda client: client.generate("x")) == ""


def test_non_json_body_raises_parse_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(ParseError) as excinfo:
        _run(handler, lambda client: client.generate("x"))

    assert "gateway" in excinfo.value.excerpt


def test_error_status_raises_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "Gemini API Error", "detail": "quota"})

    with pytest.raises(UpstreamError) as excinfo:
        _run(handler, lambda client: client.generate("x"))

    assert excinfo.value.status_code == 429
    assert excinfo.value.error_type == "http_429"
    assert "quota" in excinfo.value.detail


def test_transport_failure_raises_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        _run(handler, lambda client: client.generate("x"))

    assert excinfo.value.status_code is None
    assert excinfo.value.error_type == "upstream_error"


def test_streaming_request_reports_growing_text():
    body = (
        '[{"candidates":[{"content":{"parts":[{"text":"Hello"}]}}]},\r\n'
        '{"candidates":[{"content":{"parts":[{"text":", world"}]}}]}]'
    ).encode("utf-8")
    seen_bodies = []
    deltas = []

    async def chunks():
        for i in range(0, len(body), 11):
            yield body[i : i + 11]

    def handler(request: httpx.Request) -> httpx.Response:
        seen_bodies.append(json.loads(request.content))
        return httpx.Response(200, content=chunks())

    text = _run(handler, lambda client: client.generate("Greet", on_chunk=deltas.append))

    assert text == "Hello, world"
    assert deltas == ["Hello", "Hello, world"]
    assert seen_bodies[0]["stream"] is True


def test_streaming_error_status_raises_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Server Internal Error", "detail": "boom"})

    with pytest.raises(UpstreamError) as excinfo:
        _run(handler, lambda client: client.generate("x", on_chunk=lambda _text: None))

    assert excinfo.value.status_code == 500
    assert "boom" in excinfo.value.detail


@pytest.mark.parametrize("streaming", [False, True])
def test_redirect_status_raises_upstream_error(streaming):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, text="moved", headers={"Location": "http://elsewhere.test/"})

    on_chunk = (lambda _text: None) if streaming else None

    with pytest.raises(UpstreamError) as excinfo:
        _run(handler, lambda client: client.generate("x", on_chunk=on_chunk))

    assert excinfo.value.status_code == 302
    assert excinfo.value.error_type == "http_302"
    assert excinfo.value.detail == "moved"
