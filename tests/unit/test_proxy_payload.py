"""Unit tests for the proxy's upstream request construction."""

from lesson_relay.config import ProxyConfig
from lesson_relay.proxy import build_upstream_payload, upstream_url


def test_payload_carries_generation_config_and_contents():
    config = ProxyConfig(temperature=0.2, max_output_tokens=256)
    contents = [{"role": "user", "parts": [{"text": "hi"}]}]

    payload = build_upstream_payload({"contents": contents, "model": "m", "key": "k"}, config)

    assert payload == {
        "contents": contents,
        "generationConfig": {"temperature": 0.2, "maxOutputTokens": 256},
    }


def test_empty_optional_fields_are_not_forwarded():
    payload = build_upstream_payload(
        {"contents": [], "system_instruction": None, "tools": [], "tool_config": {}},
        ProxyConfig(),
    )

    assert set(payload) == {"contents", "generationConfig"}


def test_upstream_url_selects_method_and_default_model():
    config = ProxyConfig(api_base="https://example.test/v1beta/models/", default_model="g-def")

    assert upstream_url(config, None, stream=False) == (
        "https://example.test/v1beta/models/g-def:generateContent"
    )
    assert upstream_url(config, "g-pro", stream=True) == (
        "https://example.test/v1beta/models/g-pro:streamGenerateContent"
    )
