"""Unit tests for structured config loading."""

from lesson_relay.config import RelayConfig, load_config


def test_defaults_without_override_file(monkeypatch):
    monkeypatch.delenv("LESSON_RELAY_ENDPOINT", raising=False)
    monkeypatch.delenv("GEMINI_API_BASE", raising=False)

    cfg = load_config()

    assert isinstance(cfg, RelayConfig)
    assert cfg.batch.batch_size == 20
    assert cfg.batch.concurrency == 20
    assert cfg.gemini.timeout_seconds is None
    assert cfg.proxy.temperature == 0.7
    assert cfg.proxy.max_output_tokens == 8192
    assert cfg.quota.pilot_limit == 40_000
    assert cfg.quota.student_limit == 10_000


def test_yaml_overrides_merge_onto_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("LESSON_RELAY_ENDPOINT", raising=False)
    monkeypatch.delenv("GEMINI_API_BASE", raising=False)
    path = tmp_path / "relay.yaml"
    path.write_text(
        "\n".join(
            [
                "batch:",
                "  batch_size: 10",
                "  concurrency: 4",
                "proxy:",
                "  key_rotation: round_robin",
                "content:",
                "  instruction: Be brief",
                "  cbse:",
                "    mcq: 'Write {count} MCQs'",
            ]
        ),
        encoding="utf-8",
    )

    cfg = load_config(path)

    assert isinstance(cfg, RelayConfig)
    assert cfg.batch.batch_size == 10
    assert cfg.batch.concurrency == 4
    assert cfg.batch.dedup_key == "question"
    assert cfg.proxy.key_rotation == "round_robin"
    assert cfg.content.custom_instruction == "IMPORTANT INSTRUCTION: Be brief"
    assert cfg.content.cbse.mcq == "Write {count} MCQs"
    assert cfg.content.default.mcq == ""


def test_environment_overrides_endpoints(monkeypatch):
    monkeypatch.setenv("LESSON_RELAY_ENDPOINT", "http://relay.internal/api/gemini")
    monkeypatch.setenv("GEMINI_API_BASE", "http://upstream.test/models")

    cfg = load_config()

    assert cfg.gemini.endpoint == "http://relay.internal/api/gemini"
    assert cfg.proxy.api_base == "http://upstream.test/models"
