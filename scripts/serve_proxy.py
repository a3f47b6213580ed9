#!/usr/bin/env python3
"""Run the key-holding Gemini proxy."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
if _SRC.exists():
    sys.path.insert(0, str(_SRC))

from aiohttp import web

from lesson_relay.config import load_config
from lesson_relay.proxy import KeyRing, create_app
from lesson_relay.utils import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", type=Path, help="Path to a RelayConfig YAML/JSON override")
    parser.add_argument("--host", help="Bind address override")
    parser.add_argument("--port", type=int, help="Port override")
    parser.add_argument(
        "--key-rotation",
        choices=("random", "round_robin"),
        help="How to pick among the configured API keys",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, str(args.log_level).upper(), logging.INFO))
    cfg = load_config(args.config).proxy
    if args.host:
        cfg.host = args.host
    if args.port:
        cfg.port = args.port
    if args.key_rotation:
        cfg.key_rotation = args.key_rotation
    ring = KeyRing.from_env(cfg.keys_env_var, policy=cfg.key_rotation)
    web.run_app(create_app(cfg, ring), host=cfg.host, port=cfg.port)


if __name__ == "__main__":
    main()
