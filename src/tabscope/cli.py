from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger


def _print_error(message: str) -> None:
    print(f"tabscope: {message}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tabscope",
        description="Search, sort and jump to open browser tabs across all windows.",
    )
    parser.add_argument("--bridge-url", help="Base URL of the browser tab bridge.")
    parser.add_argument("--config", type=Path, help="Path to config.toml.")
    parser.add_argument("--log-level", help="Log level for the log file (e.g. DEBUG).")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    from tabscope.config import ConfigError, load_config
    from tabscope.logging_setup import configure_logging

    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        _print_error(str(e))
        raise SystemExit(2)

    bridge_url = args.bridge_url or config.bridge_url
    log_level = (args.log_level or config.log_level).upper()

    try:
        log_path = configure_logging(log_level, config.log_dir)
    except (OSError, ValueError) as e:
        _print_error(f"Cannot set up logging: {e}")
        raise SystemExit(2)

    async def _amain() -> None:
        from tabscope.backend.bridge_backend import BridgeBackend
        from tabscope.storage.preferences import JsonPreferenceStore
        from tabscope.tui.app import TabscopeApp

        logger.info("Starting tabscope", bridge_url=bridge_url, log_path=str(log_path))

        backend = BridgeBackend(base_url=bridge_url, timeout=config.request_timeout)
        try:
            app = TabscopeApp(
                backend=backend,
                preferences=JsonPreferenceStore(config.preferences_path),
                debounce_delay=config.debounce_delay,
            )
            await app.run_async()
        finally:
            await backend.aclose()

    try:
        asyncio.run(_amain())
    except KeyboardInterrupt:
        raise SystemExit(130)
