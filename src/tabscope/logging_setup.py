from __future__ import annotations

from pathlib import Path

from loguru import logger

LOG_FILENAME = "tabscope.log"


def configure_logging(level: str, log_dir: Path) -> Path:
    """Send logs to a rotating file; the terminal belongs to the TUI."""
    logger.remove()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILENAME
    logger.add(
        str(log_path),
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function} | {message} | {extra}",
        rotation="5 MB",
        retention="7 days",
    )
    return log_path
