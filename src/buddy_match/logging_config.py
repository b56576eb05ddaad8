import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level:<8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"


def _add_console(level: str) -> str:
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)
    return f"console (stderr, {level})"


def _add_file(level: str, path: str = "buddy.log", rotation: str = "10 MB", retention: int = 3) -> str:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    # Request handlers log from worker threads.
    logger.add(path, level=level, format=_FILE_FORMAT, rotation=rotation, retention=retention, enqueue=True)
    return f"file ({path}, {level})"


def _add_json(level: str) -> str:
    logger.add(sys.stdout, level=level, serialize=True)
    return f"json (stdout, {level})"


_SINKS: dict[str, Callable[..., str]] = {
    "console": _add_console,
    "file": _add_file,
    "json": _add_json,
}


def setup_logging(level: str = "INFO", consumers: list[dict[str, Any]] | None = None) -> list[str]:
    """Replace loguru's default sink with the configured ones.

    Each consumer is ``{"type": "console" | "file" | "json", "level": ..., **options}``.
    Returns a description of every sink that was added.
    """
    logger.remove()
    added: list[str] = []
    for config in consumers if consumers is not None else [{"type": "console"}]:
        sink_type = config.get("type", "")
        add_sink = _SINKS.get(sink_type)
        if add_sink is None:
            logger.warning(f"Unknown log consumer type: {sink_type!r}")
            continue
        options = {k: v for k, v in config.items() if k not in ("type", "level")}
        added.append(add_sink(config.get("level", level), **options))
    return added
