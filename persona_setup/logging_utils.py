"""JSON-lines file logging plus an optional rich console handler."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

LOG_FILENAME = "persona-setup.jsonl"

# Attributes present on every LogRecord; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(
    log_dir: Path | str,
    level: int | str = logging.INFO,
    *,
    console: Console | None = None,
    also_console: bool = True,
) -> Path:
    """Configure root logging once; returns the JSON log file path.

    Repeat calls only adjust the level, so the CLI and the GUI can both call
    this on start-up without stacking handlers.
    """
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    if getattr(root, "_persona_setup_configured", False):
        return getattr(root, "_persona_setup_log_path")

    log_path = Path(log_dir) / LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(JsonFormatter())
    root.addHandler(file_handler)

    if also_console:
        console_handler = RichHandler(
            console=console,
            level=logging.WARNING,
            show_path=False,
            rich_tracebacks=False,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(console_handler)

    setattr(root, "_persona_setup_configured", True)
    setattr(root, "_persona_setup_log_path", log_path)
    logging.getLogger(__name__).info("Logging initialized", extra={"event": "logging_ready", "log_path": str(log_path)})
    return log_path


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, (logging.FileHandler, RichHandler)):
            root.removeHandler(handler)
            handler.close()
    for attr in ("_persona_setup_configured", "_persona_setup_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
