"""Centralized logging configuration for Lumina Guard."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Tuple

_APP_LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
_APP_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_SECURITY_LOGGER_NAME = "lumina.security_events"

_configured_dir: Path | None = None
_installed: List[Tuple[logging.Logger, logging.Handler]] = []


def setup_logging(log_dir: Path | str | None = None) -> None:
    """Configure logging for the entire application.

    Call once at startup before the Portal is created. Calling it again with
    another directory replaces the handlers installed by the previous call.
    """
    global _configured_dir
    if log_dir is None:
        from lumina.config import get_config
        log_dir = get_config().log.dir
    base_dir = Path(log_dir).expanduser()
    if _configured_dir == base_dir:
        return
    base_dir.mkdir(parents=True, exist_ok=True)
    _remove_installed_handlers()
    _configured_dir = base_dir

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Daily rotating file handler for all application logs
    app_handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(base_dir / "lumina.log"),
        when="midnight",
        interval=1,
        backupCount=14,
        encoding="utf-8",
    )
    app_handler.setLevel(logging.DEBUG)
    app_handler.setFormatter(
        logging.Formatter(_APP_LOG_FORMAT, datefmt=_APP_LOG_DATE_FORMAT)
    )
    root.addHandler(app_handler)
    _installed.append((root, app_handler))

    # Security audit logger: JSON Lines, size-rotated
    security_logger = logging.getLogger(_SECURITY_LOGGER_NAME)
    security_logger.propagate = False
    security_handler = logging.handlers.RotatingFileHandler(
        filename=str(base_dir / "security_events.jsonl"),
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    security_handler.setLevel(logging.DEBUG)
    security_handler.setFormatter(logging.Formatter("%(message)s"))
    security_logger.addHandler(security_handler)
    _installed.append((security_logger, security_handler))


def _remove_installed_handlers() -> None:
    while _installed:
        owner, handler = _installed.pop()
        owner.removeHandler(handler)
        handler.close()


def log_security_event(event: str, principal: str | None = None, **details: Any) -> None:
    """Append one audit entry (login, lockout, policy change, reset) as JSON Lines."""
    security_logger = logging.getLogger(_SECURITY_LOGGER_NAME)
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "principal": principal,
        **details,
    }
    try:
        security_logger.info(json.dumps(entry, ensure_ascii=False, default=str))
    except (TypeError, ValueError):
        security_logger.info(
            json.dumps({"event": event, "error": "serialization_failed"})
        )
