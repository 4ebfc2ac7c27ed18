# -------------------- logger (start)
"""
utils/logger.py
Unified logger for the CRM console: stdlib handlers (console + rotating file)
with structlog on top, respects DEBUG_MODE/LOG_JSON from config/settings.py,
and provides a standard get_logger() accessor for all modules and services.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
import sys

import structlog

from config.settings import DEBUG_MODE, LOG_DIR, LOG_JSON


class SafeRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that skips rotation when the file is locked.

    Windows file locking can prevent rotation; logging continues into the
    current file instead.
    """

    def doRollover(self) -> None:
        try:
            super().doRollover()
        except PermissionError:
            pass
        except OSError as e:
            if "being used by another process" not in str(e):
                raise


def _init_logger_system() -> None:
    """Initializes stdlib handlers and the structlog pipeline once."""
    if getattr(_init_logger_system, "_initialized", False):
        return

    # QUIET_STARTUP mode: suppress DEBUG logs, only show INFO+
    quiet_startup = os.getenv("QUIET_STARTUP", "0") == "1"
    log_level = logging.INFO if quiet_startup else (logging.DEBUG if DEBUG_MODE else logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # File handler with rotation (skipped if the log dir is unusable)
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        file_handler = SafeRotatingFileHandler(
            os.path.join(LOG_DIR, "app.log"), maxBytes=1_000_000, backupCount=3, encoding="utf-8", delay=True
        )
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)
    except OSError as e:
        print(f"[Logger] File logging disabled: {e}", file=sys.stderr)

    # Console handler only in debug mode
    if DEBUG_MODE and not quiet_startup:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        root_logger.addHandler(console_handler)

    renderer = structlog.processors.JSONRenderer() if LOG_JSON else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    _init_logger_system._initialized = True


def get_logger(name: str = "crm_console") -> structlog.stdlib.BoundLogger:
    """
    Returns a module-scoped structlog logger.
    Example:
        log = get_logger(__name__)
        log.info("session.set", user="carl")
    """
    _init_logger_system()
    return structlog.get_logger(name)


def setup_debug_logging(enabled: bool = False) -> None:
    """
    Globally elevate log level to DEBUG if enabled=True.
    Useful for runtime toggles (CLI --verbose).
    """
    root = logging.getLogger()
    new_level = logging.DEBUG if enabled else logging.INFO
    root.setLevel(new_level)
    for h in root.handlers:
        h.setLevel(new_level)


# -------------------- logger (end)
