#!/usr/bin/env python3
"""
Showdown client logging configuration

Centralized logging setup for consistent formatting across the project.
Supports both development (console) and production (file) modes.

Usage:
    from shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Connecting...")
    logger.error("Send failed", extra={"room": "lobby", "command": "c:"})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional
import os


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class GenericFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        # Protocol context passed through `extra=`
        context = []

        if hasattr(record, 'direction'):
            context.append(f"{record.direction}")
        if hasattr(record, 'room'):
            context.append(f"room={record.room}")
        if hasattr(record, 'command'):
            context.append(f"cmd={record.command}")
        if hasattr(record, 'user'):
            context.append(f"user={record.user}")

        if context:
            context_str = f"[{' '.join(context)}] "
            record = logging.makeLogRecord(record.__dict__)
            record.msg = f"{context_str}{record.msg}"

        return super().format(record)


class ColoredContextFormatter(GenericFormatter, ColoredFormatter):
    """Console formatter with both colour and protocol context"""


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()

def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance

    Examples:
        logger = get_logger(__name__)
        logger.info("Session starting")

        # With context
        logger.warning("Unexpected frame", extra={
            "room": "lobby",
            "command": "c:",
        })
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    log_level = _get_log_level(level)
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    if _is_development():
        _add_file_handler(logger)
        _add_console_handler(logger, colored=True)
    else:
        # Production: Clean console + file logging
        _add_console_handler(logger, colored=False)
        _add_file_handler(logger)

    # Prevent duplicate messages from parent loggers
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    if level:
        return getattr(logging, level.upper(), logging.INFO)

    env_level = os.getenv('SHOWDOWN_LOG_LEVEL')
    if env_level:
        return getattr(logging, env_level.upper(), logging.INFO)

    # Default based on environment
    return logging.DEBUG if _is_development() else logging.INFO


def _is_development() -> bool:
    """Detect if we're in development mode"""
    return (
        os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development'] or
        'pytest' in sys.modules or
        __debug__  # Python -O flag not used
    )


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add console handler with appropriate formatter"""

    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stdout)

    if colored and _supports_color():
        formatter = ColoredContextFormatter(
            fmt=fmt,
            datefmt='%H:%M:%S'
        )
    else:
        formatter = GenericFormatter(
            fmt=fmt,
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger) -> None:
    """Add file handler for production logging"""

    log_dir = Path(os.getenv('SHOWDOWN_LOG_DIR', 'logs'))
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "showdown.log"
    handler = logging.FileHandler(log_file, encoding='utf-8')

    formatter = GenericFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if terminal supports color output"""

    # stdout must be a terminal
    if not (hasattr(sys.stdout, "isatty") and sys.stdout.isatty()):
        return False

    # TERM should not be dumb
    if os.getenv("TERM", "") == "dumb":
        return False

    if sys.platform == "win32":
        # On modern Windows terminals, ANSI colors are supported
        return os.getenv("ANSICON") is not None or os.getenv("WT_SESSION") is not None or os.getenv("TERM_PROGRAM") == "vscode" or "WindowsTerminal" in os.getenv("TERM", "")

    return True

# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the entire application.
    Call this once at application startup.

    Args:
        level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
    """
    root_logger = logging.getLogger()
    _configure_logger(root_logger, level)


def log_frame(logger: logging.Logger, direction: str, frame: str,
              room: Optional[str] = None, command: Optional[str] = None,
              level: str = "debug") -> None:
    """
    Log one protocol frame with structured context.

    Args:
        logger: Logger instance
        direction: "snd" or "rcv"
        frame: Raw frame text
        room: Room the frame belongs to, if known
        command: Decoded command, if known
        level: Log level ("debug", "info", "warning", "error")

    Example:
        log_frame(logger, "rcv", raw, room=frame.room, command=frame.command)
    """
    extra_context = {'direction': direction}
    if room is not None:
        extra_context['room'] = room
    if command is not None:
        extra_context['command'] = command or '-'

    log_func = getattr(logger, level.lower())
    log_func("%s", frame, extra=extra_context)
