"""Logging configuration for blocklist-push.

Provides configurable logging with:
- File-based logging with rotation
- Console output for the per-device status lines
- Per-step timing for protocol operations

Environment Variables:
    BLOCKLIST_PUSH_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    BLOCKLIST_PUSH_LOG_FILE: Path to log file (default: ~/.blocklist-push/blocklist-push.log)
    BLOCKLIST_PUSH_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    BLOCKLIST_PUSH_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from blocklist_push.utils.logging_config import setup_logging, timed_section

    setup_logging()  # Call once at startup

    async with timed_section("lock", device_id="fw1.example.net"):
        ...
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("blocklist_push.perf")
main_logger = logging.getLogger("blocklist_push")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("BLOCKLIST_PUSH_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".blocklist-push" / "blocklist-push.log"
    path_str = os.environ.get("BLOCKLIST_PUSH_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(level: Optional[int] = None, log_file: Optional[Path] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects BLOCKLIST_PUSH_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for step timings (file only)

    Calling it again replaces the handlers installed by the previous call.
    """
    log_level = level if level is not None else get_log_level()
    log_file = log_file or get_log_file()
    max_size_mb = int(os.environ.get("BLOCKLIST_PUSH_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("BLOCKLIST_PUSH_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_format = logging.Formatter("%(message)s")
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console handler - plain status lines for the operator
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(console_format)

    # File handler - captures DEBUG and above (everything)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "blocklist-push-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    for handler in list(main_logger.handlers):
        main_logger.removeHandler(handler)
        handler.close()
    for handler in list(perf_logger.handlers):
        perf_logger.removeHandler(handler)
        handler.close()

    main_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    # Timings go to their own file, not the operator console
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)
    perf_logger.propagate = False

    main_logger.debug(
        f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}"
    )


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Async context manager for timing a protocol step.

    Yields a dict whose "status" the caller may overwrite when the step
    reports failure without raising.

    Args:
        operation: Name of the operation
        device_id: Device identifier
        **extra: Additional context to log

    Usage:
        async with timed_section("commit", device_id="fw1", entries=12) as section:
            ok, message = await device.commit(comment)
            if not ok:
                section["status"] = f"FAIL: {message}"
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    section = {"status": "OK"}

    try:
        yield section
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:12s} | {device_id or 'N/A':25s} | {elapsed:8.2f}ms | {section['status']}"
        if extra_str:
            msg += f" | {extra_str}"
        if section["status"] == "OK":
            perf_logger.info(msg)
        else:
            perf_logger.warning(msg)
    except BaseException as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:12s} | {device_id or 'N/A':25s} | {elapsed:8.2f}ms | FAIL: {e!r}"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
