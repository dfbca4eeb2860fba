"""
Logging setup for the matching engine.

Everything logs under the ``match_engine`` namespace. Console output is always
on; the rotating engine and error log files are written outside of tests.
"""
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER = "match_engine"

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-36s | %(funcName)-20s:%(lineno)-4d | %(message)s",
}

# noisy third-party loggers and the level they are held at
LIBRARY_LEVELS = {
    "urllib3": "WARNING",
    "pymongo": "WARNING",
    "httpx": "WARNING",
    "uvicorn.access": "INFO",
}

# environment -> (level, write log files, console format)
ENVIRONMENT_PROFILES = {
    "production": (None, True, "detailed"),
    "development": ("DEBUG", True, "detailed"),
    "testing": ("WARNING", False, "simple"),
}

MAX_LOG_BYTES = 10 * 1024 * 1024


def _rotating_file(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(path),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    write_files: bool = True,
    console_format: str = "detailed",
) -> None:
    """
    Configure the root logger through ``logging.config.dictConfig``.

    Args:
        level: Level applied to the root logger and its handlers
        log_dir: Directory for the log files (``LOG_DIR`` or ``logs``)
        write_files: Add the rotating engine and error log files
        console_format: ``simple`` or ``detailed``
    """
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": console_format if console_format in FORMATS else "detailed",
            "stream": "ext://sys.stdout",
        }
    }

    stamp = datetime.now().strftime("%Y%m%d")
    directory = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    if write_files:
        directory.mkdir(parents=True, exist_ok=True)
        handlers["file"] = _rotating_file(directory / f"match_engine_{stamp}.log", level)
        handlers["error_file"] = _rotating_file(directory / f"match_engine_errors_{stamp}.log", "ERROR")

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"} for name, fmt in FORMATS.items()
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
        "loggers": {name: {"level": lvl} for name, lvl in LIBRARY_LEVELS.items()},
    }
    logging.config.dictConfig(config)

    get_logger("logging").info(
        f"Logging configured - Level: {level}, files: {directory if write_files else 'disabled'}"
    )


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``match_engine`` namespace (module ``__name__`` works as-is)."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_for_environment() -> None:
    """Pick the logging profile from ``ENVIRONMENT`` and ``LOG_LEVEL``."""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    default_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level, write_files, console_format = ENVIRONMENT_PROFILES.get(environment, (None, True, "detailed"))
    setup_logging(level=level or default_level, write_files=write_files, console_format=console_format)


class PerformanceMonitor:
    """Times a block and logs it; slow or failed blocks log a warning."""

    def __init__(self, operation_name: str, logger: Optional[logging.Logger] = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms: Optional[float] = None
        self._start = 0.0

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
        if exc_type is not None:
            self.logger.warning(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} took {self.elapsed_ms:.2f}ms (threshold {self.threshold_ms}ms)"
            )
        else:
            self.logger.debug(f"{self.operation_name} took {self.elapsed_ms:.2f}ms")
        return False
