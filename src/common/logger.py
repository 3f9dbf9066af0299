"""
Centralized logging configuration for the intent signal pipeline.

Status lines of a batch run are plain log records on stdout. Records of one
run carry a `[run:xxxxxxxx] [stage]` prefix so a crawl or fetch can be
followed through aggregated logs:

    2026-03-15 03:00:12 [INFO] src.services.intent_pipeline_service: [run:3f2a9c1e] [match] Matched 12 companies

Verbose output is switched on by DEBUG_MODE=true or the scripts' -v flag.
"""

import logging
import os
import sys
from typing import Optional


# Set from the environment, overridden by -v/--verbose
_GLOBAL_DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"

# Libraries whose INFO output drowns the status lines
QUIET_LOGGERS = ("urllib3", "pymongo", "asyncio")

SIMPLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JSON_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'


def set_global_debug_mode(enabled: bool) -> None:
    global _GLOBAL_DEBUG_MODE
    _GLOBAL_DEBUG_MODE = enabled


def is_debug_mode() -> bool:
    return _GLOBAL_DEBUG_MODE


class PipelineLogger:
    """Logger bound to one run and, optionally, one stage of it."""

    def __init__(
        self,
        name: str,
        run_id: Optional[str] = None,
        stage: Optional[str] = None,
        debug_mode: Optional[bool] = None
    ):
        """
        Args:
            name: Logger name (usually __name__)
            run_id: Run identifier; the first 8 characters are shown
            stage: Stage tag (e.g. "crawl", "match", "persist", "summary")
            debug_mode: Force DEBUG level; None follows the global flag
        """
        self.logger = logging.getLogger(name)
        self.run_id = run_id
        self.stage = stage
        self.debug_mode = debug_mode if debug_mode is not None else is_debug_mode()

        if self.debug_mode:
            self.logger.setLevel(logging.DEBUG)

    def bind(self, stage: str) -> "PipelineLogger":
        """Same run, another stage."""
        return PipelineLogger(self.logger.name, self.run_id, stage, self.debug_mode)

    def prefix(self) -> str:
        parts = []
        if self.run_id:
            parts.append(f"[run:{self.run_id[:8]}]")
        if self.stage:
            parts.append(f"[{self.stage}]")
        return " ".join(parts)

    def log(self, level: int, message: str) -> None:
        prefix = self.prefix()
        self.logger.log(level, f"{prefix} {message}" if prefix else message)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Route all records to stdout.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        format: "simple" for terminals and cron mail, "json" for log shippers
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if format == "json":
        handler.setFormatter(logging.Formatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    if log_level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(
    name: str,
    run_id: Optional[str] = None,
    stage: Optional[str] = None,
    debug_mode: Optional[bool] = None
) -> PipelineLogger:
    return PipelineLogger(name, run_id, stage, debug_mode)
