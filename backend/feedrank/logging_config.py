"""
Engine Logging System
=====================
Structured logging for the ranking engine.

This module provides:
- Structured JSON logging for machine-parseable outputs
- Engine loggers for strategies, decisions, and pipeline stages
- Optional JSON-lines log files organized by run name

Usage:
    from feedrank.logging_config import get_engine_logger, log_ranking_decision

    logger = get_engine_logger("engine")
    logger.info("Ranked feed", extra={"viewer_id": "...", "count": 20})

    # Convenience functions
    log_strategy_result(strategy_name, returned, failed)
    log_ranking_decision(decision_type, details)
    log_fallback(reason, returned)
"""

import sys
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union

from .config import AppConfig, get_config


# Attributes every LogRecord carries; anything else came in via extra={}
_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'exc_info', 'exc_text',
    'thread', 'threadName', 'message', 'context', 'taskName',
))


# =============================================================================
# CUSTOM FORMATTERS
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON objects with consistent structure:
    {
        "timestamp": "2024-01-15T10:30:00.123456",
        "level": "INFO",
        "logger": "feedrank.decisions",
        "message": "Decision: feed_ranked",
        "context": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, 'context') and record.context:
            log_data['context'] = record.context

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for console output.

    Format: [LEVEL] logger: message (key=value, ...)
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"

        msg = f"[{level}] {record.name}: {record.getMessage()}"

        extras = []
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            if isinstance(value, (str, int, float, bool)):
                extras.append(f"{key}={value}")
            elif isinstance(value, dict) and len(value) < 3:
                extras.append(f"{key}={value}")

        if extras:
            msg += f" ({', '.join(extras)})"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


# =============================================================================
# LOGGER FACTORY
# =============================================================================

_loggers: Dict[str, logging.Logger] = {}


def get_engine_logger(
    name: str,
    log_to_file: Optional[bool] = None,
    run_name: Optional[str] = None
) -> logging.Logger:
    """
    Get or create an engine logger.

    Args:
        name: Logger name (e.g., "engine", "strategies", "decisions", "pipeline")
        log_to_file: Whether to write JSON-lines logs; defaults to config
        run_name: Optional run name for file organization

    Returns:
        Configured logger instance
    """
    full_name = f"feedrank.{name}"

    if full_name in _loggers:
        return _loggers[full_name]

    config = get_config()
    logger = logging.getLogger(full_name)
    logger.setLevel(getattr(logging, config.logging.log_level, logging.INFO))
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ConsoleFormatter())
    logger.addHandler(console_handler)

    if log_to_file is None:
        log_to_file = config.logging.log_to_file

    if log_to_file:
        log_file = get_log_path(run_name or config.logging.run_name, name)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    _loggers[full_name] = logger
    return logger


def reset_loggers() -> None:
    """Close handlers and forget cached loggers (used after config changes)."""
    for logger in _loggers.values():
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
    _loggers.clear()


def get_pipeline_logger(request_id: Optional[str] = None) -> logging.Logger:
    """Get a logger for pipeline execution."""
    logger = get_engine_logger("pipeline")
    if request_id:
        logger = logging.LoggerAdapter(logger, {'request_id': request_id})
    return logger


def get_strategy_logger() -> logging.Logger:
    """Get a logger for signal extraction."""
    return get_engine_logger("strategies")


def get_decision_logger() -> logging.Logger:
    """Get a logger for high-level ranking decisions."""
    return get_engine_logger("decisions")


# =============================================================================
# CONVENIENCE LOGGING FUNCTIONS
# =============================================================================

def log_strategy_result(
    strategy: str,
    returned: int,
    error: Optional[str] = None,
    request_id: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
    config: Optional[AppConfig] = None
) -> None:
    """
    Log the outcome of one signal extractor.

    Failures are warnings; successes are only logged when score logging is
    on in the given config (the global config when omitted).
    """
    log = logger or get_strategy_logger()
    extra = {'strategy': strategy, 'returned': returned}
    if request_id:
        extra['request_id'] = request_id

    if error is not None:
        extra['error'] = error
        log.warning(f"Strategy {strategy} failed, contributing nothing", extra=extra)
        return

    if (config or get_config()).logging.log_scores:
        log.debug(f"Strategy {strategy} returned {returned} items", extra=extra)


def log_ranking_decision(
    decision_type: str,
    details: Dict[str, Any],
    request_id: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
    config: Optional[AppConfig] = None
) -> None:
    """
    Log a high-level ranking decision.

    Args:
        decision_type: Type of decision (e.g., "feed_ranked", "search_ranked")
        details: Decision details
        request_id: Ranking request ID
        logger: Optional logger override
        config: Config whose log_decisions flag applies (global config if None)
    """
    if not (config or get_config()).logging.log_decisions:
        return

    log = logger or get_decision_logger()
    extra = {
        'decision_type': decision_type,
        'details': details
    }
    if request_id:
        extra['request_id'] = request_id

    log.info(f"Decision: {decision_type}", extra=extra)


def log_fallback(
    reason: str,
    returned: int,
    request_id: Optional[str] = None,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log that a request was served by the fallback ordering."""
    log = logger or get_decision_logger()
    extra = {'reason': reason, 'returned': returned, 'event': 'fallback'}
    if request_id:
        extra['request_id'] = request_id
    log.warning(f"Serving fallback ranking: {reason}", extra=extra)


def log_stage_start(
    stage_name: str,
    request_id: str,
    input_summary: Dict[str, Any] = None,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log the start of a pipeline stage."""
    log = logger or get_engine_logger("pipeline")
    log.debug(
        f"Starting stage: {stage_name}",
        extra={
            'stage_name': stage_name,
            'request_id': request_id,
            'event': 'stage_start',
            'input_summary': input_summary or {}
        }
    )


def log_stage_complete(
    stage_name: str,
    request_id: str,
    duration_seconds: float,
    output_summary: Optional[str] = None,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log the completion of a pipeline stage."""
    log = logger or get_engine_logger("pipeline")
    log.debug(
        f"Completed stage: {stage_name} ({duration_seconds * 1000:.1f}ms)",
        extra={
            'stage_name': stage_name,
            'request_id': request_id,
            'event': 'stage_complete',
            'duration_seconds': duration_seconds,
            'output_summary': output_summary or ''
        }
    )


def log_stage_error(
    stage_name: str,
    request_id: str,
    error: str,
    duration_seconds: float,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log a pipeline stage error."""
    log = logger or get_engine_logger("pipeline")
    log.error(
        f"Stage failed: {stage_name}",
        extra={
            'stage_name': stage_name,
            'request_id': request_id,
            'event': 'stage_error',
            'error': error,
            'duration_seconds': duration_seconds
        }
    )


# =============================================================================
# LOG FILE UTILITIES
# =============================================================================

def get_log_path(run_name: str, log_type: str = "decisions") -> Path:
    """Get the log file path for a run."""
    config = get_config()
    timestamp = datetime.now().strftime("%Y%m%d")
    return config.paths.logs / log_type / f"{run_name}_{timestamp}.jsonl"


def read_log_file(log_path: Union[str, Path]) -> list:
    """
    Read a JSONL log file and return list of log entries.

    Args:
        log_path: Path to the log file

    Returns:
        List of parsed log entry dictionaries
    """
    entries = []
    with open(log_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
    return entries
