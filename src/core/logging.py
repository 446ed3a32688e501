"""
Structured logging configuration using structlog.

Provides consistent, structured logging across the service with:
- JSON output in production, pretty console output in debug mode
- Context binding for request tracing (request_id, session_id)
- One log file per process run under the configured logs directory
- Provider credentials masked and submitted code truncated before rendering

Analysis requests carry whole source files and every LLM call carries an
API key, so neither may reach a log line verbatim.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, List, MutableMapping, Optional

import structlog
from structlog.typing import Processor

from src.core.config import LoggingConfig, analysis_config, settings

LOG_FILE_PREFIX = "analysis_"

# Event keys whose values are credentials
SECRET_FIELDS = frozenset(
    {
        "api_key",
        "authorization",
        "groq_api_key",
        "perplexity_api_key",
        "openai_api_key",
        "tiger_database_url",
    }
)

# Event keys that may hold submitted code or LLM payloads
PAYLOAD_FIELDS = frozenset({"code", "prompt", "response", "raw_response", "content"})


def mask_secret(value: Any) -> str:
    """Keep the first and last four characters of a credential."""
    text = str(value)
    if len(text) < 8:
        return "****"
    return f"{text[:4]}{'*' * (len(text) - 8)}{text[-4:]}"


def mask_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor: mask credential fields."""
    for key in SECRET_FIELDS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = mask_secret(event_dict[key])
    return event_dict


def truncate_payloads(max_chars: int) -> Processor:
    """Build a structlog processor that shortens long code/LLM payload fields."""

    def _truncate(
        logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        for key in PAYLOAD_FIELDS.intersection(event_dict):
            value = event_dict[key]
            if isinstance(value, str) and len(value) > max_chars:
                event_dict[key] = f"{value[:max_chars]}... [{len(value)} chars]"
        return event_dict

    return _truncate


def _cull_old_logs(logs_dir: Path, keep: int) -> None:
    """Delete old run logs, keeping only the N most recent."""
    log_files = sorted(
        logs_dir.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )

    for old_file in log_files[keep:]:
        try:
            os.remove(old_file)
        except OSError as e:
            # Another process may still hold it open
            logging.getLogger(__name__).debug("log_cull_skipped %s: %s", old_file, e)


def configure_logging(
    config: Optional[LoggingConfig] = None, logs_dir: Optional[Path] = None
) -> Path:
    """Configure structlog for the service.

    Call this once at application startup, before any logging. Reconfiguring
    replaces the root handlers, so tests and reloads can call it again.

    Args:
        config: Logging section of analysis_config.yaml (default: loaded config)
        logs_dir: Overrides config.logs_dir

    Returns:
        Path of the log file opened for this run
    """
    config = config or analysis_config.logging
    logs_dir = Path(logs_dir or config.logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    # keep-1 to make room for the new file
    _cull_old_logs(logs_dir, keep=config.runs_to_keep - 1)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"{LOG_FILE_PREFIX}{timestamp}.log"

    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        mask_secrets,
        truncate_payloads(config.max_field_chars),
    ]

    if settings.debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    level = getattr(logging, config.level)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_file, mode="w")
    file_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(file_handler)

    # httpx logs every request line, including provider URLs
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return log_file


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """
    Bind context variables that will be included in all subsequent logs.

        bind_context(session_id=session.session_id, request_id=request_id)

    Context set inside an asyncio task stays local to that task.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
