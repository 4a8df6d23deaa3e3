"""Structured logging for the relay: redaction, delivery binding, quiet clients."""

from __future__ import annotations

import json
import logging
import re
import sys

import structlog

# Loggers that chatter per request; held at WARNING unless the relay itself is quieter.
NOISY_LOGGERS = ("httpx", "httpcore", "aiohttp.access")

# Longest rendering of a logged webhook payload.
MAX_PAYLOAD_CHARS = 2000

_REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(
            r"(token|secret|password|authorization)[\"']?\s*[:=]\s*[\"']?(bearer\s+)?[\w\-\.]+",
            re.IGNORECASE,
        ),
        r"\1=***REDACTED***",
    ),
    (re.compile(r"\b(ghp|gho|ghu|ghs|ghr|github_pat)_\w+"), r"\1_***REDACTED***"),
    (re.compile(r"(hooks\.slack\.com/services)/[\w/]+", re.IGNORECASE), r"\1/***REDACTED***"),
    (re.compile(r"\bsha256=[0-9a-f]{16,}", re.IGNORECASE), "sha256=***REDACTED***"),
]


def _redact(value: str) -> str:
    for pattern, replacement in _REDACTIONS:
        value = pattern.sub(replacement, value)
    return value


def _filter_sensitive(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Scrub credentials, Slack hook paths and signatures from string values."""
    for key, value in list(event_dict.items()):
        if isinstance(value, str):
            event_dict[key] = _redact(value)
    return event_dict


def _compact_payload(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Render a ``payload`` dict as one bounded JSON string so redaction sees it."""
    payload = event_dict.get("payload")
    if isinstance(payload, (dict, list)):
        text = json.dumps(payload, separators=(",", ":"), default=str)
        if len(text) > MAX_PAYLOAD_CHARS:
            text = text[:MAX_PAYLOAD_CHARS] + "...(truncated)"
        event_dict["payload"] = text
    return event_dict


def _build_processors(
    json_output: bool,
) -> tuple[list[structlog.types.Processor], list[structlog.types.Processor]]:
    """Shared pre-chain and the final renderer(s)."""
    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _compact_payload,
        _filter_sensitive,
    ]
    if json_output:
        renderer: list[structlog.types.Processor] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer()]
    return shared, renderer


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog and stdlib logging through one stderr handler."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    shared, renderer = _build_processors(json_output)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def delivery_context(route: str, delivery_id: str):
    """Bind route and GitHub delivery id to every log line in the block."""
    return structlog.contextvars.bound_contextvars(route=route, delivery=delivery_id or "-")
