# studydesk/core/logging.py
from __future__ import annotations

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any

import structlog

from studydesk.core.config import get_settings

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

_JWT_RE = re.compile(r"\beyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\b")
_BEARER_RE = re.compile(r"(?i)\bBearer\s+([A-Za-z0-9_\-\.=]+)")
_URL_CRED_RE = re.compile(r"(?i)([a-z][a-z0-9+\-.]*://)([^:@/]+):([^@/]+)@")
_KV_RE = re.compile(
    r"(?i)\b(jwt_secret|jwt_refresh_secret|secret_key|refresh_token|access_token|token|secret|password)\b\s*=\s*([^\s,;]+)"
)
_SENSITIVE_KEYS = {"password", "token", "access_token", "refresh_token", "secret", "authorization"}

REDACTED = "***REDACTED***"


def _redact_str(s: str) -> str:
    s = _URL_CRED_RE.sub(rf"\1{REDACTED}@", s)
    s = _JWT_RE.sub(REDACTED, s)
    s = _BEARER_RE.sub(f"Bearer {REDACTED}", s)
    s = _KV_RE.sub(lambda m: f"{m.group(1)}={REDACTED}", s)
    return s


def redact_event(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    for k, v in list(event_dict.items()):
        if k.lower() in _SENSITIVE_KEYS:
            event_dict[k] = REDACTED
        elif isinstance(v, str):
            event_dict[k] = _redact_str(v)
    return event_dict


def add_request_id(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    rid = request_id_var.get()
    if rid:
        event_dict.setdefault("request_id", rid)
    return event_dict


def setup_logging() -> None:
    s = get_settings()
    level = str(s.LOG_LEVEL).upper()

    root = logging.getLogger()
    root.setLevel(level)
    # evita handlers duplicados se chamado de novo (reload/testes)
    if getattr(root, "_studydesk_structlog_configured", False):
        return

    shared = [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.add_log_level,
        add_request_id,
        redact_event,
        structlog.processors.format_exc_info,
    ]
    renderer = structlog.processors.JSONRenderer() if s.LOG_JSON else structlog.dev.ConsoleRenderer(colors=False)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)
    )
    root.handlers.clear()
    root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    root._studydesk_structlog_configured = True  # type: ignore[attr-defined]
