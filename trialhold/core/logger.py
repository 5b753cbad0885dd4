# trialhold/core/logger.py
from __future__ import annotations
import logging
import sys
from typing import Optional

import structlog
from trialhold.core.settings import Settings, settings

# Third-party loggers that echo every HTTP request at INFO
_CHATTY_LOGGERS = ("stripe", "httpx", "urllib3")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName((name or "").upper())
    return level if isinstance(level, int) else logging.INFO


def service_fields(cfg: Settings):
    """Processor stamping every event with the service name and environment."""
    def _add(logger, method_name, event_dict):
        event_dict.setdefault("service", cfg.APP_NAME)
        event_dict.setdefault("env", cfg.ENV)
        return event_dict
    return _add


def setup_logging(cfg: Optional[Settings] = None) -> int:
    """
    Route stdlib logging to stdout and configure structlog on top of it.

    Every event carries `service` and `env`. Development renders key=value lines,
    anything else renders one JSON object per line. Returns the effective level.
    """
    cfg = cfg or settings
    level = _resolve_level(cfg.LOG_LEVEL)

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stdout)
    # The SDK logs request ids and bodies; keep that for DEBUG runs only
    sdk_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        service_fields(cfg),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if cfg.DEV_MODE:
        processors += [
            structlog.processors.ExceptionRenderer(),
            structlog.processors.KeyValueRenderer(key_order=["event", "level"], sort_keys=True),
        ]
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    return level
