"""
Configuration and logging setup for green execution

Settings come from a plain dict (same shape as the other connection config
dicts) or from PGWIRE_GREEN_* environment variables.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

import structlog

ENV_PREFIX = "PGWIRE_GREEN_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass
class GreenConfig:
    """Tunables for cancellation, the select-based wait and logging"""
    cancel_timeout: float = 5.0
    select_timeout: Optional[float] = None
    warn_on_recovery: bool = True
    log_level: str = "INFO"
    log_json: bool = False

    _parsers = {
        'cancel_timeout': float,
        'select_timeout': _parse_optional_float,
        'warn_on_recovery': _parse_bool,
        'log_level': lambda v: str(v).upper(),
        'log_json': _parse_bool,
    }

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "GreenConfig":
        """Build from a config dict; unknown keys are ignored"""
        kwargs = {}
        for f in fields(cls):
            if f.name in config:
                kwargs[f.name] = cls._parsers[f.name](config[f.name])
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GreenConfig":
        """Build from PGWIRE_GREEN_<FIELD> environment variables"""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            if key in environ:
                values[f.name] = environ[key]
        return cls.from_dict(values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def configure_logging(config: Optional[GreenConfig] = None) -> None:
    """Configure structlog with console or JSON rendering"""
    config = config or GreenConfig()
    level = getattr(logging, config.log_level, logging.INFO)

    renderer = (structlog.processors.JSONRenderer() if config.log_json
                else structlog.dev.ConsoleRenderer())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
