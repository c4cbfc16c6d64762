import logging
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class EngineConfig:
    """Runtime settings for the calculation worker and its client.

    Values can be overridden via environment variables:
    - FINENGINE_REQUEST_TIMEOUT   seconds to wait for a worker response
    - FINENGINE_INLINE_FALLBACK   compute in-process when the worker times out or is down
    - FINENGINE_LOG_LEVEL
    """

    request_timeout: float = field(default_factory=lambda: _env_float("FINENGINE_REQUEST_TIMEOUT", 10.0))
    inline_fallback: bool = field(default_factory=lambda: _env_bool("FINENGINE_INLINE_FALLBACK", True))
    log_level: str = field(default_factory=lambda: os.getenv("FINENGINE_LOG_LEVEL", "INFO").upper())


def load_config() -> EngineConfig:
    return EngineConfig()


def configure_logging(config: Optional[EngineConfig] = None) -> None:
    config = config or load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
