from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationException

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
)


@dataclass
class BinanceConfig:
    base_url: str = "https://api.binance.com/api/v3"
    timeout_seconds: float = 10.0


@dataclass
class CoinGeckoConfig:
    """CoinGecko free tier allows roughly 10-30 calls per minute"""
    base_url: str = "https://api.coingecko.com/api/v3"
    timeout_seconds: float = 10.0
    min_call_interval_seconds: float = 2.0


@dataclass
class ProberConfig:
    """Configuration for the API reliability prober"""
    timeout_seconds: float = 10.0
    payload_truncate_chars: int = 1000
    working_threshold_percent: float = 50.0
    output_path: str = "api-test-results.json"
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    binance: BinanceConfig = field(default_factory=BinanceConfig)
    coingecko: CoinGeckoConfig = field(default_factory=CoinGeckoConfig)
    prober: ProberConfig = field(default_factory=ProberConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Optional[str] = None) -> AppConfig:
    cfg = AppConfig()
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationException(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationException(f"Config root in {path} must be a mapping")
        # shallow merge
        _merge_dataclass(cfg, raw)

    # env overrides; values stay strings until validation coerces them
    cfg.binance.base_url = os.getenv("BINANCE_BASE_URL", cfg.binance.base_url)
    cfg.coingecko.base_url = os.getenv("COINGECKO_BASE_URL", cfg.coingecko.base_url)
    cfg.coingecko.min_call_interval_seconds = os.getenv(
        "COINGECKO_MIN_INTERVAL", cfg.coingecko.min_call_interval_seconds
    )
    cfg.prober.timeout_seconds = os.getenv("PROBE_TIMEOUT", cfg.prober.timeout_seconds)
    cfg.prober.output_path = os.getenv("PROBE_OUTPUT", cfg.prober.output_path)
    cfg.logging.level = os.getenv("LOG_LEVEL", cfg.logging.level)

    return validate_config(cfg)


class _BinanceSettings(BaseModel):
    base_url: str
    timeout_seconds: float = Field(gt=0)


class _CoinGeckoSettings(BaseModel):
    base_url: str
    timeout_seconds: float = Field(gt=0)
    min_call_interval_seconds: float = Field(ge=0)


class _ProberSettings(BaseModel):
    timeout_seconds: float = Field(gt=0)
    payload_truncate_chars: int = Field(gt=0)
    working_threshold_percent: float = Field(ge=0, le=100)
    output_path: str
    user_agent: str


class _LoggingSettings(BaseModel):
    level: str
    file: Optional[str] = None

    @field_validator("level")
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


class ValidatedAppConfig(BaseModel):
    """Typed view of AppConfig; coerces YAML/env scalars and enforces ranges."""
    binance: _BinanceSettings
    coingecko: _CoinGeckoSettings
    prober: _ProberSettings
    logging: _LoggingSettings


def validate_config(config: AppConfig) -> AppConfig:
    """Validate the configuration and return a copy with coerced values."""
    try:
        validated = ValidatedAppConfig.model_validate(asdict(config))
    except ValidationError as e:
        raise ConfigurationException(f"Invalid configuration: {e}") from e

    data = validated.model_dump()
    return AppConfig(
        binance=BinanceConfig(**data["binance"]),
        coingecko=CoinGeckoConfig(**data["coingecko"]),
        prober=ProberConfig(**data["prober"]),
        logging=LoggingConfig(**data["logging"]),
    )


def _merge_dataclass(dc_obj, raw: dict):
    for k, v in raw.items():
        if not hasattr(dc_obj, k):
            continue
        cur = getattr(dc_obj, k)
        if isinstance(cur, list) and isinstance(v, list):
            setattr(dc_obj, k, v)
        elif hasattr(cur, "__dataclass_fields__"):
            if v is None:
                continue
            if not isinstance(v, dict):
                raise ConfigurationException(f"Config section {k!r} must be a mapping")
            _merge_dataclass(cur, v)
        else:
            setattr(dc_obj, k, v)
