"""Operator-chosen trading parameters as a validated, immutable value."""

from __future__ import annotations

from typing import Any, Dict, Literal, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from trading_console.errors import ConfigError

AiModel = Literal["gpt-3.5-turbo", "gpt-4", "gpt-4o-2024-05-13"]

TIMEFRAMES: Tuple[str, ...] = ("1m", "5m", "15m", "30m", "1h", "4h", "1d")


class TradingConfig(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    selected_symbol: str = "BTCUSDT"
    is_auto_mode: bool = False
    is_testnet: bool = True
    confidence_threshold: float = Field(default=75.0, ge=0, le=100)
    ai_model: AiModel = "gpt-3.5-turbo"
    is_mock_mode: bool = True
    selected_timeframes: Tuple[str, ...] = ("15m", "1h", "4h")

    @field_validator("selected_symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("symbol must not be empty")
        return value

    @field_validator("selected_timeframes")
    @classmethod
    def _check_timeframes(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = sorted(set(value) - set(TIMEFRAMES))
        if unknown:
            raise ValueError(f"unknown timeframes: {', '.join(unknown)}")
        if not value:
            raise ValueError("at least one timeframe must be selected")
        return tuple(tf for tf in TIMEFRAMES if tf in value)

    @classmethod
    def build(cls, **options: Any) -> "TradingConfig":
        """Construct a config, raising ConfigError for any rejected option."""
        try:
            return cls.model_validate(_normalize_keys(options))
        except PydanticValidationError as exc:
            raise ConfigError(_describe(exc)) from exc

    def update(self, partial: Mapping[str, Any]) -> "TradingConfig":
        merged = self.model_dump()
        merged.update(_normalize_keys(partial))
        return TradingConfig.build(**merged)


class TradingConfigStore:
    """Holds the current configuration snapshot; only the operator path writes it."""

    def __init__(self, initial: TradingConfig | None = None) -> None:
        self._config = initial or TradingConfig()

    @property
    def snapshot(self) -> TradingConfig:
        return self._config

    def update(self, partial: Mapping[str, Any] | None = None, **changes: Any) -> TradingConfig:
        """Apply a partial change; on ConfigError the previous snapshot stays current."""
        options = dict(partial or {})
        options.update(changes)
        self._config = self._config.update(options)
        return self._config


def _normalize_keys(options: Mapping[str, Any]) -> Dict[str, Any]:
    by_alias = {field.alias: name for name, field in TradingConfig.model_fields.items()}
    normalized: Dict[str, Any] = {}
    for key, value in options.items():
        if key in TradingConfig.model_fields:
            normalized[key] = value
        elif key in by_alias:
            normalized[by_alias[key]] = value
        else:
            raise ConfigError(f"Unknown configuration option: {key}")
    return normalized


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "config"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)
