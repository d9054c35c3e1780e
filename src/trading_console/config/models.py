"""Console runtime settings: service endpoint, polling cadences, page sizes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ApiSettings(BaseModel):
    base_url: str = "http://localhost:3000"
    timeout_seconds: float = 30.0


class PollingSettings(BaseModel):
    price_interval_seconds: float = Field(default=1.0, gt=0)
    sync_interval_seconds: float = Field(default=60.0, gt=0)
    price_lookup_timeout_seconds: float = Field(default=5.0, gt=0)


class LimitSettings(BaseModel):
    transactions: int = Field(default=20, ge=1)
    signals: int = Field(default=50, ge=1)


class SyncSettings(BaseModel):
    # "ids" compares collections by id sequence only, "content" by full equality
    change_detection: Literal["ids", "content"] = "ids"


class ConsoleSettings(BaseModel):
    api: ApiSettings = Field(default_factory=ApiSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    limits: LimitSettings = Field(default_factory=LimitSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)


def default_settings() -> ConsoleSettings:
    return ConsoleSettings()
