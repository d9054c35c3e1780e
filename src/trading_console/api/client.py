"""Async client for the trading service's `/api/trading` endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from trading_console.config.models import ApiSettings
from trading_console.core.models import (
    ConnectionStatus,
    ExecutionReceipt,
    ManualExecutionReceipt,
    PerformanceMetrics,
    Position,
    PositionReceipt,
    PriceQuote,
    RealTimePriceData,
    TradingSignal,
    Transaction,
)
from trading_console.errors import ConsoleApiError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/trading"

ModelT = TypeVar("ModelT", bound=BaseModel)


class TradingApiClient:
    """Thin request/response wrapper; every failure becomes ConsoleApiError."""

    def __init__(
        self,
        settings: ApiSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or ApiSettings()
        self._client = httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def get_binance_price(self, symbol: str) -> PriceQuote:
        data = await self._request("GET", f"/binance-price/{symbol}")
        return _parse(PriceQuote, data)

    async def get_price_data(self, symbol: str) -> RealTimePriceData:
        data = await self._request("GET", f"/prices/{symbol}")
        return _parse(RealTimePriceData, data)

    async def generate_signal(
        self, symbol: str, model: str, timeframes: Sequence[str] | None = None
    ) -> TradingSignal:
        body: Dict[str, Any] = {"symbol": symbol, "model": model}
        if timeframes:
            body["timeframes"] = list(timeframes)
        data = await self._request("POST", "/generate-signal", json=body)
        if not data.get("signal"):
            raise ConsoleApiError("Signal missing from response")
        return _parse(TradingSignal, data["signal"])

    async def get_signals(self, limit: int = 50) -> List[TradingSignal]:
        data = await self._request("GET", "/signals", params={"limit": limit})
        return [_parse(TradingSignal, item) for item in data.get("signals") or []]

    async def execute_trade(self, signal: TradingSignal, is_testnet: bool) -> ExecutionReceipt:
        body = {"signal": signal.to_payload(), "isTestnet": is_testnet}
        data = await self._request("POST", "/execute", json=body)
        return _parse(ExecutionReceipt, data)

    async def execute_manual(self, signal_json: str, is_testnet: bool) -> ManualExecutionReceipt:
        body = {"signalJson": signal_json, "isTestnet": is_testnet}
        data = await self._request("POST", "/execute-manual", json=body)
        return _parse(ManualExecutionReceipt, data)

    async def get_positions(self) -> List[Position]:
        data = await self._request("GET", "/positions")
        return [_parse(Position, item) for item in data.get("positions") or []]

    async def create_position(self, payload: Dict[str, Any]) -> PositionReceipt:
        data = await self._request("POST", "/positions", json=payload)
        return _parse(PositionReceipt, data)

    async def close_position(self, position_id: str, close_price: float) -> PositionReceipt:
        data = await self._request(
            "POST", f"/positions/{position_id}/close", json={"closePrice": close_price}
        )
        return _parse(PositionReceipt, data)

    async def get_transactions(self, limit: int = 50) -> List[Transaction]:
        data = await self._request("GET", "/transactions", params={"limit": limit})
        return [_parse(Transaction, item) for item in data.get("transactions") or []]

    async def get_performance(self) -> Optional[PerformanceMetrics]:
        data = await self._request("GET", "/performance")
        metrics = data.get("metrics")
        return _parse(PerformanceMetrics, metrics) if metrics else None

    async def get_connection_status(self) -> ConnectionStatus:
        data = await self._request("GET", "/status")
        status = data.get("status")
        return _parse(ConnectionStatus, status) if status else ConnectionStatus.offline()

    async def get_balance(self) -> float:
        data = await self._request("GET", "/balance")
        return float(data.get("usdtBalance", 0.0))

    async def chart_data_prompt(self, symbol: str, timeframes: Sequence[str]) -> str:
        body = {"symbol": symbol, "timeframes": list(timeframes)}
        data = await self._request("POST", "/chart-data-prompt", json=body)
        return str(data.get("prompt", ""))

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{API_PREFIX}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _server_error(exc.response) or str(exc)
            logger.warning("%s %s failed (%s): %s", method, url, exc.response.status_code, message)
            raise ConsoleApiError(message, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            message = str(exc) or "Request failed"
            logger.warning("%s %s failed: %s", method, url, message)
            raise ConsoleApiError(message) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ConsoleApiError(f"Invalid JSON from {url}") from exc
        if not isinstance(data, dict):
            raise ConsoleApiError(f"Unexpected response shape from {url}")
        return data


def _server_error(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None


def _parse(model: Type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ConsoleApiError(f"Malformed {model.__name__} in response: {exc.error_count()} error(s)") from exc
