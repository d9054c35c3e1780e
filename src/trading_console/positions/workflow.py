"""Open/close interactions on positions, confirmed by the trading service."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Protocol

from trading_console.core.models import Position, PositionReceipt, PriceQuote, TradeDirection
from trading_console.errors import (
    CloseExecutionError,
    ConsoleApiError,
    PositionAlreadyClosedError,
    PositionOpenError,
    ValidationError,
)

logger = logging.getLogger(__name__)

RefreshHook = Callable[[], Awaitable[object]]


class PositionService(Protocol):
    async def get_binance_price(self, symbol: str) -> PriceQuote: ...

    async def close_position(self, position_id: str, close_price: float) -> PositionReceipt: ...

    async def create_position(self, payload: Dict[str, Any]) -> PositionReceipt: ...


class LivePrices(Protocol):
    def latest_price(self, symbol: str) -> Optional[float]: ...


@dataclass(frozen=True, slots=True)
class CloseSuggestion:
    position: Position
    price: float
    source: str  # "feed", "quote", "last_known" or "entry"


@dataclass(slots=True)
class OpenPositionRequest:
    symbol: str
    direction: str
    size: float
    entry_price: float
    leverage: int
    is_testnet: bool = True
    stop_loss: float | None = None
    take_profit: float | None = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "symbol": self.symbol,
            "direction": self.direction,
            "size": self.size,
            "entryPrice": self.entry_price,
            "leverage": self.leverage,
            "isTestnet": self.is_testnet,
        }
        if self.stop_loss is not None:
            payload["stopLoss"] = self.stop_loss
        if self.take_profit is not None:
            payload["takeProfit"] = self.take_profit
        return payload


class PositionCloseWorkflow:
    def __init__(
        self,
        service: PositionService,
        prices: LivePrices | None = None,
        on_changed: RefreshHook | None = None,
        lookup_timeout: float = 5.0,
    ) -> None:
        self._service = service
        self._prices = prices
        self._on_changed = on_changed
        self._lookup_timeout = lookup_timeout
        self._selected: Optional[Position] = None
        self._closed: Dict[str, Position] = {}
        self._closing = False

    @property
    def selected(self) -> Optional[Position]:
        return self._selected

    @property
    def closing(self) -> bool:
        return self._closing

    def confirmed(self, position_id: str) -> Optional[Position]:
        """Server-returned copy of a position this workflow closed."""
        return self._closed.get(position_id)

    async def begin_close(self, position: Position) -> CloseSuggestion:
        self._ensure_open(position)
        self._selected = position
        suggestion = await self.suggest_close_price(position)
        logger.info(
            "Close dialog for %s %s, suggested %.6g from %s",
            position.symbol,
            position.id,
            suggestion.price,
            suggestion.source,
        )
        return suggestion

    def cancel_close(self) -> None:
        self._selected = None

    def reconcile(self, positions: Iterable[Position]) -> None:
        """Forget local close confirmations once the account view shows them Closed."""
        for position in positions:
            if position.is_open:
                continue
            if self._closed.pop(position.id, None) is not None:
                logger.debug("Close of %s confirmed by sync", position.id)
            if self._selected is not None and self._selected.id == position.id:
                self._selected = None

    async def suggest_close_price(self, position: Position) -> CloseSuggestion:
        if self._prices is not None:
            price = self._prices.latest_price(position.symbol)
            if price:
                return CloseSuggestion(position, price, "feed")
        try:
            quote = await asyncio.wait_for(
                self._service.get_binance_price(position.symbol), self._lookup_timeout
            )
        except (ConsoleApiError, asyncio.TimeoutError) as exc:
            logger.debug("Live price for %s unavailable: %s", position.symbol, exc)
        else:
            if quote.price > 0:
                return CloseSuggestion(position, quote.price, "quote")
        if position.current_price:
            return CloseSuggestion(position, position.current_price, "last_known")
        return CloseSuggestion(position, position.entry_price, "entry")

    async def submit_close(self, position: Position, close_price: Any) -> Position:
        self._ensure_open(position)
        price = parse_close_price(close_price)
        if self._closing:
            raise CloseExecutionError("A close request is already in progress")

        self._closing = True
        try:
            receipt = await self._service.close_position(position.id, price)
        except ConsoleApiError as exc:
            logger.warning("Closing %s failed: %s", position.id, exc)
            raise CloseExecutionError(str(exc)) from exc
        finally:
            self._closing = False

        if not receipt.success or receipt.position is None:
            raise CloseExecutionError(receipt.message or "Failed to close position")

        closed = receipt.position
        self._closed[position.id] = closed
        if self._selected is not None and self._selected.id == position.id:
            self._selected = None
        logger.info(
            "Closed %s %s at %.6g with PnL %.2f",
            position.direction.value,
            position.symbol,
            price,
            closed.pnl,
        )
        await self._notify()
        return closed

    async def submit_open(self, request: OpenPositionRequest) -> Position:
        validate_open_request(request)
        try:
            receipt = await self._service.create_position(request.to_payload())
        except ConsoleApiError as exc:
            raise PositionOpenError(str(exc)) from exc
        if not receipt.success or receipt.position is None:
            raise PositionOpenError(receipt.message or "Failed to create position")
        logger.info("Opened %s %s size %s", request.direction, request.symbol, request.size)
        await self._notify()
        return receipt.position

    def _ensure_open(self, position: Position) -> None:
        if not position.is_open or position.id in self._closed:
            raise PositionAlreadyClosedError(f"Position {position.id} has already been closed")

    async def _notify(self) -> None:
        if self._on_changed is None:
            return
        try:
            await self._on_changed()
        except Exception as exc:
            logger.exception("Refresh after position change failed: %s", exc)


def parse_close_price(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        raise ValidationError("Please enter a valid close price")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError("Please enter a valid close price")
    try:
        price = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Close price is not a number: {value!r}") from exc
    if not math.isfinite(price) or price <= 0:
        raise ValidationError("Close price must be a positive number")
    return price


def validate_open_request(request: OpenPositionRequest) -> None:
    if not request.symbol.strip():
        raise ValidationError("Symbol is required")
    if request.direction not in {d.value for d in TradeDirection}:
        raise ValidationError("Direction must be LONG or SHORT")
    for name in ("size", "entry_price"):
        value = getattr(request, name)
        if not math.isfinite(value) or value <= 0:
            raise ValidationError(f"{name} must be a positive number")
    if not 1 <= request.leverage <= 125:
        raise ValidationError("Leverage must be between 1 and 125")
