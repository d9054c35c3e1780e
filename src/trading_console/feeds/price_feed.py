"""Per-symbol live price polling."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol

from trading_console.core.models import RealTimePriceData
from trading_console.errors import ConsoleApiError, PriceFeedError
from trading_console.scheduler.poller import PeriodicTask

logger = logging.getLogger(__name__)

PriceListener = Callable[[RealTimePriceData], None]
ErrorListener = Callable[[PriceFeedError], None]


class PriceSource(Protocol):
    async def get_price_data(self, symbol: str) -> RealTimePriceData: ...


class PriceFeedSubscriber:
    """Keep one polling subscription alive for the observed symbol.

    Switching symbols stops the previous poller (cancelling any request it
    still has in flight) before the new one starts, and every result is
    checked against the subscription generation that requested it, so a late
    reply for the old symbol is dropped rather than delivered.
    """

    def __init__(self, source: PriceSource, interval: float = 1.0) -> None:
        self._source = source
        self._interval = interval
        self._poller: PeriodicTask | None = None
        # Held across poller swaps so overlapping switches cannot orphan a poller.
        self._lock = asyncio.Lock()
        self._generation = 0
        self._symbol: Optional[str] = None
        self._data: Optional[RealTimePriceData] = None
        self._error: Optional[PriceFeedError] = None
        self._loading = False
        self._listeners: List[PriceListener] = []
        self._error_listeners: List[ErrorListener] = []

    @property
    def symbol(self) -> Optional[str]:
        return self._symbol

    @property
    def data(self) -> Optional[RealTimePriceData]:
        return self._data

    @property
    def error(self) -> Optional[PriceFeedError]:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def active(self) -> bool:
        return self._poller is not None and self._poller.running

    def add_listener(self, listener: PriceListener) -> None:
        self._listeners.append(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def latest_price(self, symbol: str) -> Optional[float]:
        """Current price for `symbol` if this feed is observing it and healthy."""
        if self._symbol != symbol or self._error is not None or self._data is None:
            return None
        if self._data.symbol and self._data.symbol != symbol:
            return None
        return self._data.current_price

    async def subscribe(self, symbol: str) -> None:
        symbol = symbol.strip().upper()
        if not symbol:
            raise ValueError("symbol must not be empty")
        async with self._lock:
            if symbol == self._symbol and self.active:
                return
            await self._cancel()
            self._generation += 1
            self._symbol = symbol
            self._data = None
            self._error = None
            self._loading = True
            generation = self._generation
            self._poller = PeriodicTask(
                name=f"price-feed-{symbol}",
                interval=self._interval,
                callback=lambda: self._tick(symbol, generation),
            )
            self._poller.start()
        logger.info("Price feed subscribed to %s", symbol)

    async def close(self) -> None:
        async with self._lock:
            await self._cancel()
            self._symbol = None
            self._loading = False

    async def _cancel(self) -> None:
        # Bump first so anything still resolving for the old symbol is stale.
        self._generation += 1
        poller, self._poller = self._poller, None
        if poller is not None:
            await poller.stop()
            logger.info("Price feed for %s stopped", self._symbol)

    async def _tick(self, symbol: str, generation: int) -> None:
        try:
            data = await self._source.get_price_data(symbol)
        except ConsoleApiError as exc:
            if generation != self._generation:
                return
            self._loading = False
            self._error = PriceFeedError(str(exc))
            logger.warning("Price tick for %s failed: %s", symbol, exc)
            for listener in list(self._error_listeners):
                listener(self._error)
            return
        if generation != self._generation:
            return
        self._loading = False
        self._data = data
        self._error = None
        for listener in list(self._listeners):
            listener(data)
