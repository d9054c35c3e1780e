# tests/conftest.py
import asyncio
from typing import Any, Dict, List, Optional

import pytest

from trading_console.core.models import (
    ConnectionStatus,
    ExecutionReceipt,
    ManualExecutionReceipt,
    PerformanceMetrics,
    Position,
    PositionReceipt,
    PositionStatus,
    PriceQuote,
    RealTimePriceData,
    TradingSignal,
    Transaction,
)


# ============================================================
# Record factories
# ============================================================

def make_signal(**overrides: Any) -> TradingSignal:
    data = {
        "symbol": "BTCUSDT",
        "direction": "LONG",
        "entry": 65000,
        "sl": 64000,
        "tp": 67000,
        "rr": 2.0,
        "confidence": 80,
        "status": "Active",
        "timestamp": "2025-01-01T00:00:00Z",
    }
    data.update(overrides)
    return TradingSignal.model_validate(data)


def make_position(position_id: str = "p1", **overrides: Any) -> Position:
    data = {
        "_id": position_id,
        "symbol": "BTCUSDT",
        "direction": "LONG",
        "size": 1,
        "entryPrice": 100,
        "currentPrice": 105,
        "leverage": 10,
        "timestamp": "2025-01-01T00:00:00Z",
        "status": "Open",
    }
    data.update(overrides)
    return Position.model_validate(data)


def make_transaction(transaction_id: str, **overrides: Any) -> Transaction:
    data = {
        "_id": transaction_id,
        "symbol": "BTCUSDT",
        "type": "BUY",
        "amount": 1,
        "price": 100,
        "timestamp": "2025-01-01T00:00:00Z",
        "status": "Success",
    }
    data.update(overrides)
    return Transaction.model_validate(data)


# ============================================================
# In-memory trading service
# ============================================================

class FakeTradingService:
    """Duck-typed stand-in for TradingApiClient.

    `failures` maps a method name to the exception it raises, `delays` maps a
    method name (or "get_price_data:<SYMBOL>") to seconds slept before replying.
    """

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.signal = make_signal()
        self.execute_receipt = ExecutionReceipt(success=True, transaction_id="tx-1")
        self.manual_receipt: Optional[ManualExecutionReceipt] = None
        self.close_receipt: Optional[PositionReceipt] = None
        self.create_receipt: Optional[PositionReceipt] = None
        self.positions: List[Position] = []
        self.transactions: List[Transaction] = []
        self.metrics: Optional[PerformanceMetrics] = None
        self.status = ConnectionStatus(
            binance=True, openai=True, database=True, last_checked="2025-01-01T00:00:00Z"
        )
        self.signals: List[TradingSignal] = []
        self.balance = 1250.5
        self.quotes: Dict[str, float] = {}
        self.prices: Dict[str, float] = {}
        self.prompt = "chart data"
        self.closed = False

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def _call(self, name: str, *args: Any, delay_key: Optional[str] = None) -> None:
        self.calls.append((name, args))
        delay = self.delays.get(delay_key or name)
        if delay:
            await asyncio.sleep(delay)
        if name in self.failures:
            raise self.failures[name]

    async def get_binance_price(self, symbol: str) -> PriceQuote:
        await self._call("get_binance_price", symbol)
        return PriceQuote(price=self.quotes.get(symbol, 0.0), change24h=1.5, volume=1000)

    async def get_price_data(self, symbol: str) -> RealTimePriceData:
        await self._call("get_price_data", symbol, delay_key=f"get_price_data:{symbol}")
        return RealTimePriceData(
            symbol=symbol,
            current_price=self.prices.get(symbol, 100.0),
            timestamp="2025-01-01T00:00:00Z",
            volume24h=5000,
            percent_change24h=0.5,
        )

    async def generate_signal(self, symbol, model, timeframes=None) -> TradingSignal:
        await self._call("generate_signal", symbol, model, tuple(timeframes or ()))
        return self.signal

    async def execute_trade(self, signal, is_testnet) -> ExecutionReceipt:
        await self._call("execute_trade", signal, is_testnet)
        return self.execute_receipt

    async def execute_manual(self, signal_json, is_testnet) -> ManualExecutionReceipt:
        await self._call("execute_manual", signal_json, is_testnet)
        if self.manual_receipt is not None:
            return self.manual_receipt
        confirmed = make_signal(_id="sig-manual", leverage=20, status="Active")
        return ManualExecutionReceipt(success=True, signal=confirmed, transaction_id="tx-m")

    async def close_position(self, position_id, close_price) -> PositionReceipt:
        await self._call("close_position", position_id, close_price)
        if self.close_receipt is not None:
            return self.close_receipt
        original = next(p for p in self.positions if p.id == position_id)
        pnl = (close_price - original.entry_price) * original.size
        closed = original.model_copy(
            update={"status": PositionStatus.CLOSED, "pnl": pnl, "current_price": close_price}
        )
        return PositionReceipt(success=True, position=closed, message="Position closed")

    async def create_position(self, payload) -> PositionReceipt:
        await self._call("create_position", payload)
        if self.create_receipt is not None:
            return self.create_receipt
        position = make_position(
            "p-new",
            symbol=payload["symbol"],
            direction=payload["direction"],
            size=payload["size"],
            entryPrice=payload["entryPrice"],
        )
        return PositionReceipt(success=True, position=position, message="Position created")

    async def get_positions(self) -> List[Position]:
        await self._call("get_positions")
        return list(self.positions)

    async def get_transactions(self, limit=50) -> List[Transaction]:
        await self._call("get_transactions", limit)
        return list(self.transactions)

    async def get_performance(self) -> Optional[PerformanceMetrics]:
        await self._call("get_performance")
        return self.metrics

    async def get_connection_status(self) -> ConnectionStatus:
        await self._call("get_connection_status")
        return self.status

    async def get_signals(self, limit=50) -> List[TradingSignal]:
        await self._call("get_signals", limit)
        return list(self.signals)

    async def get_balance(self) -> float:
        await self._call("get_balance")
        return self.balance

    async def chart_data_prompt(self, symbol, timeframes) -> str:
        await self._call("chart_data_prompt", symbol, tuple(timeframes))
        return self.prompt

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def service() -> FakeTradingService:
    return FakeTradingService()
