"""Mirrors of the trading service's records, parsed from its camelCase JSON."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TradeDirection(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class SignalStatus(str, Enum):
    ACTIVE = "Active"
    WAITING = "Waiting"
    PROCESSING = "Processing"
    EXECUTED = "Executed"
    COMPLETED = "Completed"
    FAILED = "Failed"


class PositionStatus(str, Enum):
    OPEN = "Open"
    CLOSED = "Closed"


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"


class TransactionStatus(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"
    PENDING = "Pending"


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize back to the service's wire format."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class TradingSignal(WireModel):
    id: Optional[str] = Field(default=None, alias="_id")
    symbol: str
    direction: TradeDirection
    entry: float
    sl: float
    tp: float
    rr: float = 0.0
    confidence: float = 0.0
    thoughts: str = ""
    timestamp: str = ""
    leverage: float = 0.0
    status: Optional[SignalStatus] = None
    timeframes_analyzed: Optional[List[str]] = None
    market_data_summary: Optional[Dict[str, str]] = None

    @property
    def is_executed(self) -> bool:
        return self.status == SignalStatus.EXECUTED

    def same_as(self, other: "TradingSignal") -> bool:
        """Identify two copies of one signal, by id when both carry one."""
        if self.id and other.id:
            return self.id == other.id
        return (self.symbol, self.direction, self.entry, self.timestamp) == (
            other.symbol,
            other.direction,
            other.entry,
            other.timestamp,
        )


class Position(WireModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(alias="_id")
    symbol: str
    direction: TradeDirection
    size: float
    entry_price: float
    current_price: float = 0.0
    pnl: float = 0.0
    pnl_percentage: float = 0.0
    leverage: float = 1.0
    timestamp: str = ""
    status: PositionStatus = PositionStatus.OPEN

    @property
    def is_open(self) -> bool:
        return self.status == PositionStatus.OPEN


class Transaction(WireModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(alias="_id")
    symbol: str
    type: TransactionType
    amount: float
    price: float
    timestamp: str = ""
    status: TransactionStatus
    pnl: Optional[float] = None


class PerformanceMetrics(WireModel):
    model_config = ConfigDict(frozen=True)

    daily_pnl: float = Field(default=0.0, alias="dailyPnL")
    daily_pnl_percentage: float = Field(default=0.0, alias="dailyPnLPercentage")
    all_time_pnl: float = Field(default=0.0, alias="allTimePnL")
    all_time_pnl_percentage: float = Field(default=0.0, alias="allTimePnLPercentage")
    win_rate: float = 0.0
    total_trades: int = 0
    win_streak: int = 0
    loss_streak: int = 0
    current_streak: int = 0
    current_streak_type: str = "none"
    total_transactions: int = 0
    total_amount: float = 0.0
    average_transaction_size: float = 0.0
    transaction_count_by_type: Dict[str, int] = Field(default_factory=dict)
    winning_trades: int = 0
    losing_trades: int = 0
    open_positions: int = 0


class ConnectionStatus(WireModel):
    model_config = ConfigDict(frozen=True)

    binance: bool = False
    openai: bool = False
    database: bool = False
    last_checked: str = ""

    @classmethod
    def offline(cls) -> "ConnectionStatus":
        return cls()


class RealTimePriceData(WireModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    current_price: float
    timestamp: str = ""
    volume24h: float = Field(default=0.0, alias="volume24h")
    percent_change24h: float = Field(default=0.0, alias="percentChange24h")


class PriceQuote(WireModel):
    model_config = ConfigDict(frozen=True)

    price: float
    change24h: float = Field(default=0.0, alias="change24h")
    volume: float = 0.0


class ExecutionReceipt(WireModel):
    success: bool
    transaction_id: str = ""
    message: Optional[str] = None


class ManualExecutionReceipt(WireModel):
    success: bool
    signal: Optional[TradingSignal] = None
    transaction_id: str = ""
    message: Optional[str] = None


class PositionReceipt(WireModel):
    success: bool
    position: Optional[Position] = None
    message: Optional[str] = None
