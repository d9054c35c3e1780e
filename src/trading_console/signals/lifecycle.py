"""Signal lifecycle: generation, review, execution."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence, Union

from trading_console.config.trading import TradingConfig
from trading_console.core.models import (
    ExecutionReceipt,
    ManualExecutionReceipt,
    SignalStatus,
    TradeDirection,
    TradingSignal,
)
from trading_console.errors import (
    AlreadyExecutedError,
    ConsoleApiError,
    ExecutionError,
    InvalidTransitionError,
    ParseError,
    SignalGenerationError,
)

logger = logging.getLogger(__name__)


class SignalService(Protocol):
    async def generate_signal(
        self, symbol: str, model: str, timeframes: Sequence[str] | None = None
    ) -> TradingSignal: ...

    async def execute_trade(self, signal: TradingSignal, is_testnet: bool) -> ExecutionReceipt: ...

    async def execute_manual(self, signal_json: str, is_testnet: bool) -> ManualExecutionReceipt: ...

    async def chart_data_prompt(self, symbol: str, timeframes: Sequence[str]) -> str: ...


@dataclass(frozen=True, slots=True)
class Idle:
    pass


@dataclass(frozen=True, slots=True)
class Generating:
    pass


@dataclass(frozen=True, slots=True)
class Ready:
    signal: TradingSignal


@dataclass(frozen=True, slots=True)
class Executing:
    signal: TradingSignal


@dataclass(frozen=True, slots=True)
class ExecutingManual:
    pass


@dataclass(frozen=True, slots=True)
class Executed:
    signal: TradingSignal
    transaction_id: str = ""


@dataclass(frozen=True, slots=True)
class Failed:
    error: Exception


SignalState = Union[Idle, Generating, Ready, Executing, ExecutingManual, Executed, Failed]

_BUSY = (Generating, Executing, ExecutingManual)


class SignalLifecycleController:
    def __init__(self, service: SignalService) -> None:
        self._service = service
        self._state: SignalState = Idle()

    @property
    def state(self) -> SignalState:
        return self._state

    @property
    def current_signal(self) -> TradingSignal | None:
        return getattr(self._state, "signal", None)

    @property
    def busy(self) -> bool:
        return isinstance(self._state, _BUSY)

    async def generate(self, config: TradingConfig) -> TradingSignal:
        if config.is_auto_mode:
            raise InvalidTransitionError("Manual generation is disabled while auto mode is on")
        if self.busy:
            raise InvalidTransitionError(f"Cannot generate while {type(self._state).__name__}")

        self._state = Generating()
        try:
            signal = await self._service.generate_signal(
                symbol=config.selected_symbol,
                model=config.ai_model,
                timeframes=config.selected_timeframes,
            )
        except ConsoleApiError as exc:
            self._state = Idle()
            logger.warning("Signal generation for %s failed: %s", config.selected_symbol, exc)
            raise SignalGenerationError(str(exc)) from exc
        except BaseException:
            self._state = Idle()
            raise

        self._state = Ready(signal)
        if not meets_threshold(signal, config):
            logger.warning(
                "Signal %s %s confidence %.0f%% is below threshold %.0f%%",
                signal.direction.value,
                signal.symbol,
                signal.confidence,
                config.confidence_threshold,
            )
        logger.info(
            "Generated %s signal for %s with %.0f%% confidence",
            signal.direction.value,
            signal.symbol,
            signal.confidence,
        )
        return signal

    async def execute(self, signal: TradingSignal, is_testnet: bool) -> Executed:
        if signal.is_executed or (
            isinstance(self._state, Executed) and self._state.signal.same_as(signal)
        ):
            raise AlreadyExecutedError(f"Signal for {signal.symbol} was already executed")
        if not isinstance(self._state, Ready):
            raise InvalidTransitionError(f"Cannot execute while {type(self._state).__name__}")
        if not self._state.signal.same_as(signal):
            raise InvalidTransitionError("Signal does not match the one awaiting execution")

        self._state = Executing(signal)
        try:
            receipt = await self._service.execute_trade(signal, is_testnet)
        except ConsoleApiError as exc:
            self._state = Ready(signal)
            logger.warning("Execution of %s signal failed: %s", signal.symbol, exc)
            raise ExecutionError(str(exc)) from exc
        except BaseException:
            self._state = Ready(signal)
            raise

        if not receipt.success:
            self._state = Ready(signal)
            raise ExecutionError(receipt.message or "Trade execution failed")

        # The one local status write: only after the service confirmed the trade.
        signal.status = SignalStatus.EXECUTED
        self._state = Executed(signal, receipt.transaction_id)
        logger.info(
            "Executed %s %s (transaction %s, testnet=%s)",
            signal.direction.value,
            signal.symbol,
            receipt.transaction_id,
            is_testnet,
        )
        return self._state

    async def execute_manual(self, raw_text: str, is_testnet: bool) -> Executed:
        parse_manual_signal(raw_text)
        if self.busy:
            raise InvalidTransitionError(f"Cannot execute while {type(self._state).__name__}")

        previous = self._state
        self._state = ExecutingManual()
        try:
            receipt = await self._service.execute_manual(raw_text, is_testnet)
        except ConsoleApiError as exc:
            error = ExecutionError(str(exc))
            self._state = Failed(error)
            logger.warning("Manual execution failed: %s", exc)
            raise error from exc
        except BaseException:
            self._state = previous
            raise

        if not receipt.success or receipt.signal is None:
            error = ExecutionError(receipt.message or "Invalid JSON signal format")
            self._state = Failed(error)
            raise error

        # Derived fields (id, leverage, timestamp) come from the service.
        signal = receipt.signal
        signal.status = SignalStatus.EXECUTED
        self._state = Executed(signal, receipt.transaction_id)
        logger.info("Executed manual %s %s", signal.direction.value, signal.symbol)
        return self._state

    async def request_chart_prompt(self, config: TradingConfig) -> str:
        try:
            return await self._service.chart_data_prompt(
                config.selected_symbol, config.selected_timeframes
            )
        except ConsoleApiError as exc:
            raise SignalGenerationError(f"Failed to fetch chart data: {exc}") from exc

    def dismiss(self) -> None:
        """Drop a finished or failed signal and return to Idle."""
        if self.busy:
            raise InvalidTransitionError(f"Cannot dismiss while {type(self._state).__name__}")
        self._state = Idle()


def meets_threshold(signal: TradingSignal, config: TradingConfig) -> bool:
    return signal.confidence >= config.confidence_threshold


def parse_manual_signal(raw_text: str) -> dict[str, Any]:
    """Check operator-pasted JSON the way the service validates it."""
    if not raw_text or not raw_text.strip():
        raise ParseError("Signal JSON is required")
    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON format: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ParseError("Signal JSON must be an object")

    symbol = payload.get("symbol")
    if not isinstance(symbol, str) or not symbol.strip():
        raise ParseError("Invalid signal: missing symbol")
    direction = payload.get("direction")
    if direction not in {d.value for d in TradeDirection}:
        raise ParseError("Invalid signal: direction must be LONG or SHORT")
    entry = payload.get("entry")
    if isinstance(entry, bool) or not isinstance(entry, (int, float)) or entry <= 0:
        raise ParseError("Invalid signal: entry must be a positive number")
    return payload
