"""Wire the console components together and report outcomes to the operator."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from trading_console.api.client import TradingApiClient
from trading_console.config.models import ConsoleSettings
from trading_console.config.trading import TradingConfig, TradingConfigStore
from trading_console.core.models import Position, TradingSignal
from trading_console.errors import ConsoleError, SyncError
from trading_console.feeds.price_feed import PriceFeedSubscriber
from trading_console.monitoring.logger import ConsoleLogger
from trading_console.positions.workflow import (
    CloseSuggestion,
    OpenPositionRequest,
    PositionCloseWorkflow,
)
from trading_console.signals.lifecycle import SignalLifecycleController
from trading_console.sync.synchronizer import LiveDataSynchronizer


class OperatorConsole:
    """Operator actions never raise; failures become error notices."""

    def __init__(
        self,
        settings: ConsoleSettings,
        client: TradingApiClient | None = None,
        notifier: ConsoleLogger | None = None,
        config: TradingConfig | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or TradingApiClient(settings.api)
        self._notifier = notifier or ConsoleLogger()
        self.config = TradingConfigStore(config)
        self.prices = PriceFeedSubscriber(
            self._client, interval=settings.polling.price_interval_seconds
        )
        self.signals = SignalLifecycleController(self._client)
        self.sync = LiveDataSynchronizer(self._client, settings)
        self.positions = PositionCloseWorkflow(
            self._client,
            prices=self.prices,
            on_changed=self.sync.refresh,
            lookup_timeout=settings.polling.price_lookup_timeout_seconds,
        )
        self.sync.add_listener(self._on_sync_update)
        self.sync.add_error_listener(self._on_sync_error)

    async def start(self) -> None:
        await self.prices.subscribe(self.config.snapshot.selected_symbol)
        self.sync.start()
        balance = await self.sync.fetch_balance()
        if balance is not None:
            self._notifier.info(f"USDT balance: {balance:,.2f}")

    async def stop(self) -> None:
        await self.prices.close()
        await self.sync.stop()
        await self._client.close()

    async def update_config(self, changes: Mapping[str, Any]) -> bool:
        previous = self.config.snapshot
        try:
            current = self.config.update(changes)
        except ConsoleError as exc:
            self._notifier.failure("Invalid configuration", exc)
            return False
        if current.selected_symbol != previous.selected_symbol:
            await self.prices.subscribe(current.selected_symbol)
        return True

    async def generate_signal(self) -> Optional[TradingSignal]:
        try:
            signal = await self.signals.generate(self.config.snapshot)
        except ConsoleError as exc:
            self._notifier.failure("Signal generation failed", exc)
            return None
        self._notifier.success(
            f"New {signal.direction.value} signal for {signal.symbol} "
            f"with {signal.confidence:.0f}% confidence"
        )
        self._notifier.log_signal(signal)
        return signal

    async def execute_current(self) -> bool:
        signal = self.signals.current_signal
        if signal is None:
            self._notifier.warning("No signal to execute")
            return False
        try:
            await self.signals.execute(signal, self.config.snapshot.is_testnet)
        except ConsoleError as exc:
            self._notifier.failure("Execution failed", exc)
            return False
        self._notifier.success(
            f"Executed {signal.direction.value} trade for {signal.symbol}"
        )
        await self.sync.refresh()
        return True

    def dismiss_signal(self) -> bool:
        try:
            self.signals.dismiss()
        except ConsoleError as exc:
            self._notifier.warning("Signal is still in progress", details={"error": str(exc)})
            return False
        return True

    async def execute_manual(self, raw_text: str) -> bool:
        try:
            executed = await self.signals.execute_manual(raw_text, self.config.snapshot.is_testnet)
        except ConsoleError as exc:
            self._notifier.failure("Manual execution failed", exc)
            return False
        self._notifier.success(
            f"Executed manual {executed.signal.direction.value} trade for {executed.signal.symbol}"
        )
        await self.sync.refresh()
        return True

    async def begin_close(self, position: Position) -> Optional[CloseSuggestion]:
        try:
            return await self.positions.begin_close(position)
        except ConsoleError as exc:
            self._notifier.failure("Position already closed", exc)
            return None

    def cancel_close(self) -> None:
        self.positions.cancel_close()

    async def close_position(self, position: Position, close_price: Any) -> Optional[Position]:
        try:
            closed = await self.positions.submit_close(position, close_price)
        except ConsoleError as exc:
            self._notifier.failure("Close failed", exc)
            return None
        self._notifier.success(
            f"Closed {position.direction.value} position for {position.symbol} "
            f"with PnL: {closed.pnl:.2f}"
        )
        return closed

    async def open_position(self, request: OpenPositionRequest) -> Optional[Position]:
        try:
            position = await self.positions.submit_open(request)
        except ConsoleError as exc:
            self._notifier.failure("Open failed", exc)
            return None
        self._notifier.log_position(position)
        return position

    async def chart_prompt(self) -> Optional[str]:
        try:
            return await self.signals.request_chart_prompt(self.config.snapshot)
        except ConsoleError as exc:
            self._notifier.failure("Chart prompt failed", exc)
            return None

    def _on_sync_update(self, name: str, value: Any) -> None:
        if name == "positions":
            self.positions.reconcile(value)

    def _on_sync_error(self, error: SyncError) -> None:
        self._notifier.failure("Failed to fetch trading data", error)
