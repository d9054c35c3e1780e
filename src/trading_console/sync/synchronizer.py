"""Periodic reconciliation of the account view with the trading service."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, List, Optional, Protocol, Sequence

from trading_console.config.models import ConsoleSettings
from trading_console.core.models import (
    ConnectionStatus,
    PerformanceMetrics,
    Position,
    TradingSignal,
    Transaction,
)
from trading_console.errors import SyncError
from trading_console.scheduler.poller import PeriodicTask

logger = logging.getLogger(__name__)

RESOURCES = ("positions", "transactions", "metrics", "connection_status", "signals")

UpdateListener = Callable[[str, Any], None]
ErrorListener = Callable[[SyncError], None]


class AccountService(Protocol):
    async def get_positions(self) -> List[Position]: ...

    async def get_transactions(self, limit: int = 50) -> List[Transaction]: ...

    async def get_performance(self) -> Optional[PerformanceMetrics]: ...

    async def get_connection_status(self) -> ConnectionStatus: ...

    async def get_signals(self, limit: int = 50) -> List[TradingSignal]: ...

    async def get_balance(self) -> float: ...


@dataclass(slots=True)
class AccountSnapshot:
    positions: List[Position] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    metrics: Optional[PerformanceMetrics] = None
    connection_status: ConnectionStatus = field(default_factory=ConnectionStatus.offline)
    signals: List[TradingSignal] = field(default_factory=list)

    @property
    def open_positions(self) -> List[Position]:
        return [p for p in self.positions if p.is_open]

    @property
    def closed_positions(self) -> List[Position]:
        return [p for p in self.positions if not p.is_open]


def same_ids(current: Sequence[Any], incoming: Sequence[Any]) -> bool:
    """Collections are unchanged when their id sequences match."""
    if len(current) != len(incoming):
        return False
    return all(a.id == b.id for a, b in zip(current, incoming))


def same_content(current: Sequence[Any], incoming: Sequence[Any]) -> bool:
    return list(current) == list(incoming)


class LiveDataSynchronizer:
    def __init__(
        self,
        service: AccountService,
        settings: ConsoleSettings | None = None,
    ) -> None:
        self._service = service
        self._settings = settings or ConsoleSettings()
        self._snapshot = AccountSnapshot()
        self._listeners: List[UpdateListener] = []
        self._error_listeners: List[ErrorListener] = []
        self._inflight: asyncio.Task | None = None
        self._poller: PeriodicTask | None = None
        self._last_error: Optional[SyncError] = None
        self._loading = True
        if self._settings.sync.change_detection == "content":
            self._collection_unchanged = same_content
        else:
            self._collection_unchanged = same_ids

    @property
    def snapshot(self) -> AccountSnapshot:
        return self._snapshot

    @property
    def last_error(self) -> Optional[SyncError]:
        return self._last_error

    @property
    def loading(self) -> bool:
        return self._loading

    def add_listener(self, listener: UpdateListener) -> None:
        self._listeners.append(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def start(self) -> None:
        if self._poller is None:
            self._poller = PeriodicTask(
                name="live-data-sync",
                interval=self._settings.polling.sync_interval_seconds,
                callback=lambda: self.refresh(force=False),
            )
        self._poller.start()

    async def stop(self) -> None:
        if self._poller is not None:
            await self._poller.stop()
        task, self._inflight = self._inflight, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def refresh(self, force: bool = True) -> Optional[FrozenSet[str]]:
        """Run one cycle and return the names of resources that changed.

        With `force`, a cycle already in flight is cancelled and replaced, so
        results requested after a user action are never overtaken by an older
        fetch. Without it the caller joins the in-flight cycle. Returns None
        when this caller's cycle was superseded before it could apply.
        """
        task = self._inflight
        if task is not None and not task.done():
            if force:
                task.cancel()
                task = None
        else:
            task = None
        if task is None:
            task = asyncio.create_task(self._cycle(), name="live-data-cycle")
            self._inflight = task

        await asyncio.wait({task})
        if self._inflight is task:
            self._inflight = None
        if task.cancelled():
            return None
        return task.result()

    async def fetch_balance(self) -> Optional[float]:
        try:
            return await self._service.get_balance()
        except Exception as exc:
            logger.warning("Balance fetch failed: %s", exc)
            return None

    async def _cycle(self) -> FrozenSet[str]:
        limits = self._settings.limits
        self._loading = True
        try:
            results = await asyncio.gather(
                self._service.get_positions(),
                self._service.get_transactions(limits.transactions),
                self._service.get_performance(),
                self._service.get_connection_status(),
                self._service.get_signals(limits.signals),
                return_exceptions=True,
            )
        finally:
            self._loading = False

        failures = [
            (name, result)
            for name, result in zip(RESOURCES, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            return self._fail(failures)

        positions, transactions, metrics, status, signals = results
        self._last_error = None
        return self._apply(
            AccountSnapshot(
                positions=positions,
                transactions=transactions,
                metrics=metrics,
                connection_status=status,
                signals=signals,
            )
        )

    def _fail(self, failures: List[tuple[str, BaseException]]) -> FrozenSet[str]:
        for name, exc in failures:
            logger.error("Fetching %s failed: %s", name, exc)
        name, first = failures[0]
        error = SyncError(str(first) or f"Failed to fetch {name}")
        self._last_error = error
        changed = self._apply(AccountSnapshot())
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception as exc:
                logger.exception("Sync error listener failed: %s", exc)
        return changed

    def _apply(self, incoming: AccountSnapshot) -> FrozenSet[str]:
        current = self._snapshot
        changed: List[str] = []
        for name in ("positions", "transactions", "signals"):
            if not self._collection_unchanged(getattr(current, name), getattr(incoming, name)):
                setattr(current, name, getattr(incoming, name))
                changed.append(name)
        for name in ("metrics", "connection_status"):
            if getattr(current, name) != getattr(incoming, name):
                setattr(current, name, getattr(incoming, name))
                changed.append(name)

        for name in changed:
            for listener in list(self._listeners):
                try:
                    listener(name, getattr(current, name))
                except Exception as exc:
                    logger.exception("Sync listener failed for %s: %s", name, exc)
        if changed:
            logger.debug("Sync cycle updated %s", ", ".join(changed))
        return frozenset(changed)
