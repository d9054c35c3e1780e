"""Operator-facing notices and tables rendered with Rich."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from trading_console.core.models import Position, RealTimePriceData, TradingSignal
from trading_console.sync.synchronizer import AccountSnapshot


def format_price(price: float) -> str:
    return f"{price:.6f}" if price < 1 else f"{price:.2f}"


@dataclass(frozen=True, slots=True)
class NoticeStyle:
    color: str
    title: str


_NOTICE_STYLES = {
    "info": NoticeStyle("cyan", "Info"),
    "success": NoticeStyle("green", "Success"),
    "warning": NoticeStyle("yellow", "Warning"),
    "error": NoticeStyle("red", "Error"),
}


class ConsoleLogger:
    """Operator notices: a titled message, optionally with a details panel."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def notify(
        self,
        description: str,
        *,
        level: str = "info",
        title: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        style = _NOTICE_STYLES.get(level, _NOTICE_STYLES["info"])
        heading = f"{title or style.title}: {description}"
        if not details:
            self._console.print(f"[bold {style.color}]{heading}[/bold {style.color}]")
            return
        table = Table.grid(expand=True)
        table.add_column(justify="right", style="bold")
        table.add_column(ratio=1)
        for key, value in details.items():
            table.add_row(str(key), str(value))
        self._console.print(Panel(table, title=f"[bold]{heading}", border_style=style.color))

    def info(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.notify(message, level="info", details=details)

    def success(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.notify(message, level="success", details=details)

    def warning(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.notify(message, level="warning", details=details)

    def failure(self, action: str, exc: Exception) -> None:
        """Report a failed operator action; the operator retries by repeating it."""
        self.notify(
            action,
            level="error",
            details={"error": str(exc) or type(exc).__name__, "kind": type(exc).__name__},
        )

    def log_signal(self, signal: TradingSignal) -> None:
        table = Table(title=f"Signal {signal.symbol}", show_lines=True)
        table.add_column("Field")
        table.add_column("Value")
        table.add_row("Direction", signal.direction.value)
        table.add_row("Entry", format_price(signal.entry))
        table.add_row("Stop Loss", format_price(signal.sl))
        table.add_row("Take Profit", format_price(signal.tp))
        table.add_row("R:R", f"{signal.rr:.2f}")
        table.add_row("Confidence", f"{signal.confidence:.0f}%")
        table.add_row("Status", signal.status.value if signal.status else "-")
        if signal.timeframes_analyzed:
            table.add_row("Timeframes", ", ".join(signal.timeframes_analyzed))
        if signal.thoughts:
            table.add_row("Rationale", signal.thoughts)
        self._console.print(table)

    def log_position(self, position: Position) -> None:
        table = Table(title=f"Position {position.symbol}", show_lines=True)
        for field, value in [
            ("Direction", position.direction.value),
            ("Size", f"{position.size:.4f}"),
            ("Entry", format_price(position.entry_price)),
            ("Current", format_price(position.current_price)),
            ("PnL", f"{position.pnl:.2f} ({position.pnl_percentage:.2f}%)"),
            ("Status", position.status.value),
        ]:
            table.add_row(field, value)
        self._console.print(table)

    def log_price(self, data: RealTimePriceData) -> None:
        style = "green" if data.percent_change24h >= 0 else "red"
        self._console.print(
            f"[bold]{data.symbol}[/bold] {format_price(data.current_price)} "
            f"[{style}]{data.percent_change24h:+.2f}%[/{style}] vol {data.volume24h:,.0f}"
        )

    def log_snapshot(self, snapshot: AccountSnapshot) -> None:
        status = snapshot.connection_status
        table = Table(title="Account", show_lines=True)
        table.add_column("Resource")
        table.add_column("Value")
        table.add_row(
            "Connections",
            " ".join(
                f"{name}:{'up' if ok else 'down'}"
                for name, ok in (
                    ("binance", status.binance),
                    ("openai", status.openai),
                    ("database", status.database),
                )
            ),
        )
        table.add_row("Open positions", str(len(snapshot.open_positions)))
        table.add_row("Closed positions", str(len(snapshot.closed_positions)))
        table.add_row("Transactions", str(len(snapshot.transactions)))
        table.add_row("Signals", str(len(snapshot.signals)))
        if snapshot.metrics is not None:
            metrics = snapshot.metrics
            table.add_row("Daily PnL", f"{metrics.daily_pnl:.2f} ({metrics.daily_pnl_percentage:.2f}%)")
            table.add_row("Win rate", f"{metrics.win_rate:.1f}%")
        self._console.print(table)
