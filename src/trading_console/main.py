from __future__ import annotations

import argparse
import asyncio
import logging

from trading_console.config.loader import load_settings
from trading_console.config.models import ConsoleSettings
from trading_console.console import OperatorConsole
from trading_console.monitoring.logger import ConsoleLogger


async def run_app(settings: ConsoleSettings, symbol: str | None, run_minutes: float) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    notifier = ConsoleLogger()
    console = OperatorConsole(settings, notifier=notifier)
    if symbol:
        await console.update_config({"selected_symbol": symbol})
    console.prices.add_listener(notifier.log_price)
    console.sync.add_listener(lambda name, _value: notifier.info(f"Updated {name}"))

    await console.start()
    try:
        await asyncio.sleep(run_minutes * 60)
        notifier.log_snapshot(console.sync.snapshot)
    finally:
        await console.stop()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Trading operator console")
    parser.add_argument("--config", type=str, help="Path to YAML/JSON settings", default=None)
    parser.add_argument("--symbol", type=str, help="Symbol to observe", default=None)
    parser.add_argument(
        "--minutes",
        type=float,
        default=1.0,
        help="Run duration in minutes",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = load_settings(args.config)
    asyncio.run(run_app(settings, symbol=args.symbol, run_minutes=args.minutes))


if __name__ == "__main__":
    main()
