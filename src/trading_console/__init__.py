"""Client-side orchestration core for the trading operator console."""

__all__ = [
    "api",
    "config",
    "core",
    "feeds",
    "monitoring",
    "positions",
    "scheduler",
    "signals",
    "sync",
]
