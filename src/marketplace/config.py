"""Runtime tunables for the marketplace services.

Read once from the environment at import time. Protean's own settings
(databases, brokers, event processing) live in ``domain.toml``.
"""

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    low_stock_threshold: int = 10
    recent_orders_limit: int = 5
    default_page_limit: int = 10
    max_page_limit: int = 100
    default_currency: str = "INR"
    fanout_workers: int = 5
    store_chunk_size: int = 500

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            low_stock_threshold=_int_env("LOW_STOCK_THRESHOLD", cls.low_stock_threshold),
            recent_orders_limit=_int_env("DASHBOARD_RECENT_ORDERS", cls.recent_orders_limit),
            default_page_limit=_int_env("DEFAULT_PAGE_LIMIT", cls.default_page_limit),
            max_page_limit=_int_env("MAX_PAGE_LIMIT", cls.max_page_limit),
            default_currency=os.getenv("DEFAULT_CURRENCY", cls.default_currency),
            fanout_workers=_int_env("FANOUT_WORKERS", cls.fanout_workers),
            store_chunk_size=_int_env("STORE_CHUNK_SIZE", cls.store_chunk_size),
        )


settings = Settings.from_env()
