"""Configuration and input loading."""

from swap_cycle_tracker.data.loader import (
    DEFAULT_CONFIG_PATH,
    load_config_data,
    load_engine_config,
    load_transactions,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "load_config_data",
    "load_engine_config",
    "load_transactions",
]
