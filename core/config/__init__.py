"""
Runtime Configuration Module

Provides configuration loading and management for ledger access and anchoring.
"""

from .runtime import (
    AnchoringConfig,
    LedgerConfig,
    RuntimeConfig,
    get_default_config,
    set_default_config,
)

__all__ = [
    "AnchoringConfig",
    "LedgerConfig",
    "RuntimeConfig",
    "get_default_config",
    "set_default_config",
]
