"""
Runtime Configuration

Central configuration for ledger access, retry budgets and batch anchoring.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Optional
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass
class LedgerConfig:
    """Configuration for the ledger read endpoint and its retry budget."""
    rpc_url: Optional[str] = None
    contract_address: Optional[str] = None
    timeout: float = 10.0
    max_retries: int = 3
    retry_delay: float = 0.5
    backoff_factor: float = 2.0
    max_retry_delay: float = 8.0


@dataclass
class AnchoringConfig:
    """Configuration for batch assembly and anchoring submissions."""
    # How long anchor_batch waits before reporting the batch as pending
    submit_timeout_s: float = 120.0
    max_batch_size: int = 10_000
    # Thread pool size for anchoring submissions (None = 4 workers)
    max_workers: Optional[int] = None


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {value!r}")


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}")


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration.

    Can be loaded from:
    - Environment variables (a .env file is honoured)
    - YAML file
    - Programmatic construction
    """
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    anchoring: AnchoringConfig = field(default_factory=AnchoringConfig)
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - CERTANCHOR_LEDGER_RPC_URL: JSON-RPC endpoint of the ledger
        - CERTANCHOR_CONTRACT_ADDRESS: Address of the root registry contract
        - CERTANCHOR_LEDGER_TIMEOUT: Per-attempt ledger timeout (seconds)
        - CERTANCHOR_LEDGER_MAX_RETRIES: Retries after the first attempt
        - CERTANCHOR_LEDGER_RETRY_DELAY: Initial backoff delay (seconds)
        - CERTANCHOR_ANCHOR_TIMEOUT: Wait for an anchoring submission (seconds)
        - CERTANCHOR_MAX_BATCH_SIZE: Maximum credentials per batch
        """
        overrides: dict[str, Any] = {}

        # Ledger settings
        if os.getenv("CERTANCHOR_LEDGER_RPC_URL"):
            overrides.setdefault("ledger", {})["rpc_url"] = os.getenv("CERTANCHOR_LEDGER_RPC_URL")
        if os.getenv("CERTANCHOR_CONTRACT_ADDRESS"):
            overrides.setdefault("ledger", {})["contract_address"] = os.getenv("CERTANCHOR_CONTRACT_ADDRESS")
        timeout = _env_float("CERTANCHOR_LEDGER_TIMEOUT")
        if timeout is not None:
            overrides.setdefault("ledger", {})["timeout"] = timeout
        max_retries = _env_int("CERTANCHOR_LEDGER_MAX_RETRIES")
        if max_retries is not None:
            overrides.setdefault("ledger", {})["max_retries"] = max_retries
        retry_delay = _env_float("CERTANCHOR_LEDGER_RETRY_DELAY")
        if retry_delay is not None:
            overrides.setdefault("ledger", {})["retry_delay"] = retry_delay

        # Anchoring settings
        anchor_timeout = _env_float("CERTANCHOR_ANCHOR_TIMEOUT")
        if anchor_timeout is not None:
            overrides.setdefault("anchoring", {})["submit_timeout_s"] = anchor_timeout
        max_batch_size = _env_int("CERTANCHOR_MAX_BATCH_SIZE")
        if max_batch_size is not None:
            overrides.setdefault("anchoring", {})["max_batch_size"] = max_batch_size

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        ledger_data = data.get("ledger", {}) or {}
        anchoring_data = data.get("anchoring", {}) or {}

        ledger = LedgerConfig(**ledger_data) if ledger_data else LedgerConfig()
        anchoring = AnchoringConfig(**anchoring_data) if anchoring_data else AnchoringConfig()

        return cls(
            ledger=ledger,
            anchoring=anchoring,
            extra=data.get("extra", {}) or {},
        )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)

        if "ledger" in overrides:
            for key, value in overrides["ledger"].items():
                setattr(new_config.ledger, key, value)

        if "anchoring" in overrides:
            for key, value in overrides["anchoring"].items():
                setattr(new_config.anchoring, key, value)

        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "ledger": {
                "rpc_url": self.ledger.rpc_url,
                "contract_address": self.ledger.contract_address,
                "timeout": self.ledger.timeout,
                "max_retries": self.ledger.max_retries,
                "retry_delay": self.ledger.retry_delay,
                "backoff_factor": self.ledger.backoff_factor,
                "max_retry_delay": self.ledger.max_retry_delay,
            },
            "anchoring": {
                "submit_timeout_s": self.anchoring.submit_timeout_s,
                "max_batch_size": self.anchoring.max_batch_size,
                "max_workers": self.anchoring.max_workers,
            },
            "extra": self.extra,
        }


# Global default configuration
_default_config: Optional[RuntimeConfig] = None


def get_default_config() -> RuntimeConfig:
    """Get the default runtime configuration."""
    global _default_config
    if _default_config is None:
        _default_config = RuntimeConfig.from_env()
    return _default_config


def set_default_config(config: Optional[RuntimeConfig]) -> None:
    """Set (or with None, reset) the default runtime configuration."""
    global _default_config
    _default_config = config
