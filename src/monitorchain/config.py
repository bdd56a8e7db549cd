"""
Configuration for transaction coordination and node access.

CoordinatorConfig carries every knob consumed by the Submitter, the
Nonce Resolver and the node client. Values can be overridden from the
environment (``MONITORCHAIN_*``), with ``.env`` files loaded through
python-dotenv.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from monitorchain.constants import (
    BACKPRESSURE_POLL_SECONDS,
    DEFAULT_GAS_LIMIT,
    EVENT_POLL_SECONDS,
    GAS_PRICE_MULTIPLIER,
    MAX_IN_FLIGHT,
    PROVIDER_TIMEOUT_SECONDS,
)
from monitorchain.errors import ConfigurationError
from monitorchain.utils.retry import RetryConfig

__all__ = ["CoordinatorConfig", "ENV_PREFIX"]

ENV_PREFIX = "MONITORCHAIN_"


class CoordinatorConfig(BaseModel):
    """
    Settings for one transaction coordinator (one node connection).

    Example:
        >>> config = CoordinatorConfig(max_in_flight=20, gas_price_multiplier=1.5)
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    max_in_flight: int = Field(
        default=MAX_IN_FLIGHT,
        ge=1,
        description="Submitted transactions allowed before new submissions wait",
    )
    backpressure_poll_interval: float = Field(
        default=BACKPRESSURE_POLL_SECONDS,
        gt=0,
        description="Seconds between in-flight checks while waiting",
    )
    gas_price_multiplier: float = Field(
        default=GAS_PRICE_MULTIPLIER,
        ge=1.0,
        description="Factor applied to the node's suggested gas price",
    )
    gas_limit: str = Field(
        default=DEFAULT_GAS_LIMIT,
        description="Gas limit sent with every transaction (integer as string)",
    )
    default_gas_price_gwei: Optional[str] = Field(
        default=None,
        description="Fixed gas price in gwei; None uses the node's price",
    )
    event_poll_interval: float = Field(
        default=EVENT_POLL_SECONDS,
        gt=0,
        description="Seconds between event filter polls",
    )
    rpc_timeout: int = Field(
        default=PROVIDER_TIMEOUT_SECONDS,
        ge=1,
        description="HTTP provider request timeout in seconds",
    )
    rpc_retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry policy for read-only node queries",
    )

    @field_validator("gas_limit", mode="before")
    @classmethod
    def _gas_limit_is_integer(cls, value: Any) -> str:
        text = str(value)
        if not text.isdigit() or int(text) <= 0:
            raise ValueError("gas_limit must be a positive integer")
        return text

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
        **overrides: Any,
    ) -> "CoordinatorConfig":
        """
        Build a config from ``<prefix><FIELD>`` environment variables.

        Args:
            prefix: Variable prefix (default ``MONITORCHAIN_``)
            environ: Mapping to read instead of ``os.environ``
            dotenv: Load a ``.env`` file first (only when reading os.environ)
            **overrides: Explicit values that win over the environment

        Raises:
            ConfigurationError: If a value fails validation
        """
        if environ is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            if name == "rpc_retry":
                continue
            raw = environ.get(f"{prefix}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)

        try:
            return cls(**values)
        except ValueError as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e
