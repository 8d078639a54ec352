"""
Auction configuration parameters.

Defines the registry-wide timing and pricing rules. Values come from, in
increasing priority: an optional JSON file, a .env file, the process
environment (DUTCH_AUCTION_* variables) and explicit overrides.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from dutch_auction.core.errors import InvalidConfiguration

ENV_PREFIX = "DUTCH_AUCTION_"

DEFAULT_AUCTION_LENGTH = 24 * 3600       # 1 day
DEFAULT_AUCTION_COOLDOWN = 5 * 24 * 3600  # 5 days


class AuctionConfig(BaseModel):
    """Registry-wide auction parameters"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Timing (seconds)
    auction_length: int = Field(DEFAULT_AUCTION_LENGTH, gt=0)
    auction_cooldown: int = Field(DEFAULT_AUCTION_COOLDOWN, ge=0)

    # Value of a whole lot at kick time, in whole settlement tokens
    starting_price: int = Field(..., gt=0)

    # Variant flags
    has_cooldown: bool = True
    has_minimum_price: bool = False

    # take() on a sold-out live window returns 0 instead of raising
    empty_take_noop: bool = False

    @model_validator(mode="after")
    def _check_window(self) -> "AuctionConfig":
        if self.has_cooldown and self.auction_length >= self.auction_cooldown:
            raise ValueError(
                f"auction_length ({self.auction_length}) must be shorter than "
                f"auction_cooldown ({self.auction_cooldown})"
            )
        return self

    @classmethod
    def create(cls, **values: Any) -> "AuctionConfig":
        """Validate values, raising InvalidConfiguration on failure."""
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise InvalidConfiguration(str(e)) from e

    def updated(self, **changes: Any) -> "AuctionConfig":
        """Return a revalidated copy with `changes` applied."""
        values = self.model_dump()
        values.update(changes)
        return AuctionConfig.create(**values)


def _strip_prefix(source: Dict[str, Optional[str]], prefix: str) -> Dict[str, str]:
    values = {}
    for key, value in source.items():
        if value is None or not key.upper().startswith(prefix):
            continue
        values[key[len(prefix):].lower()] = value
    return values


def load_config(
    config_path: Optional[str] = None,
    env_file: Optional[str] = ".env",
    env_prefix: str = ENV_PREFIX,
    **overrides: Any,
) -> AuctionConfig:
    """
    Load configuration from file, .env, environment and overrides.

    Args:
        config_path: Optional JSON file with field names as keys
        env_file: .env file read through python-dotenv (skipped if missing)
        env_prefix: Prefix of environment variables to consider
        **overrides: Explicit values, highest priority

    Returns:
        Validated AuctionConfig

    Raises:
        InvalidConfiguration: if the merged values do not validate
    """
    values: Dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        try:
            values.update(json.loads(path.read_text()))
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidConfiguration(f"Cannot read config file {path}: {e}") from e

    if env_file and Path(env_file).exists():
        values.update(_strip_prefix(dotenv_values(env_file), env_prefix))

    values.update(_strip_prefix(dict(os.environ), env_prefix))
    values.update({k: v for k, v in overrides.items() if v is not None})

    return AuctionConfig.create(**values)


__all__ = [
    "AuctionConfig",
    "load_config",
    "ENV_PREFIX",
    "DEFAULT_AUCTION_LENGTH",
    "DEFAULT_AUCTION_COOLDOWN",
]
