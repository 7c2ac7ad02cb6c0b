"""
Directed Stake Runtime Configuration

Dataclass config with the usual `from_dict` / `apply_env` / `from_file`
trio. Precedence, lowest first: defaults, TOML `[directed_stake]` table,
`.env` file, process environment.

Environment variable mapping:
    rpc_url          → DIRECTED_STAKE_RPC_URL
    program_id       → DIRECTED_STAKE_PROGRAM_ID
    commitment       → DIRECTED_STAKE_COMMITMENT
    request_timeout  → DIRECTED_STAKE_REQUEST_TIMEOUT
    confirm_timeout  → DIRECTED_STAKE_CONFIRM_TIMEOUT
    poll_interval    → DIRECTED_STAKE_POLL_INTERVAL
    token_decimals   → DIRECTED_STAKE_TOKEN_DECIMALS
    wallet_env       → DIRECTED_STAKE_WALLET_ENV

Keypairs are never read from the TOML file; `wallet_env` only names the
environment variable holding one.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from .constants import (
    COMMITMENT_LEVELS,
    DEFAULT_COMMITMENT,
    DEFAULT_CONFIRM_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RPC_URL,
    DEFAULT_TOKEN_DECIMALS,
    DEFAULT_WALLET_ENV,
)
from .crypto.keys import PublicKey
from .exceptions import ConfigurationError, InvalidKeyError
from .logger import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "DIRECTED_STAKE_"


def environment(dotenv_path: Optional[str] = ".env") -> Dict[str, str]:
    """Merge `.env` values under the process environment."""
    merged = {}
    if dotenv_path:
        merged.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
    merged.update(os.environ)
    return merged


@dataclass
class DirectedStakeConfig:
    """[directed_stake] section."""
    rpc_url: str = DEFAULT_RPC_URL
    program_id: str = ""
    commitment: str = DEFAULT_COMMITMENT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    confirm_timeout: float = DEFAULT_CONFIRM_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    token_decimals: int = DEFAULT_TOKEN_DECIMALS
    wallet_env: str = DEFAULT_WALLET_ENV

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirectedStakeConfig":
        return cls(
            rpc_url=data.get("rpc_url", DEFAULT_RPC_URL),
            program_id=data.get("program_id", ""),
            commitment=data.get("commitment", DEFAULT_COMMITMENT),
            request_timeout=float(data.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
            confirm_timeout=float(data.get("confirm_timeout", DEFAULT_CONFIRM_TIMEOUT)),
            poll_interval=float(data.get("poll_interval", DEFAULT_POLL_INTERVAL)),
            token_decimals=int(data.get("token_decimals", DEFAULT_TOKEN_DECIMALS)),
            wallet_env=data.get("wallet_env", DEFAULT_WALLET_ENV),
        )

    @classmethod
    def from_file(cls, path: Path) -> "DirectedStakeConfig":
        """
        Load the `[directed_stake]` table of a TOML file.

        Raises:
            ConfigurationError: If the file is missing or not valid TOML
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {path}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e
        return cls.from_dict(data.get("directed_stake", {}))

    def apply_env(self, env: Optional[Mapping[str, str]] = None) -> None:
        """Override from environment variables."""
        env = environment() if env is None else env
        try:
            if v := env.get(f"{ENV_PREFIX}RPC_URL"):
                self.rpc_url = v
            if v := env.get(f"{ENV_PREFIX}PROGRAM_ID"):
                self.program_id = v
            if v := env.get(f"{ENV_PREFIX}COMMITMENT"):
                self.commitment = v
            if v := env.get(f"{ENV_PREFIX}REQUEST_TIMEOUT"):
                self.request_timeout = float(v)
            if v := env.get(f"{ENV_PREFIX}CONFIRM_TIMEOUT"):
                self.confirm_timeout = float(v)
            if v := env.get(f"{ENV_PREFIX}POLL_INTERVAL"):
                self.poll_interval = float(v)
            if v := env.get(f"{ENV_PREFIX}TOKEN_DECIMALS"):
                self.token_decimals = int(v)
            if v := env.get(f"{ENV_PREFIX}WALLET_ENV"):
                self.wallet_env = v
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting in environment: {e}") from e

    def validate(self) -> None:
        """
        Check every field.

        Raises:
            ConfigurationError: On the first invalid field
        """
        if not self.program_id:
            raise ConfigurationError(f"program_id is required (set {ENV_PREFIX}PROGRAM_ID)")
        try:
            PublicKey.from_string(self.program_id)
        except InvalidKeyError as e:
            raise ConfigurationError(f"program_id is not a valid public key: {e}") from e
        if self.commitment not in COMMITMENT_LEVELS:
            raise ConfigurationError(
                f"commitment must be one of {', '.join(COMMITMENT_LEVELS)}, got {self.commitment!r}"
            )
        for name in ("request_timeout", "confirm_timeout", "poll_interval"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.token_decimals < 0:
            raise ConfigurationError("token_decimals cannot be negative")

    @property
    def program(self) -> PublicKey:
        return PublicKey.from_string(self.program_id)


def load_config(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> DirectedStakeConfig:
    """
    Build and validate the runtime config.

    Args:
        path: Optional TOML file
        env: Environment mapping (defaults to `.env` merged under os.environ)
        overrides: Explicit values, e.g. from CLI flags; None values are ignored

    Returns:
        Validated DirectedStakeConfig
    """
    config = DirectedStakeConfig.from_file(path) if path else DirectedStakeConfig()
    config.apply_env(env)
    for key, value in (overrides or {}).items():
        if value is not None:
            setattr(config, key, value)
    config.validate()
    logger.debug(f"Loaded config: rpc_url={config.rpc_url} program_id={config.program_id}")
    return config
