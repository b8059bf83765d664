"""Configuration system using pydantic-settings with environment variable loading.

Defaults describe Sonne Finance on Optimism, whose protocol revenue is
topped up by VELO emissions accrued to its veVELO position.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ChainSettings(BaseSettings):
    """RPC connection and log scanning parameters for the single target chain."""

    model_config = SettingsConfigDict(env_prefix="CHAIN_")

    name: str = "optimism"  # price key prefix, e.g. "optimism:0x..."
    rpc_url: str = "https://mainnet.optimism.io"
    log_chunk_size: int = 10_000  # max blocks per eth_getLogs call
    # Map timestamps after the head block to the head instead of failing
    clamp_to_head: bool = False
    # Markets without underlying() (native ETH) are priced as WETH
    native_underlying: str = "0x4200000000000000000000000000000000000006"


class ProtocolSettings(BaseSettings):
    """Fixed protocol addresses and the reward estimator policy."""

    model_config = SettingsConfigDict(env_prefix="PROTOCOL_")

    comptroller: str = "0x60CF091cD3f50420d50fD7f707414d0DF4751C58"
    gauge: str = "0x3786d4419d6b4a902607ceb2bb319bb336735df8"
    reward_token: str = "0x3c8b650257cfb5f272f799f5e2b4e65093a11a05"
    reward_claimant: str = "0x17063ad4e83b0aba4ca0f3fc3a9794e807a00ed7"
    # What to do when the last reward checkpoint is at or after the run time
    zero_elapsed_policy: Literal["error", "zero"] = "error"


class PriceSettings(BaseSettings):
    """DefiLlama coins API settings."""

    model_config = SettingsConfigDict(env_prefix="PRICES_")

    base_url: str = "https://coins.llama.fi"
    timeout_seconds: float = 15.0
    batch_size: int = 50  # coins per request, keeps the URL short
    search_width: str = "4h"  # how far from the timestamp a price may be


class ApiSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = False


class RunSettings(BaseSettings):
    """One-shot mode: compute a single day and print it."""

    model_config = SettingsConfigDict(env_prefix="RUN_")

    timestamp: int | None = None  # None means the last completed UTC day


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    chain: ChainSettings = ChainSettings()
    protocol: ProtocolSettings = ProtocolSettings()
    prices: PriceSettings = PriceSettings()
    api: ApiSettings = ApiSettings()
    run: RunSettings = RunSettings()
