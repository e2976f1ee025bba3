"""Configuration settings for the payment verification service."""

from decimal import Decimal
from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class ExtraChainConfig(BaseModel):
    """An additional EVM chain supplied through EXTRA_EVM_CHAINS (JSON)."""

    name: str
    rpc_url: str
    asset_address: str
    asset_decimals: int = 6
    chain_id: int
    explorer_url: str | None = None


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Base
    base_rpc_url: str = "https://mainnet.base.org"
    base_usdc_address: str = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
    base_usdc_decimals: int = 6
    base_chain_id: int = 8453

    # Scroll
    scroll_rpc_url: str = "https://rpc.scroll.io"
    scroll_usdc_address: str = "0x06eFdBFf2a14a7c8E15944D1F4A48F9F95F663A4"
    scroll_usdc_decimals: int = 6
    scroll_chain_id: int = 534352

    # Additional EVM chains, e.g. {"polygon": {"name": "Polygon", ...}}
    extra_evm_chains: dict[str, ExtraChainConfig] = {}

    # Solana
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    solana_usdc_mint: str = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
    solana_usdc_decimals: int = 6

    # Receiving addresses, one per chain family
    wallet_address: str | None = None
    solana_address: str | None = None

    # Price of one redemption in USDC
    payment_price: Decimal = Decimal("3")

    # Timeouts (seconds). rpc_timeout bounds one JSON-RPC call; an EVM chain
    # makes up to two calls and Solana one. In sequential mode a slow but
    # responsive node can therefore hold a chain for 2 * rpc_timeout, and
    # verification_timeout caps the whole search: chains not reached by then
    # are reported as unreachable. Keep verification_timeout at or above the
    # sum over chains, or enable parallel_probes.
    rpc_timeout: float = 10.0
    # None derives the budget from rpc_timeout and the registered chains
    verification_timeout: float | None = None
    parallel_probes: bool = False

    # Supabase (optional - in-memory replay store when unset)
    supabase_url: str | None = None
    supabase_secret_key: str | None = None
    used_transactions_table: str = "used_transactions"

    # Rate limiting (slowapi syntax); forwarded headers are only trusted
    # from these comma-separated CIDRs
    verify_rate_limit: str = "30/minute"
    redeem_rate_limit: str = "10/minute"
    trusted_proxy_cidrs: str = "10.0.0.0/8,172.16.0.0/12,192.168.0.0/16,127.0.0.0/8,::1/128"

    # App
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
