from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

SUPPORTED_NETWORKS = ("base-sepolia", "solana-devnet")


class Settings(BaseModel):
    wallet_address: str
    payment_network: str = "base-sepolia"
    usdc_contract: str = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
    evm_rpc_url: str = "https://sepolia.base.org"
    solana_rpc_url: str = "https://api.devnet.solana.com"
    solana_private_key: Optional[str] = None

    database_url: Optional[str] = None

    evm_price: int = Field(default=1_000_000, gt=0)
    solana_price: int = Field(default=100_000_000, gt=0)
    payment_timeout_seconds: int = Field(default=1200, gt=0)
    verify_on_chain: bool = True
    confirmation_attempts: int = Field(default=30, ge=1)
    confirmation_interval: float = Field(default=1.0, ge=0)

    api_host: str = "0.0.0.0"
    api_port: int = 10000
    api_debug: bool = False
    api_cors_origins: list[str] = ["*"]

    app_name: str = "AgentMart Merchant"
    app_version: str = "0.1.0"

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet_address(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Merchant wallet address cannot be empty")
        return v.strip()

    @field_validator("payment_network")
    @classmethod
    def validate_payment_network(cls, v: str) -> str:
        if v not in SUPPORTED_NETWORKS:
            raise ValueError(
                f"Unsupported payment network {v!r}; expected one of {SUPPORTED_NETWORKS}"
            )
        return v

    @field_validator("evm_rpc_url", "solana_rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(f"Invalid RPC URL: {v}")
        return v


def _env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    return value.lower() == "true" if value is not None else None


def get_settings() -> Settings:
    wallet_address = os.environ.get("MERCHANT_WALLET_ADDRESS")
    if not wallet_address:
        raise ValueError("MERCHANT_WALLET_ADDRESS environment variable is required")

    values = {
        "wallet_address": wallet_address,
        "payment_network": os.environ.get("PAYMENT_NETWORK"),
        "usdc_contract": os.environ.get("USDC_CONTRACT"),
        "evm_rpc_url": os.environ.get("EVM_RPC_URL"),
        "solana_rpc_url": os.environ.get("SOLANA_RPC_URL"),
        "solana_private_key": os.environ.get("SOLANA_MERCHANT_PRIVATE_KEY"),
        "database_url": os.environ.get("MERCHANT_DATABASE_URL"),
        "evm_price": os.environ.get("MERCHANT_EVM_PRICE"),
        "solana_price": os.environ.get("MERCHANT_SOLANA_PRICE"),
        "payment_timeout_seconds": os.environ.get("MERCHANT_PAYMENT_TIMEOUT_SECONDS"),
        "verify_on_chain": _env_bool("MERCHANT_VERIFY_ON_CHAIN"),
        "confirmation_attempts": os.environ.get("MERCHANT_CONFIRMATION_ATTEMPTS"),
        "confirmation_interval": os.environ.get("MERCHANT_CONFIRMATION_INTERVAL"),
        "api_host": os.environ.get("MERCHANT_API_HOST"),
        "api_port": os.environ.get("MERCHANT_API_PORT"),
        "api_debug": _env_bool("MERCHANT_API_DEBUG"),
        "api_cors_origins": os.environ["MERCHANT_API_CORS_ORIGINS"].split(",")
        if os.environ.get("MERCHANT_API_CORS_ORIGINS")
        else None,
        "app_name": os.environ.get("MERCHANT_APP_NAME"),
        "app_version": os.environ.get("MERCHANT_APP_VERSION"),
    }
    # Unset variables fall back to the model defaults
    return Settings(**{k: v for k, v in values.items() if v is not None})
