import os

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the legacy INFURA_KEY variable when the primary one is empty."""

        super().model_post_init(__context)

        if not self.infura_api_key:
            fallback = os.getenv("INFURA_KEY")
            if fallback:
                object.__setattr__(self, "infura_api_key", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=3000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # RPC access
    infura_api_key: str = Field(
        default="",
        description="Infura project key used to build read-only RPC URLs",
        validation_alias=AliasChoices("infura_api_key", "INFURA_API_KEY"),
    )
    rpc_url_overrides: Dict[str, str] = Field(
        default_factory=dict,
        description="Per-network RPC URL overrides keyed by network name",
    )
    rpc_timeout_seconds: float = Field(default=30.0, description="JSON-RPC request timeout")
    receipt_poll_interval_seconds: float = Field(
        default=2.0,
        description="Delay between eth_getTransactionReceipt polls while a watcher waits",
    )
    enable_gas_estimation: bool = Field(
        default=True,
        description="Estimate gas and fees when preparing transactions",
    )

    # Wallet signer
    signer_rpc_url: str = Field(
        default="http://127.0.0.1:7545",
        description="Node holding unlocked accounts used by the JSON-RPC wallet signer",
    )
    default_account: Optional[str] = Field(
        default=None,
        description="Account used for the session until the wallet reports one",
    )
    default_chain_id: Optional[int] = Field(
        default=None,
        description="Chain the wallet is assumed to be connected to at startup",
    )

    # Compilation
    solc_version: Optional[str] = Field(
        default=None,
        description="solc release to install and use for deployments (default: newest installed)",
    )

    # Market data and explorer
    coingecko_api_key: Optional[str] = Field(default=None, description="Coingecko demo API key (optional)")
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Coingecko API base used for fiat price lookups",
    )
    etherscan_api_key: Optional[str] = Field(
        default=None,
        description="Etherscan API key; history lookups are heavily rate limited without one",
    )
    explorer_api_url: str = Field(
        default="https://api.etherscan.io/v2/api",
        description="Etherscan V2 multichain endpoint used for transaction history",
    )
    http_timeout_seconds: float = Field(default=15.0, description="Timeout for price and explorer requests")

    # Contract registry
    contracts_file: Path = Field(
        default=BASE_DIR / ".data" / "contracts.storage.json",
        description="JSON file backing the deployed contracts registry",
    )

    @property
    def has_infura_key(self) -> bool:
        return bool(self.infura_api_key)

    def resolve_rpc_url(self, network_name: str, template: Optional[str]) -> Optional[str]:
        """Return the RPC URL for a network, preferring explicit overrides."""
        override = self.rpc_url_overrides.get(network_name.lower())
        if override:
            return override
        if not template:
            return None
        if "{infura_api_key}" in template:
            return template.format(infura_api_key=self.infura_api_key)
        return template


# Global settings instance
settings = Settings()
