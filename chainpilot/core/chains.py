"""Networks the wallet session can prepare and sign transactions on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..config import settings
from .errors import UnsupportedChainError


@dataclass(frozen=True)
class ChainInfo:
    """Static metadata for a supported network."""
    name: str
    chain_id: int
    symbol: str
    rpc_url_template: Optional[str]
    explorer_url: Optional[str] = None
    api_url: Optional[str] = None

    @property
    def rpc_url(self) -> Optional[str]:
        return settings.resolve_rpc_url(self.name, self.rpc_url_template)


_INFURA = "https://{network}.infura.io/v3/{{infura_api_key}}"


def _infura(network: str) -> str:
    return _INFURA.format(network=network)


SUPPORTED_CHAINS: Dict[str, ChainInfo] = {
    # Ethereum
    "ethereum-mainnet": ChainInfo(
        "ethereum-mainnet", 1, "ETH", _infura("mainnet"),
        "https://etherscan.io", "https://api.etherscan.io/api",
    ),
    "ethereum-sepolia": ChainInfo(
        "ethereum-sepolia", 11155111, "ETH", _infura("sepolia"),
        "https://sepolia.etherscan.io", "https://api-sepolia.etherscan.io/api",
    ),
    # Arbitrum
    "arbitrum-one": ChainInfo(
        "arbitrum-one", 42161, "ETH", _infura("arbitrum-mainnet"),
        "https://arbiscan.io", "https://api.arbiscan.io/api",
    ),
    "arbitrum-sepolia": ChainInfo(
        "arbitrum-sepolia", 421614, "ETH", _infura("arbitrum-sepolia"),
        "https://sepolia.arbiscan.io", "https://api-sepolia.arbiscan.io/api",
    ),
    # Avalanche
    "avalanche-c-chain": ChainInfo(
        "avalanche-c-chain", 43114, "AVAX", "https://api.avax.network/ext/bc/C/rpc",
        "https://snowtrace.io", "https://api.snowtrace.io/api",
    ),
    "avalanche-fuji": ChainInfo(
        "avalanche-fuji", 43113, "AVAX", "https://api.avax-test.network/ext/bc/C/rpc",
        "https://testnet.snowtrace.io", "https://api-testnet.snowtrace.io/api",
    ),
    # Base
    "base-mainnet": ChainInfo(
        "base-mainnet", 8453, "ETH", _infura("base-mainnet"),
        "https://basescan.org", "https://api.basescan.org/api",
    ),
    "base-sepolia": ChainInfo(
        "base-sepolia", 84532, "ETH", _infura("base-sepolia"),
        "https://sepolia.basescan.org", "https://api-sepolia.basescan.org/api",
    ),
    # Polygon
    "polygon-mainnet": ChainInfo(
        "polygon-mainnet", 137, "MATIC", _infura("polygon-mainnet"),
        "https://polygonscan.com", "https://api.polygonscan.com/api",
    ),
    "polygon-amoy": ChainInfo(
        "polygon-amoy", 80002, "MATIC", _infura("polygon-amoy"),
        "https://amoy.polygonscan.com", "https://api-amoy.polygonscan.com/api",
    ),
    # Optimism
    "optimism-mainnet": ChainInfo(
        "optimism-mainnet", 10, "ETH", _infura("optimism-mainnet"),
        "https://optimistic.etherscan.io", "https://api-optimistic.etherscan.io/api",
    ),
    "optimism-sepolia": ChainInfo(
        "optimism-sepolia", 11155420, "ETH", _infura("optimism-sepolia"),
        "https://sepolia-optimistic.etherscan.io", "https://api-sepolia-optimistic.etherscan.io/api",
    ),
    # BSC
    "bsc-mainnet": ChainInfo(
        "bsc-mainnet", 56, "BNB", "https://bsc-dataseed.binance.org",
        "https://bscscan.com", "https://api.bscscan.com/api",
    ),
    "bsc-testnet": ChainInfo(
        "bsc-testnet", 97, "tBNB", "https://data-seed-prebsc-1-s1.binance.org:8545",
        "https://testnet.bscscan.com", "https://api-testnet.bscscan.com/api",
    ),
    # Local development
    "ganache": ChainInfo("ganache", 1337, "ETH", "http://127.0.0.1:7545"),
}

_BY_CHAIN_ID: Dict[int, ChainInfo] = {info.chain_id: info for info in SUPPORTED_CHAINS.values()}


def supported_network_names() -> List[str]:
    return list(SUPPORTED_CHAINS.keys())


def find_chain(network_name: Optional[str]) -> Optional[ChainInfo]:
    """Look up a network by name, ignoring case and surrounding whitespace."""
    if not network_name:
        return None
    return SUPPORTED_CHAINS.get(network_name.strip().lower())


def get_chain(network_name: Optional[str]) -> ChainInfo:
    """Like :func:`find_chain` but raises for unknown networks."""
    chain = find_chain(network_name)
    if chain is None:
        raise UnsupportedChainError(f"Unknown network: {network_name}")
    return chain


def get_chain_by_id(chain_id: Optional[int]) -> Optional[ChainInfo]:
    if chain_id is None:
        return None
    return _BY_CHAIN_ID.get(int(chain_id))


def explorer_tx_url(chain_id: Optional[int], tx_hash: str) -> Optional[str]:
    info = get_chain_by_id(chain_id)
    if info is None or not info.explorer_url:
        return None
    return f"{info.explorer_url}/tx/{tx_hash}"


__all__ = [
    "ChainInfo",
    "SUPPORTED_CHAINS",
    "supported_network_names",
    "find_chain",
    "get_chain",
    "get_chain_by_id",
    "explorer_tx_url",
]
