"""
Tests for the supported network table.
"""

import pytest

from chainpilot.config import settings
from chainpilot.core.chains import (
    ChainInfo,
    explorer_tx_url,
    find_chain,
    get_chain,
    get_chain_by_id,
    supported_network_names,
)
from chainpilot.core.errors import UnsupportedChainError


def test_lookup_ignores_case_and_whitespace():
    chain = find_chain("  Ethereum-Sepolia ")

    assert chain.chain_id == 11155111
    assert chain.symbol == "ETH"


def test_unknown_network():
    assert find_chain("solana") is None

    with pytest.raises(UnsupportedChainError, match="Unknown network: solana"):
        get_chain("solana")


def test_lookup_by_chain_id():
    assert get_chain_by_id(80002).name == "polygon-amoy"
    assert get_chain_by_id(None) is None
    assert get_chain_by_id(5) is None


def test_chain_ids_are_unique():
    ids = [get_chain(name).chain_id for name in supported_network_names()]

    assert len(ids) == len(set(ids))


def test_explorer_links():
    assert explorer_tx_url(1, "0xabc") == "https://etherscan.io/tx/0xabc"
    assert explorer_tx_url(1337, "0xabc") is None


def test_infura_rpc_url(monkeypatch):
    monkeypatch.setattr(settings, "infura_api_key", "project-key")

    assert get_chain("ethereum-sepolia").rpc_url == "https://sepolia.infura.io/v3/project-key"


def test_rpc_override(monkeypatch):
    monkeypatch.setitem(settings.rpc_url_overrides, "ganache", "http://127.0.0.1:8545")

    assert get_chain("ganache").rpc_url == "http://127.0.0.1:8545"


def test_chain_without_rpc_url():
    assert ChainInfo("offline", 424242, "ETH", None).rpc_url is None
