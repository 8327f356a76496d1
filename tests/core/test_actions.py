"""
Tests for action parsing and sentinel rejection.
"""

import pytest

from chainpilot.core.actions import (
    GetCryptoPriceAction,
    GetLastTransactionsAction,
    GetTransactionDetailsAction,
    PrepareContractInteractionAction,
    PrepareTransactionAction,
    parse_action,
)
from chainpilot.core.errors import ValidationError


RECIPIENT = "0x2222222222222222222222222222222222222222"


class TestParseAction:

    def test_prepare_transaction(self):
        action = parse_action("prepareTransaction", {"to": RECIPIENT, "amount": "1.5", "networkName": "ethereum-sepolia"})

        assert isinstance(action, PrepareTransactionAction)
        assert action.to == RECIPIENT
        assert action.amount == "1.5"
        assert action.network_name == "ethereum-sepolia"
        assert action.address is None

    def test_contract_interaction_aliases(self):
        action = parse_action("prepareContractInteraction", {
            "functionName": "transfer",
            "contractAddress": "0x3333333333333333333333333333333333333333",
            "functionArgs": f'["{RECIPIENT}", "100"]',
            "valueEth": "0.1",
        })

        assert isinstance(action, PrepareContractInteractionAction)
        assert action.function_name == "transfer"
        assert action.function_args == f'["{RECIPIENT}", "100"]'
        assert action.value_eth == "0.1"

    def test_confirm_takes_no_params(self):
        assert parse_action("confirmTransaction", None).action == "confirmTransaction"

    def test_unknown_action(self):
        with pytest.raises(ValidationError, match="Unknown action: swapTokens"):
            parse_action("swapTokens", {})

    def test_missing_required_field(self):
        with pytest.raises(ValidationError, match="to: Field required"):
            parse_action("prepareTransaction", {"amount": "1"})

    def test_extra_params_are_ignored(self):
        action = parse_action("showAddress", {"verbose": True})

        assert action.action == "showAddress"


class TestSentinels:

    @pytest.mark.parametrize("params, message", [
        ({"to": "error", "amount": "1"}, "No recipient address specified for the transaction."),
        ({"to": RECIPIENT, "amount": "error"}, "No amount specified for the transaction."),
    ])
    def test_transfer_sentinels(self, params, message):
        with pytest.raises(ValidationError) as exc:
            parse_action("prepareTransaction", params)

        assert exc.value.message == message

    def test_network_sentinel_lists_supported_networks(self):
        with pytest.raises(ValidationError) as exc:
            parse_action("getGasPrice", {"networkName": "error"})

        assert exc.value.message.startswith("Unsupported network specified. Supported networks are: ")
        assert "ethereum-sepolia" in exc.value.message

    def test_hash_sentinel(self):
        with pytest.raises(ValidationError) as exc:
            parse_action("getTransactionDetails", {"hash": "error"})

        assert exc.value.message == "No transaction hash specified for transaction details."

    def test_sentinel_is_case_insensitive(self):
        with pytest.raises(ValidationError):
            parse_action("prepareTransaction", {"to": " ERROR ", "amount": "1"})

    @pytest.mark.parametrize("params, message", [
        ({"crypto": "error"}, "No cryptocurrency specified for price check."),
        ({"currencies": "error"}, "Unsupported fiat currencies specified. Supported fiat currencies are: ["),
    ])
    def test_price_sentinels(self, params, message):
        with pytest.raises(ValidationError) as exc:
            parse_action("getCryptoPrice", params)

        assert exc.value.message.startswith(message)


class TestMarketDataActions:

    def test_price_defaults(self):
        action = parse_action("getCryptoPrice", {})

        assert isinstance(action, GetCryptoPriceAction)
        assert action.crypto is None
        assert action.currencies == ["usd", "eur"]

    @pytest.mark.parametrize("raw, expected", [
        ("USD, JPY", ["usd", "jpy"]),
        (["GBP", " inr "], ["gbp", "inr"]),
        (" , ", ["usd", "eur"]),
        (None, ["usd", "eur"]),
    ])
    def test_currencies_are_split_and_lowered(self, raw, expected):
        assert parse_action("getCryptoPrice", {"currencies": raw}).currencies == expected

    def test_last_transactions(self):
        action = parse_action("getLastTransactions", {"address": RECIPIENT, "networkName": "base-sepolia"})

        assert isinstance(action, GetLastTransactionsAction)
        assert action.address == RECIPIENT
        assert action.network_name == "base-sepolia"


class TestTransactionHash:

    def test_valid_hash_is_trimmed(self):
        tx_hash = "0x" + "ab" * 32

        action = parse_action("getTransactionDetails", {"hash": f" {tx_hash} "})

        assert isinstance(action, GetTransactionDetailsAction)
        assert action.hash == tx_hash

    def test_malformed_hash(self):
        with pytest.raises(ValidationError) as exc:
            parse_action("getTransactionDetails", {"hash": "0x1234"})

        assert exc.value.message == "Invalid transaction hash format."
