"""
Tests for revert reason extraction.
"""

from eth_abi import encode

from chainpilot.core.execution.revert import decode_revert_data, extract_revert_reason
from chainpilot.providers.rpc import RpcError


def _error_string_data(reason: str) -> str:
    return "0x08c379a0" + encode(["string"], [reason]).hex()


class TestExtractRevertReason:

    def test_reason_after_execution_reverted(self):
        error = RpcError("execution reverted: ERC20: transfer amount exceeds balance", code=3)

        assert extract_revert_reason(error) == "ERC20: transfer amount exceeds balance"

    def test_hardhat_reason_string(self):
        message = 'VM Exception while processing transaction: reverted with reason string "Not enough"'

        assert extract_revert_reason(message) == "Not enough"

    def test_json_rpc_error_dict(self):
        error = {"code": 3, "message": "execution reverted: Ownable: caller is not the owner"}

        assert extract_revert_reason(error) == "Ownable: caller is not the owner"

    def test_nested_error_data_message(self):
        error = {"error": {"data": {"message": "execution reverted: paused"}}}

        assert extract_revert_reason(error) == "paused"

    def test_bare_revert_decodes_error_string_data(self):
        error = RpcError("execution reverted", code=3, data=_error_string_data("Not owner"))

        assert extract_revert_reason(error) == "Not owner"

    def test_bare_revert_without_data(self):
        assert extract_revert_reason(RpcError("execution reverted")) == "Execution reverted"

    def test_unrelated_error_has_no_reason(self):
        assert extract_revert_reason(RpcError("nonce too low", code=-32000)) is None

    def test_none(self):
        assert extract_revert_reason(None) is None


class TestDecodeRevertData:

    def test_error_string(self):
        assert decode_revert_data(_error_string_data("Too late")) == "Too late"

    def test_panic_code(self):
        data = "0x4e487b71" + encode(["uint256"], [0x11]).hex()

        assert decode_revert_data(data) == "Panic(0x11)"

    def test_selector_only(self):
        assert decode_revert_data("0x08c379a0") is None

    def test_unknown_selector(self):
        assert decode_revert_data("0xdeadbeef" + "00" * 32) is None

    def test_garbage_body(self):
        assert decode_revert_data("0x08c379a0zz") is None
