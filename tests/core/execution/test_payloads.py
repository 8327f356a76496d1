"""
Tests for sentinel-prefixed payload blocks.
"""

from chainpilot.core.execution.models import PayloadType, PreparationResult
from chainpilot.core.execution.payloads import (
    CONTRACT_CALL_PREFIX,
    DEPLOY_DATA_PREFIX,
    TX_DATA_PREFIX,
    decode_payload,
    encode_payload,
    extract_payloads,
    text_block,
    to_content_blocks,
)


class TestSentinelEncoding:

    def test_encode_is_prefix_plus_compact_json(self):
        text = encode_payload(TX_DATA_PREFIX, {"to": "0xabc", "amount": "1.5"})

        assert text == '__TXDATA__{"to":"0xabc","amount":"1.5"}'

    def test_decode_recovers_prefix_and_payload(self):
        text = encode_payload(DEPLOY_DATA_PREFIX, {"contractName": "Token", "chainId": 11155111})

        assert decode_payload(text) == (DEPLOY_DATA_PREFIX, {"contractName": "Token", "chainId": 11155111})

    def test_plain_text_is_not_a_payload(self):
        assert decode_payload("Transaction prepared:") is None

    def test_broken_json_is_not_a_payload(self):
        assert decode_payload(CONTRACT_CALL_PREFIX + "{not json") is None

    def test_non_object_json_is_not_a_payload(self):
        assert decode_payload(TX_DATA_PREFIX + "[1, 2]") is None


class TestContentBlocks:

    def test_preview_then_payload(self):
        result = PreparationResult(
            preview="Preparing call to transfer",
            payload_type=PayloadType.CONTRACT_WRITE,
            payload={"function": "transfer", "readOnly": False},
        )

        blocks = to_content_blocks(result)

        assert blocks[0] == text_block("Preparing call to transfer")
        assert blocks[1]["text"].startswith(CONTRACT_CALL_PREFIX)
        assert len(blocks) == 2

    def test_no_payload_block_when_empty(self):
        result = PreparationResult(preview="nothing to sign", payload_type=PayloadType.CONTRACT_READ)

        assert to_content_blocks(result) == [text_block("nothing to sign")]

    def test_extract_payloads_skips_plain_text(self):
        blocks = [
            text_block("hello"),
            text_block(encode_payload(TX_DATA_PREFIX, {"amount": "2"})),
            {"type": "image", "data": "..."},
        ]

        assert extract_payloads(blocks) == [(TX_DATA_PREFIX, {"amount": "2"})]
