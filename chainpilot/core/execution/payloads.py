"""
Sentinel-prefixed payloads for text-only consumers.

Internally preparers return :class:`PreparationResult`. Clients that only read
a list of text blocks get the machine-readable part as one extra block: a
fixed marker followed by JSON.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from .models import PayloadType, PreparationResult

TX_DATA_PREFIX = "__TXDATA__"
CONTRACT_CALL_PREFIX = "__CONTRACTCALL__"
DEPLOY_DATA_PREFIX = "__DEPLOYDATA__"

PREFIX_BY_TYPE: Dict[PayloadType, str] = {
    PayloadType.NATIVE_TRANSFER: TX_DATA_PREFIX,
    PayloadType.CONTRACT_READ: CONTRACT_CALL_PREFIX,
    PayloadType.CONTRACT_WRITE: CONTRACT_CALL_PREFIX,
    PayloadType.DEPLOY: DEPLOY_DATA_PREFIX,
}

KNOWN_PREFIXES = (TX_DATA_PREFIX, CONTRACT_CALL_PREFIX, DEPLOY_DATA_PREFIX)


def encode_payload(prefix: str, payload: Dict[str, Any]) -> str:
    return prefix + json.dumps(payload, separators=(",", ":"))


def decode_payload(text: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Return ``(prefix, payload)`` for a sentinel block, None for plain text."""
    for prefix in KNOWN_PREFIXES:
        if text.startswith(prefix):
            try:
                parsed = json.loads(text[len(prefix):])
            except json.JSONDecodeError:
                return None
            return (prefix, parsed) if isinstance(parsed, dict) else None
    return None


def text_block(text: str) -> Dict[str, str]:
    return {"type": "text", "text": text}


def to_content_blocks(result: PreparationResult) -> List[Dict[str, str]]:
    """Preview block followed by the sentinel-encoded payload block."""
    blocks = [text_block(result.preview)]
    if result.payload:
        prefix = PREFIX_BY_TYPE[result.payload_type]
        blocks.append(text_block(encode_payload(prefix, result.payload)))
    return blocks


def extract_payloads(blocks: List[Dict[str, Any]]) -> List[Tuple[str, Dict[str, Any]]]:
    """Pull every sentinel payload out of a content block list."""
    found = []
    for block in blocks:
        text = block.get("text")
        if not isinstance(text, str):
            continue
        decoded = decode_payload(text)
        if decoded:
            found.append(decoded)
    return found
