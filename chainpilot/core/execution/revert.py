"""Turn failed-call error payloads into human-readable revert reasons."""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from eth_abi import decode as abi_decode

ERROR_STRING_SELECTOR = "0x08c379a0"  # Error(string)
PANIC_SELECTOR = "0x4e487b71"  # Panic(uint256)

_EXECUTION_REVERTED_RE = re.compile(r"execution reverted(?::\s*)?(.*)?$", re.IGNORECASE | re.DOTALL)
_REASON_STRING_RE = re.compile(r'reverted with reason string "([^"]+)"', re.IGNORECASE)
_REVERT_STRING_RE = re.compile(
    r'revert(?:ed)?(?:\s+with)?(?:\s+reason)?\s+string:?\s+"([^"]+)"', re.IGNORECASE
)


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _path(obj: Any, *names: str) -> Any:
    for name in names:
        obj = _field(obj, name)
        if obj is None:
            return None
    return obj


def _candidate_messages(error: Any) -> Iterable[str]:
    candidates = [
        _path(error, "data", "message"),
        _path(error, "error", "data", "message"),
        _path(error, "error", "message"),
        _field(error, "message"),
    ]
    if isinstance(error, BaseException):
        candidates.append(str(error))
    elif isinstance(error, str):
        candidates.append(error)
    return [c for c in candidates if isinstance(c, str) and c]


def _candidate_data(error: Any) -> Iterable[str]:
    candidates = [
        _path(error, "data", "data"),
        _path(error, "error", "data", "data"),
        _field(error, "data"),
        _path(error, "error", "data"),
    ]
    return [c for c in candidates if isinstance(c, str) and c.startswith("0x")]


def decode_revert_data(raw: str) -> Optional[str]:
    """Decode ABI-encoded ``Error(string)`` or ``Panic(uint256)`` revert data."""
    lowered = raw.lower()
    if len(lowered) <= 10:
        return None
    try:
        body = bytes.fromhex(lowered[10:])
        if lowered.startswith(ERROR_STRING_SELECTOR):
            (reason,) = abi_decode(["string"], body)
            return reason
        if lowered.startswith(PANIC_SELECTOR):
            (code,) = abi_decode(["uint256"], body)
            return f"Panic({hex(code)})"
    except Exception:
        return None
    return None


def extract_revert_reason(error: Any) -> Optional[str]:
    """
    Extract the revert reason from a failed call.

    ``error`` may be an exception, a JSON-RPC error dict or a plain message.
    Returns None when nothing looks like a revert.
    """
    if error is None:
        return None

    bare_revert = False
    for message in _candidate_messages(error):
        match = _REASON_STRING_RE.search(message) or _REVERT_STRING_RE.search(message)
        if match:
            return match.group(1)
        match = _EXECUTION_REVERTED_RE.search(message)
        if match:
            reason = (match.group(1) or "").strip()
            if reason:
                return reason
            bare_revert = True

    # Bare "execution reverted" usually ships the encoded reason in data
    for raw in _candidate_data(error):
        reason = decode_revert_data(raw)
        if reason:
            return reason

    return "Execution reverted" if bare_revert else None
