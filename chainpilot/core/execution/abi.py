"""
ABI helpers for encoding contract calls and decoding their results.

Arguments arrive from the intent layer as JSON values (numbers as strings,
addresses in any case, bytes as hex), so every value is coerced against its
declared ABI type before ``eth_abi`` sees it.
"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import function_signature_to_4byte_selector, is_address, to_checksum_address

from ..errors import AmbiguousTargetError, ArgumentFormatError, ArityError, NotFoundError

READ_ONLY_MUTABILITIES = frozenset({"view", "pure"})

_ARRAY_SUFFIX_RE = re.compile(r"^(.*)\[(\d*)\]$")


def resolve_type(param: Dict[str, Any]) -> str:
    """Canonical type string for an ABI input/output, expanding tuples."""
    typ = param.get("type", "")
    if typ.startswith("tuple"):
        inner = ",".join(resolve_type(c) for c in param.get("components", []))
        return f"({inner}){typ[len('tuple'):]}"
    return typ


def state_mutability(fragment: Dict[str, Any]) -> str:
    mutability = fragment.get("stateMutability")
    if mutability:
        return mutability
    # Pre-0.5 ABIs
    if fragment.get("constant"):
        return "view"
    return "payable" if fragment.get("payable") else "nonpayable"


def is_read_only(fragment: Dict[str, Any]) -> bool:
    return state_mutability(fragment) in READ_ONLY_MUTABILITIES


def is_payable(fragment: Dict[str, Any]) -> bool:
    return state_mutability(fragment) == "payable"


def function_signature(fragment: Dict[str, Any]) -> str:
    types = ",".join(resolve_type(i) for i in fragment.get("inputs", []))
    return f"{fragment.get('name', '')}({types})"


def function_selector(fragment: Dict[str, Any]) -> str:
    return "0x" + function_signature_to_4byte_selector(function_signature(fragment)).hex()


def list_functions(abi: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [entry for entry in abi if entry.get("type") == "function"]


def find_function(
    abi: Sequence[Dict[str, Any]],
    name: str,
    arg_count: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Find a function fragment by name or full signature.

    Overloads are narrowed by ``arg_count``; if that still leaves several
    candidates the lookup is ambiguous.
    """
    target = name.strip()
    functions = list_functions(abi)

    if "(" in target:
        compact = target.replace(" ", "")
        for fragment in functions:
            if function_signature(fragment) == compact:
                return fragment
        raise NotFoundError(f"Function '{name}' not found in contract ABI.")

    matches = [f for f in functions if f.get("name") == target]
    if not matches:
        raise NotFoundError(f"Function '{name}' not found in contract ABI.")
    if len(matches) == 1:
        return matches[0]

    if arg_count is not None:
        narrowed = [f for f in matches if len(f.get("inputs", [])) == arg_count]
        if len(narrowed) == 1:
            return narrowed[0]

    raise AmbiguousTargetError(
        f"Function '{name}' is overloaded. Use the full signature.",
        candidates=[{"signature": function_signature(f)} for f in matches],
    )


def find_constructor(abi: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for entry in abi:
        if entry.get("type") == "constructor":
            return entry
    return None


def parse_json_array(raw: Any, label: str = "functionArgs") -> List[Any]:
    """Accept a list, a JSON string holding a list, or nothing."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ArgumentFormatError(f"Invalid {label}: {e.msg}")
        if not isinstance(parsed, list):
            raise ArgumentFormatError(f"Invalid {label}: must be a JSON array")
        return parsed
    raise ArgumentFormatError(f"{label} must be an array or JSON string array")


def _to_int(value: Any, typ: str) -> int:
    if isinstance(value, bool):
        raise ArgumentFormatError(f"Expected {typ}, got boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().replace("_", "")
        try:
            return int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError:
            pass
    raise ArgumentFormatError(f"Expected {typ}, got {value!r}")


def _to_bytes(value: Any, typ: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value.startswith("0x"):
        try:
            return bytes.fromhex(value[2:])
        except ValueError:
            pass
    raise ArgumentFormatError(f"Expected hex-encoded {typ}, got {value!r}")


def coerce_argument(param: Dict[str, Any], value: Any) -> Any:
    """Convert one JSON-ish value to what ``eth_abi`` expects for ``param``."""
    typ = param.get("type", "")

    array = _ARRAY_SUFFIX_RE.match(typ)
    if array:
        if not isinstance(value, (list, tuple)):
            raise ArgumentFormatError(f"Expected array for {typ}, got {value!r}")
        size = array.group(2)
        if size and len(value) != int(size):
            raise ArgumentFormatError(f"Expected {size} items for {typ}, got {len(value)}")
        inner = dict(param, type=array.group(1))
        return [coerce_argument(inner, item) for item in value]

    if typ == "tuple":
        components = param.get("components", [])
        if isinstance(value, dict):
            value = [value.get(c.get("name")) for c in components]
        if not isinstance(value, (list, tuple)) or len(value) != len(components):
            raise ArgumentFormatError(f"Expected {len(components)} tuple fields, got {value!r}")
        return tuple(coerce_argument(c, v) for c, v in zip(components, value))

    if typ == "address":
        if not isinstance(value, str) or not is_address(value):
            raise ArgumentFormatError(f"Invalid address argument: {value!r}")
        return to_checksum_address(value)

    if typ == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        if value in (0, 1):
            return bool(value)
        raise ArgumentFormatError(f"Expected bool, got {value!r}")

    if typ.startswith("uint") or typ.startswith("int"):
        return _to_int(value, typ)

    if typ.startswith("bytes"):
        return _to_bytes(value, typ)

    if typ == "string":
        return value if isinstance(value, str) else str(value)

    return value


def encode_arguments(inputs: Sequence[Dict[str, Any]], args: Sequence[Any]) -> bytes:
    if len(inputs) != len(args):
        raise ArityError(
            f"Expected {len(inputs)} arguments, received {len(args)}.",
            expected=len(inputs),
            received=len(args),
        )
    if not inputs:
        return b""
    types = [resolve_type(i) for i in inputs]
    values = [coerce_argument(i, a) for i, a in zip(inputs, args)]
    try:
        return abi_encode(types, values)
    except Exception as e:
        raise ArgumentFormatError(f"Cannot encode arguments: {e}")


def encode_function_call(fragment: Dict[str, Any], args: Sequence[Any]) -> str:
    """Full calldata: 4-byte selector followed by the encoded arguments."""
    encoded = encode_arguments(fragment.get("inputs", []), args)
    return function_selector(fragment) + encoded.hex()


def encode_constructor_args(abi: Sequence[Dict[str, Any]], args: Sequence[Any]) -> str:
    """Hex (no 0x) of the constructor arguments to append to the bytecode."""
    constructor = find_constructor(abi) or {"inputs": []}
    return encode_arguments(constructor.get("inputs", []), args).hex()


def display_value(value: Any) -> Any:
    """Make decoded ABI values JSON-friendly."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [display_value(v) for v in value]
    return value


def decode_function_result(fragment: Dict[str, Any], raw: str) -> List[Any]:
    outputs = fragment.get("outputs", [])
    if not outputs:
        return []
    data = bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
    decoded = abi_decode([resolve_type(o) for o in outputs], data)
    return [display_value(v) for v in decoded]


def format_inputs(fragment: Dict[str, Any]) -> str:
    return ", ".join(f"{i.get('name') or '_'}:{i.get('type')}" for i in fragment.get("inputs", []))


def expected_order(fragment: Dict[str, Any]) -> str:
    return " | ".join(
        f"{idx}. {i.get('name') or '_'}:{i.get('type')}"
        for idx, i in enumerate(fragment.get("inputs", []))
    )
