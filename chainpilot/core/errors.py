"""
Error taxonomy for the transaction preparation and confirmation flow.

Every error raised while preparing, confirming or signing an operation derives
from :class:`TransactionFlowError`. The dispatcher catches them at its boundary
and turns them into user-facing messages, so none of them ends a session.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(str, Enum):
    """Categories used when reporting a failed action."""

    VALIDATION = "validation"         # Malformed address, amount, hash, args
    TARGET = "target"                 # Registry lookup ambiguity / missing entries
    CONTRACT_CALL = "contract_call"   # Arity, payability, argument shape
    REVERT = "revert"                 # Static call reverted
    SLOT = "slot"                     # Confirm/deny without a pending operation
    SIGNER = "signer"                 # Wallet signer failures
    NETWORK = "network"               # Connectivity issues
    CHAIN = "chain"                   # Unsupported or mismatched chain
    COMPILATION = "compilation"       # Source did not compile
    DATA_SOURCE = "data_source"       # Price or explorer API failures
    UNKNOWN = "unknown"


class TransactionFlowError(Exception):
    """Base class for all reportable flow errors."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    recoverable: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


# Input validation
class ValidationError(TransactionFlowError):
    """Bad address, amount, hash or sentinel parameter."""
    category = ErrorCategory.VALIDATION


class UnsupportedChainError(ValidationError):
    """Network name or chain id has no configured mapping."""
    category = ErrorCategory.CHAIN


# Registry lookups
class AmbiguousTargetError(TransactionFlowError):
    """Zero or several registry records match the requested contract."""
    category = ErrorCategory.TARGET

    def __init__(self, message: str, candidates: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, details={"candidates": candidates or []})
        self.candidates = candidates or []


class NotFoundError(TransactionFlowError):
    """Function, contract artifact or contract data is missing."""
    category = ErrorCategory.TARGET


# Contract call shape
class ArityError(TransactionFlowError):
    """Argument count differs from the ABI's declared inputs."""
    category = ErrorCategory.CONTRACT_CALL

    def __init__(self, message: str, expected: int, received: int):
        super().__init__(message, details={"expected": expected, "received": received})
        self.expected = expected
        self.received = received


class PayabilityError(TransactionFlowError):
    """Value supplied for a non-payable function, or unparseable value."""
    category = ErrorCategory.CONTRACT_CALL


class ArgumentFormatError(TransactionFlowError):
    """Arguments are not a JSON array or cannot be encoded for the ABI."""
    category = ErrorCategory.CONTRACT_CALL


class SimulatedRevertError(TransactionFlowError):
    """Pre-flight static call failed."""
    category = ErrorCategory.REVERT

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message, details={"reason": reason})
        self.reason = reason


class CompilationError(TransactionFlowError):
    """Contract source failed to compile."""
    category = ErrorCategory.COMPILATION

    def __init__(self, message: str = "Compilation failed.", errors: Optional[List[str]] = None):
        super().__init__(message, details={"errors": errors or []})
        self.errors = errors or []


# Pending slot
class NoPendingOperationError(TransactionFlowError):
    """Confirm or deny issued while the slot is empty."""
    category = ErrorCategory.SLOT
    recoverable = True


class InvalidSlotTransitionError(TransactionFlowError):
    """Slot asked to move along an edge its transition table forbids."""
    category = ErrorCategory.SLOT


# Signer layer
class SigningError(TransactionFlowError):
    """Generic wallet signer failure carrying the provider's message."""
    category = ErrorCategory.SIGNER


class UserRejectedError(SigningError):
    """User declined the signature request."""
    recoverable = True

    def __init__(self, message: str = "Transaction rejected by the user."):
        super().__init__(message)


class InsufficientFundsError(SigningError):
    """Wallet balance does not cover value plus gas."""

    def __init__(self, message: str = "Not enough funds to cover value and gas."):
        super().__init__(message)


class NetworkError(SigningError):
    """Connectivity failure between us, the signer or the node."""
    category = ErrorCategory.NETWORK
    recoverable = True

    def __init__(self, message: str = "Network error, please check your connection."):
        super().__init__(message)


class ChainMismatchError(SigningError):
    """Wallet is connected to a different chain than the prepared operation."""
    category = ErrorCategory.CHAIN

    def __init__(self, connected_chain_id: Optional[int], expected_chain_id: int):
        super().__init__(
            f"Connected chainId {connected_chain_id} does not match prepared call chainId "
            f"{expected_chain_id}. Switch network in your wallet."
        )
        self.connected_chain_id = connected_chain_id
        self.expected_chain_id = expected_chain_id


# Market data and explorer
class DataSourceError(TransactionFlowError):
    """Price or block explorer API could not be reached or refused the request."""
    category = ErrorCategory.DATA_SOURCE
    recoverable = True


# Status cards
class CardTransitionError(TransactionFlowError):
    """Status card asked to leave a terminal state or dismissed while waiting."""


__all__ = [
    "ErrorCategory",
    "TransactionFlowError",
    "ValidationError",
    "UnsupportedChainError",
    "AmbiguousTargetError",
    "NotFoundError",
    "ArityError",
    "PayabilityError",
    "ArgumentFormatError",
    "SimulatedRevertError",
    "CompilationError",
    "NoPendingOperationError",
    "InvalidSlotTransitionError",
    "SigningError",
    "UserRejectedError",
    "InsufficientFundsError",
    "NetworkError",
    "ChainMismatchError",
    "DataSourceError",
    "CardTransitionError",
]
