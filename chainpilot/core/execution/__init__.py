"""
Transaction Preparation and Confirmation

Provides the pipeline from a validated action to a settled transaction:
- TransactionPreparer: validates, encodes, simulates and estimates operations
- PendingSlot: the single operation awaiting user confirmation
- SigningGateway: hands finalized transactions to the wallet signer
- ConfirmationWatcher: awaits receipts and settles status cards
- StatusCardRegistry: one card per submitted transaction hash

Usage:
    from chainpilot.core.execution import (
        TransactionPreparer,
        PendingSlot,
        SigningGateway,
    )

    result = await preparer.native_transfer(sender, recipient, "1.5", chain)
    slot.prepare(result.operation)
    tx_hash = await slot.confirm(gateway.send)
"""

from .models import (
    OperationKind,
    PayloadType,
    NativeTransfer,
    ContractWrite,
    PendingOperation,
    ContractCallPlan,
    GasQuote,
    DeployPayload,
    PreparationResult,
)

from .events import (
    FlowEvent,
    EventStream,
)

from .payloads import (
    TX_DATA_PREFIX,
    CONTRACT_CALL_PREFIX,
    DEPLOY_DATA_PREFIX,
    decode_payload,
    encode_payload,
    to_content_blocks,
)

from .revert import (
    extract_revert_reason,
    decode_revert_data,
)

from .preparer import (
    TransactionPreparer,
    simulate_call,
)

from .pending import (
    PendingSlot,
    SlotState,
    SlotOutcome,
)

from .signer import (
    WalletSigner,
    JsonRpcWalletSigner,
    SigningGateway,
    classify_signer_error,
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
)

from .cards import (
    CardStatus,
    StatusCard,
    StatusCardRegistry,
)

from .watcher import (
    ConfirmationWatcher,
)

__all__ = [
    # Models
    "OperationKind",
    "PayloadType",
    "NativeTransfer",
    "ContractWrite",
    "PendingOperation",
    "ContractCallPlan",
    "GasQuote",
    "DeployPayload",
    "PreparationResult",
    # Events
    "FlowEvent",
    "EventStream",
    # Payload encoding
    "TX_DATA_PREFIX",
    "CONTRACT_CALL_PREFIX",
    "DEPLOY_DATA_PREFIX",
    "decode_payload",
    "encode_payload",
    "to_content_blocks",
    # Revert reasons
    "extract_revert_reason",
    "decode_revert_data",
    # Preparation
    "TransactionPreparer",
    "simulate_call",
    # Pending slot
    "PendingSlot",
    "SlotState",
    "SlotOutcome",
    # Signing
    "WalletSigner",
    "JsonRpcWalletSigner",
    "SigningGateway",
    "classify_signer_error",
    "ACCOUNTS_CHANGED",
    "CHAIN_CHANGED",
    # Cards and watcher
    "CardStatus",
    "StatusCard",
    "StatusCardRegistry",
    "ConfirmationWatcher",
]
