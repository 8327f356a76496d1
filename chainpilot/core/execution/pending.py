"""
Pending Slot

Holds at most one operation awaiting explicit user confirmation. Preparing a
new operation overwrites the previous one without notice; confirming hands the
operation to a submit callable and empties the slot once that call returns,
whatever its outcome.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Set, TypeVar

from ..errors import InvalidSlotTransitionError, NoPendingOperationError
from .events import EventStream
from .models import PendingOperation, utcnow


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SlotState(str, Enum):
    EMPTY = "empty"
    AWAITING = "awaiting"
    SUBMITTING = "submitting"
    SETTLED = "settled"


@dataclass
class SlotOutcome:
    """How the last confirmed operation's signing attempt ended."""
    operation: PendingOperation
    ok: bool
    error: Optional[str]
    settled_at: datetime


class PendingSlot:
    """Session-owned single slot for an unconfirmed operation."""

    TRANSITIONS: Dict[SlotState, Set[SlotState]] = {
        SlotState.EMPTY: {SlotState.AWAITING},
        SlotState.AWAITING: {
            SlotState.AWAITING,    # Re-prepare overwrites
            SlotState.SUBMITTING,
            SlotState.EMPTY,       # Deny or silent discard
        },
        SlotState.SUBMITTING: {SlotState.SETTLED},
        SlotState.SETTLED: {SlotState.EMPTY},
    }

    def __init__(self, events: Optional[EventStream] = None):
        self.events = events or EventStream()
        self._state = SlotState.EMPTY
        self._operation: Optional[PendingOperation] = None
        self.last_outcome: Optional[SlotOutcome] = None

    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def operation(self) -> Optional[PendingOperation]:
        return self._operation

    @property
    def is_empty(self) -> bool:
        return self._state == SlotState.EMPTY

    @property
    def is_awaiting(self) -> bool:
        return self._state == SlotState.AWAITING

    def can_transition_to(self, target: SlotState) -> bool:
        return target in self.TRANSITIONS.get(self._state, set())

    def _transition(self, target: SlotState, operation: Optional[PendingOperation]) -> None:
        if not self.can_transition_to(target):
            raise InvalidSlotTransitionError(
                f"Cannot move pending slot from {self._state.value} to {target.value}",
                details={"from": self._state.value, "to": target.value},
            )
        logger.debug(f"Pending slot {self._state.value} -> {target.value}")
        self._state = target
        self._operation = operation

    def prepare(self, operation: PendingOperation) -> None:
        """Stage ``operation``, silently discarding any unconfirmed one."""
        if self._state == SlotState.AWAITING:
            self._emit_discard()
        self._transition(SlotState.AWAITING, operation)
        logger.info(f"Pending {operation.kind.value} operation staged on chain {operation.chain_id}")
        self.events.emit("slot.prepared", kind=operation.kind.value, chain_id=operation.chain_id)

    def discard(self) -> Optional[PendingOperation]:
        """Drop a stale unconfirmed operation without a cancellation notice."""
        if self._state != SlotState.AWAITING:
            return None
        operation = self._operation
        self._emit_discard()
        self._transition(SlotState.EMPTY, None)
        return operation

    def _emit_discard(self) -> None:
        stale = self._operation
        logger.info(f"Discarding unconfirmed {stale.kind.value} operation")
        self.events.emit("slot.discarded", kind=stale.kind.value, chain_id=stale.chain_id)

    def deny(self) -> PendingOperation:
        if self._state != SlotState.AWAITING:
            raise NoPendingOperationError("No pending transaction to cancel.")
        operation = self._operation
        self._transition(SlotState.EMPTY, None)
        logger.info(f"Pending {operation.kind.value} operation cancelled by user")
        self.events.emit("slot.denied", kind=operation.kind.value, chain_id=operation.chain_id)
        return operation

    async def confirm(self, submit: Callable[[PendingOperation], Awaitable[T]]) -> T:
        """
        Submit the staged operation.

        The slot is emptied as soon as ``submit`` returns or raises; it does not
        wait for on-chain settlement. Exceptions from ``submit`` propagate.
        """
        if self._state != SlotState.AWAITING:
            raise NoPendingOperationError("No pending transaction to confirm.")

        operation = self._operation
        self._transition(SlotState.SUBMITTING, operation)
        self.events.emit("slot.submitting", kind=operation.kind.value, chain_id=operation.chain_id)

        error: Optional[BaseException] = None
        try:
            return await submit(operation)
        except BaseException as e:
            error = e
            raise
        finally:
            self.last_outcome = SlotOutcome(
                operation=operation,
                ok=error is None,
                error=str(error) if error is not None else None,
                settled_at=utcnow(),
            )
            self._transition(SlotState.SETTLED, None)
            self.events.emit(
                "slot.settled",
                kind=operation.kind.value,
                ok=error is None,
                error=self.last_outcome.error,
            )
            self._transition(SlotState.EMPTY, None)
            self.events.emit("slot.cleared", kind=operation.kind.value)
