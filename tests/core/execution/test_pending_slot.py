"""
Tests for the Pending Slot

At most one operation waits for confirmation, and the slot empties as soon as
signing returns, whether the signer accepted or refused.
"""

import pytest

from chainpilot.core.errors import InvalidSlotTransitionError, NoPendingOperationError, UserRejectedError
from chainpilot.core.execution.events import EventStream
from chainpilot.core.execution.models import ContractWrite, NativeTransfer
from chainpilot.core.execution.pending import PendingSlot, SlotState


SENDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def events() -> EventStream:
    return EventStream()


@pytest.fixture
def slot(events) -> PendingSlot:
    return PendingSlot(events)


@pytest.fixture
def transfer() -> NativeTransfer:
    return NativeTransfer(
        from_address=SENDER,
        to_address=RECIPIENT,
        amount_decimal="1.5",
        chain_id=11155111,
        network_name="ethereum-sepolia",
    )


@pytest.fixture
def contract_write() -> ContractWrite:
    return ContractWrite(
        contract_address="0x3333333333333333333333333333333333333333",
        chain_id=11155111,
        function_name="transfer",
        encoded_data="0xa9059cbb",
    )


# =============================================================================
# Prepare / Deny
# =============================================================================

class TestPrepare:

    def test_starts_empty(self, slot):
        assert slot.state == SlotState.EMPTY
        assert slot.operation is None

    def test_prepare_stages_operation(self, slot, transfer):
        slot.prepare(transfer)

        assert slot.is_awaiting
        assert slot.operation is transfer

    def test_second_prepare_overwrites_first(self, slot, events, transfer, contract_write):
        slot.prepare(transfer)
        slot.prepare(contract_write)

        assert slot.operation is contract_write
        assert events.names() == ["slot.prepared", "slot.discarded", "slot.prepared"]

    def test_discard_is_silent_when_empty(self, slot, events):
        assert slot.discard() is None
        assert events.names() == []

    def test_discard_drops_awaiting_operation(self, slot, transfer):
        slot.prepare(transfer)

        assert slot.discard() is transfer
        assert slot.is_empty


class TestDeny:

    def test_deny_clears_slot(self, slot, events, transfer):
        slot.prepare(transfer)

        denied = slot.deny()

        assert denied is transfer
        assert slot.is_empty
        assert events.names()[-1] == "slot.denied"

    def test_deny_on_empty_slot(self, slot):
        with pytest.raises(NoPendingOperationError, match="No pending transaction to cancel."):
            slot.deny()


# =============================================================================
# Confirm
# =============================================================================

class TestConfirm:

    @pytest.mark.asyncio
    async def test_confirm_on_empty_slot(self, slot):
        async def submit(op):
            raise AssertionError("must not be called")

        with pytest.raises(NoPendingOperationError, match="No pending transaction to confirm."):
            await slot.confirm(submit)

    @pytest.mark.asyncio
    async def test_confirm_hands_operation_to_submit(self, slot, events, transfer):
        submitted = []

        async def submit(op):
            submitted.append(op)
            assert slot.state == SlotState.SUBMITTING
            return "0xhash"

        slot.prepare(transfer)
        tx_hash = await slot.confirm(submit)

        assert tx_hash == "0xhash"
        assert submitted == [transfer]
        assert slot.is_empty
        assert slot.last_outcome.ok is True
        assert events.names() == ["slot.prepared", "slot.submitting", "slot.settled", "slot.cleared"]

    @pytest.mark.asyncio
    async def test_slot_clears_when_signer_refuses(self, slot, events, transfer):
        async def submit(op):
            raise UserRejectedError()

        slot.prepare(transfer)
        with pytest.raises(UserRejectedError):
            await slot.confirm(submit)

        assert slot.is_empty
        assert slot.operation is None
        assert slot.last_outcome.ok is False
        assert slot.last_outcome.error == "Transaction rejected by the user."

        settled = events.history("slot.settled")[-1]
        assert settled.data["ok"] is False

    @pytest.mark.asyncio
    async def test_second_confirm_finds_empty_slot(self, slot, transfer):
        async def submit(op):
            return "0xhash"

        slot.prepare(transfer)
        await slot.confirm(submit)

        with pytest.raises(NoPendingOperationError):
            await slot.confirm(submit)

    @pytest.mark.asyncio
    async def test_prepare_while_submitting_is_refused(self, slot, transfer, contract_write):
        async def submit(op):
            with pytest.raises(InvalidSlotTransitionError):
                slot.prepare(contract_write)
            return "0xhash"

        slot.prepare(transfer)
        await slot.confirm(submit)

        assert slot.is_empty

    def test_transition_table(self, slot):
        assert slot.can_transition_to(SlotState.AWAITING)
        assert not slot.can_transition_to(SlotState.SUBMITTING)
        assert not slot.can_transition_to(SlotState.SETTLED)
