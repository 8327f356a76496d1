"""
Status cards for submitted transactions.

One card per transaction hash. A card starts ``waiting`` and moves exactly once
to ``confirmed`` or ``failed``; it leaves the registry only when the user
dismisses it after that. Rendering is left to listeners.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..chains import explorer_tx_url, get_chain_by_id
from ..errors import CardTransitionError, NotFoundError
from .events import EventStream
from .models import OperationKind, utcnow


logger = logging.getLogger(__name__)


class CardStatus(str, Enum):
    WAITING = "waiting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({CardStatus.CONFIRMED, CardStatus.FAILED})

BADGES = {
    CardStatus.WAITING: "⏳ Waiting",
    CardStatus.CONFIRMED: "✅ Confirmed",
    CardStatus.FAILED: "❌ Failed",
}


def default_title(kind: OperationKind, label: Optional[str] = None) -> str:
    if kind == OperationKind.CONTRACT:
        return f"Invoking {label or 'contract'}() function"
    if kind == OperationKind.DEPLOY:
        return f"Deploy {label or 'contract'}"
    return "Transaction pending"


@dataclass
class StatusCard:
    hash: str
    kind: OperationKind
    chain_id: int
    status: CardStatus = CardStatus.WAITING
    title: str = ""
    subtitle: str = ""
    detail: Optional[str] = None
    explorer_url: Optional[str] = None
    contract_address: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def render(self) -> str:
        lines = [f"{BADGES[self.status]} | {self.title}"]
        if self.subtitle:
            lines.append(self.subtitle)
        lines.append(f"Hash: {self.hash}")
        if self.contract_address:
            lines.append(f"Contract: {self.contract_address}")
        if self.explorer_url:
            lines.append(f"Explorer: {self.explorer_url}")
        if self.detail:
            lines.append(self.detail)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "kind": self.kind.value,
            "chainId": self.chain_id,
            "status": self.status.value,
            "title": self.title,
            "subtitle": self.subtitle,
            "detail": self.detail,
            "explorerUrl": self.explorer_url,
            "contractAddress": self.contract_address,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "rendered": self.render(),
        }


# (change, card) where change is "created", "updated" or "dismissed"
CardListener = Callable[[str, StatusCard], None]


class StatusCardRegistry:
    """Maps transaction hash to its status card and notifies listeners."""

    def __init__(self, events: Optional[EventStream] = None):
        self.events = events
        self._cards: Dict[str, StatusCard] = {}
        self._listeners: List[CardListener] = []

    def subscribe(self, listener: CardListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: str, card: StatusCard) -> None:
        for listener in list(self._listeners):
            try:
                listener(change, card)
            except Exception as e:
                logger.error(f"Card listener failed on {change} for {card.hash}: {e}")
        if self.events is not None:
            self.events.emit(
                f"card.{change}",
                hash=card.hash,
                kind=card.kind.value,
                status=card.status.value,
            )

    def create(
        self,
        tx_hash: str,
        kind: OperationKind,
        chain_id: int,
        label: Optional[str] = None,
        title: Optional[str] = None,
    ) -> StatusCard:
        """Insert a ``waiting`` card; an existing card for the hash is returned as is."""
        existing = self._cards.get(tx_hash)
        if existing is not None:
            logger.debug(f"Status card for {tx_hash} already exists")
            return existing

        chain = get_chain_by_id(chain_id)
        card = StatusCard(
            hash=tx_hash,
            kind=kind,
            chain_id=chain_id,
            title=title or default_title(kind, label),
            subtitle=chain.name if chain else f"chainId {chain_id}",
            explorer_url=explorer_tx_url(chain_id, tx_hash),
        )
        self._cards[tx_hash] = card
        logger.info(f"Created {kind.value} status card for {tx_hash}")
        self._notify("created", card)
        return card

    def get(self, tx_hash: str) -> Optional[StatusCard]:
        return self._cards.get(tx_hash)

    def list(self) -> List[StatusCard]:
        return list(self._cards.values())

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, tx_hash: str) -> bool:
        return tx_hash in self._cards

    def _require(self, tx_hash: str) -> StatusCard:
        card = self._cards.get(tx_hash)
        if card is None:
            raise NotFoundError(f"No status card for {tx_hash}")
        return card

    def set_status(
        self,
        tx_hash: str,
        status: CardStatus,
        detail: Optional[str] = None,
        contract_address: Optional[str] = None,
    ) -> StatusCard:
        """
        Move a card to ``status``.

        Repeating the current status only re-renders. Leaving a terminal status
        is refused.
        """
        card = self._require(tx_hash)
        status = CardStatus(status)

        if card.is_terminal and status != card.status:
            raise CardTransitionError(
                f"Card {tx_hash} is already {card.status.value}; cannot become {status.value}",
                details={"from": card.status.value, "to": status.value},
            )

        card.status = status
        if detail is not None:
            card.detail = detail
        if contract_address is not None:
            card.contract_address = contract_address
        card.updated_at = utcnow()

        logger.info(f"Status card {tx_hash} -> {status.value}")
        self._notify("updated", card)
        return card

    def dismiss(self, tx_hash: str) -> StatusCard:
        """Remove a settled card; waiting cards cannot be dismissed."""
        card = self._require(tx_hash)
        if not card.is_terminal:
            raise CardTransitionError(f"Card {tx_hash} is still waiting for confirmation")
        del self._cards[tx_hash]
        self._notify("dismissed", card)
        return card
