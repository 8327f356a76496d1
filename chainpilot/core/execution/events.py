"""
Structured event stream for the preparation and confirmation flow.

Slot transitions, signing attempts and watcher outcomes are published here as
timestamped :class:`FlowEvent` records. Subscribers (timing collection, card
rendering, tests) consume them without the flow knowing who listens.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional

from .models import utcnow


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowEvent:
    name: str
    timestamp: datetime
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


EventSubscriber = Callable[[FlowEvent], None]


class EventStream:
    """In-process fan-out of flow events with a bounded history."""

    def __init__(self, history_size: int = 500):
        self._subscribers: List[EventSubscriber] = []
        self._history: Deque[FlowEvent] = deque(maxlen=history_size)

    def subscribe(self, subscriber: EventSubscriber) -> Callable[[], None]:
        """Register ``subscriber``; the returned callable unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def emit(self, name: str, **data: Any) -> FlowEvent:
        event = FlowEvent(name=name, timestamp=utcnow(), data=data)
        self._history.append(event)
        logger.debug(f"Flow event {name}: {data}")

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                logger.error(f"Event subscriber failed on {name}: {e}")
        return event

    def history(self, prefix: Optional[str] = None) -> List[FlowEvent]:
        if prefix is None:
            return list(self._history)
        return [e for e in self._history if e.name.startswith(prefix)]

    def names(self) -> List[str]:
        return [e.name for e in self._history]
