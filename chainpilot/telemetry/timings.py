
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, Dict, List, Optional, Tuple

from ..core.execution.events import FlowEvent

logger = logging.getLogger(__name__)

STARTED_SUFFIX = ".started"
COMPLETED_SUFFIX = ".completed"
CANCELLED_SUFFIX = ".cancelled"


@dataclass
class TimingSample:
    scope: str
    kind: Optional[str]
    latency_ms: float
    ok: bool = True


class TimingCollector:
    """
    Pairs ``<scope>.started`` / ``<scope>.completed`` events into latency samples.

    Events are correlated by their ``key`` field (action id, tx hash). A
    ``<scope>.cancelled`` event drops the open start without a sample. Only the
    most recent ``max_samples`` samples are kept.
    """

    def __init__(self, max_samples: int = 1000):
        self._open: Dict[Tuple[str, str], datetime] = {}
        self.samples: Deque[TimingSample] = deque(maxlen=max_samples)

    def __call__(self, event: FlowEvent) -> None:
        key = event.data.get("key")
        if key is None:
            return

        if event.name.endswith(STARTED_SUFFIX):
            scope = event.name[: -len(STARTED_SUFFIX)]
            self._open[(scope, str(key))] = event.timestamp
            return

        if event.name.endswith(CANCELLED_SUFFIX):
            scope = event.name[: -len(CANCELLED_SUFFIX)]
            self._open.pop((scope, str(key)), None)
            return

        if event.name.endswith(COMPLETED_SUFFIX):
            scope = event.name[: -len(COMPLETED_SUFFIX)]
            started = self._open.pop((scope, str(key)), None)
            if started is None:
                return
            sample = TimingSample(
                scope=scope,
                kind=event.data.get("kind"),
                latency_ms=(event.timestamp - started).total_seconds() * 1000,
                ok=bool(event.data.get("ok", True)),
            )
            self.samples.append(sample)
            logger.info(
                "flow-timing", extra={
                    "scope": sample.scope,
                    "kind": sample.kind,
                    "latency_ms": sample.latency_ms,
                    "ok": sample.ok,
                }
            )

    def for_scope(self, scope: str) -> List[TimingSample]:
        return [s for s in self.samples if s.scope == scope]

    def average_ms(self, scope: str, kind: Optional[str] = None) -> Optional[float]:
        values = [
            s.latency_ms for s in self.samples
            if s.scope == scope and (kind is None or s.kind == kind)
        ]
        if not values:
            return None
        return sum(values) / len(values)

    @property
    def in_flight(self) -> int:
        return len(self._open)
