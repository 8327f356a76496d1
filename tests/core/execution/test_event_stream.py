"""
Tests for the flow event stream.
"""

from chainpilot.core.execution.events import EventStream


class TestEventStream:

    def test_subscribers_receive_events(self):
        stream = EventStream()
        seen = []
        stream.subscribe(seen.append)

        event = stream.emit("slot.prepared", kind="transfer", chain_id=1)

        assert seen == [event]
        assert event.data == {"kind": "transfer", "chain_id": 1}

    def test_unsubscribe(self):
        stream = EventStream()
        seen = []
        unsubscribe = stream.subscribe(seen.append)

        unsubscribe()
        stream.emit("slot.prepared")

        assert seen == []

    def test_failing_subscriber_does_not_block_others(self):
        stream = EventStream()
        seen = []

        def broken(event):
            raise RuntimeError("listener bug")

        stream.subscribe(broken)
        stream.subscribe(seen.append)
        stream.emit("card.created", hash="0x1")

        assert [e.name for e in seen] == ["card.created"]

    def test_history_prefix_filter(self):
        stream = EventStream()
        stream.emit("slot.prepared")
        stream.emit("card.created")
        stream.emit("slot.denied")

        assert [e.name for e in stream.history("slot.")] == ["slot.prepared", "slot.denied"]
        assert stream.names() == ["slot.prepared", "card.created", "slot.denied"]

    def test_history_is_bounded(self):
        stream = EventStream(history_size=2)
        for i in range(5):
            stream.emit(f"e{i}")

        assert stream.names() == ["e3", "e4"]

    def test_to_dict(self):
        event = EventStream().emit("watch.completed", ok=True)

        data = event.to_dict()

        assert data["name"] == "watch.completed"
        assert data["data"] == {"ok": True}
        assert "T" in data["timestamp"]
