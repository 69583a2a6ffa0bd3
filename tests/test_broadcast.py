"""Tests for the best-effort event broadcaster."""

from utils.broadcast import EventBroadcaster, broadcast_safely, order_update_topic


class TestEventBroadcaster:
    def test_fans_out_to_every_subscriber(self):
        broadcaster = EventBroadcaster()
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        delivered = broadcaster.publish("new_order", {"id": "1", "status": "pending"})

        assert delivered == 2
        assert first.get_nowait() == {"event": "new_order", "data": {"id": "1", "status": "pending"}}
        assert second.get_nowait()["event"] == "new_order"

    def test_topic_filter(self):
        broadcaster = EventBroadcaster()
        queue = broadcaster.subscribe(["order_update_42"])

        broadcaster.publish("new_order", {"id": "7"})
        broadcaster.publish("order_update_42", {"status": "shipped"})

        assert queue.get_nowait()["data"] == {"status": "shipped"}
        assert queue.empty()

    def test_full_queue_drops_events(self):
        broadcaster = EventBroadcaster(queue_size=1)
        queue = broadcaster.subscribe()

        assert broadcaster.publish("new_order", {"id": "1"}) == 1
        assert broadcaster.publish("new_order", {"id": "2"}) == 0

        assert queue.get_nowait()["data"] == {"id": "1"}
        assert queue.empty()

    def test_unsubscribed_listeners_get_nothing(self):
        broadcaster = EventBroadcaster()
        queue = broadcaster.subscribe()
        broadcaster.unsubscribe(queue)

        assert broadcaster.publish("new_order", {"id": "1"}) == 0
        assert broadcaster.subscriber_count == 0
        assert queue.empty()


class TestBroadcastSafely:
    def test_swallows_listener_errors(self):
        class Exploding:
            def publish(self, topic, payload):
                raise RuntimeError("boom")

        broadcast_safely(Exploding(), "new_order", {})

    def test_none_broadcaster_is_a_noop(self):
        broadcast_safely(None, "new_order", {})


def test_order_update_topic_embeds_order_id():
    assert order_update_topic(42) == "order_update_42"
