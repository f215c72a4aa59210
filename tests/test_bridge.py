from __future__ import annotations

import threading

from bleuart.core.bridge import NotificationBridge


def test_drain_returns_fragments_in_push_order_and_empties_queue() -> None:
    bridge = NotificationBridge()
    bridge.push(b"a")
    bridge.push(b"b")
    assert len(bridge) == 2
    assert bridge.drain() == [b"a", b"b"]
    assert bridge.drain() == []


def test_concurrent_producer_keeps_order_without_loss() -> None:
    bridge = NotificationBridge()
    total = 5000
    done = threading.Event()

    def produce() -> None:
        for i in range(total):
            bridge.push(i.to_bytes(4, "big"))
        done.set()

    producer = threading.Thread(target=produce)
    producer.start()

    drained: list[bytes] = []
    while not done.is_set():
        drained.extend(bridge.drain())
    producer.join()
    drained.extend(bridge.drain())

    assert [int.from_bytes(item, "big") for item in drained] == list(range(total))


def test_link_lost_flag_is_taken_once() -> None:
    bridge = NotificationBridge()
    bridge.mark_link_lost("first")
    bridge.mark_link_lost("second")
    assert bridge.take_link_lost() == "first"
    assert bridge.take_link_lost() is None


def test_clear_drops_fragments_and_link_flag() -> None:
    bridge = NotificationBridge()
    bridge.push(b"x")
    bridge.mark_link_lost("gone")
    bridge.clear()
    assert bridge.drain() == []
    assert bridge.take_link_lost() is None
