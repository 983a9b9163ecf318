"""Tests for the bounded per-room history."""
from chat_relay import ChatMessage, RoomHistoryStore


def make_message(index, room="tech"):
    return ChatMessage(type="user", message=f"m{index}", timestamp=index, room=room, username="bob")


def test_unknown_room_is_empty():
    store = RoomHistoryStore()
    assert store.get("nowhere") == []
    assert store.room_count() == 0


def test_keeps_append_order():
    store = RoomHistoryStore()
    for i in range(5):
        store.append("tech", make_message(i))

    assert [m.message for m in store.get("tech")] == ["m0", "m1", "m2", "m3", "m4"]


def test_keeps_only_last_capacity_messages():
    store = RoomHistoryStore(capacity=100)
    for i in range(150):
        store.append("tech", make_message(i))

    history = store.get("tech")
    assert len(history) == 100
    assert [m.timestamp for m in history] == list(range(50, 150))


def test_exactly_capacity_keeps_everything():
    store = RoomHistoryStore(capacity=100)
    for i in range(100):
        store.append("tech", make_message(i))

    assert store.get("tech")[0].timestamp == 0
    assert store.message_count() == 100


def test_rooms_are_isolated():
    store = RoomHistoryStore(capacity=3)
    for i in range(5):
        store.append("tech", make_message(i))
    store.append("gaming", make_message(99, room="gaming"))

    assert [m.timestamp for m in store.get("tech")] == [2, 3, 4]
    assert [m.timestamp for m in store.get("gaming")] == [99]
    assert store.room_count() == 2


def test_get_returns_a_copy():
    store = RoomHistoryStore()
    store.append("tech", make_message(1))

    store.get("tech").clear()
    assert len(store.get("tech")) == 1
