"""Shared fixtures: a recording socket, a controllable clock and an engine."""
import asyncio
import json

import pytest

from chat_relay import SessionEngine


class FakeWebSocket:
    """Stands in for a Starlette WebSocket and records decoded outbound frames.

    Every send yields to the event loop, like a real socket write, so other
    tasks can run between frames. on_frame, when set, is called with each
    recorded frame.
    """

    def __init__(self, fail: bool = False, stall: bool = False):
        self.frames = []
        self.fail = fail
        self.stall = stall
        self.on_frame = None

    async def send_text(self, text: str):
        if self.fail:
            raise RuntimeError("socket closed")
        if self.stall:
            # A client that stopped reading: the write never completes
            await asyncio.Event().wait()
        await asyncio.sleep(0)
        frame = json.loads(text)
        self.frames.append(frame)
        if self.on_frame is not None:
            self.on_frame(frame)

    def types(self):
        return [frame["type"] for frame in self.frames]

    def last(self, event_type):
        for frame in reversed(self.frames):
            if frame["type"] == event_type:
                return frame["data"]
        raise AssertionError(f"no {event_type} frame in {self.types()}")

    def clear(self):
        self.frames.clear()


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return SessionEngine(clock=clock)


@pytest.fixture
def connect(engine):
    """Open a fake connection, optionally join it, and return its socket.

    The returned socket's frames are cleared after joining so tests only
    see what happens next.
    """
    async def _connect(connection_id, username=None, room=None, fail=False):
        websocket = FakeWebSocket(fail=fail)
        await engine.connect(connection_id, websocket)
        if username is not None:
            error = await engine.join(connection_id, username, room)
            assert error is None, error
        websocket.clear()
        return websocket

    return _connect


@pytest.fixture
def fake_socket():
    return FakeWebSocket()
