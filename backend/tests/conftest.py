import random

import pytest

from fakeartist.config import Config
from fakeartist.game.models import Player, Room
from fakeartist.game.service import GameService
from fakeartist.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False


class FakeClock:
    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def service(clock):
    return GameService(rng=random.Random(1234), clock=clock)


@pytest.fixture()
def room_factory():
    """Build a Room snapshot directly: players p0..p{n-1}, p0 is the host."""

    def _make(n: int = 3, fake=(), **kwargs) -> Room:
        players = tuple(
            Player(
                id=f"p{i}",
                name=f"Player {i}",
                avatar=f"a{i}",
                color=f"c{i}",
                is_host=i == 0,
                is_fake_artist=i in fake,
            )
            for i in range(n)
        )
        kwargs.setdefault("used_words", ("Cat",))
        return Room(
            id="ROOM01",
            host_id="p0",
            category="animals",
            word="Cat",
            players=players,
            **kwargs,
        )

    return _make


@pytest.fixture()
def seat_room(service):
    """Create a room through the service and seat ``n`` players (p0 hosts)."""

    def _seat(n: int = 3, **kwargs) -> str:
        room = service.create_room("p0", "Player 0", "animals", avatar="a0", color="c0", **kwargs)
        for i in range(1, n):
            service.join_room(room.id, f"p{i}", f"Player {i}", avatar=f"a{i}", color=f"c{i}")
        return room.id

    return _seat


@pytest.fixture()
def flask_app(service):
    application, _ = create_app(TestConfig, service=service)
    yield application


@pytest.fixture()
def socketio(flask_app):
    return flask_app.extensions["socketio"]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, socketio):
    test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()
