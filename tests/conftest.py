import random

import fakeredis
import pytest

from backend import RedisBackend
from game import registry, membership


@pytest.fixture
def server():
    return fakeredis.FakeServer()


@pytest.fixture
def make_backend(server):
    """Independent clients on one shared store, like separate game clients."""
    def make(**kwargs):
        return RedisBackend(fakeredis.FakeRedis(server=server, decode_responses=True), **kwargs)
    return make


@pytest.fixture
def backend(make_backend):
    return make_backend()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def lobby(backend):
    """Alice's room with Bob and Carol joined, in that order."""
    room = registry.create_room(backend, "Alice", player_id="alice")
    membership.join(backend, room.code, "bob", "Bob")
    membership.join(backend, room.code, "carol", "Carol")
    return room.code
