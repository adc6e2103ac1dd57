import threading

import pytest

from errors import NotFoundError, TurnViolationError, ValidationError
from game import membership, registry, roles, turns


@pytest.fixture
def game(backend, lobby):
    roles.start_game(backend, lobby, "alice")
    return lobby


def test_full_rotation_visits_every_member_once(backend, game):
    seen = []
    for player_id in ["alice", "bob", "carol"]:
        seen.append(registry.get_room(backend, game).turn_index)
        turns.send_hint(backend, game, player_id, f"hint from {player_id}")
    assert seen == [0, 1, 2]
    assert registry.get_room(backend, game).turn_index == 0


def test_hints_are_appended_in_order(backend, game):
    turns.send_hint(backend, game, "alice", "  round  ")
    room = turns.send_hint(backend, game, "bob", "shiny")
    hints = [m for m in room.chat if m.kind == "player"]
    assert [(m.player_id, m.name, m.text) for m in hints] == [("alice", "Alice", "round"), ("bob", "Bob", "shiny")]
    assert [m.seq for m in room.chat] == list(range(len(room.chat)))


def test_out_of_turn_hint_is_rejected(backend, game):
    with pytest.raises(TurnViolationError):
        turns.send_hint(backend, game, "bob", "too early")
    turns.send_hint(backend, game, "alice", "first")
    with pytest.raises(TurnViolationError):
        turns.send_hint(backend, game, "alice", "again")
    assert registry.get_room(backend, game).turn_index == 1


def test_non_member_never_has_the_turn(backend, game):
    with pytest.raises(TurnViolationError):
        turns.send_hint(backend, game, "mallory", "hi")


def test_empty_hint(backend, game):
    with pytest.raises(ValidationError):
        turns.send_hint(backend, game, "alice", "   ")


def test_hint_before_start(backend, lobby):
    with pytest.raises(ValidationError):
        turns.send_hint(backend, lobby, "alice", "hi")


def test_hint_to_unknown_room(backend):
    with pytest.raises(NotFoundError):
        turns.send_hint(backend, "ZZZZZZ", "alice", "hi")


def test_turn_survives_members_leaving(backend, game):
    turns.send_hint(backend, game, "alice", "one")
    turns.send_hint(backend, game, "bob", "two")
    # pointer now at 2 (carol); carol leaves, two members remain
    membership.leave(backend, game, "carol")
    room = registry.get_room(backend, game)
    assert room.turn_index == 2
    assert room.current_player().id == "alice"
    room = turns.send_hint(backend, game, "alice", "three")
    assert room.turn_index == 1
    assert room.current_player().id == "bob"


def test_two_player_scenario_turns(backend):
    room = registry.create_room(backend, "Alice", player_id="alice")
    membership.join(backend, room.code, "bob", "Bob")
    roles.start_game(backend, room.code, "alice")
    with pytest.raises(TurnViolationError):
        turns.send_hint(backend, room.code, "bob", "not yet")
    turns.send_hint(backend, room.code, "alice", "mine")
    with pytest.raises(TurnViolationError):
        turns.send_hint(backend, room.code, "alice", "again")
    turns.send_hint(backend, room.code, "bob", "now")


def test_racing_hints_for_one_turn_commit_once(make_backend):
    backend = make_backend()
    room = registry.create_room(backend, "Alice", player_id="alice")
    membership.join(backend, room.code, "bob", "Bob")
    roles.start_game(backend, room.code, "alice")

    # the same player on two devices
    barrier = threading.Barrier(2)
    outcomes = []

    def send(text):
        client = make_backend()
        barrier.wait()
        try:
            turns.send_hint(client, room.code, "alice", text)
            outcomes.append("ok")
        except TurnViolationError:
            outcomes.append("not your turn")

    threads = [threading.Thread(target=send, args=(text,)) for text in ("first", "second")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["not your turn", "ok"]
    stored = registry.get_room(backend, room.code)
    assert stored.turn_index == 1
    assert len([m for m in stored.chat if m.kind == "player"]) == 1
