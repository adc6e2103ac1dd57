import pytest

from constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH
from errors import CodeExhaustedError
from game.codes import allocate_code, generate_room_code, new_player_id, normalize_code


def test_generated_code_uses_unambiguous_alphabet():
    for _ in range(200):
        code = generate_room_code()
        assert len(code) == ROOM_CODE_LENGTH
        assert set(code) <= set(ROOM_CODE_ALPHABET)
    for confusable in "0O1IL":
        assert confusable not in ROOM_CODE_ALPHABET


def test_allocate_retries_until_claimed():
    proposals = iter(["AAAAAA", "BBBBBB", "CCCCCC"])
    taken = {"AAAAAA", "BBBBBB"}
    code = allocate_code(lambda c: c not in taken, generate=lambda: next(proposals))
    assert code == "CCCCCC"


def test_allocate_fails_instead_of_reusing_a_taken_code():
    calls = []

    def claim(code):
        calls.append(code)
        return False

    with pytest.raises(CodeExhaustedError):
        allocate_code(claim, attempts=6, generate=lambda: "AAAAAA")
    assert len(calls) == 6


def test_normalize_code():
    assert normalize_code("  abc23x ") == "ABC23X"
    assert normalize_code(None) == ""


def test_player_ids_are_unique():
    assert len({new_player_id() for _ in range(100)}) == 100
