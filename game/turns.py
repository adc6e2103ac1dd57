from backend import RedisBackend
from errors import NotFoundError, TurnViolationError, ValidationError
from game.codes import normalize_code
from game.concurrency import atomically
from logging_config import get_logger
from schemas.game import Room

logger = get_logger(__name__)


def send_hint(backend: RedisBackend, code: str, player_id: str, text: str) -> Room:
    """Record a hint from the player whose turn it is and pass the turn on.

    The turn is resolved against the member count at commit time, so members
    leaving between turns only shift the pointer, never break it.
    """
    text = (text or "").strip()
    if not text:
        raise ValidationError("Hint must not be empty")
    code = normalize_code(code)

    def transform(room):
        if room is None:
            raise NotFoundError(f"Room {code} not found")
        if not room.started:
            raise ValidationError(f"Room {code} has not started yet")
        current = room.current_player()
        if current is None or current.id != player_id:
            raise TurnViolationError("Not your turn")
        room.append_hint(current, text)
        room.turn_index = (room.turn_index + 1) % len(room.players)
        return room

    room = atomically(backend, code, transform)
    logger.info(f"Hint from {player_id} in room {code}, turn passes to index {room.turn_index}")
    return room
