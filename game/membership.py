"""
Join, leave, kick and lobby settings.

Every operation runs as one optimistic transaction on the room document, so
leadership, start state and membership are re-checked against the committed
state rather than whatever the caller last saw.
"""

from typing import Optional

from backend import RedisBackend
from errors import AuthorizationError, GameAlreadyStartedError, NotFoundError, ValidationError
from game.codes import normalize_code
from game.concurrency import atomically
from game.registry import clean_name
from logging_config import get_logger
from schemas.game import Player, Room

logger = get_logger(__name__)


def require_leader(room: Room, requester_id: str):
    if room.leader_id != requester_id:
        logger.warning(f"{requester_id} is not the leader of room {room.code}")
        raise AuthorizationError("Only the room leader can do that")


def _remove_member(room: Room, player_id: str) -> Optional[Room]:
    """Drop a member, hand leadership on if needed; None when the room is now empty."""
    del room.players[player_id]
    if not room.players:
        logger.info(f"Room {room.code} is empty, deleting it")
        return None
    if room.leader_id == player_id:
        successor = room.ordered_players()[0]
        room.leader_id = successor.id
        logger.info(f"Leadership of room {room.code} passed to {successor.name} ({successor.id})")
    return room


def join(backend: RedisBackend, code: str, player_id: str, name: str) -> Room:
    code = normalize_code(code)
    name = clean_name(name)
    if not player_id:
        raise ValidationError("Player id must not be empty")

    def transform(room):
        if room is None:
            raise NotFoundError(f"Room {code} not found")
        if player_id in room.players:
            return room
        if room.started:
            raise GameAlreadyStartedError(f"Room {code} has already started")
        room.players[player_id] = Player(id=player_id, name=name)
        return room

    room = atomically(backend, code, transform)
    logger.info(f"{name} ({player_id}) is in room {code}, {len(room.players)} members")
    return room


def leave(backend: RedisBackend, code: str, player_id: str) -> Optional[Room]:
    """Idempotent: leaving an absent room or a room one is not in is a no-op."""
    code = normalize_code(code)

    def transform(room):
        if room is None or player_id not in room.players:
            return room
        return _remove_member(room, player_id)

    room = atomically(backend, code, transform)
    logger.info(f"{player_id} left room {code}")
    return room


def kick(backend: RedisBackend, code: str, requester_id: str, target_id: str) -> Optional[Room]:
    code = normalize_code(code)

    def transform(room):
        if room is None:
            raise NotFoundError(f"Room {code} not found")
        require_leader(room, requester_id)
        if target_id not in room.players:
            raise NotFoundError(f"Player {target_id} is not in room {code}")
        return _remove_member(room, target_id)

    room = atomically(backend, code, transform)
    logger.info(f"{target_id} was kicked from room {code} by {requester_id}")
    return room


def set_imposters_count(backend: RedisBackend, code: str, requester_id: str, count: int) -> Room:
    code = normalize_code(code)
    if count is None or count < 1:
        raise ValidationError("Imposter count must be at least 1")

    def transform(room):
        if room is None:
            raise NotFoundError(f"Room {code} not found")
        require_leader(room, requester_id)
        if room.started:
            raise GameAlreadyStartedError(f"Room {code} has already started")
        room.imposters_count = max(1, min(count, len(room.players)))
        return room

    room = atomically(backend, code, transform)
    logger.info(f"Room {code} imposter count set to {room.imposters_count}")
    return room
