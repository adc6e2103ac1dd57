import random
from typing import Optional

from backend import RedisBackend
from errors import NotFoundError, ValidationError
from game.codes import normalize_code
from game.concurrency import atomically
from game.membership import require_leader
from logging_config import get_logger
from schemas.game import Role, Room

logger = get_logger(__name__)

_system_random = random.SystemRandom()


def imposter_total(configured: int, member_count: int) -> int:
    return min(configured, max(1, member_count // 2))


def assign_roles(room: Room, rng: Optional[random.Random] = None) -> set:
    """Pick imposters uniformly without replacement and write every member's role."""
    rng = rng or _system_random
    ordered_ids = [player.id for player in room.ordered_players()]
    k = imposter_total(room.imposters_count, len(ordered_ids))
    imposters = set(rng.sample(ordered_ids, k))
    for player in room.players.values():
        player.role = Role.IMPOSTER if player.id in imposters else Role.CREWMATE
    return imposters


def start_game(backend: RedisBackend, code: str, requester_id: str,
               rng: Optional[random.Random] = None) -> Room:
    code = normalize_code(code)

    def transform(room):
        if room is None:
            raise NotFoundError(f"Room {code} not found")
        require_leader(room, requester_id)
        if room.started:
            raise ValidationError(f"Room {code} has already started")
        if not room.players:
            raise ValidationError(f"Room {code} has no members")
        imposters = assign_roles(room, rng)
        room.imposters_count = len(imposters)
        room.started = True
        room.turn_index = 0
        room.append_system(f"Game started. {len(imposters)} imposters assigned.")
        return room

    room = atomically(backend, code, transform)
    logger.info(f"Room {code} started with {len(room.players)} players, {room.imposters_count} imposters")
    return room
