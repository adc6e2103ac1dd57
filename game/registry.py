from typing import Optional

from backend import RedisBackend
from errors import NotFoundError, ValidationError
from game.codes import allocate_code, generate_room_code, new_player_id, normalize_code
from logging_config import get_logger
from schemas.game import Player, Room, RoomSummary

logger = get_logger(__name__)


def clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Display name must not be empty")
    return name


def create_room(backend: RedisBackend, leader_name: str, player_id: Optional[str] = None,
                generate=generate_room_code) -> Room:
    name = clean_name(leader_name)
    player_id = player_id or new_player_id()

    leader = Player(id=player_id, name=name)
    created = {}

    def claim(code):
        room = Room(code=code, leader_id=leader.id, players={leader.id: leader})
        # existence check and write are one NX command
        if backend.put(code, room.model_dump(mode="json"), only_if_absent=True):
            created["room"] = room
            return True
        return False

    code = allocate_code(claim, generate=generate)
    logger.info(f"Room {code} created by {name} ({player_id})")
    return created["room"]


def get_room(backend: RedisBackend, code: str) -> Room:
    code = normalize_code(code)
    document = backend.get(code)
    if document is None:
        raise NotFoundError(f"Room {code} not found")
    return Room.model_validate(document)


def delete_room(backend: RedisBackend, code: str):
    backend.remove(normalize_code(code))


def list_open_rooms(backend: RedisBackend) -> list:
    """Stale-tolerant discovery view; never used for authoritative decisions."""
    codes = sorted(backend.list_codes())
    rooms = []
    for document in backend.get_many(codes):
        if document is None:
            continue
        room = Room.model_validate(document)
        if room.started:
            continue
        leader = room.leader()
        rooms.append((room.created_at, RoomSummary(
            code=room.code,
            member_count=len(room.players),
            leader_name=leader.name if leader else None,
            started=room.started,
        )))
    return [summary for _, summary in sorted(rooms, key=lambda item: item[0])]
