from fastapi import APIRouter, Depends
from schemas.rooms import CreateRoomRequest, JoinRoomRequest, LeaveRoomRequest, KickRequest, ConfigRequest, StartGameRequest, HintRequest, RoomResponse
from schemas.game import RoomSummary
from backend import RedisBackend, redis_backend
from game import membership, registry, roles, turns
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_backend() -> RedisBackend:
    return redis_backend


# Handlers are plain `def`: the redis client blocks, so FastAPI runs them in its threadpool.

@rooms_router.post("/", response_model=RoomResponse, status_code=201)
def create_room(body: CreateRoomRequest, backend: RedisBackend = Depends(get_backend)):
    logger.info(f"Room creation request from {body.name}")
    room = registry.create_room(backend, body.name, body.player_id)
    return RoomResponse(room=room, player_id=room.leader_id)


@rooms_router.get("/", response_model=list[RoomSummary])
def list_open_rooms(backend: RedisBackend = Depends(get_backend)):
    return registry.list_open_rooms(backend)


@rooms_router.get("/{code}", response_model=RoomResponse)
def get_room(code: str, backend: RedisBackend = Depends(get_backend)):
    return RoomResponse(room=registry.get_room(backend, code))


@rooms_router.post("/{code}/join", response_model=RoomResponse)
def join_room(code: str, body: JoinRoomRequest, backend: RedisBackend = Depends(get_backend)):
    logger.info(f"Join room request for {code} from {body.player_id}, name: {body.name}")
    room = membership.join(backend, code, body.player_id, body.name)
    return RoomResponse(room=room, player_id=body.player_id)


@rooms_router.post("/{code}/leave", response_model=RoomResponse)
def leave_room(code: str, body: LeaveRoomRequest, backend: RedisBackend = Depends(get_backend)):
    logger.info(f"Leave room request for {code} from {body.player_id}")
    return RoomResponse(room=membership.leave(backend, code, body.player_id), player_id=body.player_id)


@rooms_router.post("/{code}/kick", response_model=RoomResponse)
def kick_player(code: str, body: KickRequest, backend: RedisBackend = Depends(get_backend)):
    logger.info(f"Kick request for {body.target_id} in {code} from {body.requester_id}")
    return RoomResponse(room=membership.kick(backend, code, body.requester_id, body.target_id))


@rooms_router.post("/{code}/config", response_model=RoomResponse)
def set_config(code: str, body: ConfigRequest, backend: RedisBackend = Depends(get_backend)):
    room = membership.set_imposters_count(backend, code, body.requester_id, body.imposters_count)
    return RoomResponse(room=room)


@rooms_router.post("/{code}/start", response_model=RoomResponse)
def start_game(code: str, body: StartGameRequest, backend: RedisBackend = Depends(get_backend)):
    logger.info(f"Start request for {code} from {body.requester_id}")
    return RoomResponse(room=roles.start_game(backend, code, body.requester_id))


@rooms_router.post("/{code}/hints", response_model=RoomResponse)
def send_hint(code: str, body: HintRequest, backend: RedisBackend = Depends(get_backend)):
    return RoomResponse(room=turns.send_hint(backend, code, body.player_id, body.text), player_id=body.player_id)
