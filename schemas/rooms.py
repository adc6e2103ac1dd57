from pydantic import BaseModel
from typing import Optional

from schemas.game import Room


class CreateRoomRequest(BaseModel):
    name: str
    player_id: Optional[str] = None

class JoinRoomRequest(BaseModel):
    player_id: str
    name: str

class LeaveRoomRequest(BaseModel):
    player_id: str

class KickRequest(BaseModel):
    requester_id: str
    target_id: str

class ConfigRequest(BaseModel):
    requester_id: str
    imposters_count: int

class StartGameRequest(BaseModel):
    requester_id: str

class HintRequest(BaseModel):
    player_id: str
    text: str

class RoomResponse(BaseModel):
    room: Optional[Room]
    player_id: Optional[str] = None

class ErrorResponse(BaseModel):
    code: str
    detail: str
