from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    CREWMATE = "crewmate"
    IMPOSTER = "imposter"


class Player(BaseModel):
    id: str
    name: str
    role: Role = Role.CREWMATE
    joined_at: datetime = Field(default_factory=utcnow)


class SystemMessage(BaseModel):
    kind: Literal["system"] = "system"
    seq: int
    text: str
    ts: datetime = Field(default_factory=utcnow)


class PlayerMessage(BaseModel):
    kind: Literal["player"] = "player"
    seq: int
    player_id: str
    name: str
    text: str
    ts: datetime = Field(default_factory=utcnow)


ChatMessage = Annotated[Union[SystemMessage, PlayerMessage], Field(discriminator="kind")]


class Room(BaseModel):
    code: str
    leader_id: str
    imposters_count: int = 1
    started: bool = False
    turn_index: int = 0
    players: dict[str, Player] = Field(default_factory=dict)
    chat: list[ChatMessage] = Field(default_factory=list)
    chat_seq: int = 0
    created_at: datetime = Field(default_factory=utcnow)

    def ordered_players(self) -> list[Player]:
        """Members by join time, ties broken by id; never the mapping's own order."""
        return sorted(self.players.values(), key=lambda p: (p.joined_at, p.id))

    def leader(self) -> Optional[Player]:
        return self.players.get(self.leader_id)

    def current_player(self) -> Optional[Player]:
        ordered = self.ordered_players()
        if not ordered:
            return None
        return ordered[self.turn_index % len(ordered)]

    def append_system(self, text: str) -> SystemMessage:
        message = SystemMessage(seq=self.chat_seq, text=text)
        self.chat.append(message)
        self.chat_seq += 1
        return message

    def append_hint(self, player: Player, text: str) -> PlayerMessage:
        message = PlayerMessage(seq=self.chat_seq, player_id=player.id, name=player.name, text=text)
        self.chat.append(message)
        self.chat_seq += 1
        return message


class RoomSummary(BaseModel):
    code: str
    member_count: int
    leader_name: Optional[str]
    started: bool
