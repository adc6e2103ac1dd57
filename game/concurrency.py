from typing import Callable, Optional

from backend import RedisBackend
from schemas.game import Room

RoomTransform = Callable[[Optional[Room]], Optional[Room]]


def atomically(backend: RedisBackend, code: str, transform: RoomTransform) -> Optional[Room]:
    """The only path by which a stored room changes.

    `transform` gets the current Room (None if absent) and returns the next Room,
    or None to delete it. It may run several times when other clients commit
    concurrently, so it must not have side effects outside the Room it returns.
    Errors raised from it abort the commit.
    """
    def apply(document):
        room = Room.model_validate(document) if document is not None else None
        result = transform(room)
        return result.model_dump(mode="json") if result is not None else None

    committed = backend.transact(code, apply)
    return Room.model_validate(committed) if committed is not None else None
