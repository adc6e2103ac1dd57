import secrets
import uuid
from typing import Callable

from constants import ROOM_CODE_ALPHABET, ROOM_CODE_ATTEMPTS, ROOM_CODE_LENGTH
from errors import CodeExhaustedError
from logging_config import get_logger

logger = get_logger(__name__)


def new_player_id() -> str:
    return uuid.uuid4().hex


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def allocate_code(claim: Callable[[str], bool],
                  attempts: int = ROOM_CODE_ATTEMPTS,
                  generate: Callable[[], str] = generate_room_code) -> str:
    """Propose codes until `claim` accepts one; never hand back a colliding code."""
    for attempt in range(1, attempts + 1):
        code = generate()
        if claim(code):
            return code
        logger.debug(f"Room code {code} already in use (attempt {attempt}/{attempts})")
    logger.warning(f"Could not find a free room code after {attempts} attempts")
    raise CodeExhaustedError(f"No free room code after {attempts} attempts")
