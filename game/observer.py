import json
import threading
from typing import Callable, Optional

import pydantic
import redis

from backend import RedisBackend
from errors import StoreUnavailableError
from game.codes import normalize_code
from logging_config import get_logger
from schemas.game import Room

logger = get_logger(__name__)

OnChange = Callable[[Optional[Room]], None]
OnError = Callable[[Exception], None]

_MALFORMED = object()


class Subscription:
    """Push full room snapshots to a callback until cancelled.

    `on_change` receives the current Room once right away and again after every
    committed change, or None once the room has been deleted. A store failure
    calls `on_error` and ends the subscription for good; callers re-subscribe.
    """

    def __init__(self, backend: RedisBackend, code: str, on_change: OnChange,
                 on_error: Optional[OnError] = None, poll_interval: float = 1.0):
        self.backend = backend
        self.code = normalize_code(code)
        self.on_change = on_change
        self.on_error = on_error
        self.poll_interval = poll_interval
        self.failed = False
        self._pubsub = None
        self._stopped = threading.Event()
        self._thread = None

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()

    def start(self):
        # subscribe before the first read so no commit falls between the two
        self._pubsub = self.backend.subscribe(self.code)
        try:
            document = self.backend.get(self.code)
        except StoreUnavailableError:
            self.backend.unsubscribe(self._pubsub)
            raise
        self._deliver(document)
        self._thread = threading.Thread(target=self._listen, name=f"room-observer-{self.code}", daemon=True)
        self._thread.start()
        logger.info(f"Observing room {self.code}")
        return self

    def cancel(self):
        self._stopped.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.poll_interval * 2 + 1)
        logger.info(f"Stopped observing room {self.code}")

    def _deliver(self, document):
        self._notify(Room.model_validate(document) if document is not None else None)

    def _notify(self, room: Optional[Room]):
        try:
            self.on_change(room)
        except Exception as e:
            logger.error(f"Snapshot handler for room {self.code} failed: {e}", exc_info=True)

    def _decode(self, data):
        try:
            document = json.loads(data)
            return Room.model_validate(document) if document is not None else None
        except (json.JSONDecodeError, TypeError, pydantic.ValidationError) as e:
            logger.error(f"Skipping malformed snapshot on room {self.code} channel: {e}")
            return _MALFORMED

    def _fail(self, e: Exception):
        self.failed = True
        self._stopped.set()
        logger.error(f"Lost subscription to room {self.code}: {e}", exc_info=True)
        if self.on_error is not None:
            self.on_error(StoreUnavailableError(f"Subscription to room {self.code} failed: {e}"))

    def _listen(self):
        try:
            while not self._stopped.is_set():
                message = self._pubsub.get_message(timeout=self.poll_interval)
                if message is None or message.get("type") != "message":
                    continue
                logger.debug(f"Received snapshot for room {self.code}")
                room = self._decode(message["data"])
                if room is not _MALFORMED:
                    self._notify(room)
        except redis.RedisError as e:
            if not self._stopped.is_set():
                self._fail(e)
        except Exception as e:
            # any other exit still ends the subscription; the caller must hear about it
            self._fail(e)
        finally:
            try:
                self.backend.unsubscribe(self._pubsub)
            except redis.RedisError as e:
                logger.debug(f"Error closing pub/sub for room {self.code}: {e}")


def subscribe(backend: RedisBackend, code: str, on_change: OnChange,
              on_error: Optional[OnError] = None, poll_interval: float = 1.0) -> Subscription:
    return Subscription(backend, code, on_change, on_error, poll_interval).start()
