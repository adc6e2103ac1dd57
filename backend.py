import json
import random
import time
from typing import Callable, Optional

import redis
from redis.exceptions import WatchError

from constants import (
    OPERATION_TIMEOUT_SECONDS,
    REDIS_HOST,
    REDIS_PASSWORD,
    REDIS_PORT,
    REDIS_SOCKET_TIMEOUT,
    TRANSACTION_RETRIES,
)
from errors import ConflictExhaustedError, OperationTimeoutError, StoreUnavailableError
from logging_config import get_logger
from redis_keys import REDIS_ROOM_CHANNEL, REDIS_ROOM_INDEX, REDIS_ROOM_KEY

logger = get_logger(__name__)

Document = dict
Transform = Callable[[Optional[Document]], Optional[Document]]


def _set_path(document: Document, path: str, value):
    parts = path.split(".")
    node = document
    for part in parts[:-1]:
        if not isinstance(node.get(part), dict):
            node[part] = {}
        node = node[part]
    node[parts[-1]] = value


class RedisBackend:
    """Shared state store over Redis: keyed JSON documents, optimistic transactions, pub/sub."""

    def __init__(self, redis_client: Optional[redis.Redis] = None,
                 retries: int = TRANSACTION_RETRIES,
                 timeout: float = OPERATION_TIMEOUT_SECONDS):
        if redis_client is None:
            redis_client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                socket_timeout=REDIS_SOCKET_TIMEOUT,
                decode_responses=True,
            )
            logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
        self.redis_client = redis_client
        self.retries = retries
        self.timeout = timeout

    def check_connection(self):
        try:
            self.redis_client.ping()
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
            raise StoreUnavailableError(f"Redis is unreachable: {e}") from e
        logger.info("Redis client connected successfully")

    # ---------- documents ---------- #

    def get(self, code: str) -> Optional[Document]:
        logger.debug(f"Fetching room {code}")
        try:
            raw = self.redis_client.get(REDIS_ROOM_KEY.format(code=code))
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Could not read room {code}: {e}") from e
        if raw is None:
            logger.debug(f"Room {code} not found in Redis")
            return None
        return json.loads(raw)

    def get_many(self, codes: list) -> list:
        if not codes:
            return []
        keys = [REDIS_ROOM_KEY.format(code=code) for code in codes]
        try:
            raws = self.redis_client.mget(keys)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Could not read rooms: {e}") from e
        return [json.loads(raw) if raw is not None else None for raw in raws]

    def list_codes(self) -> set:
        try:
            return self.redis_client.smembers(REDIS_ROOM_INDEX)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Could not list rooms: {e}") from e

    def put(self, code: str, document: Document, only_if_absent: bool = False) -> bool:
        """Write the whole document. With only_if_absent, returns False instead of overwriting."""
        logger.info(f"Writing room {code} (only_if_absent={only_if_absent})")
        key = REDIS_ROOM_KEY.format(code=code)
        payload = json.dumps(document)
        try:
            with self.redis_client.pipeline() as pipe:
                pipe.set(key, payload, nx=only_if_absent)
                pipe.sadd(REDIS_ROOM_INDEX, code)
                written, _ = pipe.execute()
                if not written:
                    # SADD still ran; the code belongs to the existing room anyway
                    logger.debug(f"Room {code} already exists, not overwritten")
                    return False
                self.redis_client.publish(REDIS_ROOM_CHANNEL.format(code=code), payload)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Could not write room {code}: {e}") from e
        return True

    def patch(self, code: str, updates: dict) -> Optional[Document]:
        """Apply several dotted-path field writes to an existing document atomically.

        Store-level convenience; game operations write through `transact` directly.
        """
        def apply(document):
            if document is None:
                return None
            for path, value in updates.items():
                _set_path(document, path, value)
            return document

        return self.transact(code, apply)

    def remove(self, code: str):
        logger.info(f"Deleting room {code}")
        try:
            with self.redis_client.pipeline() as pipe:
                pipe.delete(REDIS_ROOM_KEY.format(code=code))
                pipe.srem(REDIS_ROOM_INDEX, code)
                pipe.publish(REDIS_ROOM_CHANNEL.format(code=code), json.dumps(None))
                deleted, _, _ = pipe.execute()
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Could not delete room {code}: {e}") from e
        logger.debug(f"Room {code} deleted: doc_key={deleted}")
        return True

    def transact(self, code: str, fn: Transform) -> Optional[Document]:
        """Optimistic read-modify-write of one room document.

        `fn` receives the stored document (or None) and returns the next document,
        or None to delete the room. Returning a document equal to the one read
        commits nothing. On a concurrent commit the whole cycle is retried until
        the retry budget or the operation deadline is exhausted. Exceptions raised
        by `fn` abort the transaction and propagate unchanged.
        """
        key = REDIS_ROOM_KEY.format(code=code)
        channel = REDIS_ROOM_CHANNEL.format(code=code)
        deadline = time.monotonic() + self.timeout

        for attempt in range(1, self.retries + 1):
            if time.monotonic() >= deadline:
                logger.warning(f"Transaction on room {code} timed out after {attempt - 1} attempts")
                raise OperationTimeoutError(f"Operation on room {code} exceeded {self.timeout}s")
            try:
                with self.redis_client.pipeline() as pipe:
                    pipe.watch(key)
                    raw = pipe.get(key)
                    current = json.loads(raw) if raw is not None else None
                    candidate = fn(json.loads(raw) if raw is not None else None)

                    if candidate == current:
                        pipe.unwatch()
                        logger.debug(f"Transaction on room {code} made no change")
                        return current

                    pipe.multi()
                    if candidate is None:
                        pipe.delete(key)
                        pipe.srem(REDIS_ROOM_INDEX, code)
                        pipe.publish(channel, json.dumps(None))
                    else:
                        payload = json.dumps(candidate)
                        pipe.set(key, payload)
                        pipe.sadd(REDIS_ROOM_INDEX, code)
                        pipe.publish(channel, payload)
                    pipe.execute()
                    logger.debug(f"Transaction on room {code} committed on attempt {attempt}")
                    return candidate
            except WatchError:
                logger.debug(f"Conflict on room {code}, retrying (attempt {attempt}/{self.retries})")
                time.sleep(random.uniform(0, 0.005 * attempt))
            except redis.RedisError as e:
                logger.error(f"Redis unavailable during transaction on room {code}: {e}", exc_info=True)
                raise StoreUnavailableError(f"Redis unavailable: {e}") from e

        logger.warning(f"Transaction on room {code} gave up after {self.retries} conflicting attempts")
        raise ConflictExhaustedError(f"Too many concurrent updates to room {code}")

    # ---------- change notification ---------- #

    def get_room_channel_name(self, code: str) -> str:
        """Get the Redis pub/sub channel name for a room."""
        return REDIS_ROOM_CHANNEL.format(code=code)

    def subscribe(self, code: str):
        """Create a pubsub subscriber for a room channel."""
        channel = self.get_room_channel_name(code)
        logger.debug(f"Subscribing to Redis channel {channel} for room {code}")
        try:
            pubsub = self.redis_client.pubsub(ignore_subscribe_messages=True)
            pubsub.subscribe(channel)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Could not subscribe to room {code}: {e}") from e
        return pubsub

    def unsubscribe(self, pubsub):
        try:
            pubsub.unsubscribe()
        finally:
            pubsub.close()


redis_backend = RedisBackend()
