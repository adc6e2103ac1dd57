from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from routers.rooms import rooms_router, get_backend
from errors import (
    AuthorizationError,
    CodeExhaustedError,
    ConflictExhaustedError,
    GameAlreadyStartedError,
    GameError,
    NotFoundError,
    OperationTimeoutError,
    StoreUnavailableError,
    TurnViolationError,
    ValidationError,
)
from game.observer import Subscription
import asyncio
import json
from logging_config import get_logger, setup_logging
import os

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)

ERROR_STATUS = {
    ValidationError: 422,
    NotFoundError: 404,
    GameAlreadyStartedError: 409,
    TurnViolationError: 409,
    AuthorizationError: 403,
    ConflictExhaustedError: 409,
    CodeExhaustedError: 503,
    StoreUnavailableError: 503,
    OperationTimeoutError: 504,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    backend = app.dependency_overrides.get(get_backend, get_backend)()
    try:
        backend.check_connection()
    except StoreUnavailableError as e:
        # keep serving; every request will report the outage on its own
        logger.error(f"Starting without a reachable store: {e}")
    yield


app = FastAPI(lifespan=lifespan)

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)

app.include_router(rooms_router)

logger.info("FastAPI application initialized")


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    status = ERROR_STATUS.get(type(exc), 400)
    logger.warning(f"{request.method} {request.url.path} failed with {exc.code}: {exc.message}")
    return JSONResponse(status_code=status, content={"code": exc.code, "detail": exc.message})


@app.websocket("/rooms/{code}/ws")
async def watch_room(code: str, websocket: WebSocket):
    """Stream full room snapshots to the client until it disconnects.

    Each frame is `{"type": "snapshot", "room": {...} | null}`; a store failure
    sends one `{"type": "error", ...}` frame and closes, the client reconnects.
    """
    await websocket.accept()
    logger.info(f"WebSocket watcher connected for room: {code}")
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(room):
        frame = {"type": "snapshot", "room": room.model_dump(mode="json") if room else None}
        loop.call_soon_threadsafe(queue.put_nowait, frame)

    def on_error(exc):
        frame = {"type": "error", "code": exc.code, "detail": exc.message}
        loop.call_soon_threadsafe(queue.put_nowait, frame)

    backend = app.dependency_overrides.get(get_backend, get_backend)()
    subscription = Subscription(backend, code, on_change, on_error)
    try:
        await loop.run_in_executor(None, subscription.start)
    except StoreUnavailableError as e:
        await websocket.send_text(json.dumps({"type": "error", "code": e.code, "detail": e.message}))
        await websocket.close(code=1011)
        return

    async def forward():
        while True:
            frame = await queue.get()
            await websocket.send_text(json.dumps(frame))
            if frame["type"] == "error":
                await websocket.close(code=1011)
                return

    async def drain():
        # nothing is expected from the client; this only notices the disconnect
        while True:
            await websocket.receive_text()

    sender = asyncio.create_task(forward())
    receiver = asyncio.create_task(drain())
    try:
        done, pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"WebSocket watcher for room {code} failed: {exc}", exc_info=exc)
    finally:
        await loop.run_in_executor(None, subscription.cancel)
        logger.info(f"WebSocket watcher disconnected for room: {code}")
