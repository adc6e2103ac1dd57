class GameError(Exception):
    """Base exception for room coordination errors."""
    code = "GAME_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"[{self.code}] {message}")


class ValidationError(GameError):
    code = "VALIDATION_ERROR"


class NotFoundError(GameError):
    code = "NOT_FOUND"


class GameAlreadyStartedError(GameError):
    code = "GAME_ALREADY_STARTED"


class TurnViolationError(GameError):
    code = "NOT_YOUR_TURN"


class AuthorizationError(GameError):
    code = "NOT_LEADER"


class ConflictExhaustedError(GameError):
    code = "CONFLICT_EXHAUSTED"


class StoreUnavailableError(GameError):
    code = "STORE_UNAVAILABLE"


class CodeExhaustedError(GameError):
    code = "CODE_EXHAUSTED"


class OperationTimeoutError(GameError, TimeoutError):
    code = "OPERATION_TIMEOUT"
