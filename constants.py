import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", 2.0))

# Room codes: no 0/O, 1/I/L
ROOM_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6
ROOM_CODE_ATTEMPTS = int(os.getenv("ROOM_CODE_ATTEMPTS", 6))

TRANSACTION_RETRIES = int(os.getenv("TRANSACTION_RETRIES", 25))
OPERATION_TIMEOUT_SECONDS = float(os.getenv("OPERATION_TIMEOUT_SECONDS", 5.0))
