import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3001))
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Timers, in seconds
HEARTBEAT_INTERVAL = float(os.getenv("HEARTBEAT_INTERVAL", 30))
CLEANUP_INTERVAL = float(os.getenv("CLEANUP_INTERVAL", 60))
SHUTDOWN_TIMEOUT = float(os.getenv("SHUTDOWN_TIMEOUT", 10))

# 0 means unbounded
SEND_QUEUE_SIZE = int(os.getenv("SEND_QUEUE_SIZE", 0))

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

SERVICE_NAME = "webrtc-signaling"
SHUTDOWN_CLOSE_CODE = 1000
SHUTDOWN_CLOSE_REASON = "Server shutting down"
