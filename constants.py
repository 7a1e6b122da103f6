import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# Verify WaitingPool/Partnership invariants after every mutation (slow, meant for development)
CHECK_INVARIANTS = os.getenv("CHECK_INVARIANTS", "false").lower() == "true"

PRESENCE_ENABLED = os.getenv("PRESENCE_ENABLED", "false").lower() == "true"
PRESENCE_TTL = int(os.getenv("PRESENCE_TTL", 3600))

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
