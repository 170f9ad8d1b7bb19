import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Socket.IO (empty -> picked in server.create_app)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # Room
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "12"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "3"))
    TURN_TIME_LIMIT_SEC = int(os.environ.get("TURN_TIME_LIMIT_SEC", "15"))
    DEFAULT_TURNS_PER_PLAYER = int(os.environ.get("DEFAULT_TURNS_PER_PLAYER", "2"))
    DEFAULT_TOTAL_GAMES = int(os.environ.get("DEFAULT_TOTAL_GAMES", "3"))

    # Presence
    PRESENCE_TIMEOUT_SEC = int(os.environ.get("PRESENCE_TIMEOUT_SEC", "90"))
    PRESENCE_SWEEP_INTERVAL_SEC = int(os.environ.get("PRESENCE_SWEEP_INTERVAL_SEC", "30"))

    # Advance turns server-side once turn_time_limit has elapsed
    TURN_AUTO_ADVANCE = os.environ.get("TURN_AUTO_ADVANCE", "0") == "1"
