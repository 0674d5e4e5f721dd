# listening_party/config.py
# Process and session tuning. Host/port can be overridden from the environment.

import os

# ================== Server ==================
APP_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")
APP_PORT = int(os.environ.get("PORT", 3000))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Socket.IO tuning (mobile-friendly)
SOCKET_KW = dict(
    cors_allowed_origins="*",
    async_mode="threading",
    ping_interval=20,
    ping_timeout=30,
    max_http_buffer_size=1_000_000
)

# ================== Sessions ==================
GUEST_CAPACITY = 4

# A participant is stale once its last heartbeat is older than this
HEARTBEAT_TIMEOUT_MS = 15 * 60 * 1000
HEARTBEAT_SWEEP_SECONDS = 60

# Tally cycle: 30 one-second ticks, then the top song is picked
TALLY_PERIOD_SECONDS = 30
TALLY_TICK_SECONDS = 1

CODE_MIN = 100000
CODE_MAX = 999999
CODE_ATTEMPTS = 100
