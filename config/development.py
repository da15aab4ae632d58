import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "gym_access"),
}
STORE_TIMEOUT_SECONDS = int(os.getenv("STORE_TIMEOUT_SECONDS", "5"))

# Shared secret for signing member access codes
ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "dev-access-token-secret")
TOKEN_ROTATION_SECONDS = int(os.getenv("TOKEN_ROTATION_SECONDS", "30"))
TOKEN_TOLERANCE_SECONDS = int(os.getenv("TOKEN_TOLERANCE_SECONDS", "60"))
REPLAY_GUARD = bool(int(os.getenv("REPLAY_GUARD", "0")))

DEFAULT_LOCATION_ID = os.getenv("DEFAULT_LOCATION_ID", "main")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "MXN")
MAX_CAPACITY = int(os.getenv("MAX_CAPACITY", "100"))

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
