import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "gym_access_test"),
}
STORE_TIMEOUT_SECONDS = 2

ACCESS_TOKEN_SECRET = "test-access-token-secret"
TOKEN_ROTATION_SECONDS = 30
TOKEN_TOLERANCE_SECONDS = 60
REPLAY_GUARD = False

DEFAULT_LOCATION_ID = "main"
DEFAULT_CURRENCY = "MXN"
MAX_CAPACITY = 100

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
