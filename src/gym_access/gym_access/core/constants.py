"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

TOKEN_ROTATION_SECONDS = 30
TOKEN_TOLERANCE_SECONDS = 60
NONCE_LENGTH = 16
NONCE_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

DEFAULT_CURRENCY = "MXN"
DEFAULT_LOCATION_ID = "main"
DEFAULT_MAX_CAPACITY = 100
DEFAULT_STORE_TIMEOUT_SECONDS = 5

# Largest value membership_renewals.amount DECIMAL(10, 2) can hold.
MAX_AMOUNT = Decimal("99999999.99")

DEFAULT_RENEWAL_HISTORY_LIMIT = 20
DEFAULT_RECENT_RENEWALS_LIMIT = 50
DEFAULT_STATS_EVENT_LIMIT = 500
DEFAULT_ACTIVITY_LIMIT = 100

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
