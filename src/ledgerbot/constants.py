"""Centralized constants for ledgerbot."""

# Bot API
DEFAULT_API_BASE_URL = "https://api.telegram.org"
MAX_MESSAGE_LENGTH = 4096

# Update stream
DEFAULT_POLL_TIMEOUT = 30
# Extra seconds on top of the long-poll timeout before the HTTP client gives up
POLL_HTTP_MARGIN = 10
DEFAULT_DEDUP_HORIZON = 10_000

# Replies
RATE_LIMIT_WARNING = "You're sending messages too quickly. Please wait a moment."
AMOUNT_HINT = 'No amount found. Try: "500 groceries"'
EXPORT_FILENAME = "transactions.csv"

# Ledger limits
# Both backends store amounts as a signed 32-bit INTEGER
MAX_AMOUNT = 2**31 - 1
MAX_SUMMARY_MONTHS = 1200
