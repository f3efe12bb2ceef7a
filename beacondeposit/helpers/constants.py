"""Common configuration constants used across the application."""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default HTTP request timeout in seconds"""

# Retry Configuration
MAX_RETRIES = 5
"""Default maximum number of retry attempts"""

RETRY_BASE_DELAY = 1.0
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 60.0
"""Maximum delay between retries in seconds"""

# Transaction confirmation
RECEIPT_POLL_INTERVAL = 5.0
"""Seconds between eth_getTransactionReceipt polls while waiting for a receipt"""

DEFAULT_WAIT_LIMIT = 300.0
"""Default number of seconds to wait for a submitted transaction to be mined"""

# Indexer
DEFAULT_INDEXER_URL = "https://api.thegraph.com"
"""Base URL of the subgraph service hosting the deposit indexers"""


__all__ = [
    "DEFAULT_INDEXER_URL",
    "DEFAULT_TIMEOUT",
    "DEFAULT_WAIT_LIMIT",
    "MAX_RETRIES",
    "RECEIPT_POLL_INTERVAL",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
]
