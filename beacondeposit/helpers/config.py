"""Configuration management and environment variable utilities."""

import os

from dotenv import load_dotenv

from beacondeposit.helpers.constants import DEFAULT_INDEXER_URL


# Load environment variables from .env file
load_dotenv()


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set

    Example:
        ```python
        from beacondeposit.helpers.config import get_required_env

        private_key = get_required_env("DEPOSIT_PRIVATE_KEY")
        ```
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_eth_rpc_url(rpc_url: str | None = None) -> str:
    """Get Ethereum RPC URL from parameter or environment.

    Args:
        rpc_url: Optional RPC URL to use directly

    Returns:
        Ethereum RPC URL

    Raises:
        ValueError: If RPC URL is not provided and ETH_RPC_URL env var is not set

    Example:
        ```python
        from beacondeposit.helpers.config import get_eth_rpc_url

        # Get from environment
        rpc_url = get_eth_rpc_url()

        # Or provide explicitly
        rpc_url = get_eth_rpc_url("https://eth.llamarpc.com")
        ```
    """
    if rpc_url:
        return rpc_url

    env_rpc_url = os.getenv("ETH_RPC_URL")
    if not env_rpc_url:
        msg = "ETH_RPC_URL must be provided or set in environment variables"
        raise ValueError(msg)

    return env_rpc_url


def get_indexer_url(indexer_url: str | None = None) -> str:
    """Get the deposit indexer base URL from parameter or environment.

    Falls back to the hosted subgraph service when neither is set.

    Args:
        indexer_url: Optional base URL to use directly

    Returns:
        Indexer base URL without a trailing slash
    """
    url = indexer_url or get_optional_env("DEPOSIT_INDEXER_URL") or DEFAULT_INDEXER_URL
    return url.rstrip("/")


def get_log_level(log_level: str | None = None) -> str:
    """Get the log level name from parameter or LOG_LEVEL, defaulting to INFO."""
    return (log_level or get_optional_env("LOG_LEVEL") or "INFO").upper()


__all__ = [
    "get_eth_rpc_url",
    "get_indexer_url",
    "get_log_level",
    "get_optional_env",
    "get_required_env",
]
