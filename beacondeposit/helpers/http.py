"""HTTP client helpers shared by the node and indexer clients."""

from asyncio import sleep
from collections.abc import Awaitable, Callable
from functools import wraps

from typing import Any, ParamSpec, TypeVar

import httpx

from beacondeposit.helpers.constants import (
    DEFAULT_TIMEOUT,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from beacondeposit.helpers.http_models import JsonResponse
from beacondeposit.helpers.logging import get_logger


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def retry_with_backoff(
    max_retries: int = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    *,
    retry_on: tuple[type[Exception], ...] = (httpx.HTTPError,),
    log_errors: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async read with exponential backoff.

    Only apply this to idempotent reads; a broadcast must never be repeated
    because its response was lost.

    Args:
        max_retries: Attempts before giving up
        base_delay: Delay after the first failure, doubled after each one
        max_delay: Cap on the delay between attempts
        retry_on: Exception types worth another attempt; others propagate at once
        log_errors: Log each failed attempt and the final failure

    Example:
        ```python
        @retry_with_backoff(max_retries=3, retry_on=(httpx.HTTPError, RPCError))
        async def get_chain_id(self, client: httpx.AsyncClient) -> int:
            ...
        ```
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt >= max_retries:
                        if log_errors:
                            logger.error(
                                "%s failed after %d attempts", func.__name__, attempt
                            )
                        raise
                    if log_errors:
                        logger.warning(
                            "%s failed (attempt %d/%d): %s",
                            func.__name__,
                            attempt,
                            max_retries,
                            e,
                        )
                await sleep(min(base_delay * 2 ** (attempt - 1), max_delay))
                attempt += 1

        return wrapper

    return decorator


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create the AsyncClient shared by RPC and indexer requests."""
    return httpx.AsyncClient(timeout=timeout, **kwargs)


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    data: dict[str, Any],
    *,
    timeout: float | None = None,
    raise_for_status: bool = True,
) -> JsonResponse:
    """Post a JSON body and decode the JSON answer.

    Failures are logged here and returned as None; the caller decides
    whether that is fatal.
    """
    try:
        if timeout is None:
            response = await client.post(url, json=data)
        else:
            response = await client.post(url, json=data, timeout=timeout)
        if raise_for_status:
            response.raise_for_status()
        return response.json()
    except httpx.HTTPError as e:
        logger.warning("HTTP error posting to %s: %s", url, e)
        return None
    except ValueError as e:
        logger.warning("Invalid JSON returned from %s: %s", url, e)
        return None


__all__ = [
    "create_http_client",
    "post_json",
    "retry_with_backoff",
]
