"""Ethereum JSON-RPC client utilities."""

from typing import Any

import asyncio
import time

import httpx

from beacondeposit.helpers.constants import DEFAULT_TIMEOUT, RECEIPT_POLL_INTERVAL
from beacondeposit.helpers.http import retry_with_backoff
from beacondeposit.helpers.logging import get_logger
from beacondeposit.helpers.parsers import parse_hex_int
from beacondeposit.helpers.rpc_models import (
    JsonRpcRequest,
    JsonRpcResponse,
    TransactionReceipt,
)


logger = get_logger(__name__)


class RPCError(ValueError):
    """Error object returned by a JSON-RPC node."""

    def __init__(self, method: str, code: int, message: str) -> None:
        self.method = method
        self.code = code
        self.message = message
        super().__init__(f"RPC error from {method}: {message} (code {code})")


READ_RETRY_ERRORS: tuple[type[Exception], ...] = (httpx.HTTPError, RPCError)
"""Failures of idempotent reads that are worth another attempt"""


class RPCClient:
    """Ethereum JSON-RPC client for the calls needed to send a transaction."""

    def __init__(self, rpc_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: Ethereum JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "eth_chainId")
            params: Method parameters list
            timeout: Optional timeout override

        Returns:
            RPC result value

        Raises:
            httpx.HTTPError: If the HTTP request fails
            RPCError: If the RPC response contains an error
        """
        payload = JsonRpcRequest(method=method, params=params or [])

        response = await client.post(
            self.rpc_url, json=payload.model_dump(), timeout=timeout or self.timeout
        )
        response.raise_for_status()
        result = JsonRpcResponse.model_validate(response.json())

        if result.error is not None:
            raise RPCError(method, result.error.code, result.error.message)

        return result.result

    @retry_with_backoff(max_retries=3, retry_on=READ_RETRY_ERRORS)
    async def get_chain_id(self, client: httpx.AsyncClient) -> int:
        """Get the chain ID the node is serving."""
        result = await self.call(client, "eth_chainId")
        return parse_hex_int(result)

    @retry_with_backoff(max_retries=3, retry_on=READ_RETRY_ERRORS)
    async def get_transaction_count(
        self,
        client: httpx.AsyncClient,
        address: str,
        block: str = "pending",
    ) -> int:
        """Get the number of transactions sent from an address.

        With the default "pending" block tag this is the next usable nonce.

        Args:
            client: HTTP client instance
            address: Ethereum address
            block: Block tag or hex block number

        Returns:
            Transaction count
        """
        result = await self.call(client, "eth_getTransactionCount", [address, block])
        return parse_hex_int(result)

    @retry_with_backoff(max_retries=3, retry_on=READ_RETRY_ERRORS)
    async def get_gas_price(self, client: httpx.AsyncClient) -> int:
        """Get the node's legacy gas price suggestion in wei."""
        return parse_hex_int(await self.call(client, "eth_gasPrice"))

    @retry_with_backoff(max_retries=3, retry_on=READ_RETRY_ERRORS)
    async def get_max_priority_fee(self, client: httpx.AsyncClient) -> int:
        """Get the node's priority fee suggestion in wei."""
        return parse_hex_int(await self.call(client, "eth_maxPriorityFeePerGas"))

    @retry_with_backoff(max_retries=3, retry_on=READ_RETRY_ERRORS)
    async def get_base_fee(self, client: httpx.AsyncClient) -> int | None:
        """Get the base fee of the latest block in wei.

        Returns:
            Base fee, or None if the chain has not activated EIP-1559
        """
        block = await self.call(client, "eth_getBlockByNumber", ["latest", False])
        if not block or block.get("baseFeePerGas") is None:
            return None
        return parse_hex_int(block["baseFeePerGas"])

    async def send_raw_transaction(
        self, client: httpx.AsyncClient, raw_transaction: str
    ) -> str:
        """Broadcast a signed transaction.

        Not retried: a timeout does not mean the node rejected the transaction.

        Args:
            client: HTTP client instance
            raw_transaction: `0x`-prefixed signed transaction

        Returns:
            Transaction hash reported by the node
        """
        return await self.call(client, "eth_sendRawTransaction", [raw_transaction])

    async def get_transaction_receipt(
        self, client: httpx.AsyncClient, tx_hash: str
    ) -> TransactionReceipt | None:
        """Get the receipt of a transaction, or None while it is pending."""
        result = await self.call(client, "eth_getTransactionReceipt", [tx_hash])
        if not result:
            return None
        return TransactionReceipt.model_validate(result)

    async def wait_for_receipt(
        self,
        client: httpx.AsyncClient,
        tx_hash: str,
        limit: float,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
    ) -> TransactionReceipt | None:
        """Poll for a transaction receipt until it appears or `limit` seconds pass.

        Args:
            client: HTTP client instance
            tx_hash: Transaction hash
            limit: Maximum number of seconds to wait
            poll_interval: Seconds between polls

        Returns:
            The receipt, or None if the transaction was not mined in time or
            the node could not report it
        """
        deadline = time.monotonic() + limit
        while True:
            # RPCError, pydantic's ValidationError and bad JSON are all ValueErrors
            try:
                receipt = await self.get_transaction_receipt(client, tx_hash)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Receipt lookup for %s failed: %s", tx_hash, e)
                receipt = None
            if receipt is not None:
                return receipt
            if time.monotonic() + poll_interval > deadline:
                return None
            await asyncio.sleep(poll_interval)


__all__ = [
    "READ_RETRY_ERRORS",
    "RPCClient",
    "RPCError",
]
