"""Tests for RPC client."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from typing import Any

import httpx

from beacondeposit.helpers.rpc import RPCClient, RPCError


def mock_http(*results: Any) -> AsyncMock:
    """HTTP client answering successive posts with the given results."""
    client = AsyncMock(spec=httpx.AsyncClient)
    responses = []
    for result in results:
        response = MagicMock()
        response.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": result}
        responses.append(response)
    client.post.side_effect = responses
    return client


class TestRPCClient:
    """Tests for RPCClient class."""

    def test_init_with_valid_url(self) -> None:
        """Test RPCClient initialization with valid URL."""
        client = RPCClient("https://node.test")

        assert client.rpc_url == "https://node.test"
        assert client.timeout == 30.0

    def test_init_with_empty_url_raises(self) -> None:
        """Test that empty URL raises ValueError."""
        with pytest.raises(ValueError, match="RPC URL cannot be empty"):
            RPCClient("")

    @pytest.mark.asyncio
    async def test_call_sends_request(self) -> None:
        """Test the JSON-RPC envelope posted to the node."""
        client = RPCClient("https://node.test")
        http = mock_http("0x1")

        result = await client.call(http, "eth_chainId")

        assert result == "0x1"
        http.post.assert_awaited_once_with(
            "https://node.test",
            json={"jsonrpc": "2.0", "method": "eth_chainId", "params": [], "id": 1},
            timeout=30.0,
        )

    @pytest.mark.asyncio
    async def test_call_with_custom_timeout(self) -> None:
        """Test a per-call timeout overrides the default."""
        client = RPCClient("https://node.test")
        http = mock_http("0x1")

        await client.call(http, "eth_chainId", timeout=5.0)

        assert http.post.call_args.kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_call_with_rpc_error(self) -> None:
        """Test RPC call that returns an error."""
        client = RPCClient("https://node.test")
        http = AsyncMock(spec=httpx.AsyncClient)
        response = MagicMock()
        response.json.return_value = {
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": -32000, "message": "nonce too low"},
        }
        http.post.return_value = response

        with pytest.raises(RPCError, match="nonce too low") as exc_info:
            await client.send_raw_transaction(http, "0x02")

        assert exc_info.value.code == -32000
        assert exc_info.value.method == "eth_sendRawTransaction"

    @pytest.mark.asyncio
    async def test_send_raw_transaction_not_retried(self) -> None:
        """Test a failed broadcast is attempted once."""
        client = RPCClient("https://node.test")
        http = AsyncMock(spec=httpx.AsyncClient)
        http.post.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(httpx.ReadTimeout):
            await client.send_raw_transaction(http, "0x02")

        assert http.post.await_count == 1

    @pytest.mark.asyncio
    async def test_get_chain_id(self) -> None:
        client = RPCClient("https://node.test")

        assert await client.get_chain_id(mock_http("0x88bb0")) == 560048

    @pytest.mark.asyncio
    async def test_get_transaction_count_uses_pending(self) -> None:
        """Test the nonce is read from the pending block."""
        client = RPCClient("https://node.test")
        http = mock_http("0x7")

        assert await client.get_transaction_count(http, "0xabc") == 7
        assert http.post.call_args.kwargs["json"]["params"] == ["0xabc", "pending"]

    @pytest.mark.asyncio
    async def test_get_base_fee(self) -> None:
        """Test the base fee of the latest block."""
        client = RPCClient("https://node.test")

        result = await client.get_base_fee(mock_http({"baseFeePerGas": "0x3b9aca00"}))

        assert result == 1_000_000_000

    @pytest.mark.asyncio
    async def test_get_base_fee_pre_london(self) -> None:
        """Test blocks without a base fee give None."""
        client = RPCClient("https://node.test")

        assert await client.get_base_fee(mock_http({"number": "0x1"})) is None

    @pytest.mark.asyncio
    async def test_get_fee_suggestions(self) -> None:
        client = RPCClient("https://node.test")
        http = mock_http("0x64", "0xa")

        assert await client.get_gas_price(http) == 100
        assert await client.get_max_priority_fee(http) == 10

    @pytest.mark.asyncio
    async def test_get_transaction_receipt_pending(self) -> None:
        """Test a null receipt means the transaction is pending."""
        client = RPCClient("https://node.test")

        assert await client.get_transaction_receipt(mock_http(None), "0x01") is None


class TestWaitForReceipt:
    """Tests for RPCClient.wait_for_receipt."""

    @pytest.mark.asyncio
    async def test_returns_receipt_once_mined(self) -> None:
        """Test polling continues until the receipt appears."""
        client = RPCClient("https://node.test")
        http = mock_http(
            None,
            None,
            {"transactionHash": "0x01", "blockNumber": "0x10", "status": "0x1"},
        )

        receipt = await client.wait_for_receipt(http, "0x01", limit=5, poll_interval=0)

        assert receipt is not None
        assert receipt.succeeded
        assert receipt.block_number == "0x10"
        assert http.post.await_count == 3

    @pytest.mark.asyncio
    async def test_reverted_receipt(self) -> None:
        client = RPCClient("https://node.test")
        http = mock_http({"transactionHash": "0x01", "status": "0x0"})

        receipt = await client.wait_for_receipt(http, "0x01", limit=5, poll_interval=0)

        assert receipt is not None
        assert not receipt.succeeded

    @pytest.mark.asyncio
    async def test_gives_up_after_limit(self) -> None:
        """Test None is returned when the limit passes."""
        client = RPCClient("https://node.test")
        http = AsyncMock(spec=httpx.AsyncClient)
        response = MagicMock()
        response.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": None}
        http.post.return_value = response

        assert await client.wait_for_receipt(http, "0x01", limit=0, poll_interval=1) is None

    @pytest.mark.asyncio
    async def test_http_errors_keep_polling(self) -> None:
        """Test a failed lookup is logged and retried."""
        client = RPCClient("https://node.test")
        http = mock_http({"transactionHash": "0x01", "status": "0x1"})
        response = http.post.side_effect
        http.post.side_effect = [httpx.ConnectError("refused"), *response]

        receipt = await client.wait_for_receipt(http, "0x01", limit=5, poll_interval=0)

        assert receipt is not None

    @pytest.mark.asyncio
    async def test_rpc_errors_keep_polling(self) -> None:
        """Test a node error while waiting does not abort the wait."""
        client = RPCClient("https://node.test")
        http = mock_http({"transactionHash": "0x01", "status": "0x1"})
        error = MagicMock()
        error.json.return_value = {
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": -32000, "message": "header not found"},
        }
        http.post.side_effect = [error, *http.post.side_effect]

        receipt = await client.wait_for_receipt(http, "0x01", limit=5, poll_interval=0)

        assert receipt is not None
        assert http.post.await_count == 2

    @pytest.mark.asyncio
    async def test_unreadable_receipt_counts_as_not_mined(self) -> None:
        """Test a receipt without a hash is logged and treated as missing."""
        client = RPCClient("https://node.test")
        http = AsyncMock(spec=httpx.AsyncClient)
        response = MagicMock()
        response.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": {"status": "0x1"}}
        http.post.return_value = response

        assert await client.wait_for_receipt(http, "0x01", limit=0, poll_interval=1) is None
