"""Pydantic models for JSON-RPC requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] = Field(
        default_factory=list, description="Method parameters"
    )
    id: int | str = Field(default=1, description="Request ID")


class JsonRpcError(BaseModel):
    """Error object of a JSON-RPC 2.0 response."""

    code: int = Field(default=0, description="Error code")
    message: str = Field(default="", description="Error message")
    data: Any = Field(default=None, description="Optional error data")


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    id: int | str | None = Field(default=None, description="Request ID")
    result: Any = Field(default=None, description="Call result")
    error: JsonRpcError | None = Field(default=None, description="Call error")


class TransactionReceipt(BaseModel):
    """Subset of eth_getTransactionReceipt used to report confirmation."""

    transaction_hash: str = Field(..., alias="transactionHash")
    block_number: str | None = Field(default=None, alias="blockNumber")
    status: str | None = Field(default=None, description="0x1 success, 0x0 revert")
    gas_used: str | None = Field(default=None, alias="gasUsed")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def succeeded(self) -> bool:
        """Whether the transaction executed without reverting."""
        return self.status == "0x1"


__all__ = [
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "TransactionReceipt",
]
