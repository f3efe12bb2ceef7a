"""Models for deposit contracts, deposit records and transactions."""

from typing import Any, Self

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from beacondeposit.helpers.http_models import GraphQLError
from beacondeposit.helpers.parsers import parse_bytes, to_hex


class ContractDescriptor(BaseModel):
    """A deployed deposit contract."""

    network: str = Field(..., description="Network name")
    chain_id: int = Field(..., description="Execution chain ID")
    address: bytes = Field(..., description="Contract address")
    fork_version: bytes = Field(
        default=b"", description="Genesis fork version; empty means unchecked"
    )
    min_version: int = Field(..., ge=0, description="Oldest supported data version")
    max_version: int = Field(..., ge=0, description="Newest supported data version")
    indexer: str = Field(
        default="", description="Subgraph holding prior deposits; empty disables"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("address", "fork_version", mode="before")
    @classmethod
    def _decode_bytes(cls, value: Any) -> bytes:
        return parse_bytes(value)

    @model_validator(mode="after")
    def _check_versions(self) -> Self:
        if self.min_version > self.max_version:
            msg = (
                f"{self.network}: min_version {self.min_version} is above "
                f"max_version {self.max_version}"
            )
            raise ValueError(msg)
        return self


class DepositRecord(BaseModel):
    """One deposit as produced by a key generation tool.

    Missing byte fields are left empty here and rejected by the validator.
    """

    account: str = Field(default="", description="Informational account label")
    pubkey: bytes = Field(default=b"", description="Validator public key")
    withdrawal_credentials: bytes = Field(default=b"")
    signature: bytes = Field(default=b"")
    deposit_data_root: bytes = Field(default=b"")
    amount: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("amount", "value"),
        description="Deposit amount in Gwei; 0 means use the supplied value",
    )
    fork_version: bytes = Field(default=b"")
    version: int = Field(default=0, ge=0, description="Deposit data format version")

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator(
        "pubkey",
        "withdrawal_credentials",
        "signature",
        "deposit_data_root",
        "fork_version",
        mode="before",
    )
    @classmethod
    def _decode_bytes(cls, value: Any) -> bytes:
        return parse_bytes(value)

    @field_validator("account", mode="before")
    @classmethod
    def _default_account(cls, value: Any) -> Any:
        return "" if value is None else value

    def log_fields(self) -> dict[str, str]:
        """Hex encoded deposit fields for the submission log."""
        return {
            "depositPublicKey": to_hex(self.pubkey),
            "depositWithdrawalCredentials": to_hex(self.withdrawal_credentials),
            "depositSignature": to_hex(self.signature),
            "depositDataRoot": to_hex(self.deposit_data_root),
        }


class ValidationContext(BaseModel):
    """Override flags that let otherwise fatal conditions through."""

    allow_old_schema: bool = False
    allow_new_schema: bool = False
    allow_excessive_amount: bool = False
    allow_unknown_contract: bool = False
    allow_duplicate_deposit: bool = False
    force_zero_value: bool = False

    model_config = ConfigDict(frozen=True)


class DuplicateCheckResult(BaseModel):
    """Prior deposits reported by the indexer for one validator public key."""

    total: int = Field(default=0, ge=0, description="Sum of prior deposits in Gwei")
    count: int = Field(default=0, ge=0, description="Number of prior deposits")


class FeeParams(BaseModel):
    """Transaction fee settings, legacy or EIP-1559."""

    gas_price: int | None = Field(default=None, ge=0)
    max_fee_per_gas: int | None = Field(default=None, ge=0)
    max_priority_fee_per_gas: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_shape(self) -> Self:
        dynamic = (self.max_fee_per_gas, self.max_priority_fee_per_gas)
        if self.gas_price is not None:
            if any(fee is not None for fee in dynamic):
                msg = "gas_price cannot be combined with EIP-1559 fees"
                raise ValueError(msg)
            return self
        if any(fee is None for fee in dynamic):
            msg = "both max_fee_per_gas and max_priority_fee_per_gas are required"
            raise ValueError(msg)
        return self

    def transaction_fields(self) -> dict[str, int]:
        """Fee entries of an eth_account transaction dict."""
        if self.gas_price is not None:
            return {"gasPrice": self.gas_price}
        return {
            "maxFeePerGas": self.max_fee_per_gas or 0,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas or 0,
        }


class TransactionPayload(BaseModel):
    """A signed deposit transaction."""

    index: int = Field(..., description="Position of the record in the batch")
    nonce: int
    value: int = Field(..., description="Value in wei")
    gas: int
    data: str = Field(..., description="Hex encoded calldata")
    raw_transaction: str = Field(..., description="Hex encoded signed transaction")
    tx_hash: str
    submitted: bool = Field(default=False, description="Broadcast to the network")


class IndexerDeposit(BaseModel):
    """Deposit entity returned by the deposit subgraph."""

    id: str = ""
    amount: str = Field(..., description="Amount in Gwei as a decimal string")
    withdrawal_credentials: str = Field(default="", alias="withdrawalCredentials")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class IndexerData(BaseModel):
    """`data` member of a deposit subgraph response."""

    deposits: list[IndexerDeposit] | None = None


class IndexerResponse(BaseModel):
    """Deposit subgraph response."""

    data: IndexerData | None = None
    errors: list[GraphQLError] | None = None


__all__ = [
    "ContractDescriptor",
    "DepositRecord",
    "DuplicateCheckResult",
    "FeeParams",
    "IndexerData",
    "IndexerDeposit",
    "IndexerResponse",
    "TransactionPayload",
    "ValidationContext",
]
