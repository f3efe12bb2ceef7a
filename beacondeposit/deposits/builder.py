"""Build, sign and optionally broadcast deposit transactions.

Offline and online building share the value, gas and calldata derivation;
they differ only in where the nonce and fees come from and whether the
signed transaction is broadcast.
"""

from dataclasses import dataclass, field

from typing import Any

import httpx
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from beacondeposit.deposits.constants import (
    DEFAULT_DEPOSIT_GAS_LIMIT,
    DEPOSIT_ARGUMENT_TYPES,
    DEPOSIT_FUNCTION_SIGNATURE,
)
from beacondeposit.deposits.errors import DepositError, MissingValueError, SubmissionError
from beacondeposit.deposits.indexer import DepositIndexer
from beacondeposit.deposits.models import (
    ContractDescriptor,
    DepositRecord,
    FeeParams,
    TransactionPayload,
    ValidationContext,
)
from beacondeposit.deposits.signer import LocalSigner
from beacondeposit.helpers.logging import get_logger
from beacondeposit.helpers.parsers import format_wei, gwei_to_wei, to_hex, wei_to_gwei
from beacondeposit.helpers.rpc import RPCClient, RPCError


logger = get_logger(__name__)

DEPOSIT_SELECTOR = function_signature_to_4byte_selector(DEPOSIT_FUNCTION_SIGNATURE)


@dataclass(frozen=True)
class OfflineMode:
    """Sign without touching the network.

    Attributes:
        nonce: Nonce of the first deposit; later deposits follow on
        fees: Fee settings
        chain_id: Chain to sign for; defaults to the contract's chain
    """

    nonce: int
    fees: FeeParams
    chain_id: int | None = None


@dataclass(frozen=True)
class OnlineMode:
    """Fetch nonce and fees from a node and broadcast.

    Attributes:
        rpc: JSON-RPC client of the node
        client: HTTP client shared by RPC and indexer requests
        chain_id: Chain ID reported by the node
        indexer: Deposit indexer for the duplicate check
        fees: Fee settings; fetched from the node when None
    """

    rpc: RPCClient
    client: httpx.AsyncClient
    chain_id: int
    indexer: DepositIndexer = field(default_factory=DepositIndexer)
    fees: FeeParams | None = None


type BuildMode = OfflineMode | OnlineMode


def encode_deposit_call(record: DepositRecord) -> bytes:
    """ABI encode a call to deposit(pubkey, withdrawal_credentials, signature, root).

    The data root is copied into a 32 byte word, zero padded on the right.
    """
    root = record.deposit_data_root[:32].ljust(32, b"\x00")
    arguments = encode(
        list(DEPOSIT_ARGUMENT_TYPES),
        [record.pubkey, record.withdrawal_credentials, record.signature, root],
    )
    return DEPOSIT_SELECTOR + arguments


async def fetch_fee_params(rpc: RPCClient, client: httpx.AsyncClient) -> FeeParams:
    """Suggest fees from the node.

    Uses EIP-1559 fees of twice the latest base fee plus the suggested
    priority fee, or the legacy gas price on chains without a base fee.
    """
    base_fee = await rpc.get_base_fee(client)
    if base_fee is None:
        return FeeParams(gas_price=await rpc.get_gas_price(client))
    priority_fee = await rpc.get_max_priority_fee(client)
    return FeeParams(
        max_fee_per_gas=2 * base_fee + priority_fee,
        max_priority_fee_per_gas=priority_fee,
    )


class DepositTransactionBuilder:
    """Turns validated deposit records into signed transactions."""

    def __init__(
        self,
        descriptor: ContractDescriptor,
        ctx: ValidationContext,
        signer: LocalSigner,
        *,
        gas_limit: int | None = None,
        value_fallback: int | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            descriptor: Contract to deposit to
            ctx: Override flags
            signer: Signer of the sending account
            gas_limit: Gas limit override
            value_fallback: Value in wei for records whose amount is zero
        """
        self.descriptor = descriptor
        self.ctx = ctx
        self.signer = signer
        self.gas_limit = gas_limit
        self.value_fallback = value_fallback
        self._next_nonce: int | None = None

    def derive_value(self, record: DepositRecord) -> int:
        """Value in wei to send with the deposit.

        Raises:
            MissingValueError: If the record has no amount and there is no
                fallback value
        """
        if self.ctx.force_zero_value:
            replaced = gwei_to_wei(record.amount) if record.amount else self.value_fallback
            logger.warning(
                "Sending deposit for %s with no value in place of %s; allowed by override",
                record.account or to_hex(record.pubkey),
                format_wei(replaced or 0),
            )
            return 0
        if record.amount:
            return gwei_to_wei(record.amount)
        if self.value_fallback is None:
            msg = "no value in deposit data and no value supplied"
            raise MissingValueError(msg)
        return self.value_fallback

    def derive_gas_limit(self) -> int:
        return self.gas_limit if self.gas_limit is not None else DEFAULT_DEPOSIT_GAS_LIMIT

    def unsigned_transaction(
        self,
        record: DepositRecord,
        *,
        value: int,
        nonce: int,
        chain_id: int,
        fees: FeeParams,
    ) -> dict[str, Any]:
        """Transaction dict for eth_account."""
        return {
            "chainId": chain_id,
            "nonce": nonce,
            "to": to_checksum_address(self.descriptor.address),
            "value": value,
            "gas": self.derive_gas_limit(),
            "data": to_hex(encode_deposit_call(record)),
            **fees.transaction_fields(),
        }

    async def build(
        self, record: DepositRecord, index: int, mode: BuildMode
    ) -> TransactionPayload:
        """Build and sign one deposit, broadcasting it in online mode.

        Args:
            record: A record that has passed validation
            index: Position of the record in the batch
            mode: OfflineMode or OnlineMode

        Returns:
            The signed transaction

        Raises:
            DepositError: If the value is missing, the duplicate check fails or
                the node rejects the transaction; the error carries `index`
        """
        try:
            value = self.derive_value(record)
            match mode:
                case OfflineMode():
                    return self._build_offline(record, index, value, mode)
                case OnlineMode():
                    return await self._build_online(record, index, value, mode)
                case _:
                    msg = f"unsupported build mode {type(mode).__name__}"
                    raise TypeError(msg)
        except DepositError as e:
            e.at(index)
            raise
        except (httpx.HTTPError, RPCError) as e:
            msg = f"failed to send deposit: {e}"
            raise SubmissionError(msg, index=index) from e

    def _build_offline(
        self,
        record: DepositRecord,
        index: int,
        value: int,
        mode: OfflineMode,
    ) -> TransactionPayload:
        nonce = mode.nonce if self._next_nonce is None else self._next_nonce
        chain_id = mode.chain_id if mode.chain_id is not None else self.descriptor.chain_id
        tx = self.unsigned_transaction(
            record, value=value, nonce=nonce, chain_id=chain_id, fees=mode.fees
        )
        signed = self.signer.sign(tx)
        self._next_nonce = nonce + 1
        return TransactionPayload(
            index=index,
            nonce=nonce,
            value=value,
            gas=tx["gas"],
            data=tx["data"],
            raw_transaction=signed.raw_transaction,
            tx_hash=signed.tx_hash,
        )

    async def _build_online(
        self,
        record: DepositRecord,
        index: int,
        value: int,
        mode: OnlineMode,
    ) -> TransactionPayload:
        if self.descriptor.indexer:
            await mode.indexer.check_duplicate(
                mode.client,
                self.descriptor.indexer,
                record.pubkey,
                wei_to_gwei(value),
                self.ctx,
            )

        logger.info(
            "Creating %s deposit for %s", format_wei(value), record.account or "account"
        )

        fees = mode.fees or await fetch_fee_params(mode.rpc, mode.client)
        pending = await mode.rpc.get_transaction_count(mode.client, self.signer.address)
        nonce = pending if self._next_nonce is None else max(pending, self._next_nonce)

        tx = self.unsigned_transaction(
            record, value=value, nonce=nonce, chain_id=mode.chain_id, fees=fees
        )
        signed = self.signer.sign(tx)
        tx_hash = await mode.rpc.send_raw_transaction(mode.client, signed.raw_transaction)
        self._next_nonce = nonce + 1

        return TransactionPayload(
            index=index,
            nonce=nonce,
            value=value,
            gas=tx["gas"],
            data=tx["data"],
            raw_transaction=signed.raw_transaction,
            tx_hash=tx_hash or signed.tx_hash,
            submitted=True,
        )


__all__ = [
    "DEPOSIT_SELECTOR",
    "BuildMode",
    "DepositTransactionBuilder",
    "OfflineMode",
    "OnlineMode",
    "encode_deposit_call",
    "fetch_fee_params",
]
