"""Tests for building and signing deposit transactions."""

import logging
from unittest.mock import AsyncMock

import httpx
import pytest
from eth_abi import decode
from eth_account import Account

from beacondeposit.deposits.builder import (
    DEPOSIT_SELECTOR,
    DepositTransactionBuilder,
    OfflineMode,
    OnlineMode,
    encode_deposit_call,
    fetch_fee_params,
)
from beacondeposit.deposits.errors import (
    MissingValueError,
    SubmissionError,
    ValidatorAlreadyFundedError,
)
from beacondeposit.deposits.indexer import DepositIndexer
from beacondeposit.deposits.models import (
    ContractDescriptor,
    DepositRecord,
    FeeParams,
    ValidationContext,
)
from beacondeposit.deposits.signer import LocalSigner
from beacondeposit.helpers.rpc import RPCClient, RPCError


@pytest.fixture
def builder(
    descriptor: ContractDescriptor, ctx: ValidationContext, signer: LocalSigner
) -> DepositTransactionBuilder:
    return DepositTransactionBuilder(descriptor, ctx, signer)


@pytest.fixture
def mock_rpc() -> AsyncMock:
    """RPC client reporting nonce 5, a 10 Gwei base fee and 1 Gwei priority fee."""
    rpc = AsyncMock(spec=RPCClient)
    rpc.get_transaction_count.return_value = 5
    rpc.get_base_fee.return_value = 10_000_000_000
    rpc.get_max_priority_fee.return_value = 1_000_000_000
    rpc.send_raw_transaction.return_value = "0x" + "ee" * 32
    return rpc


@pytest.fixture
def online_mode(mock_rpc: AsyncMock) -> OnlineMode:
    return OnlineMode(
        rpc=mock_rpc,
        client=AsyncMock(spec=httpx.AsyncClient),
        chain_id=1337,
        indexer=AsyncMock(spec=DepositIndexer),
    )


class TestEncodeDepositCall:
    """Tests for deposit calldata."""

    def test_selector(self) -> None:
        """Test the selector of deposit(bytes,bytes,bytes,bytes32)."""
        assert DEPOSIT_SELECTOR.hex() == "22895118"

    def test_arguments_round_trip(self, deposit_record: DepositRecord) -> None:
        """Test the call data decodes back to the record fields."""
        data = encode_deposit_call(deposit_record)

        assert data[:4] == DEPOSIT_SELECTOR
        pubkey, credentials, signature, root = decode(
            ["bytes", "bytes", "bytes", "bytes32"], data[4:]
        )
        assert pubkey == deposit_record.pubkey
        assert credentials == deposit_record.withdrawal_credentials
        assert signature == deposit_record.signature
        assert root == deposit_record.deposit_data_root

    def test_short_root_is_right_padded(self, deposit_record: DepositRecord) -> None:
        """Test a data root under 32 bytes is zero padded."""
        record = deposit_record.model_copy(update={"deposit_data_root": b"\x01\x02"})

        root = decode(
            ["bytes", "bytes", "bytes", "bytes32"], encode_deposit_call(record)[4:]
        )[3]

        assert root == b"\x01\x02" + b"\x00" * 30


class TestDeriveValue:
    """Tests for the transaction value."""

    def test_amount_in_gwei_becomes_wei(
        self, builder: DepositTransactionBuilder, deposit_record: DepositRecord
    ) -> None:
        """Test 32e9 Gwei is sent as 32 Ether."""
        assert builder.derive_value(deposit_record) == 32 * 10**18

    def test_force_zero_value_wins(
        self,
        descriptor: ContractDescriptor,
        signer: LocalSigner,
        deposit_record: DepositRecord,
    ) -> None:
        """Test force_zero_value sends nothing even when the record has an amount."""
        builder = DepositTransactionBuilder(
            descriptor,
            ValidationContext(force_zero_value=True),
            signer,
            value_fallback=10**18,
        )

        assert builder.derive_value(deposit_record) == 0

    def test_force_zero_value_is_logged(
        self,
        descriptor: ContractDescriptor,
        signer: LocalSigner,
        deposit_record: DepositRecord,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test the replaced amount is named in a warning."""
        caplog.set_level(logging.WARNING)
        builder = DepositTransactionBuilder(
            descriptor, ValidationContext(force_zero_value=True), signer
        )

        builder.derive_value(deposit_record)

        assert "Validators/1" in caplog.text
        assert "in place of 32 Ether" in caplog.text

    def test_fallback_for_zero_amount(
        self,
        descriptor: ContractDescriptor,
        ctx: ValidationContext,
        signer: LocalSigner,
        deposit_record: DepositRecord,
    ) -> None:
        """Test the supplied value is used when the record has none."""
        builder = DepositTransactionBuilder(descriptor, ctx, signer, value_fallback=10**18)
        record = deposit_record.model_copy(update={"amount": 0})

        assert builder.derive_value(record) == 10**18

    def test_record_amount_beats_fallback(
        self,
        descriptor: ContractDescriptor,
        ctx: ValidationContext,
        signer: LocalSigner,
        deposit_record: DepositRecord,
    ) -> None:
        """Test the fallback only applies to records without an amount."""
        builder = DepositTransactionBuilder(descriptor, ctx, signer, value_fallback=1)

        assert builder.derive_value(deposit_record) == 32 * 10**18

    def test_missing_value(
        self, builder: DepositTransactionBuilder, deposit_record: DepositRecord
    ) -> None:
        """Test no amount and no fallback is an error naming both options."""
        record = deposit_record.model_copy(update={"amount": 0})

        with pytest.raises(MissingValueError) as exc_info:
            builder.derive_value(record)

        assert "--value" in str(exc_info.value)
        assert "--force-zero-value" in str(exc_info.value)


class TestOfflineBuild:
    """Tests for signing without a node."""

    @pytest.mark.asyncio
    async def test_signed_by_sender(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        signer: LocalSigner,
        fees: FeeParams,
    ) -> None:
        """Test the raw transaction is a type 2 transaction from the signer."""
        payload = await builder.build(deposit_record, 0, OfflineMode(nonce=7, fees=fees))

        assert payload.raw_transaction.startswith("0x02")
        assert Account.recover_transaction(payload.raw_transaction) == signer.address
        assert payload.submitted is False
        assert payload.nonce == 7
        assert payload.value == 32 * 10**18
        assert payload.gas == 160_000

    @pytest.mark.asyncio
    async def test_nonces_follow_on(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        fees: FeeParams,
    ) -> None:
        """Test each deposit takes the next nonce."""
        mode = OfflineMode(nonce=7, fees=fees)

        nonces = [(await builder.build(deposit_record, i, mode)).nonce for i in range(3)]

        assert nonces == [7, 8, 9]

    def test_unsigned_transaction_fields(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        fees: FeeParams,
    ) -> None:
        """Test the transaction targets the checksummed contract address."""
        tx = builder.unsigned_transaction(
            deposit_record, value=1, nonce=0, chain_id=1337, fees=fees
        )

        assert tx["to"] == "0x4242424242424242424242424242424242424242"
        assert tx["chainId"] == 1337
        assert tx["maxFeePerGas"] == 30_000_000_000
        assert tx["maxPriorityFeePerGas"] == 1_000_000_000
        assert tx["data"].startswith("0x22895118")

    @pytest.mark.asyncio
    async def test_legacy_gas_price(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        signer: LocalSigner,
    ) -> None:
        """Test a gas price gives a legacy transaction."""
        mode = OfflineMode(nonce=0, fees=FeeParams(gas_price=20_000_000_000))

        payload = await builder.build(deposit_record, 0, mode)

        assert not payload.raw_transaction.startswith("0x02")
        assert Account.recover_transaction(payload.raw_transaction) == signer.address

    @pytest.mark.asyncio
    async def test_gas_limit_override(
        self,
        descriptor: ContractDescriptor,
        ctx: ValidationContext,
        signer: LocalSigner,
        deposit_record: DepositRecord,
        fees: FeeParams,
    ) -> None:
        """Test gas_limit replaces the default."""
        builder = DepositTransactionBuilder(descriptor, ctx, signer, gas_limit=200_000)

        payload = await builder.build(deposit_record, 0, OfflineMode(nonce=0, fees=fees))

        assert payload.gas == 200_000

    @pytest.mark.asyncio
    async def test_missing_value_carries_index(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        fees: FeeParams,
    ) -> None:
        """Test errors from build name the record index."""
        record = deposit_record.model_copy(update={"amount": 0})

        with pytest.raises(MissingValueError) as exc_info:
            await builder.build(record, 3, OfflineMode(nonce=0, fees=fees))

        assert exc_info.value.index == 3


class TestOnlineBuild:
    """Tests for building against a node."""

    @pytest.mark.asyncio
    async def test_checks_duplicates_then_sends(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        online_mode: OnlineMode,
        mock_rpc: AsyncMock,
    ) -> None:
        """Test the indexer is asked about the deposit amount in Gwei."""
        payload = await builder.build(deposit_record, 0, online_mode)

        online_mode.indexer.check_duplicate.assert_awaited_once_with(  # type: ignore[attr-defined]
            online_mode.client,
            "test/eth2deposits",
            deposit_record.pubkey,
            32_000_000_000,
            builder.ctx,
        )
        mock_rpc.send_raw_transaction.assert_awaited_once()
        assert payload.submitted is True
        assert payload.tx_hash == "0x" + "ee" * 32
        assert payload.nonce == 5

    @pytest.mark.asyncio
    async def test_fees_from_node(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        online_mode: OnlineMode,
        mock_rpc: AsyncMock,
    ) -> None:
        """Test fees are fetched from the node when none are configured."""
        await builder.build(deposit_record, 0, online_mode)

        mock_rpc.get_base_fee.assert_awaited_once()
        mock_rpc.get_max_priority_fee.assert_awaited_once()
        raw = mock_rpc.send_raw_transaction.await_args.args[1]
        assert raw.startswith("0x02")

    @pytest.mark.asyncio
    async def test_configured_fees_skip_node(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        mock_rpc: AsyncMock,
        online_mode: OnlineMode,
        fees: FeeParams,
    ) -> None:
        """Test configured fees are used as given."""
        mode = OnlineMode(
            rpc=mock_rpc,
            client=online_mode.client,
            chain_id=1337,
            indexer=online_mode.indexer,
            fees=fees,
        )

        await builder.build(deposit_record, 0, mode)

        mock_rpc.get_base_fee.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_nonce_never_goes_backwards(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        online_mode: OnlineMode,
    ) -> None:
        """Test a lagging pending count does not reuse a nonce."""
        first = await builder.build(deposit_record, 0, online_mode)
        second = await builder.build(deposit_record, 1, online_mode)

        assert (first.nonce, second.nonce) == (5, 6)

    @pytest.mark.asyncio
    async def test_skips_indexer_without_subgraph(
        self,
        descriptor: ContractDescriptor,
        ctx: ValidationContext,
        signer: LocalSigner,
        deposit_record: DepositRecord,
        online_mode: OnlineMode,
    ) -> None:
        """Test contracts without an indexer are not checked for duplicates."""
        unindexed = descriptor.model_copy(update={"indexer": ""})
        builder = DepositTransactionBuilder(unindexed, ctx, signer)

        await builder.build(deposit_record, 0, online_mode)

        online_mode.indexer.check_duplicate.assert_not_awaited()  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_duplicate_is_not_sent(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        online_mode: OnlineMode,
        mock_rpc: AsyncMock,
    ) -> None:
        """Test a failed duplicate check stops the broadcast."""
        indexer: AsyncMock = online_mode.indexer  # type: ignore[assignment]
        indexer.check_duplicate.side_effect = ValidatorAlreadyFundedError("already funded")

        with pytest.raises(ValidatorAlreadyFundedError) as exc_info:
            await builder.build(deposit_record, 2, online_mode)

        assert exc_info.value.index == 2
        mock_rpc.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected_by_node(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        online_mode: OnlineMode,
        mock_rpc: AsyncMock,
    ) -> None:
        """Test an RPC error on broadcast becomes a SubmissionError."""
        mock_rpc.send_raw_transaction.side_effect = RPCError(
            "eth_sendRawTransaction", -32000, "insufficient funds"
        )

        with pytest.raises(SubmissionError, match="insufficient funds") as exc_info:
            await builder.build(deposit_record, 1, online_mode)

        assert exc_info.value.index == 1

    @pytest.mark.asyncio
    async def test_nonce_not_advanced_on_failure(
        self,
        builder: DepositTransactionBuilder,
        deposit_record: DepositRecord,
        online_mode: OnlineMode,
        mock_rpc: AsyncMock,
    ) -> None:
        """Test a rejected deposit leaves its nonce for the next one."""
        mock_rpc.send_raw_transaction.side_effect = [
            httpx.ConnectError("down"),
            "0x" + "ee" * 32,
        ]

        with pytest.raises(SubmissionError):
            await builder.build(deposit_record, 0, online_mode)
        payload = await builder.build(deposit_record, 1, online_mode)

        assert payload.nonce == 5


class TestFetchFeeParams:
    """Tests for node fee suggestions."""

    @pytest.mark.asyncio
    async def test_eip1559(self, mock_rpc: AsyncMock) -> None:
        """Test max fee is twice the base fee plus the priority fee."""
        fees = await fetch_fee_params(mock_rpc, AsyncMock(spec=httpx.AsyncClient))

        assert fees == FeeParams(
            max_fee_per_gas=21_000_000_000, max_priority_fee_per_gas=1_000_000_000
        )

    @pytest.mark.asyncio
    async def test_legacy_chain(self, mock_rpc: AsyncMock) -> None:
        """Test chains without a base fee use the gas price."""
        mock_rpc.get_base_fee.return_value = None
        mock_rpc.get_gas_price.return_value = 7

        fees = await fetch_fee_params(mock_rpc, AsyncMock(spec=httpx.AsyncClient))

        assert fees == FeeParams(gas_price=7)
