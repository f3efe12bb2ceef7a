"""Run a batch of deposits through validation and the transaction builder."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from beacondeposit.deposits.builder import BuildMode, DepositTransactionBuilder, OnlineMode
from beacondeposit.deposits.constants import LOG_COMMAND, LOG_GROUP
from beacondeposit.deposits.errors import ChainMismatchError, DepositError
from beacondeposit.deposits.loader import load_deposit_records
from beacondeposit.deposits.models import (
    ContractDescriptor,
    DepositRecord,
    TransactionPayload,
    ValidationContext,
)
from beacondeposit.deposits.registry import DEFAULT_REGISTRY, ContractRegistry
from beacondeposit.deposits.validator import validate_deposits
from beacondeposit.helpers.logging import format_fields, get_logger


logger = get_logger(__name__)


@dataclass
class RecordOutcome:
    """Result of building one deposit."""

    index: int
    record: DepositRecord
    payload: TransactionPayload | None = None
    error: DepositError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Results of a batch, in input order."""

    outcomes: list[RecordOutcome] = field(default_factory=list)

    @property
    def payloads(self) -> list[TransactionPayload]:
        return [o.payload for o in self.outcomes if o.payload is not None]

    @property
    def failed_indexes(self) -> list[int]:
        return [o.index for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed_indexes


@dataclass(frozen=True)
class PreparedBatch:
    """Loaded deposits with the contract they target."""

    records: list[DepositRecord]
    descriptor: ContractDescriptor


def prepare_batch(
    data: str,
    *,
    address: str | None,
    network: str | None,
    chain_id: int | None,
    ctx: ValidationContext,
    registry: ContractRegistry = DEFAULT_REGISTRY,
) -> PreparedBatch:
    """Load deposits and resolve the contract they go to.

    Args:
        data: Deposit JSON or the path of a deposit JSON file
        address: Contract address, takes precedence over network
        network: Network name
        chain_id: Chain ID the deposits will be sent on, None if not yet known
        ctx: Override flags
        registry: Known contracts

    Returns:
        The records and their contract

    Raises:
        ChainMismatchError: If the contract is on a chain other than `chain_id`
        DepositError: On the first loading or resolution failure
    """
    records = load_deposit_records(data)
    descriptor = registry.resolve(
        address, network, chain_id, allow_unknown=ctx.allow_unknown_contract
    )
    if chain_id is not None and descriptor.chain_id != chain_id:
        msg = (
            f"{descriptor.network} deposit contract is on chain {descriptor.chain_id} "
            f"but transactions target chain {chain_id}"
        )
        raise ChainMismatchError(msg)
    logger.info("Deposit contract is %s", descriptor.network)
    return PreparedBatch(records=records, descriptor=descriptor)


class DepositSubmitter:
    """Sends validated deposits one at a time, in input order."""

    def __init__(self, builder: DepositTransactionBuilder) -> None:
        self.builder = builder

    async def run(
        self, records: Sequence[DepositRecord], mode: BuildMode
    ) -> BatchResult:
        """Validate the batch, then build each deposit.

        Validation covers the whole batch before any transaction is built. After
        that a failing deposit is reported and the rest of the batch still goes
        ahead; transactions already sent are not undone. Unexpected errors from
        the builder are recorded as failures of that deposit.

        Raises:
            DepositError: If validation fails; nothing has been built
        """
        validate_deposits(records, self.builder.descriptor, self.builder.ctx)

        result = BatchResult()
        for index, record in enumerate(records):
            outcome = RecordOutcome(index=index, record=record)
            try:
                outcome.payload = await self.builder.build(record, index, mode)
            except DepositError as e:
                logger.error("Deposit %d failed: %s", index, e)
                outcome.error = e
            except Exception as e:
                logger.exception("Deposit %d failed unexpectedly", index)
                outcome.error = DepositError(f"unexpected error: {e}", index=index)
            else:
                if isinstance(mode, OnlineMode):
                    logger.info(
                        format_fields({
                            "group": LOG_GROUP,
                            "command": LOG_COMMAND,
                            "txHash": outcome.payload.tx_hash,
                            **record.log_fields(),
                        })
                    )
            result.outcomes.append(outcome)

        if not result.ok:
            logger.error(
                "%d of %d deposit(s) failed: %s",
                len(result.failed_indexes),
                len(records),
                ", ".join(str(i) for i in result.failed_indexes),
            )
        return result


__all__ = [
    "BatchResult",
    "DepositSubmitter",
    "PreparedBatch",
    "RecordOutcome",
    "prepare_batch",
]
