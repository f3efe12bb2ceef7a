"""Pre-flight checks applied to a batch of deposits before anything is built."""

from collections.abc import Sequence

from beacondeposit.deposits.constants import MAX_EFFECTIVE_BALANCE, MIN_DEPOSIT_AMOUNT
from beacondeposit.deposits.errors import (
    AmountExceedsEffectiveLimitError,
    AmountTooSmallError,
    ForkVersionMismatchError,
    MissingFieldError,
    SchemaTooNewError,
    SchemaTooOldError,
)
from beacondeposit.deposits.models import (
    ContractDescriptor,
    DepositRecord,
    ValidationContext,
)
from beacondeposit.helpers.logging import get_logger
from beacondeposit.helpers.parsers import format_gwei, to_hex


logger = get_logger(__name__)

REQUIRED_FIELDS = (
    "pubkey",
    "deposit_data_root",
    "signature",
    "withdrawal_credentials",
)


def validate_deposit(
    record: DepositRecord,
    descriptor: ContractDescriptor,
    ctx: ValidationContext,
    index: int,
) -> None:
    """Check one deposit against the contract and the override flags.

    Checks run in a fixed order and the first failure is raised.

    Raises:
        MissingFieldError: If a required byte field is empty
        ForkVersionMismatchError: If the fork versions differ
        AmountTooSmallError: If a nonzero amount is below 1 Ether
        AmountExceedsEffectiveLimitError: If the amount is above 32 Ether
        SchemaTooOldError: If the data version is below the contract's minimum
        SchemaTooNewError: If the data version is above the contract's maximum
    """
    for field in REQUIRED_FIELDS:
        if not getattr(record, field):
            raise MissingFieldError(field, index=index)

    if (
        descriptor.fork_version
        and record.fork_version
        and descriptor.fork_version != record.fork_version
    ):
        msg = (
            f"fork version {to_hex(record.fork_version)} does not match "
            f"{descriptor.network} fork version {to_hex(descriptor.fork_version)}"
        )
        raise ForkVersionMismatchError(msg, index=index)

    # Zero means the value is supplied separately
    if record.amount and record.amount < MIN_DEPOSIT_AMOUNT:
        msg = f"deposit of {format_gwei(record.amount)} is too small"
        raise AmountTooSmallError(msg, index=index)

    if record.amount > MAX_EFFECTIVE_BALANCE:
        if not ctx.allow_excessive_amount:
            msg = f"deposit of {format_gwei(record.amount)} is more than 32 Ether"
            raise AmountExceedsEffectiveLimitError(msg, index=index)
        logger.warning(
            "Deposit %d is %s, above the effective balance limit; allowed by override",
            index,
            format_gwei(record.amount),
        )

    if record.version < descriptor.min_version:
        if not ctx.allow_old_schema:
            msg = (
                f"deposit data version {record.version} is older than the "
                f"minimum {descriptor.min_version} supported by {descriptor.network}"
            )
            raise SchemaTooOldError(msg, index=index)
        logger.warning(
            "Deposit %d data version %d is old; allowed by override",
            index,
            record.version,
        )

    if record.version > descriptor.max_version:
        if not ctx.allow_new_schema:
            msg = (
                f"deposit data version {record.version} is newer than the "
                f"maximum {descriptor.max_version} supported by {descriptor.network}"
            )
            raise SchemaTooNewError(msg, index=index)
        logger.warning(
            "Deposit %d data version %d is new; allowed by override",
            index,
            record.version,
        )


def validate_deposits(
    records: Sequence[DepositRecord],
    descriptor: ContractDescriptor,
    ctx: ValidationContext,
) -> None:
    """Validate a whole batch, stopping at the first bad deposit.

    Nothing may be built or sent until this returns, so a failure late in the
    batch also holds back the deposits before it.
    """
    for index, record in enumerate(records):
        validate_deposit(record, descriptor, ctx, index)
    logger.debug("Validated %d deposit(s) for %s", len(records), descriptor.network)


__all__ = [
    "REQUIRED_FIELDS",
    "validate_deposit",
    "validate_deposits",
]
