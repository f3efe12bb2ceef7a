"""Errors raised while resolving, validating and sending deposits.

Each error carries an optional batch `index` and a remediation `hint`. For
conditions that an override flag can bypass, the hint names the flag, so the
error text alone is enough to discover it.
"""


class DepositError(Exception):
    """Base class for deposit pipeline failures."""

    default_hint: str | None = None

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        hint: str | None = None,
    ) -> None:
        self.message = message
        self.index = index
        self.hint = hint if hint is not None else self.default_hint
        super().__init__(message)

    def at(self, index: int) -> "DepositError":
        """Attach the batch index of the record that failed."""
        self.index = index
        return self

    def __str__(self) -> str:
        text = self.message
        if self.index is not None:
            text = f"deposit {self.index}: {text}"
        if self.hint:
            text = f"{text}\n\n{self.hint}"
        return text


class MissingTargetError(DepositError):
    default_hint = "Supply either a deposit contract address or a network name."


class UnknownContractError(DepositError):
    default_hint = (
        "This means you are either running an old version of this tool, or are "
        "attempting to send to the wrong network or a custom contract.\n\n"
        "If you are completely sure you know what you are doing, you can use the "
        "--allow-unknown-contract option to carry out this transaction. Otherwise, "
        "please seek support to ensure you do not lose your Ether."
    )


class UnknownNetworkError(DepositError):
    default_hint = "Use one of the known network names, or supply --address."


class ChainMismatchError(DepositError):
    default_hint = (
        "The named network's deposit contract is on a different chain from the one "
        "the transactions would be sent on. Connect to the right chain, or name the "
        "contract with --address, adding --allow-unknown-contract if it is not a "
        "known contract on this chain."
    )


class MalformedInputError(DepositError):
    default_hint = (
        "Deposit data must be a JSON object, a JSON array of objects, or the path "
        "to a file containing either."
    )


class EmptyInputError(DepositError):
    default_hint = "The deposit data contains no deposits."


class MissingFieldError(DepositError):
    """A required byte field of a deposit record is empty."""

    def __init__(self, field: str, *, index: int | None = None) -> None:
        self.field = field
        super().__init__(
            f"no {field.replace('_', ' ')}",
            index=index,
            hint="Regenerate the deposit data; this field cannot be overridden.",
        )


class ForkVersionMismatchError(DepositError):
    default_hint = (
        "The deposit data was generated for a different network than the deposit "
        "contract. Regenerate it for the target network; this cannot be overridden."
    )


class AmountTooSmallError(DepositError):
    default_hint = "Deposits must be at least 1 Ether; this cannot be overridden."


class AmountExceedsEffectiveLimitError(DepositError):
    default_hint = (
        "Any amount above 32 Ether that is deposited will not count towards the "
        "validator's effective balance, and is effectively wasted.\n\n"
        "If you really want to do this use the --allow-excessive-deposit option."
    )


class SchemaTooOldError(DepositError):
    default_hint = (
        "The deposit data is old and possibly inaccurate. Upgrade the tool that "
        "generated it (or check you are sending to the right contract or network) "
        "and regenerate the deposit data.\n\n"
        "If you are completely sure you know what you are doing, you can use the "
        "--allow-old-data option to carry out this transaction."
    )


class SchemaTooNewError(DepositError):
    default_hint = (
        "The deposit data is newer than supported. Upgrade this tool (or check "
        "you are sending to the right contract or network) and try again.\n\n"
        "If you are completely sure you know what you are doing, you can use the "
        "--allow-new-data option to carry out this transaction."
    )


class MissingValueError(DepositError):
    default_hint = (
        "The deposit data has no value; supply one with --value, or use "
        "--force-zero-value to send the deposit without Ether."
    )


class IndexerUnavailableError(DepositError):
    default_hint = (
        "The existing deposit check could not be completed, so the deposit was not "
        "sent. Try again later, or point --indexer-url at another indexer."
    )


class ValidatorAlreadyFundedError(DepositError):
    default_hint = (
        "If you really want to add more funds to this validator use the "
        "--allow-duplicate-deposit option."
    )


class WouldExceedEffectiveLimitError(DepositError):
    default_hint = (
        "If you really want to add these funds to this validator use the "
        "--allow-duplicate-deposit and --allow-excessive-deposit options."
    )


class SubmissionError(DepositError):
    default_hint = "The node did not accept the transaction; nothing was sent."


__all__ = [
    "AmountExceedsEffectiveLimitError",
    "AmountTooSmallError",
    "ChainMismatchError",
    "DepositError",
    "EmptyInputError",
    "ForkVersionMismatchError",
    "IndexerUnavailableError",
    "MalformedInputError",
    "MissingFieldError",
    "MissingTargetError",
    "MissingValueError",
    "SchemaTooNewError",
    "SchemaTooOldError",
    "SubmissionError",
    "UnknownContractError",
    "UnknownNetworkError",
    "ValidatorAlreadyFundedError",
    "WouldExceedEffectiveLimitError",
]
