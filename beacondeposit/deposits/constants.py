"""Constants for deposit contract interaction."""

MIN_DEPOSIT_AMOUNT = 1_000_000_000
"""Smallest deposit accepted by the deposit contract, in Gwei (1 Ether)"""

MAX_EFFECTIVE_BALANCE = 32_000_000_000
"""Validator effective balance ceiling, in Gwei (32 Ether)"""

DEFAULT_DEPOSIT_GAS_LIMIT = 160_000
"""Gas limit covering the worst-case Merkle tree update of the deposit contract.

Gas used by a deposit varies with the tree position, so it is not estimated.
"""

UNBOUNDED_VERSION = 999
"""Maximum deposit data version for contracts that are not in the registry"""

USER_SUPPLIED_NETWORK = "user-supplied network"
"""Network name of a synthetic descriptor for an unknown contract address"""

DEPOSIT_FUNCTION_SIGNATURE = "deposit(bytes,bytes,bytes,bytes32)"
"""Signature of the deposit contract's payable deposit function"""

DEPOSIT_ARGUMENT_TYPES = ("bytes", "bytes", "bytes", "bytes32")
"""ABI types of pubkey, withdrawal_credentials, signature and deposit_data_root"""

ADDRESS_LENGTH = 20
"""Length of an execution layer address, in bytes"""

LOG_GROUP = "beacon"
LOG_COMMAND = "deposit"


__all__ = [
    "ADDRESS_LENGTH",
    "DEFAULT_DEPOSIT_GAS_LIMIT",
    "DEPOSIT_ARGUMENT_TYPES",
    "DEPOSIT_FUNCTION_SIGNATURE",
    "LOG_COMMAND",
    "LOG_GROUP",
    "MAX_EFFECTIVE_BALANCE",
    "MIN_DEPOSIT_AMOUNT",
    "UNBOUNDED_VERSION",
    "USER_SUPPLIED_NETWORK",
]
