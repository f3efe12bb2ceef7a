"""Pytest configuration and shared fixtures for deposit tests."""

from typing import Any

import pytest

from beacondeposit.deposits.models import (
    ContractDescriptor,
    DepositRecord,
    FeeParams,
    ValidationContext,
)
from beacondeposit.deposits.registry import ContractRegistry
from beacondeposit.deposits.signer import LocalSigner


TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

PUBKEY = "0x" + "a1" * 48
WITHDRAWAL_CREDENTIALS = "0x00" + "11" * 31
SIGNATURE = "0x" + "b2" * 96
DEPOSIT_DATA_ROOT = "0x" + "c3" * 32


@pytest.fixture
def deposit_entry() -> dict[str, Any]:
    """A deposit as written by ethdo.

    Returns:
        dict: JSON object for a 32 Ether deposit at data version 3
    """
    return {
        "account": "Validators/1",
        "pubkey": PUBKEY,
        "withdrawal_credentials": WITHDRAWAL_CREDENTIALS,
        "signature": SIGNATURE,
        "deposit_data_root": DEPOSIT_DATA_ROOT,
        "value": 32_000_000_000,
        "version": 3,
        "fork_version": "0x00000000",
    }


@pytest.fixture
def deposit_record(deposit_entry: dict[str, Any]) -> DepositRecord:
    """The deposit_entry fixture as a DepositRecord."""
    return DepositRecord.model_validate(deposit_entry)


@pytest.fixture
def descriptor() -> ContractDescriptor:
    """A test deposit contract accepting data versions 2 to 3.

    Returns:
        ContractDescriptor: Contract on chain 1337 with an indexer
    """
    return ContractDescriptor(
        network="Testnet",
        chain_id=1337,
        address="0x" + "42" * 20,
        fork_version="0x00000000",
        min_version=2,
        max_version=3,
        indexer="test/eth2deposits",
    )


@pytest.fixture
def registry(descriptor: ContractDescriptor) -> ContractRegistry:
    """Registry holding the test contract and one on another chain."""
    return ContractRegistry([
        descriptor,
        ContractDescriptor(
            network="Othernet",
            chain_id=7,
            address="0x" + "43" * 20,
            min_version=1,
            max_version=1,
        ),
    ])


@pytest.fixture
def ctx() -> ValidationContext:
    """Validation context with every override off."""
    return ValidationContext()


@pytest.fixture
def signer() -> LocalSigner:
    """Signer for a throwaway test key."""
    return LocalSigner.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def fees() -> FeeParams:
    """EIP-1559 fees of 30 Gwei max and 1 Gwei priority."""
    return FeeParams(
        max_fee_per_gas=30_000_000_000,
        max_priority_fee_per_gas=1_000_000_000,
    )


@pytest.fixture
def private_key() -> str:
    """Hex private key of the signer fixture."""
    return TEST_PRIVATE_KEY
