"""Local transaction signing with eth_account."""

import json
from pathlib import Path

from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address
from pydantic import BaseModel

from beacondeposit.helpers.parsers import to_hex


class SignedDeposit(BaseModel):
    """Signed transaction bytes as hex."""

    raw_transaction: str
    tx_hash: str


class LocalSigner:
    """Signs transactions with a locally held key."""

    def __init__(self, account: LocalAccount) -> None:
        self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> "LocalSigner":
        """Create a signer from a hex private key."""
        return cls(Account.from_key(private_key))

    @classmethod
    def from_keystore(cls, path: str | Path, passphrase: str) -> "LocalSigner":
        """Create a signer from an encrypted JSON keystore.

        Raises:
            OSError: If the keystore cannot be read
            ValueError: If the passphrase is wrong or the keystore is invalid
        """
        keystore = json.loads(Path(path).read_text())
        return cls(Account.from_key(Account.decrypt(keystore, passphrase)))

    @property
    def address(self) -> str:
        """Checksummed address of the signing account."""
        return to_checksum_address(self._account.address)

    def sign(self, transaction: dict[str, Any]) -> SignedDeposit:
        """Sign a transaction dict as accepted by eth_account."""
        signed = self._account.sign_transaction(transaction)
        return SignedDeposit(
            raw_transaction=to_hex(bytes(signed.raw_transaction)),
            tx_hash=to_hex(bytes(signed.hash)),
        )


__all__ = ["LocalSigner", "SignedDeposit"]
