"""Known deposit contract deployments and their resolution."""

from collections.abc import Iterable

from beacondeposit.deposits.constants import (
    ADDRESS_LENGTH,
    UNBOUNDED_VERSION,
    USER_SUPPLIED_NETWORK,
)
from beacondeposit.deposits.errors import (
    MalformedInputError,
    MissingTargetError,
    UnknownContractError,
    UnknownNetworkError,
)
from beacondeposit.deposits.models import ContractDescriptor
from beacondeposit.helpers.logging import get_logger
from beacondeposit.helpers.parsers import parse_bytes, to_hex


logger = get_logger(__name__)


KNOWN_DEPOSIT_CONTRACTS: tuple[ContractDescriptor, ...] = (
    ContractDescriptor(
        network="Mainnet",
        chain_id=1,
        address="0x00000000219ab540356cBB839Cbe05303d7705Fa",
        fork_version="0x00000000",
        min_version=3,
        max_version=3,
        indexer="attestantio/eth2deposits",
    ),
    ContractDescriptor(
        network="Pyrmont",
        chain_id=5,
        address="0x8c5fecdC472E27Bc447696F431E425D02dd46a8c",
        fork_version="0x00002009",
        min_version=3,
        max_version=3,
        indexer="attestantio/eth2deposits-pyrmont",
    ),
    ContractDescriptor(
        network="Prater",
        chain_id=5,
        address="0xff50ed3d0ec03aC01D4C79aAd74928BFF48a7b2b",
        fork_version="0x00001020",
        min_version=3,
        max_version=3,
        indexer="attestantio/eth2deposits-prater",
    ),
    ContractDescriptor(
        network="Sepolia",
        chain_id=11155111,
        address="0x7f02C3E3c98b133055B8B348B2Ac625669Ed295D",
        fork_version="0x90000069",
        min_version=3,
        max_version=3,
    ),
    ContractDescriptor(
        network="Holesky",
        chain_id=17000,
        address="0x4242424242424242424242424242424242424242",
        fork_version="0x01017000",
        min_version=3,
        max_version=3,
    ),
    ContractDescriptor(
        network="Hoodi",
        chain_id=560048,
        address="0x00000000219ab540356cBB839Cbe05303d7705Fa",
        fork_version="0x10000910",
        min_version=3,
        max_version=3,
    ),
    # Retired testnets
    ContractDescriptor(
        network="Topaz",
        chain_id=5,
        address="0x5ca1e00004366ac85f492887aaab12d0e6418876",
        min_version=1,
        max_version=1,
        indexer="attestantio/eth2deposits-topaz",
    ),
    ContractDescriptor(
        network="Onyx",
        chain_id=5,
        address="0x0f0f0fc0530007361933eab5db97d09acdd6c1c8",
        min_version=2,
        max_version=2,
        indexer="attestantio/eth2deposits-onyx",
    ),
    ContractDescriptor(
        network="Altona",
        chain_id=5,
        address="0x16e82D77882A663454Ef92806b7DeCa1D394810f",
        fork_version="0x00000121",
        min_version=2,
        max_version=2,
        indexer="attestantio/eth2deposits-altona",
    ),
    ContractDescriptor(
        network="Medalla",
        chain_id=5,
        address="0x07b39F4fDE4A38bACe212b546dAc87C58DfE3fDC",
        fork_version="0x00000001",
        min_version=2,
        max_version=3,
        indexer="attestantio/eth2deposits-medalla",
    ),
    ContractDescriptor(
        network="Spadina",
        chain_id=5,
        address="0x48B597F4b53C21B48AD95c7256B49D1779Bd5890",
        fork_version="0x00000002",
        min_version=2,
        max_version=3,
        indexer="attestantio/eth2deposits-spadina",
    ),
    ContractDescriptor(
        network="Zinken",
        chain_id=5,
        address="0x99F0Ec06548b086E46Cb0019C78D0b9b9F36cD53",
        fork_version="0x00000003",
        min_version=2,
        max_version=3,
        indexer="attestantio/eth2deposits-zinken",
    ),
)


class ContractRegistry:
    """Immutable lookup table of deposit contracts.

    The default registry holds KNOWN_DEPOSIT_CONTRACTS; tests and private
    networks can pass their own descriptors.
    """

    def __init__(self, contracts: Iterable[ContractDescriptor] = KNOWN_DEPOSIT_CONTRACTS) -> None:
        """Initialize the registry.

        Args:
            contracts: Descriptors to look up

        Raises:
            ValueError: If two descriptors share a chain ID and address
        """
        self._contracts = tuple(contracts)
        seen: set[tuple[int, bytes]] = set()
        for contract in self._contracts:
            key = (contract.chain_id, contract.address)
            if key in seen:
                msg = (
                    f"duplicate deposit contract {to_hex(contract.address)} "
                    f"on chain {contract.chain_id}"
                )
                raise ValueError(msg)
            seen.add(key)

    @property
    def contracts(self) -> tuple[ContractDescriptor, ...]:
        return self._contracts

    def network_names(self) -> list[str]:
        """Lower case names of the networks in the registry."""
        return [contract.network.lower() for contract in self._contracts]

    def resolve(
        self,
        address: bytes | str | None,
        network: str | None,
        current_chain_id: int | None,
        *,
        allow_unknown: bool = False,
    ) -> ContractDescriptor:
        """Find the deposit contract to send to.

        An address takes precedence over a network name. An address only
        matches a descriptor on the chain the caller is connected to.

        Args:
            address: Contract address as bytes or hex, or None
            network: Network name (case-insensitive), or None
            current_chain_id: Chain ID of the target chain; None matches no address
            allow_unknown: Return a synthetic descriptor for unknown addresses

        Returns:
            The matching descriptor

        Raises:
            MalformedInputError: If the address is not 20 bytes of valid hex
            UnknownContractError: If the address is unknown and not allowed
            UnknownNetworkError: If no network has that name
            MissingTargetError: If neither address nor network is supplied
        """
        try:
            address_bytes = parse_bytes(address)
        except ValueError as e:
            msg = f"invalid contract address: {e}"
            raise MalformedInputError(msg) from e

        if address_bytes and len(address_bytes) != ADDRESS_LENGTH:
            msg = (
                f"invalid contract address {to_hex(address_bytes)}: "
                f"{len(address_bytes)} bytes, expected {ADDRESS_LENGTH}"
            )
            raise MalformedInputError(msg, hint="Supply a 20 byte hex address.")

        if address_bytes:
            for contract in self._contracts:
                if (
                    contract.address == address_bytes
                    and contract.chain_id == current_chain_id
                ):
                    return contract

            if not allow_unknown or current_chain_id is None:
                msg = f"address {to_hex(address_bytes)} does not match a known contract"
                raise UnknownContractError(msg)

            logger.warning(
                "Deposit contract %s is unknown; continuing as --allow-unknown-contract is set",
                to_hex(address_bytes),
            )
            return ContractDescriptor(
                network=USER_SUPPLIED_NETWORK,
                chain_id=current_chain_id,
                address=address_bytes,
                min_version=0,
                max_version=UNBOUNDED_VERSION,
            )

        if network:
            for contract in self._contracts:
                if contract.network.lower() == network.lower():
                    return contract
            msg = f"unknown network {network!r}"
            raise UnknownNetworkError(
                msg,
                hint=f"Known networks are: {', '.join(self.network_names())}.",
            )

        msg = "no deposit contract address or network supplied"
        raise MissingTargetError(msg)


DEFAULT_REGISTRY = ContractRegistry()


__all__ = [
    "DEFAULT_REGISTRY",
    "KNOWN_DEPOSIT_CONTRACTS",
    "ContractRegistry",
]
