"""Command line entry point for sending beacon chain deposits.

Exit status is 0 when every deposit was submitted (and mined, with --wait),
1 when validation or a submission failed, and 2 when deposits were submitted
but not mined within --limit seconds.
"""

import argparse
import sys

from collections.abc import Sequence

import asyncio

import httpx
from rich.console import Console
from rich.table import Table

from beacondeposit.deposits.builder import (
    BuildMode,
    DepositTransactionBuilder,
    OfflineMode,
    OnlineMode,
)
from beacondeposit.deposits.errors import DepositError
from beacondeposit.deposits.indexer import DepositIndexer
from beacondeposit.deposits.models import (
    ContractDescriptor,
    FeeParams,
    ValidationContext,
)
from beacondeposit.deposits.signer import LocalSigner
from beacondeposit.deposits.submit import BatchResult, DepositSubmitter, prepare_batch
from beacondeposit.helpers.config import (
    get_eth_rpc_url,
    get_log_level,
    get_required_env,
)
from beacondeposit.helpers.constants import DEFAULT_WAIT_LIMIT
from beacondeposit.helpers.http import create_http_client
from beacondeposit.helpers.logging import LOG_LEVELS, get_logger, set_log_level
from beacondeposit.helpers.parsers import ether_to_wei, format_wei, gwei_to_wei
from beacondeposit.helpers.progress import create_console, track_progress
from beacondeposit.helpers.rpc import RPCClient, RPCError


logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_NOT_MINED = 2


class UsageError(ValueError):
    """Invalid combination of command line options."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beacondeposit",
        description="Deposit Ether to the beacon chain deposit contract.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Send deposits generated by ethdo
  beacondeposit --data=/home/me/depositdata.json --from=0x... \\
      --keystore=key.json --passphrase=secret

  # Sign without broadcasting, printing one signed transaction per line
  beacondeposit --data=depositdata.json --from=0x... --offline --nonce=7 \\
      --max-fee-per-gas=30 --priority-fee-per-gas=1 --network=hoodi
        """,
    )

    parser.add_argument(
        "--data",
        required=True,
        help="Deposit data as JSON, or the path of a JSON file, from ethdo or similar",
    )
    parser.add_argument(
        "--from",
        dest="from_address",
        required=True,
        help="Address of the account sending the deposits",
    )
    parser.add_argument(
        "--address",
        help="Address of the deposit contract (overrides --network)",
    )
    parser.add_argument(
        "--network",
        default="mainnet",
        help="Name of the network to deposit on (default: mainnet)",
    )

    overrides = parser.add_argument_group(
        "overrides", "WARNING: only use these if you know what you are doing"
    )
    overrides.add_argument(
        "--allow-unknown-contract",
        action="store_true",
        help="Allow sending to a deposit contract address that is not known",
    )
    overrides.add_argument(
        "--allow-old-data",
        action="store_true",
        help="Allow deposit data older than the contract supports",
    )
    overrides.add_argument(
        "--allow-new-data",
        action="store_true",
        help="Allow deposit data newer than the contract supports",
    )
    overrides.add_argument(
        "--allow-excessive-deposit",
        action="store_true",
        help="Allow more than 32 Ether in a single deposit",
    )
    overrides.add_argument(
        "--allow-duplicate-deposit",
        action="store_true",
        help="Allow deposits to a validator that already has deposits",
    )
    overrides.add_argument(
        "--force-zero-value",
        action="store_true",
        help="Send deposits with no Ether attached",
    )

    tx = parser.add_argument_group("transaction")
    tx.add_argument(
        "--value",
        help="Ether to send for deposits whose data has no value",
    )
    tx.add_argument("--gas-limit", type=int, help="Gas limit of each deposit")
    tx.add_argument("--gas-price", type=int, help="Legacy gas price in Gwei")
    tx.add_argument("--max-fee-per-gas", type=int, help="EIP-1559 max fee in Gwei")
    tx.add_argument(
        "--priority-fee-per-gas", type=int, help="EIP-1559 priority fee in Gwei"
    )
    tx.add_argument("--nonce", type=int, help="Nonce of the first deposit")
    tx.add_argument("--chain-id", type=int, help="Chain ID to sign for")
    tx.add_argument(
        "--offline",
        action="store_true",
        help="Print signed transactions instead of sending them",
    )

    account = parser.add_argument_group("account")
    account.add_argument("--keystore", help="Encrypted keystore of the sending account")
    account.add_argument("--passphrase", help="Passphrase of the keystore")

    connection = parser.add_argument_group("connection")
    connection.add_argument("--rpc-url", help="JSON-RPC endpoint (default: ETH_RPC_URL)")
    connection.add_argument(
        "--indexer-url", help="Deposit subgraph service (default: DEPOSIT_INDEXER_URL)"
    )
    connection.add_argument(
        "--wait", action="store_true", help="Wait for deposits to be mined"
    )
    connection.add_argument(
        "--limit",
        type=float,
        default=DEFAULT_WAIT_LIMIT,
        help="Seconds to wait for each deposit with --wait",
    )
    parser.add_argument("--log-level", help="Log level (default: LOG_LEVEL or INFO)")
    parser.add_argument(
        "--verbose", action="store_true", help="Shorthand for --log-level=DEBUG"
    )

    return parser


def validation_context(args: argparse.Namespace) -> ValidationContext:
    return ValidationContext(
        allow_old_schema=args.allow_old_data,
        allow_new_schema=args.allow_new_data,
        allow_excessive_amount=args.allow_excessive_deposit,
        allow_unknown_contract=args.allow_unknown_contract,
        allow_duplicate_deposit=args.allow_duplicate_deposit,
        force_zero_value=args.force_zero_value,
    )


def _gwei_option(value: int | None) -> int | None:
    return None if value is None else gwei_to_wei(value)


def fee_params(args: argparse.Namespace) -> FeeParams | None:
    """Fee settings from the command line, converted from Gwei to wei.

    Raises:
        UsageError: If the fee options are inconsistent
    """
    options = (args.gas_price, args.max_fee_per_gas, args.priority_fee_per_gas)
    if all(option is None for option in options):
        return None
    try:
        return FeeParams(
            gas_price=_gwei_option(args.gas_price),
            max_fee_per_gas=_gwei_option(args.max_fee_per_gas),
            max_priority_fee_per_gas=_gwei_option(args.priority_fee_per_gas),
        )
    except ValueError as e:
        msg = (
            "use either --gas-price or both --max-fee-per-gas and "
            f"--priority-fee-per-gas: {e}"
        )
        raise UsageError(msg) from e


def load_signer(args: argparse.Namespace) -> LocalSigner:
    """Unlock the sending account and check it matches --from.

    Raises:
        UsageError: If the account cannot be unlocked or does not match
    """
    try:
        if args.keystore:
            if args.passphrase is None:
                msg = "--passphrase is required with --keystore"
                raise UsageError(msg)
            signer = LocalSigner.from_keystore(args.keystore, args.passphrase)
        else:
            signer = LocalSigner.from_key(get_required_env("DEPOSIT_PRIVATE_KEY"))
    except UsageError:
        raise
    except (OSError, ValueError) as e:
        msg = f"failed to unlock the sending account: {e}"
        raise UsageError(msg) from e

    if signer.address.lower() != args.from_address.lower():
        msg = (
            f"--from {args.from_address} does not match the unlocked "
            f"account {signer.address}"
        )
        raise UsageError(msg)
    return signer


def make_builder(
    args: argparse.Namespace,
    descriptor: ContractDescriptor,
    signer: LocalSigner,
    ctx: ValidationContext,
) -> DepositTransactionBuilder:
    """Builder configured with the --gas-limit and --value options."""
    try:
        value_fallback = None if args.value is None else ether_to_wei(args.value)
    except ValueError as e:
        raise UsageError(str(e)) from e
    return DepositTransactionBuilder(
        descriptor,
        ctx,
        signer,
        gas_limit=args.gas_limit,
        value_fallback=value_fallback,
    )


def summary_table(result: BatchResult) -> Table:
    """One row per deposit with its outcome."""
    table = Table(title="Deposits")
    table.add_column("#", justify="right")
    table.add_column("Account")
    table.add_column("Value", justify="right")
    table.add_column("Nonce", justify="right")
    table.add_column("Result")

    for outcome in result.outcomes:
        if outcome.payload is None:
            error = outcome.error.message if outcome.error else "not built"
            table.add_row(
                str(outcome.index),
                outcome.record.account,
                "",
                "",
                f"[red]{error}[/red]",
            )
            continue
        payload = outcome.payload
        table.add_row(
            str(outcome.index),
            outcome.record.account,
            format_wei(payload.value),
            str(payload.nonce),
            payload.tx_hash if payload.submitted else "signed",
        )
    return table


async def wait_for_deposits(
    rpc: RPCClient,
    client: httpx.AsyncClient,
    result: BatchResult,
    limit: float,
    console: Console | None = None,
) -> int:
    """Wait for every submitted deposit and return the exit status."""
    failed = False
    not_mined = False
    payloads = result.payloads
    with track_progress("Waiting for deposits", len(payloads), console) as (
        progress,
        task,
    ):
        for payload in payloads:
            receipt = await rpc.wait_for_receipt(client, payload.tx_hash, limit)
            if receipt is None:
                logger.warning(
                    "Deposit %d (%s) not mined within %.0fs",
                    payload.index,
                    payload.tx_hash,
                    limit,
                )
                not_mined = True
            elif not receipt.succeeded:
                logger.error(
                    "Deposit %d (%s) failed on chain", payload.index, payload.tx_hash
                )
                failed = True
            else:
                logger.info("Deposit %d (%s) mined", payload.index, payload.tx_hash)
            progress.update(task, advance=1)

    if failed:
        return EXIT_FAILURE
    return EXIT_NOT_MINED if not_mined else EXIT_SUCCESS


async def run_offline(
    args: argparse.Namespace,
    signer: LocalSigner,
    ctx: ValidationContext,
    console: Console,
) -> int:
    fees = fee_params(args)
    if args.nonce is None or fees is None:
        msg = "--offline requires --nonce and fee options"
        raise UsageError(msg)
    if args.address and args.chain_id is None:
        msg = "--chain-id is required with --address in offline mode"
        raise UsageError(msg)

    batch = prepare_batch(
        args.data,
        address=args.address,
        network=args.network,
        chain_id=args.chain_id,
        ctx=ctx,
    )
    builder = make_builder(args, batch.descriptor, signer, ctx)
    mode: BuildMode = OfflineMode(nonce=args.nonce, fees=fees, chain_id=args.chain_id)
    result = await DepositSubmitter(builder).run(batch.records, mode)

    for payload in result.payloads:
        print(payload.raw_transaction)
    console.print(summary_table(result))
    return EXIT_SUCCESS if result.ok else EXIT_FAILURE


async def run_online(
    args: argparse.Namespace,
    signer: LocalSigner,
    ctx: ValidationContext,
    console: Console,
) -> int:
    rpc = RPCClient(get_eth_rpc_url(args.rpc_url))
    async with create_http_client() as client:
        chain_id = await rpc.get_chain_id(client)
        if args.chain_id is not None and args.chain_id != chain_id:
            msg = f"--chain-id {args.chain_id} does not match the node's chain {chain_id}"
            raise UsageError(msg)

        batch = prepare_batch(
            args.data,
            address=args.address,
            network=args.network,
            chain_id=chain_id,
            ctx=ctx,
        )
        builder = make_builder(args, batch.descriptor, signer, ctx)
        mode: BuildMode = OnlineMode(
            rpc=rpc,
            client=client,
            chain_id=chain_id,
            indexer=DepositIndexer(args.indexer_url),
            fees=fee_params(args),
        )
        result = await DepositSubmitter(builder).run(batch.records, mode)

        for payload in result.payloads:
            print(payload.tx_hash)
        console.print(summary_table(result))

        if not result.ok:
            return EXIT_FAILURE
        if args.wait:
            return await wait_for_deposits(rpc, client, result, args.limit, console)
        return EXIT_SUCCESS


async def main(args: argparse.Namespace) -> int:
    """Run the deposit command.

    Returns:
        Exit code
    """
    ctx = validation_context(args)
    console = create_console()
    try:
        signer = load_signer(args)
        if args.offline:
            return await run_offline(args, signer, ctx, console)
        return await run_online(args, signer, ctx, console)
    except DepositError as e:
        logger.error("%s", e)
        return EXIT_FAILURE
    except (httpx.HTTPError, RPCError) as e:
        logger.error("Failed to reach the node: %s", e)
        return EXIT_FAILURE
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_FAILURE


def cli(argv: Sequence[str] | None = None) -> None:
    """Command-line interface entry point."""
    args = build_parser().parse_args(argv)
    try:
        set_log_level("DEBUG" if args.verbose else get_log_level(args.log_level))
    except ValueError as e:
        logger.error("Configuration error: %s; use one of %s", e, ", ".join(LOG_LEVELS))
        sys.exit(EXIT_FAILURE)
    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    cli()
