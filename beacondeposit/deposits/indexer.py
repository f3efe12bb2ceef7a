"""Check a deposit subgraph for earlier deposits to the same validator."""

import httpx
from pydantic import ValidationError

from beacondeposit.deposits.constants import MAX_EFFECTIVE_BALANCE
from beacondeposit.deposits.errors import (
    IndexerUnavailableError,
    ValidatorAlreadyFundedError,
    WouldExceedEffectiveLimitError,
)
from beacondeposit.deposits.models import (
    DuplicateCheckResult,
    IndexerResponse,
    ValidationContext,
)
from beacondeposit.helpers.config import get_indexer_url
from beacondeposit.helpers.constants import DEFAULT_TIMEOUT
from beacondeposit.helpers.http import post_json
from beacondeposit.helpers.http_models import GraphQLQuery
from beacondeposit.helpers.logging import get_logger
from beacondeposit.helpers.parsers import format_gwei, to_hex


logger = get_logger(__name__)


def build_deposit_query(pubkey: bytes) -> GraphQLQuery:
    """Build the subgraph query for deposits to a validator public key."""
    return GraphQLQuery(
        query=(
            f'{{deposits(where:{{validatorPubKey:"{to_hex(pubkey)}"}})'
            "{ id amount withdrawalCredentials }}"
        )
    )


def evaluate_prior_deposits(
    prior: DuplicateCheckResult,
    incoming: int,
    ctx: ValidationContext,
) -> None:
    """Decide whether a new deposit may go to a validator with prior deposits.

    A validator that already holds the full effective balance needs
    allow_duplicate_deposit. A deposit that would push the total above it
    needs either allow_duplicate_deposit or allow_excessive_amount. The first
    test uses >= and the second >, so a prior total of exactly 32 Ether fails
    the first test only.

    Args:
        prior: Prior deposits reported by the indexer
        incoming: Amount of the new deposit in Gwei
        ctx: Override flags

    Raises:
        ValidatorAlreadyFundedError: If the validator is already fully funded
        WouldExceedEffectiveLimitError: If the deposit would overfund it
    """
    if prior.count == 0:
        return

    if prior.total >= MAX_EFFECTIVE_BALANCE:
        if not ctx.allow_duplicate_deposit:
            msg = (
                f"there has already been {format_gwei(prior.total)} deposited "
                "to this validator"
            )
            raise ValidatorAlreadyFundedError(msg)
        logger.warning(
            "Validator already has %s deposited; allowed by override",
            format_gwei(prior.total),
        )

    combined = prior.total + incoming
    if combined > MAX_EFFECTIVE_BALANCE:
        if not (ctx.allow_duplicate_deposit or ctx.allow_excessive_amount):
            msg = (
                "this deposit will increase the validator's total deposits to "
                f"{format_gwei(combined)}"
            )
            raise WouldExceedEffectiveLimitError(msg)
        logger.warning(
            "Validator total deposits will be %s; allowed by override",
            format_gwei(combined),
        )


class DepositIndexer:
    """Client for deposit subgraphs hosted under one base URL."""

    def __init__(self, base_url: str | None = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the indexer client.

        Args:
            base_url: Subgraph service URL; defaults to DEPOSIT_INDEXER_URL or
                the hosted service
            timeout: Request timeout in seconds
        """
        self.base_url = get_indexer_url(base_url)
        self.timeout = timeout

    def url_for(self, indexer_name: str) -> str:
        return f"{self.base_url}/subgraphs/name/{indexer_name}"

    async def fetch_prior_deposits(
        self,
        client: httpx.AsyncClient,
        indexer_name: str,
        pubkey: bytes,
    ) -> DuplicateCheckResult:
        """Sum the deposits the indexer has seen for a validator public key.

        Args:
            client: HTTP client instance
            indexer_name: Subgraph name, e.g. "attestantio/eth2deposits"
            pubkey: Validator public key

        Returns:
            Total and count of prior deposits; zero when there are none

        Raises:
            IndexerUnavailableError: If the query fails or the answer is unusable
        """
        url = self.url_for(indexer_name)
        query = build_deposit_query(pubkey)
        body = await post_json(client, url, query.model_dump(), timeout=self.timeout)
        if body is None:
            msg = f"failed to check {url} for existing deposits"
            raise IndexerUnavailableError(msg)

        try:
            response = IndexerResponse.model_validate(body)
        except ValidationError as e:
            msg = f"invalid data returned from existing deposit check: {e}"
            raise IndexerUnavailableError(msg) from e

        if response.errors:
            messages = "; ".join(error.message for error in response.errors)
            msg = f"existing deposit check returned errors: {messages}"
            raise IndexerUnavailableError(msg)

        deposits = (response.data.deposits if response.data else None) or []
        total = 0
        for deposit in deposits:
            # Plain ASCII digits only; isdigit alone admits superscripts
            if not (deposit.amount.isascii() and deposit.amount.isdigit()):
                msg = f"invalid deposit amount from pre-existing deposit {deposit.amount!r}"
                raise IndexerUnavailableError(msg)
            total += int(deposit.amount)

        logger.debug(
            "Indexer %s reports %d deposit(s) totalling %s for %s",
            indexer_name,
            len(deposits),
            format_gwei(total),
            to_hex(pubkey),
        )
        return DuplicateCheckResult(total=total, count=len(deposits))

    async def check_duplicate(
        self,
        client: httpx.AsyncClient,
        indexer_name: str,
        pubkey: bytes,
        incoming: int,
        ctx: ValidationContext,
    ) -> DuplicateCheckResult:
        """Query the indexer and apply the accumulation limits.

        Run this for every deposit immediately before it is sent. Deposits made
        elsewhere between the query and the broadcast are not seen.

        Args:
            client: HTTP client instance
            indexer_name: Subgraph name
            pubkey: Validator public key
            incoming: Amount of the new deposit in Gwei
            ctx: Override flags

        Returns:
            The prior deposits that were evaluated

        Raises:
            IndexerUnavailableError: If the indexer cannot be queried
            ValidatorAlreadyFundedError: If the validator is already fully funded
            WouldExceedEffectiveLimitError: If the deposit would overfund it
        """
        prior = await self.fetch_prior_deposits(client, indexer_name, pubkey)
        evaluate_prior_deposits(prior, incoming, ctx)
        return prior


__all__ = [
    "DepositIndexer",
    "build_deposit_query",
    "evaluate_prior_deposits",
]
