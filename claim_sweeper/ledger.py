"""
Ledger Client - thin async adapter over Horizon (stellar_sdk.ServerAsync).

Translates raw Horizon responses into models and SDK errors into the
sweeper's own exceptions. No retries here: a failed call fails the cycle and
the loop tries again on the next one.
"""
import logging

from stellar_sdk import AiohttpClient, ServerAsync, TransactionEnvelope
from stellar_sdk.exceptions import (
    BaseHorizonError,
    BaseRequestError,
    ConnectionError as SdkConnectionError,
    NotFoundError,
)
from stellar_sdk.sep.exceptions import AccountRequiresMemoError

from claim_sweeper.config import SweeperConfig
from claim_sweeper.exceptions import (
    AccountLoadError,
    AmbiguousSubmissionError,
    LedgerQueryError,
    SubmissionError,
)
from claim_sweeper.models import Account, ClaimableBalance

log = logging.getLogger(__name__)

PAGE_LIMIT = 200  # Horizon max page size


class LedgerClient:
    """
    Horizon client for one network.

    Operations:
    - load_account: fresh account snapshot (sequence + balances)
    - claimable_balances: balances claimable by an account, in ledger order
    - fetch_base_fee: current network base fee in stroops
    - submit_transaction: single submission, no retry
    """

    def __init__(self, config: SweeperConfig, server: ServerAsync = None):
        self.config = config
        self.server = server or ServerAsync(
            horizon_url=config.horizon_url,
            client=AiohttpClient(
                request_timeout=config.http_timeout_s,
                post_timeout=config.http_timeout_s + config.tx_timeout_s,
            ),
        )

    async def close(self):
        """Close HTTP session."""
        await self.server.close()

    async def load_account(self, address: str) -> Account:
        try:
            record = await self.server.accounts().account_id(address).call()
        except NotFoundError:
            raise AccountLoadError(f"Account {address} not found", {"address": address})
        except (SdkConnectionError, BaseHorizonError) as e:
            raise AccountLoadError(f"Failed to load account {address}: {_error_text(e)}", {"address": address})

        account = Account.from_record(record)
        log.debug(f"Loaded {address}: seq={account.sequence} native={account.native_balance}")
        return account

    async def claimable_balances(self, claimant: str) -> list[ClaimableBalance]:
        """
        All claimable balances for the claimant, oldest first.

        Follows the paging cursor for at most config.max_claimable_pages pages;
        anything beyond that is picked up in a later cycle.
        """
        balances = []
        cursor = None

        for _ in range(self.config.max_claimable_pages):
            builder = self.server.claimable_balances().for_claimant(claimant).limit(PAGE_LIMIT)
            if cursor:
                builder = builder.cursor(cursor)

            try:
                page = await builder.call()
            except (SdkConnectionError, BaseHorizonError) as e:
                raise AccountLoadError(f"Failed to query claimable balances: {_error_text(e)}", {"address": claimant})

            records = page.get("_embedded", {}).get("records", [])
            balances.extend(ClaimableBalance.from_record(r) for r in records)

            if len(records) < PAGE_LIMIT:
                break
            cursor = records[-1].get("paging_token")
            if not cursor:
                break

        return balances

    async def fetch_base_fee(self) -> int:
        try:
            return await self.server.fetch_base_fee()
        except (SdkConnectionError, BaseHorizonError) as e:
            raise LedgerQueryError(f"Failed to fetch base fee: {_error_text(e)}")

    async def submit_transaction(self, envelope: TransactionEnvelope) -> str:
        """
        Submit a signed envelope once and return its hash.

        Raises SubmissionError on rejection, AmbiguousSubmissionError when the
        ledger may or may not have applied it.
        """
        try:
            response = await self.server.submit_transaction(envelope)
        except AccountRequiresMemoError as e:
            # SEP-29: the check runs before anything is sent
            raise SubmissionError(f"Destination {e.account_id} requires a memo")
        except BaseHorizonError as e:
            # 504: Horizon gave up waiting; the transaction may still be applied
            if e.status == 504:
                raise AmbiguousSubmissionError(f"Submission timed out: {_error_text(e)}")
            result_codes = (e.extras or {}).get("result_codes")
            raise SubmissionError(_error_text(e), result_codes=result_codes)
        except SdkConnectionError as e:
            raise AmbiguousSubmissionError(f"Connection lost during submission: {e}")
        except BaseRequestError as e:
            raise SubmissionError(f"Submission failed: {e}")

        tx_hash = (response or {}).get("hash")
        if not tx_hash:
            raise AmbiguousSubmissionError("Submission accepted without a transaction hash")
        return tx_hash


def _error_text(e: Exception) -> str:
    """Best-effort one-line description of an SDK error."""
    if isinstance(e, BaseHorizonError):
        parts = [p for p in (e.title, e.detail) if p]
        if parts:
            return f"{e.status} {': '.join(parts)}"
        return f"HTTP {e.status}"
    return str(e) or e.__class__.__name__
