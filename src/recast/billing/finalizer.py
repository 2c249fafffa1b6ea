"""Post-stream billing against the credit ledger."""

import asyncio
import logging

from ..errors import AccountNotFoundError
from ..pipeline.models import RewriteOutcome
from .ledger import CreditLedger
from .models import BillingResult, BillingStatus

logger = logging.getLogger(__name__)


class BillingFinalizer:
    """Charges an account for a completed rewrite.

    Runs out of band of the HTTP response: the caller has already received the
    output, so failures are logged and reported in the result, never raised.
    """

    def __init__(self, ledger: CreditLedger):
        self.ledger = ledger
        self._pending: set[asyncio.Task] = set()

    async def finalize(
        self, account_id: str, outcome: RewriteOutcome, input_text: str = ""
    ) -> BillingResult:
        """Charge ``account_id`` for ``outcome`` (cost = output word count).

        Args:
            account_id: Ledger account of the caller
            outcome: Sealed output of a clean stream
            input_text: Source text of the request, stored with the usage row

        Returns:
            BillingResult describing what was committed
        """
        cost = outcome.word_count

        try:
            charge = await self.ledger.charge(
                account_id,
                cost,
                title=outcome.title,
                model_identifier=outcome.model_identifier,
                word_count=outcome.word_count,
                input_text=input_text,
                output_text=outcome.text,
            )
        except AccountNotFoundError as e:
            logger.error(f"Billing aborted, unknown account: {e.account_id}")
            return BillingResult(
                account_id=account_id,
                status=BillingStatus.ACCOUNT_NOT_FOUND,
                cost=cost,
                error=str(e),
            )
        except Exception as e:
            logger.error(f"Billing failed for account {account_id}: {e}", exc_info=True)
            return BillingResult(
                account_id=account_id,
                status=BillingStatus.FAILED,
                cost=cost,
                error=str(e),
            )

        if charge.underfunded:
            logger.warning(
                f"Underfunded completion for account {account_id}: "
                f"{charge.balance_before} available, {cost} required; usage logged without debit"
            )
            status = BillingStatus.UNDERFUNDED
        else:
            logger.info(
                f"Rewrite billed: {cost} words, {cost} credits deducted from account {account_id}"
            )
            status = BillingStatus.CHARGED

        return BillingResult(
            account_id=account_id,
            status=status,
            cost=cost,
            balance_after=charge.balance_after,
            usage_log_id=charge.usage_log_id,
        )

    def spawn(
        self, account_id: str, outcome: RewriteOutcome, input_text: str = ""
    ) -> asyncio.Task:
        """Run ``finalize`` as a detached task with its own error boundary."""
        task = asyncio.get_running_loop().create_task(
            self.finalize(account_id, outcome, input_text), name=f"billing:{account_id}"
        )
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            logger.warning(f"Billing task cancelled: {task.get_name()}")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Billing task crashed: {task.get_name()}", exc_info=error)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self):
        """Wait for all in-flight billing tasks."""
        if self._pending:
            logger.info(f"Waiting for {len(self._pending)} billing task(s)")
            await asyncio.gather(*list(self._pending), return_exceptions=True)
