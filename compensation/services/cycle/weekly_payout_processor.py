"""
Weekly payout processor.

Turns available balances into payout requests on the release weekday and
settles them once paid out.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.settings import settings
from compensation.config.snapshot import ConfigurationSnapshot
from compensation.models.enums import IncomeType, PayoutStatus
from compensation.models.payout_request import PayoutRequest
from compensation.repositories.audit_repository import AuditRepository
from compensation.repositories.payout_repository import PayoutRepository
from compensation.repositories.wallet_repository import WalletRepository
from compensation.services.base_service import BaseService, log_operation, transaction
from compensation.services.cycle.batch_summary import BatchSummary
from compensation.services.entry_metadata import EntryMetadata
from compensation.services.ledger.ledger_service import LedgerService
from compensation.utils.datetime_utils import iso_week_key, utc_now
from compensation.utils.decimal_utils import percent_of
from compensation.utils.exceptions import (
    CapExceeded,
    DuplicateEntry,
    NotFoundError,
    ValidationError,
)


class WeeklyPayoutProcessor(BaseService):
    """
    Weekly payout batch.

    One request per account and ISO week. The gross amount leaves the
    available balance as a PAYOUT_REQUEST debit; the net amount waits in
    the pending balance until settle_payout() records the transfer.
    """

    def __init__(
        self, session: AsyncSession, snapshot: ConfigurationSnapshot
    ) -> None:
        """
        Initialize weekly payout processor.

        Args:
            session: Async database session
            snapshot: Configuration loaded once for this tick
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.rules = snapshot.payout
        self.ledger = LedgerService(session, snapshot)
        self.wallet_repo = WalletRepository(session)
        self.payout_repo = PayoutRepository(session)
        self.audit_repo = AuditRepository(session)

    @log_operation
    async def run(self, business_date: date) -> BatchSummary:
        """
        Create payout requests for one release day.

        Args:
            business_date: Release day

        Returns:
            BatchSummary
        """
        summary = BatchSummary(business_date=business_date)

        if business_date.weekday() != self.rules.payout_release_weekday:
            summary.skipped = "not_release_day"
            return summary

        if not self.rules.enable_weekly_payouts:
            summary.skipped = "payouts_disabled"
            return summary

        if settings.emergency_stop_payouts:
            summary.skipped = "emergency_stop"
            self.logger.warning("Weekly payouts skipped: emergency stop")
            return summary

        week_key = iso_week_key(business_date)
        wallets = await self.wallet_repo.get_payout_candidates(
            self.rules.min_payout_amount
        )
        account_ids = [wallet.account_id for wallet in wallets]

        for account_id in account_ids:
            try:
                async with self.session.begin_nested():
                    outcome = await self._request_payout(account_id, week_key)
                await self.session.commit()
            except DuplicateEntry:
                await self.session.rollback()
                summary.add_skip("already_requested")
                continue
            except CapExceeded:
                await self.session.rollback()
                summary.add_skip("withdrawals_blocked")
                continue
            except Exception as e:
                await self.session.rollback()
                summary.add_failure(account_id, e)
                self.logger.error(
                    "Payout request failed for account",
                    extra={"account_id": account_id, "error": str(e)},
                    exc_info=True,
                )
                continue

            if isinstance(outcome, PayoutRequest):
                summary.add_processed(outcome.gross_amount)
            else:
                summary.add_skip(outcome)

        self.logger.info(
            "Weekly payout batch complete",
            extra={**summary.to_dict(), "week_key": week_key},
        )
        return summary

    async def _request_payout(
        self, account_id: int, week_key: str
    ) -> PayoutRequest | str:
        """
        Create the payout request of one account.

        Returns:
            Created request, or a skip reason
        """
        if await self.payout_repo.get_for_week(account_id, week_key):
            return "already_requested"

        # Tracker lock before wallet lock, same order as credits
        decision = await self.ledger.cap_evaluator.check_withdrawal(account_id)
        if not decision.allowed:
            return "withdrawals_blocked"

        wallet = await self.wallet_repo.get_for_update(account_id)
        if wallet is None:
            return "no_wallet"

        gross = wallet.available_balance
        if self.rules.max_payout_amount > 0:
            gross = min(gross, self.rules.max_payout_amount)
        if gross <= 0 or gross < self.rules.min_payout_amount:
            return "below_minimum"

        charges = percent_of(gross, self.rules.admin_charges_percent)
        net = gross - charges

        debit = await self.ledger.debit(
            account_id,
            gross,
            IncomeType.PAYOUT_REQUEST,
            description=f"Weekly payout {week_key}",
            metadata=EntryMetadata(
                extra={
                    "week_key": week_key,
                    "admin_charges": str(charges),
                    "net_amount": str(net),
                },
            ),
            idempotency_key=f"payout:{account_id}:{week_key}",
        )

        wallet.pending_balance = wallet.pending_balance + net

        payout = await self.payout_repo.create(
            account_id=account_id,
            week_key=week_key,
            gross_amount=gross,
            admin_charges=charges,
            admin_charges_percent=self.rules.admin_charges_percent,
            net_amount=net,
            status=PayoutStatus.PENDING.value,
            ledger_entry_id=debit.ledger_entry_id,
        )

        await self.audit_repo.record(
            "payout_requested",
            account_id=account_id,
            ledger_entry_id=debit.ledger_entry_id,
            config_version=self.snapshot.version,
            payout_id=payout.id,
            week_key=week_key,
            gross_amount=gross,
            admin_charges=charges,
            net_amount=net,
        )
        return payout

    @transaction
    async def settle_payout(
        self, payout_id: int, actor_id: int | None = None
    ) -> PayoutRequest:
        """
        Mark a payout request PAID and release its net amount.

        Args:
            payout_id: Payout request ID
            actor_id: Operator recording the settlement

        Returns:
            Settled payout request

        Raises:
            NotFoundError: Request missing
            ValidationError: Request already settled
        """
        payout = await self.payout_repo.get_for_update(payout_id)
        if payout is None:
            raise NotFoundError(f"Payout request {payout_id} not found")
        if payout.status != PayoutStatus.PENDING:
            raise ValidationError(f"Payout request {payout_id} is already {payout.status}")

        wallet = await self.wallet_repo.get_for_update(payout.account_id)
        if wallet is None:
            raise NotFoundError(f"Wallet of account {payout.account_id} not found")

        wallet.pending_balance = max(
            wallet.pending_balance - payout.net_amount, Decimal("0")
        )
        payout.status = PayoutStatus.PAID.value
        payout.paid_at = utc_now()

        await self.audit_repo.record(
            "payout_settled",
            account_id=payout.account_id,
            actor_id=actor_id,
            ledger_entry_id=payout.ledger_entry_id,
            payout_id=payout.id,
            net_amount=payout.net_amount,
        )

        self.logger.info(
            "Payout settled",
            extra={
                "payout_id": payout.id,
                "account_id": payout.account_id,
                "net_amount": str(payout.net_amount),
            },
        )
        return payout
