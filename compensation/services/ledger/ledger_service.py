"""
Ledger & wallet service.

Single writer of ledger entries, wallet balances and balance snapshots.
Every posting appends one entry, moves one wallet balance and writes one
Transaction row in the caller's unit of work, so the three are committed
(or rolled back) together.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.snapshot import ConfigurationSnapshot
from compensation.models.enums import OUTBOUND_TYPES, EntryStatus, IncomeType
from compensation.models.ledger_entry import LedgerEntry
from compensation.repositories.ledger_repository import LedgerRepository
from compensation.repositories.transaction_repository import TransactionRepository
from compensation.repositories.wallet_repository import WalletRepository
from compensation.services.base_service import BaseService, transaction
from compensation.services.cap.cap_evaluator import CapDecision, CapEvaluator
from compensation.services.entry_metadata import NO_METADATA, EntryMetadata
from compensation.utils.decimal_utils import percent_of, quantize_money, to_decimal
from compensation.utils.exceptions import (
    CapExceeded,
    DuplicateEntry,
    InsufficientFunds,
    NotFoundError,
    ValidationError,
    is_unique_violation,
)


AVAILABLE = "available"
PENDING = "pending"


@dataclass(frozen=True)
class CreditResult:
    """Outcome of one posted entry."""

    new_balance: Decimal
    ledger_entry_id: int
    transaction_id: int
    amount: Decimal
    status: str
    balance_kind: str = AVAILABLE
    cap: CapDecision | None = None


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a wallet-to-wallet transfer."""

    debit: CreditResult
    credit: CreditResult
    fee: Decimal


class LedgerService(BaseService):
    """
    Ledger & wallet service.

    post/debit never commit: they join the caller's unit of work. Lock
    order inside a posting is Position, CapTracker (both via the cap
    evaluator), then Wallet.
    """

    def __init__(
        self,
        session: AsyncSession,
        snapshot: ConfigurationSnapshot,
        cap_evaluator: CapEvaluator | None = None,
    ) -> None:
        """
        Initialize ledger service.

        Args:
            session: Async database session
            snapshot: Configuration in force for this unit of work
            cap_evaluator: Evaluator to gate credits (built if omitted)
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.cap_evaluator = cap_evaluator or CapEvaluator(session, snapshot)
        self.ledger_repo = LedgerRepository(session)
        self.wallet_repo = WalletRepository(session)
        self.transaction_repo = TransactionRepository(session)

    async def post(
        self,
        account_id: int,
        amount: Decimal,
        income_type: IncomeType | str,
        description: str = "",
        metadata: EntryMetadata = NO_METADATA,
        skip_cap_check: bool = False,
        status: EntryStatus = EntryStatus.APPROVED,
        idempotency_key: str | None = None,
    ) -> CreditResult:
        """
        Post a signed amount to an account.

        Positive amounts are credits and, unless ``skip_cap_check``, go
        through the cap evaluator first. A refused credit is recorded as a
        REJECTED entry (flushed, wallet untouched) and CapExceeded is raised.
        Negative amounts are debits of the available balance.

        Args:
            account_id: Account to post to
            amount: Signed amount
            income_type: Entry type (legacy aliases accepted)
            description: Human-readable description
            metadata: Matching metadata
            skip_cap_check: Bypass the cap evaluator
            status: APPROVED (available balance) or PENDING (pending balance)
                for credits
            idempotency_key: Unique key making the posting exactly-once

        Returns:
            CreditResult

        Raises:
            ValidationError: Zero amount or unknown type
            CapExceeded: Credit refused by the cap
            InsufficientFunds: Debit exceeds available balance
            DuplicateEntry: Idempotency key already posted
        """
        amount = self._validate_amount(amount, allow_negative=True)
        income_type = self._parse_type(income_type)

        if amount < 0:
            return await self.debit(
                account_id,
                -amount,
                income_type,
                description=description,
                metadata=metadata,
                idempotency_key=idempotency_key,
            )

        if status not in (EntryStatus.APPROVED, EntryStatus.PENDING):
            raise ValidationError(f"Credits cannot be posted as {status}")

        await self._ensure_not_posted(idempotency_key)

        decision: CapDecision | None = None
        if not skip_cap_check:
            decision = await self.cap_evaluator.evaluate(
                account_id, amount, income_type, metadata
            )
            if not decision.allowed:
                await self._reject(
                    account_id, amount, income_type, description, metadata, decision
                )

        counts_toward_cap = decision.tracked if decision else False
        wallet = await self.wallet_repo.get_or_create_for_update(account_id)

        entry = await self._append_entry(
            account_id=account_id,
            amount=amount,
            income_type=income_type,
            status=status,
            description=description,
            metadata=metadata,
            counts_toward_cap=counts_toward_cap,
            cycle_number=decision.cycle_number if decision else None,
            idempotency_key=idempotency_key,
        )

        if status == EntryStatus.PENDING:
            kind = PENDING
            before = wallet.pending_balance
            wallet.pending_balance = before + amount
            after = wallet.pending_balance
        else:
            kind = AVAILABLE
            before = wallet.available_balance
            wallet.available_balance = before + amount
            wallet.lifetime_earned = wallet.lifetime_earned + amount
            after = wallet.available_balance

        snapshot_row = await self.transaction_repo.create(
            account_id=account_id,
            ledger_entry_id=entry.id,
            type=income_type.value,
            amount=amount,
            status=status.value,
            balance_kind=kind,
            balance_before=before,
            balance_after=after,
        )

        self.logger.info(
            "Credit posted",
            extra={
                "account_id": account_id,
                "type": income_type.value,
                "amount": str(amount),
                "status": status.value,
                "ledger_entry_id": entry.id,
                "balance_after": str(after),
            },
        )

        return CreditResult(
            new_balance=after,
            ledger_entry_id=entry.id,
            transaction_id=snapshot_row.id,
            amount=amount,
            status=status.value,
            balance_kind=kind,
            cap=decision,
        )

    async def debit(
        self,
        account_id: int,
        amount: Decimal,
        income_type: IncomeType | str,
        description: str = "",
        metadata: EntryMetadata = NO_METADATA,
        idempotency_key: str | None = None,
    ) -> CreditResult:
        """
        Debit the available balance of an account.

        Outbound debits (PAYOUT_REQUEST) also raise lifetime_withdrawn and
        are refused while the cap action blocks withdrawals on a capped
        position.

        Args:
            account_id: Account to debit
            amount: Positive amount to remove
            income_type: Entry type
            description: Human-readable description
            metadata: Matching metadata
            idempotency_key: Unique key making the debit exactly-once

        Returns:
            CreditResult (amount is negative)

        Raises:
            ValidationError: Non-positive amount
            CapExceeded: Withdrawals blocked by the cap action
            InsufficientFunds: Amount exceeds available balance
            DuplicateEntry: Idempotency key already posted
        """
        amount = self._validate_amount(amount)
        income_type = self._parse_type(income_type)
        outbound = income_type in OUTBOUND_TYPES

        await self._ensure_not_posted(idempotency_key)

        if outbound:
            decision = await self.cap_evaluator.check_withdrawal(account_id)
            if not decision.allowed:
                raise CapExceeded(
                    reason=decision.reason or "Withdrawals blocked",
                    cap_status=decision.cap_status,
                    earnings_total=decision.earnings_total,
                    cap_amount=decision.cap_amount,
                )

        wallet = await self.wallet_repo.get_for_update(account_id)
        available = wallet.available_balance if wallet else Decimal("0")
        if wallet is None or available < amount:
            raise InsufficientFunds(requested=amount, available=available)

        entry = await self._append_entry(
            account_id=account_id,
            amount=-amount,
            income_type=income_type,
            status=EntryStatus.COMPLETED,
            description=description,
            metadata=metadata,
            counts_toward_cap=False,
            cycle_number=None,
            idempotency_key=idempotency_key,
        )

        before = wallet.available_balance
        wallet.available_balance = before - amount
        if outbound:
            wallet.lifetime_withdrawn = wallet.lifetime_withdrawn + amount

        snapshot_row = await self.transaction_repo.create(
            account_id=account_id,
            ledger_entry_id=entry.id,
            type=income_type.value,
            amount=-amount,
            status=EntryStatus.COMPLETED.value,
            balance_kind=AVAILABLE,
            balance_before=before,
            balance_after=wallet.available_balance,
        )

        self.logger.info(
            "Debit posted",
            extra={
                "account_id": account_id,
                "type": income_type.value,
                "amount": str(amount),
                "ledger_entry_id": entry.id,
                "balance_after": str(wallet.available_balance),
            },
        )

        return CreditResult(
            new_balance=wallet.available_balance,
            ledger_entry_id=entry.id,
            transaction_id=snapshot_row.id,
            amount=-amount,
            status=EntryStatus.COMPLETED.value,
        )

    @transaction
    async def release_pending(self, entry_id: int) -> CreditResult:
        """
        Approve a PENDING credit.

        Appends an APPROVED entry for the same amount and moves it from
        pending to available balance. The PENDING entry stays as written.

        Args:
            entry_id: ID of the PENDING entry

        Returns:
            CreditResult of the approving entry

        Raises:
            NotFoundError: Entry missing
            ValidationError: Entry is not a PENDING credit
            DuplicateEntry: Entry already released
        """
        pending = await self.ledger_repo.get_by_id(entry_id)
        if pending is None:
            raise NotFoundError(f"Ledger entry {entry_id} not found")
        if pending.status != EntryStatus.PENDING or pending.amount <= 0:
            raise ValidationError(f"Ledger entry {entry_id} is not a pending credit")

        key = f"release:{entry_id}"
        if await self.ledger_repo.has_approval_for(entry_id):
            raise DuplicateEntry(key)

        wallet = await self.wallet_repo.get_or_create_for_update(pending.account_id)
        if wallet.pending_balance < pending.amount:
            raise InsufficientFunds(
                requested=pending.amount, available=wallet.pending_balance
            )

        entry = await self._append_entry(
            account_id=pending.account_id,
            amount=pending.amount,
            income_type=pending.income_type,
            status=EntryStatus.APPROVED,
            description=f"Release of pending entry {entry_id}",
            metadata=EntryMetadata(
                source_account_id=pending.source_account_id,
                level=pending.level,
                position_id=pending.position_id,
                extra={"released_entry_id": entry_id},
            ),
            counts_toward_cap=bool(pending.counts_toward_cap),
            cycle_number=pending.cycle_number,
            idempotency_key=key,
        )

        wallet.pending_balance = wallet.pending_balance - pending.amount
        before = wallet.available_balance
        wallet.available_balance = before + pending.amount
        wallet.lifetime_earned = wallet.lifetime_earned + pending.amount

        snapshot_row = await self.transaction_repo.create(
            account_id=pending.account_id,
            ledger_entry_id=entry.id,
            type=pending.type,
            amount=pending.amount,
            status=EntryStatus.APPROVED.value,
            balance_kind=AVAILABLE,
            balance_before=before,
            balance_after=wallet.available_balance,
        )

        self.logger.info(
            "Pending credit released",
            extra={
                "account_id": pending.account_id,
                "pending_entry_id": entry_id,
                "ledger_entry_id": entry.id,
                "amount": str(pending.amount),
            },
        )

        return CreditResult(
            new_balance=wallet.available_balance,
            ledger_entry_id=entry.id,
            transaction_id=snapshot_row.id,
            amount=pending.amount,
            status=EntryStatus.APPROVED.value,
        )

    @transaction
    async def transfer(
        self,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        description: str = "",
    ) -> TransferResult:
        """
        Move available balance between two accounts.

        The sender pays amount plus fee (TRANSFER_OUT); the receiver gets
        amount (TRANSFER_IN). Transfers are not income and skip the cap.

        Args:
            from_account_id: Sender
            to_account_id: Receiver
            amount: Amount the receiver gets
            description: Optional note

        Returns:
            TransferResult

        Raises:
            ValidationError: Transfers disabled, self-transfer, below minimum
            InsufficientFunds: Sender cannot cover amount plus fee
        """
        rules = self.snapshot.transfer
        amount = self._validate_amount(amount)

        if not rules.enable_transfers:
            raise ValidationError("Transfers are disabled")
        if from_account_id == to_account_id:
            raise ValidationError("Cannot transfer to the same account")
        if amount < rules.min_amount:
            raise ValidationError(
                f"Transfer amount {amount} is below minimum {rules.min_amount}"
            )

        if rules.fee_type == "flat":
            fee = quantize_money(rules.fee_value)
        else:
            fee = percent_of(amount, rules.fee_value)

        # Lock both wallets in id order
        for account_id in sorted((from_account_id, to_account_id)):
            await self.wallet_repo.get_or_create_for_update(account_id)

        debit = await self.debit(
            from_account_id,
            amount + fee,
            IncomeType.TRANSFER_OUT,
            description=description or f"Transfer to account {to_account_id}",
            metadata=EntryMetadata(
                source_account_id=to_account_id,
                extra={"amount": str(amount), "fee": str(fee)},
            ),
        )
        credit = await self.post(
            to_account_id,
            amount,
            IncomeType.TRANSFER_IN,
            description=description or f"Transfer from account {from_account_id}",
            metadata=EntryMetadata(source_account_id=from_account_id),
            skip_cap_check=True,
        )

        return TransferResult(debit=debit, credit=credit, fee=fee)

    async def _reject(
        self,
        account_id: int,
        amount: Decimal,
        income_type: IncomeType,
        description: str,
        metadata: EntryMetadata,
        decision: CapDecision,
    ) -> None:
        """Record a refused credit and raise CapExceeded."""
        reason = decision.reason or "Earning cap reached"
        entry = await self._append_entry(
            account_id=account_id,
            amount=amount,
            income_type=income_type,
            status=EntryStatus.REJECTED,
            description=description,
            metadata=metadata,
            counts_toward_cap=True,
            cycle_number=decision.cycle_number,
            idempotency_key=None,
            rejection_reason=reason,
        )

        self.logger.info(
            "Credit rejected by cap",
            extra={
                "account_id": account_id,
                "type": income_type.value,
                "amount": str(amount),
                "earnings_total": str(decision.earnings_total),
                "cap_amount": str(decision.cap_amount),
                "ledger_entry_id": entry.id,
            },
        )

        raise CapExceeded(
            reason=reason,
            cap_status=decision.cap_status,
            earnings_total=decision.earnings_total,
            cap_amount=decision.cap_amount,
            ledger_entry_id=entry.id,
        )

    async def _append_entry(
        self,
        account_id: int,
        amount: Decimal,
        income_type: IncomeType,
        status: EntryStatus,
        description: str,
        metadata: EntryMetadata,
        counts_toward_cap: bool,
        cycle_number: int | None,
        idempotency_key: str | None,
        rejection_reason: str | None = None,
    ) -> LedgerEntry:
        """
        Insert one ledger entry.

        The insert runs in a SAVEPOINT so a concurrent posting of the same
        idempotency key surfaces as DuplicateEntry without poisoning the
        caller's transaction.
        """
        entry = LedgerEntry(
            account_id=account_id,
            type=income_type.value,
            amount=amount,
            status=status.value,
            description=description,
            source_account_id=metadata.source_account_id,
            level=metadata.level,
            position_id=metadata.position_id,
            counts_toward_cap=counts_toward_cap,
            cycle_number=cycle_number,
            details=dict(metadata.extra),
            rejection_reason=rejection_reason,
            idempotency_key=idempotency_key,
            config_version=self.snapshot.version,
        )

        try:
            async with self.session.begin_nested():
                self.session.add(entry)
                await self.session.flush()
        except IntegrityError as e:
            if idempotency_key and is_unique_violation(e, "idempotency_key"):
                raise DuplicateEntry(idempotency_key) from e
            raise

        return entry

    async def _ensure_not_posted(self, idempotency_key: str | None) -> None:
        if idempotency_key is None:
            return
        if await self.ledger_repo.get_by_idempotency_key(idempotency_key):
            raise DuplicateEntry(idempotency_key)

    @staticmethod
    def _validate_amount(amount, allow_negative: bool = False) -> Decimal:
        try:
            value = quantize_money(to_decimal(amount))
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if value == 0 or (value < 0 and not allow_negative):
            raise ValidationError(f"Invalid amount: {amount}")
        return value

    @staticmethod
    def _parse_type(income_type: IncomeType | str) -> IncomeType:
        try:
            return IncomeType.parse(income_type)
        except ValueError as e:
            raise ValidationError(str(e)) from e

