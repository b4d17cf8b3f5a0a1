"""
Renewal service.

Moves a capped account into its next cycle: payment, plan resolution,
closing the capped position, opening the next one with a fresh tracker,
renewal record.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.snapshot import ConfigurationSnapshot, Package
from compensation.models.enums import (
    CapStatus,
    IncomeType,
    PayerRole,
    PaymentMethod,
    PositionStatus,
    ProgramType,
)
from compensation.models.position import Position
from compensation.repositories.account_repository import AccountRepository
from compensation.repositories.audit_repository import AuditRepository
from compensation.repositories.cap_tracker_repository import CapTrackerRepository
from compensation.repositories.position_repository import PositionRepository
from compensation.repositories.renewal_repository import RenewalRepository
from compensation.services.base_service import BaseService, transaction
from compensation.services.cap.cap_calculator import compute_cap_terms
from compensation.services.entry_metadata import EntryMetadata
from compensation.services.ledger.ledger_service import LedgerService
from compensation.services.payer import authorize_payer
from compensation.utils.datetime_utils import utc_now
from compensation.utils.db_decorators import retry_on_conflict
from compensation.utils.decimal_utils import percent_of
from compensation.utils.exceptions import NotFoundError, ValidationError


@dataclass(frozen=True)
class RenewalResult:
    """Outcome of a completed renewal."""

    position_id: int
    previous_position_id: int
    renewal_record_id: int
    old_cycle_number: int
    new_cycle_number: int
    base_amount: Decimal
    cap_amount: Decimal
    amount_paid: Decimal
    fee_amount: Decimal
    payment_entry_id: int | None = None


class RenewalService(BaseService):
    """
    Renewal service.

    The Position row is locked first, the same lock every credit takes via
    the cap evaluator, so no credit can be evaluated against the old cycle
    once the new one is open, or the other way round.
    """

    def __init__(
        self, session: AsyncSession, snapshot: ConfigurationSnapshot
    ) -> None:
        """
        Initialize renewal service.

        Args:
            session: Async database session
            snapshot: Configuration in force for this renewal
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.rules = snapshot.cap
        self.ledger = LedgerService(session, snapshot)
        self.account_repo = AccountRepository(session)
        self.position_repo = PositionRepository(session)
        self.tracker_repo = CapTrackerRepository(session)
        self.renewal_repo = RenewalRepository(session)
        self.audit_repo = AuditRepository(session)

    @retry_on_conflict()
    @transaction
    async def renew(
        self,
        account_id: int,
        payer_role: PayerRole,
        method: PaymentMethod,
        payer_account_id: int | None = None,
        plan_id: str | None = None,
        payment_reference: str | None = None,
        notes: str | None = None,
    ) -> RenewalResult:
        """
        Renew a capped position into the next cycle.

        Args:
            account_id: Account being renewed
            payer_role: SELF, SPONSOR or ADMIN
            method: Payment method
            payer_account_id: Paying account (defaults to account_id for SELF)
            plan_id: Package to renew into; None keeps the current plan
            payment_reference: Gateway reference (required for gateway)
            notes: Operator notes

        Returns:
            RenewalResult

        Raises:
            NotFoundError: Account, position or package missing
            ValidationError: Position not capped, plan not allowed
            PermissionDenied: Payer role or method not allowed
            InsufficientFunds: Wallet payment cannot be covered
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")

        position = await self.position_repo.get_active_for_update(account_id)
        if position is None:
            raise NotFoundError(f"Account {account_id} has no active position")

        if not position.is_capped:
            raise ValidationError(
                f"Position {position.id} is not awaiting renewal "
                f"(cap status {position.cap_status})"
            )

        payer_id = await authorize_payer(
            self.account_repo,
            account,
            payer_role,
            method,
            payer_account_id,
            payment_reference,
            self._allowed_roles(),
        )
        if method.debits_wallet and not self.rules.renewal_options.wallet_can_pay_renewal:
            raise ValidationError("Wallet payment is disabled for renewals")
        if (
            method == PaymentMethod.PAYMENT_GATEWAY
            and not self.rules.renewal_options.payment_gateway_renewal
        ):
            raise ValidationError("Gateway payment is disabled for renewals")

        package = self._resolve_plan(position, plan_id)
        new_base = package.price if package else position.base_amount
        terms = compute_cap_terms(
            new_base, ProgramType(account.program_type), self.snapshot.program
        )

        old_cycle = position.cycle_number
        new_cycle = old_cycle + 1
        fee = percent_of(new_base, self.rules.renewal_fee_percent)
        amount_due = new_base + fee

        payment_entry_id = None
        amount_paid = Decimal("0")
        if method.debits_wallet:
            payment = await self.ledger.debit(
                payer_id,
                amount_due,
                IncomeType.RENEWAL_PAID,
                description=f"Renewal of {account.code} to cycle {new_cycle}",
                metadata=EntryMetadata(
                    source_account_id=account.id,
                    position_id=position.id,
                    extra={"fee": str(fee), "cycle_number": new_cycle},
                ),
                idempotency_key=f"renewal:{position.id}:{new_cycle}",
            )
            payment_entry_id = payment.ledger_entry_id
            amount_paid = amount_due
        elif method == PaymentMethod.PAYMENT_GATEWAY:
            amount_paid = amount_due

        now = utc_now()
        previous = position
        previous.status = PositionStatus.CLOSED.value
        previous.closed_at = now
        # Frees the one-active-position slot before the new row is inserted
        await self.session.flush()

        position = await self.position_repo.create(
            account_id=account.id,
            status=PositionStatus.ACTIVE.value,
            package_id=package.id if package else previous.package_id,
            base_amount=new_base,
            cap_multiplier=terms.multiplier,
            cap_amount=terms.cap_amount,
            cycle_number=new_cycle,
            cap_status=CapStatus.ACTIVE.value,
            renewed_at=now,
            working_days_processed=0,
            cumulative_yield=Decimal("0"),
        )

        await self.tracker_repo.create(
            account_id=account.id,
            position_id=position.id,
            cycle_number=new_cycle,
            cap_amount=terms.cap_amount,
            eligible_earnings_total=Decimal("0"),
            status=CapStatus.ACTIVE.value,
        )

        record = await self.renewal_repo.create(
            account_id=account.id,
            position_id=position.id,
            old_cycle_number=old_cycle,
            new_cycle_number=new_cycle,
            previous_position_id=previous.id,
            old_package_id=previous.package_id,
            new_package_id=position.package_id,
            new_base_amount=new_base,
            new_cap_amount=terms.cap_amount,
            amount_paid=amount_paid,
            fee_amount=fee,
            payer_role=payer_role.value,
            payer_account_id=payer_id,
            method=method.value,
            payment_reference=payment_reference,
            payment_entry_id=payment_entry_id,
            notes=notes,
        )

        await self.audit_repo.record(
            "renewal_completed",
            account_id=account.id,
            actor_id=payer_id,
            ledger_entry_id=payment_entry_id,
            config_version=self.snapshot.version,
            old_cycle_number=old_cycle,
            new_cycle_number=new_cycle,
            cap_amount=terms.cap_amount,
            amount_paid=amount_paid,
            method=method,
            payer_role=payer_role,
        )

        self.logger.info(
            "Position renewed",
            extra={
                "account_id": account.id,
                "position_id": position.id,
                "cycle": f"{old_cycle}->{new_cycle}",
                "cap_amount": str(terms.cap_amount),
                "amount_paid": str(amount_paid),
            },
        )

        return RenewalResult(
            position_id=position.id,
            previous_position_id=previous.id,
            renewal_record_id=record.id,
            old_cycle_number=old_cycle,
            new_cycle_number=new_cycle,
            base_amount=new_base,
            cap_amount=terms.cap_amount,
            amount_paid=amount_paid,
            fee_amount=fee,
            payment_entry_id=payment_entry_id,
        )

    @transaction
    async def request_renewal(self, account_id: int) -> Position:
        """
        Flag a capped position as waiting for renewal.

        Args:
            account_id: Account asking to renew

        Returns:
            Position in RENEWAL_PENDING

        Raises:
            NotFoundError: No active position
            ValidationError: Requests disabled or position not capped
        """
        if not self.rules.renewal_options.user_can_request_renewal:
            raise ValidationError("Renewal requests are disabled")

        position = await self.position_repo.get_active_for_update(account_id)
        if position is None:
            raise NotFoundError(f"Account {account_id} has no active position")
        if position.cap_status != CapStatus.CAP_REACHED:
            raise ValidationError(
                f"Position {position.id} cannot request renewal "
                f"(cap status {position.cap_status})"
            )

        position.cap_status = CapStatus.RENEWAL_PENDING.value
        await self.audit_repo.record(
            "renewal_requested",
            account_id=account_id,
            actor_id=account_id,
            config_version=self.snapshot.version,
            position_id=position.id,
        )
        return position

    def _resolve_plan(
        self, position: Position, plan_id: str | None
    ) -> Package | None:
        """Resolve the package to renew into; None keeps the current base."""
        if plan_id is None or plan_id == position.package_id:
            if not self.rules.allow_renew_same_plan:
                raise ValidationError("Renewing into the same plan is not allowed")
            if position.package_id is None:
                return None
            return self.snapshot.get_package(position.package_id)

        package = self.snapshot.get_package(plan_id)
        if package is None:
            raise NotFoundError(f"Package {plan_id} not found")
        if package.price < position.base_amount:
            raise ValidationError("Renewing into a smaller plan is not allowed")
        if package.price > position.base_amount and not self.rules.allow_renew_upgrade:
            raise ValidationError("Plan upgrades on renewal are not allowed")
        return package

    def _allowed_roles(self) -> set[PayerRole]:
        options = self.rules.renewal_options
        roles = set()
        if options.user_can_request_renewal:
            roles.add(PayerRole.SELF)
        if options.sponsor_can_renew:
            roles.add(PayerRole.SPONSOR)
        if options.admin_can_renew:
            roles.add(PayerRole.ADMIN)
        return roles
