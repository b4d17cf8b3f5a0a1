"""
Activation service.

Opens the first position of an account and hands the activation to the
referral distributor.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.snapshot import ConfigurationSnapshot
from compensation.models.enums import (
    AccountStatus,
    CapStatus,
    IncomeType,
    PayerRole,
    PaymentMethod,
    PositionStatus,
    ProgramType,
)
from compensation.repositories.account_repository import AccountRepository
from compensation.repositories.audit_repository import AuditRepository
from compensation.repositories.cap_tracker_repository import CapTrackerRepository
from compensation.repositories.position_repository import PositionRepository
from compensation.services.base_service import BaseService, transaction
from compensation.services.cap.cap_calculator import compute_cap_terms
from compensation.services.entry_metadata import EntryMetadata
from compensation.services.ledger.ledger_service import LedgerService
from compensation.services.payer import authorize_payer
from compensation.services.referral.referral_distributor import (
    ActivationEvent,
    DistributionResult,
    ReferralDistributor,
)
from compensation.utils.decimal_utils import to_decimal
from compensation.utils.exceptions import NotFoundError, ValidationError


ALL_PAYER_ROLES = frozenset(PayerRole)


@dataclass
class ActivationResult:
    """Outcome of an activation."""

    account_id: int
    position_id: int
    base_amount: Decimal
    cap_amount: Decimal
    payment_entry_id: int | None = None
    distribution: DistributionResult | None = None


class ActivationService(BaseService):
    """Activation service."""

    def __init__(
        self, session: AsyncSession, snapshot: ConfigurationSnapshot
    ) -> None:
        """
        Initialize activation service.

        Args:
            session: Async database session
            snapshot: Configuration in force for this activation
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.ledger = LedgerService(session, snapshot)
        self.account_repo = AccountRepository(session)
        self.position_repo = PositionRepository(session)
        self.tracker_repo = CapTrackerRepository(session)
        self.audit_repo = AuditRepository(session)

    async def activate(
        self,
        account_id: int,
        program: ProgramType = ProgramType.INVESTOR,
        package_id: str | None = None,
        amount: Decimal | None = None,
        payer_role: PayerRole = PayerRole.SELF,
        method: PaymentMethod = PaymentMethod.USER_WALLET,
        payer_account_id: int | None = None,
        payment_reference: str | None = None,
    ) -> ActivationResult:
        """
        Activate an account and distribute referral income.

        The position is committed first; distribution runs as its own unit
        of work afterwards. A distribution failure is logged and leaves the
        activation in place: re-running the distribution is idempotent.

        Args:
            account_id: Account to activate
            program: INVESTOR or LEADER
            package_id: Catalog package (takes precedence over amount)
            amount: Activation amount when no package is given
            payer_role: SELF, SPONSOR or ADMIN
            method: Payment method
            payer_account_id: Paying account
            payment_reference: Gateway reference

        Returns:
            ActivationResult

        Raises:
            NotFoundError: Account or package missing
            ValidationError: Already active, missing amount
            PermissionDenied: Payer not allowed
            InsufficientFunds: Wallet payment cannot be covered
        """
        result = await self._open_position(
            account_id,
            program,
            package_id,
            amount,
            payer_role,
            method,
            payer_account_id,
            payment_reference,
        )

        event = ActivationEvent(
            account_id=account_id,
            position_id=result.position_id,
            activation_amount=result.base_amount,
            position_snapshot={
                "program": program.value,
                "package_id": package_id,
                "cap_amount": str(result.cap_amount),
                "cycle_number": 1,
            },
        )

        try:
            distributor = ReferralDistributor(self.session, self.snapshot, self.ledger)
            result.distribution = await distributor.distribute(event)
        except Exception as e:
            self.logger.error(
                "Referral distribution failed after activation",
                extra={"account_id": account_id, "error": str(e)},
                exc_info=True,
            )

        return result

    @transaction
    async def _open_position(
        self,
        account_id: int,
        program: ProgramType,
        package_id: str | None,
        amount: Decimal | None,
        payer_role: PayerRole,
        method: PaymentMethod,
        payer_account_id: int | None,
        payment_reference: str | None,
    ) -> ActivationResult:
        account = await self.account_repo.get_for_update(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")

        if await self.position_repo.get_active(account_id):
            raise ValidationError(f"Account {account.code} already has an active position")

        base_amount = self._resolve_amount(package_id, amount)

        payer_id = await authorize_payer(
            self.account_repo,
            account,
            payer_role,
            method,
            payer_account_id,
            payment_reference,
            ALL_PAYER_ROLES,
        )

        payment_entry_id = None
        if method.debits_wallet:
            payment = await self.ledger.debit(
                payer_id,
                base_amount,
                IncomeType.ACTIVATION_PAID,
                description=f"Activation of {account.code}",
                metadata=EntryMetadata(
                    source_account_id=account.id,
                    extra={"package_id": package_id, "program": program.value},
                ),
                idempotency_key=f"activation:{account.id}",
            )
            payment_entry_id = payment.ledger_entry_id

        terms = compute_cap_terms(base_amount, program, self.snapshot.program)

        account.program_type = program.value
        account.status = (
            AccountStatus.ACTIVE_LEADER.value
            if program == ProgramType.LEADER
            else AccountStatus.ACTIVE_INVESTOR.value
        )

        position = await self.position_repo.create(
            account_id=account.id,
            status=PositionStatus.ACTIVE.value,
            package_id=package_id,
            base_amount=base_amount,
            cap_multiplier=terms.multiplier,
            cap_amount=terms.cap_amount,
            cycle_number=1,
            cap_status=CapStatus.ACTIVE.value,
        )
        await self.tracker_repo.create(
            account_id=account.id,
            position_id=position.id,
            cycle_number=1,
            cap_amount=terms.cap_amount,
            eligible_earnings_total=Decimal("0"),
            status=CapStatus.ACTIVE.value,
        )

        await self.audit_repo.record(
            "account_activated",
            account_id=account.id,
            actor_id=payer_id,
            ledger_entry_id=payment_entry_id,
            config_version=self.snapshot.version,
            program=program,
            base_amount=base_amount,
            cap_amount=terms.cap_amount,
            payer_role=payer_role,
            method=method,
        )

        self.logger.info(
            "Account activated",
            extra={
                "account_id": account.id,
                "program": program.value,
                "base_amount": str(base_amount),
                "cap_amount": str(terms.cap_amount),
            },
        )

        return ActivationResult(
            account_id=account.id,
            position_id=position.id,
            base_amount=base_amount,
            cap_amount=terms.cap_amount,
            payment_entry_id=payment_entry_id,
        )

    def _resolve_amount(
        self, package_id: str | None, amount: Decimal | None
    ) -> Decimal:
        if package_id is not None:
            package = self.snapshot.get_package(package_id)
            if package is None:
                raise NotFoundError(f"Package {package_id} not found")
            return package.price

        if amount is None:
            raise ValidationError("Either package_id or amount is required")
        value = to_decimal(amount)
        if value <= 0:
            raise ValidationError(f"Activation amount must be positive: {amount}")
        return value
