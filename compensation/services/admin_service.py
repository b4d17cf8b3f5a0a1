"""
Admin service.

Executes pre-authorized administrative commands against the engine.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.config.snapshot import ConfigurationSnapshot
from compensation.models.enums import (
    AccountRole,
    AdminCommandType,
    IncomeType,
    PayerRole,
    PaymentMethod,
    ProgramType,
)
from compensation.repositories.audit_repository import AuditRepository
from compensation.services.activation_service import ActivationService
from compensation.services.base_service import BaseService, ServiceResult, transaction
from compensation.services.cap.cap_evaluator import CapEvaluator
from compensation.services.entry_metadata import EntryMetadata
from compensation.services.ledger.ledger_service import LedgerService
from compensation.services.renewal.renewal_service import RenewalService
from compensation.utils.exceptions import (
    CapExceeded,
    PermissionDenied,
    ValidationError,
)


ADJUSTABLE_TYPES = frozenset({IncomeType.ADMIN_ADJUST, IncomeType.ACHIEVEMENT})


class Actor(BaseModel):
    """Caller issuing an admin command."""

    model_config = ConfigDict(frozen=True)

    id: int
    role: AccountRole


class AdminCommand(BaseModel):
    """
    Administrative command.

    Example:
        >>> AdminCommand(type="ADJUST_WALLET", account_id=7, amount="250",
        ...              income_type="bonus", description="Bonanza prize").income_type
        <IncomeType.ACHIEVEMENT: 'ACHIEVEMENT'>
    """

    model_config = ConfigDict(frozen=True)

    type: AdminCommandType
    account_id: int

    # ADJUST_WALLET
    amount: Decimal | None = None
    income_type: IncomeType = IncomeType.ADMIN_ADJUST
    description: str | None = None
    skip_cap_check: bool = False

    # ACTIVATE / RENEW
    program: ProgramType = ProgramType.INVESTOR
    package_id: str | None = None
    plan_id: str | None = None
    notes: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="before")
    @classmethod
    def normalize_income_type(cls, data):
        """Accept legacy income type aliases."""
        if isinstance(data, dict) and isinstance(data.get("income_type"), str):
            data = {**data, "income_type": IncomeType.parse(data["income_type"])}
        return data


class AdminService(BaseService):
    """Admin service."""

    def __init__(
        self, session: AsyncSession, snapshot: ConfigurationSnapshot
    ) -> None:
        """
        Initialize admin service.

        Args:
            session: Async database session
            snapshot: Configuration in force for this command
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.audit_repo = AuditRepository(session)

    async def execute(self, command: AdminCommand, actor: Actor) -> ServiceResult:
        """
        Execute one admin command.

        Args:
            command: Command to execute
            actor: Admin issuing it

        Returns:
            ServiceResult with the command's result as data

        Raises:
            PermissionDenied: Actor is not an admin
            ValidationError: Malformed command
            CapExceeded: Adjustment refused by the cap (rejection committed)
        """
        if actor.role not in (AccountRole.ADMIN, AccountRole.SUPER_ADMIN):
            raise PermissionDenied(f"Account {actor.id} may not run admin commands")

        self.logger.info(
            "Admin command received",
            extra={
                "command": command.type.value,
                "account_id": command.account_id,
                "actor_id": actor.id,
            },
        )

        if command.type == AdminCommandType.ADJUST_WALLET:
            data = await self._adjust_wallet(command, actor)
        elif command.type == AdminCommandType.ACTIVATE:
            data = await self._activate(command, actor)
        elif command.type == AdminCommandType.RENEW:
            data = await self._renew(command, actor)
        else:
            data = await self._recalculate_cap(command, actor)

        return ServiceResult(success=True, data=data)

    @transaction
    async def _adjust_wallet(self, command: AdminCommand, actor: Actor):
        if command.amount is None or command.amount == 0:
            raise ValidationError("Adjustment amount is required and must be non-zero")
        if not command.description:
            raise ValidationError("Adjustment description is required")
        if command.income_type not in ADJUSTABLE_TYPES:
            raise ValidationError(
                f"Income type {command.income_type} cannot be adjusted by admins"
            )

        ledger = LedgerService(self.session, self.snapshot)
        try:
            result = await ledger.post(
                command.account_id,
                command.amount,
                command.income_type,
                description=command.description,
                metadata=EntryMetadata(extra={"actor_id": actor.id}),
                skip_cap_check=command.skip_cap_check,
            )
        except CapExceeded as e:
            await self.audit_repo.record(
                "wallet_adjustment_rejected",
                account_id=command.account_id,
                actor_id=actor.id,
                ledger_entry_id=e.ledger_entry_id,
                config_version=self.snapshot.version,
                amount=command.amount,
                reason=e.reason,
            )
            raise

        await self.audit_repo.record(
            "wallet_adjusted",
            account_id=command.account_id,
            actor_id=actor.id,
            ledger_entry_id=result.ledger_entry_id,
            config_version=self.snapshot.version,
            amount=command.amount,
            income_type=command.income_type,
            description=command.description,
        )
        return result

    async def _activate(self, command: AdminCommand, actor: Actor):
        service = ActivationService(self.session, self.snapshot)
        return await service.activate(
            command.account_id,
            program=command.program,
            package_id=command.package_id,
            amount=command.amount,
            payer_role=PayerRole.ADMIN,
            method=PaymentMethod.ADMIN_COMPLIMENTARY,
            payer_account_id=actor.id,
        )

    async def _renew(self, command: AdminCommand, actor: Actor):
        service = RenewalService(self.session, self.snapshot)
        return await service.renew(
            command.account_id,
            payer_role=PayerRole.ADMIN,
            method=PaymentMethod.ADMIN_COMPLIMENTARY,
            payer_account_id=actor.id,
            plan_id=command.plan_id,
            notes=command.notes,
        )

    @transaction
    async def _recalculate_cap(self, command: AdminCommand, actor: Actor):
        decision = await CapEvaluator(self.session, self.snapshot).recalculate(
            command.account_id
        )
        await self.audit_repo.record(
            "cap_recalculated",
            account_id=command.account_id,
            actor_id=actor.id,
            config_version=self.snapshot.version,
            cap_amount=decision.cap_amount,
            earnings_total=decision.earnings_total,
            cap_status=decision.cap_status,
        )
        return decision
