"""
Audit repository.

Data access layer for AuditRecord model.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.audit_record import AuditRecord
from compensation.repositories.base import BaseRepository


class AuditRepository(BaseRepository[AuditRecord]):
    """Audit record repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize audit repository."""
        super().__init__(AuditRecord, session)

    async def record(
        self,
        action: str,
        account_id: int | None = None,
        actor_id: int | None = None,
        ledger_entry_id: int | None = None,
        config_version: int | None = None,
        **details: Any,
    ) -> AuditRecord:
        """
        Append an audit record.

        Args:
            action: Action name (e.g. "referral_direct_credited")
            account_id: Affected account
            actor_id: Acting account (admin, sponsor), if any
            ledger_entry_id: Related ledger entry
            config_version: Configuration version used
            **details: JSON-serializable context

        Returns:
            Created record
        """
        return await self.create(
            action=action,
            account_id=account_id,
            actor_id=actor_id,
            ledger_entry_id=ledger_entry_id,
            config_version=config_version,
            details={key: _jsonable(value) for key, value in details.items()},
        )


def _jsonable(value: Any) -> Any:
    """Render Decimals, dates and enums as strings for the JSONB column."""
    if isinstance(value, str):
        return str(value)
    if isinstance(value, int | float | bool) or value is None:
        return value
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)
