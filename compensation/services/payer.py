"""
Payer authorization shared by activation and renewal.
"""

from collections.abc import Collection

from compensation.models.account import Account
from compensation.models.enums import PayerRole, PaymentMethod
from compensation.repositories.account_repository import AccountRepository
from compensation.utils.exceptions import (
    NotFoundError,
    PermissionDenied,
    ValidationError,
)


# Payment methods each payer role may use
ALLOWED_METHODS: dict[PayerRole, frozenset[PaymentMethod]] = {
    PayerRole.SELF: frozenset({PaymentMethod.USER_WALLET, PaymentMethod.PAYMENT_GATEWAY}),
    PayerRole.SPONSOR: frozenset({PaymentMethod.SPONSOR_WALLET, PaymentMethod.PAYMENT_GATEWAY}),
    PayerRole.ADMIN: frozenset({PaymentMethod.ADMIN_COMPLIMENTARY, PaymentMethod.PAYMENT_GATEWAY}),
}


async def authorize_payer(
    account_repo: AccountRepository,
    account: Account,
    payer_role: PayerRole,
    method: PaymentMethod,
    payer_account_id: int | None,
    payment_reference: str | None,
    allowed_roles: Collection[PayerRole],
) -> int:
    """
    Check that a payer may pay for an account with a method.

    Args:
        account_repo: Account repository
        account: Account being activated or renewed
        payer_role: SELF, SPONSOR or ADMIN
        method: Payment method
        payer_account_id: Paying account (defaults to account for SELF)
        payment_reference: Gateway reference
        allowed_roles: Roles enabled by configuration

    Returns:
        Paying account ID

    Raises:
        PermissionDenied: Role disabled, payer not the sponsor, not an admin
        ValidationError: Method not allowed for the role, missing reference
    """
    if payer_role not in allowed_roles:
        raise PermissionDenied(f"Payer role {payer_role} is not allowed")

    if method not in ALLOWED_METHODS[payer_role]:
        raise ValidationError(f"Method {method} is not allowed for payer {payer_role}")

    if method == PaymentMethod.PAYMENT_GATEWAY and not payment_reference:
        raise ValidationError("Gateway payments need a payment reference")

    if payer_role == PayerRole.SELF:
        if payer_account_id not in (None, account.id):
            raise PermissionDenied("Self payment must come from the account itself")
        return account.id

    if payer_account_id is None:
        raise ValidationError(f"Payer account is required for payer {payer_role}")

    if payer_role == PayerRole.SPONSOR:
        if account.upline_id != payer_account_id:
            raise PermissionDenied(
                f"Account {payer_account_id} is not the sponsor of {account.code}"
            )
        return payer_account_id

    payer = await account_repo.get_by_id(payer_account_id)
    if payer is None:
        raise NotFoundError(f"Account {payer_account_id} not found")
    if not payer.is_admin:
        raise PermissionDenied(f"Account {payer_account_id} is not an admin")
    return payer_account_id
