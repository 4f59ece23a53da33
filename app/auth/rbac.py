"""Capability policy: which roles may do what, and on which school's data."""

from typing import Dict, FrozenSet, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole

FEES_READ = "fees:read"
FEES_WRITE = "fees:write"
PAYMENTS_RECORD = "payments:record"
PAYMENTS_REVERSE = "payments:reverse"
LEDGER_READ = "ledger:read"
BALANCES_READ = "balances:read"
SELF_READ = "self:read"
STK_INITIATE = "stk:initiate"

ROLE_CAPABILITIES: Dict[str, FrozenSet[str]] = {
    UserRole.ACCOUNTS.value: frozenset(
        {FEES_READ, FEES_WRITE, PAYMENTS_RECORD, PAYMENTS_REVERSE, LEDGER_READ, BALANCES_READ, STK_INITIATE}
    ),
    UserRole.ADMIN.value: frozenset({FEES_READ, LEDGER_READ, BALANCES_READ}),
    UserRole.STUDENT.value: frozenset({SELF_READ, STK_INITIATE}),
}


def is_allowed(actor: CurrentUser, capability: str, school_id: Optional[UUID] = None) -> bool:
    """Pure allow/deny decision for (actor, capability, resource school)."""
    if capability not in ROLE_CAPABILITIES.get(actor.role, frozenset()):
        return False
    if school_id is not None and actor.school_id != school_id:
        return False
    return True


def require_capability(capability: str):
    """
    Dependency factory to enforce a capability and a school assignment.

    Example:
        Depends(require_capability(FEES_WRITE))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not is_allowed(current_user, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        if current_user.school_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No school assigned",
            )
        return current_user

    return _checker
