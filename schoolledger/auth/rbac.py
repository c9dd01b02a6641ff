from fastapi import Depends, HTTPException, status

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.enums import UserRole


FEE_MANAGERS = (UserRole.ADMIN, UserRole.ACCOUNTANT)
ACADEMIC_STAFF = (UserRole.ADMIN, UserRole.TEACHER)


def require_roles(*roles: UserRole):
    """
    Dependency factory to restrict an endpoint to the given roles.
    SuperAdmin always passes.

    Example:
        Depends(require_roles(*FEE_MANAGERS))
    """
    allowed = {r.value for r in roles} | {UserRole.SUPER_ADMIN.value}

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker
