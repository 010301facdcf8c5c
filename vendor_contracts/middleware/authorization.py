from fastapi import Depends, HTTPException, status

from vendor_contracts.middleware.auth import get_current_user

CONTRACT_EDITOR_ROLES = ("admin", "legal", "procurement_lead", "procurement", "manager")
STATUS_OVERRIDE_ROLES = ("admin", "legal", "procurement_lead")


def require_roles(*allowed_roles: str):
    """
    FastAPI dependency factory for role-based access control.

    Usage:
        @router.post("/{contract_id}/status")
        async def change_status(
            _auth: None = Depends(require_roles("admin", "legal")),
        ):
    """
    async def check_role(current_user: dict = Depends(get_current_user)):
        if current_user["role"] not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": {
                        "code": "INSUFFICIENT_PERMISSIONS",
                        "title": "Not allowed",
                        "message": (
                            f"Role '{current_user['role']}' cannot perform this action. "
                            f"Required: {allowed_roles}"
                        ),
                    }
                },
            )
        return None

    return check_role
