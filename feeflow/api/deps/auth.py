# feeflow/api/deps/auth.py - Role-based access for staff endpoints
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict, Any, List

from feeflow.core.security import decode_token

security = HTTPBearer()

STAFF_ROLES = ["ADMIN", "SUPER_ADMIN", "ACCOUNTANT"]


def get_current_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Dict[str, Any]:
    """Decode the bearer token and return its claims"""
    claims = decode_token(credentials.credentials)
    if not claims.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing user ID"
        )
    return claims


def require_roles(required_roles: List[str]):
    """
    Create a dependency that requires one of the given roles.
    Usage: @router.post("/run", dependencies=[Depends(require_roles(["ADMIN"]))])
    """
    def role_checker(claims: Dict[str, Any] = Depends(get_current_claims)):
        roles = {r.upper() for r in claims.get("roles", [])}
        if not roles.intersection(required_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {required_roles}"
            )
        return claims
    return role_checker


require_staff = require_roles(STAFF_ROLES)
require_admin = require_roles(["ADMIN", "SUPER_ADMIN"])
