"""Bearer token authentication and the admin principal dependency."""

from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .tokens import decode_access_token

security = HTTPBearer(auto_error=False)

ADMIN_ROLE = "admin"
SERVICE_ROLE = "service"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller resolved from a bearer token."""

    subject: str
    role: str
    email: str | None = None
    scopes: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def has_scope(self, scope: str) -> bool:
        """Admins hold every scope; other principals only what the token lists."""
        return self.is_admin or scope in self.scopes


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Principal:
    """Resolve the caller from the Authorization header."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    return Principal(
        subject=subject,
        role=payload.get("role") or "",
        email=payload.get("email"),
        scopes=frozenset(payload.get("scopes") or []),
    )


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Allow admins and service principals; reject everyone else."""
    if principal.role not in (ADMIN_ROLE, SERVICE_ROLE):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return principal


def require_scope(scope: str) -> Callable:
    """Build a dependency that checks the principal holds ``scope``."""

    async def dependency(principal: Principal = Depends(require_admin)) -> Principal:
        if not principal.has_scope(scope):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scope: {scope}",
            )
        return principal

    return dependency
