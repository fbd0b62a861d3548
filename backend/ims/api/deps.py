"""FastAPI dependencies: DB session, current user from JWT, role gates, paging."""
from typing import Generator, Optional

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ims.core.audit import AuditLog
from ims.core.config import settings
from ims.core.exceptions import AccountDisabled, PermissionDenied
from ims.core.security import decode_access_token
from ims.models.user import User, UserRole

security = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Session from the Database the application was started with."""
    yield from request.app.state.database.sessions()


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> int:
    """Extract the user id (`sub`) from the bearer token."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return int(payload["sub"])
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def get_current_user(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> User:
    """Load current user from DB. Disabled accounts are refused on every request."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise AccountDisabled()
    return user


def require_roles(*roles: UserRole):
    """Dependency factory: only users holding one of `roles` get through."""
    allowed = ", ".join(role.value for role in roles)

    def checker(request: Request, user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            AuditLog.log_access_denied(request.url.path, user.id, user.role.value, allowed)
            raise PermissionDenied()
        return user

    return checker


class PageParams:
    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
        search: Optional[str] = Query(None),
    ):
        self.page = page
        self.limit = limit
        self.search = search.strip() if search and search.strip() else None
