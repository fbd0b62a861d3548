"""Auth: register, login, current identity.

Tokens are returned in the response body and sent back as
`Authorization: Bearer <token>`. Every login attempt is audited.
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ims.api.deps import get_current_user, get_db
from ims.core.audit import AuditLog
from ims.core.exceptions import AccountDisabled, InvalidCredentials
from ims.core.security import create_access_token, get_password_hash, verify_password
from ims.db.session import atomic
from ims.models.user import User, UserRole
from ims.schemas.user import LoginResponse, TokenUser, UserLogin, UserRegister, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: UserRegister, request: Request, db: Session = Depends(get_db)):
    """Self-registration. New accounts are always EMPLOYEE."""
    with atomic(db):
        user = User(
            username=data.username,
            email=data.email,
            name=data.name,
            hashed_password=get_password_hash(data.password),
            role=UserRole.EMPLOYEE,
        )
        db.add(user)
    db.refresh(user)

    AuditLog.log_authentication("register", data.username, _client_ip(request), True)
    return user


@router.post("/login", response_model=LoginResponse)
def login(data: UserLogin, request: Request, db: Session = Depends(get_db)):
    """
    Exchange username + password for an access token.

    Unknown user and wrong password give the same answer so usernames
    cannot be probed. Disabled accounts are told so (403).
    """
    ip = _client_ip(request)
    user = db.query(User).filter(User.username == data.username).first()
    if not user:
        AuditLog.log_authentication("failed_login", data.username, ip, False, reason="Unknown username")
        raise InvalidCredentials()

    if not user.is_active:
        AuditLog.log_authentication("failed_login", data.username, ip, False, reason="Account disabled")
        raise AccountDisabled()

    if not verify_password(data.password, user.hashed_password):
        AuditLog.log_authentication("failed_login", data.username, ip, False, reason="Invalid password")
        raise InvalidCredentials()

    identity = TokenUser.model_validate(user)
    token = create_access_token(identity.model_dump(mode="json"))
    AuditLog.log_authentication("login", user.username, ip, True)
    logger.info(f"User {user.id} logged in")
    return LoginResponse(token=token, user=identity)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
