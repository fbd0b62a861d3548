"""User accounts. Management is SUPER_ADMIN only; everyone edits their own profile."""
from fastapi import APIRouter, Depends, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ims.api.deps import PageParams, get_current_user, get_db, require_roles
from ims.core.audit import AuditLog
from ims.core.exceptions import InvalidCredentials, NotFound, ValidationError
from ims.core.permissions import SUPER_ADMIN_ONLY
from ims.core.security import get_password_hash, verify_password
from ims.db.session import atomic
from ims.models.user import User
from ims.schemas.common import Message, Page
from ims.schemas.user import (
    PasswordChange,
    ProfileUpdate,
    UserCreate,
    UserResponse,
    UserStatusUpdate,
    UserUpdate,
)
from ims.services.pagination import paginate

router = APIRouter()

super_admin = require_roles(*SUPER_ADMIN_ONLY)


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User")
    return user


# --- self-service (declared before /{user_id} routes) ------------------------

@router.patch("/me/profile", response_model=UserResponse)
def update_my_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with atomic(db):
        current_user.username = data.username.strip()
        current_user.email = data.email
        current_user.name = data.name.strip()
    db.refresh(current_user)
    return current_user


@router.patch("/me/password", response_model=Message)
def change_my_password(
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(data.current_password, current_user.hashed_password):
        raise InvalidCredentials("Current password is incorrect.")
    with atomic(db):
        current_user.hashed_password = get_password_hash(data.new_password)
    AuditLog.log_action("password_change", "user", current_user.id, current_user)
    return {"message": "Password updated successfully."}


# --- administration ----------------------------------------------------------

@router.get("", response_model=Page[UserResponse])
def list_users(
    params: PageParams = Depends(),
    db: Session = Depends(get_db),
    _: User = Depends(super_admin),
):
    q = db.query(User)
    if params.search:
        q = q.filter(or_(User.name.ilike(f"%{params.search}%"), User.email.ilike(f"%{params.search}%")))
    q = q.order_by(User.created_at.desc(), User.id.desc())
    return paginate(q, params.page, params.limit, UserResponse)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(super_admin),
):
    with atomic(db):
        user = User(
            username=data.username,
            email=data.email,
            name=data.name,
            hashed_password=get_password_hash(data.password),
            role=data.role,
        )
        db.add(user)
    db.refresh(user)
    AuditLog.log_action("create", "user", user.id, current_user, changes={"role": data.role})
    return user


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db), _: User = Depends(super_admin)):
    return _get_user(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(super_admin),
):
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    with atomic(db):
        user = _get_user(db, user_id)
        old_role = user.role
        for field, value in changes.items():
            setattr(user, field, value)
    db.refresh(user)

    if "role" in changes and changes["role"] != old_role:
        AuditLog.log_permission_change(user_id, current_user.id, "role", old_role.value, user.role.value)
    return user


@router.patch("/{user_id}/status", response_model=UserResponse)
def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(super_admin),
):
    if user_id == current_user.id:
        raise ValidationError("You cannot change the status of your own account.")
    with atomic(db):
        user = _get_user(db, user_id)
        old_status = user.account_status
        user.account_status = data.account_status
    db.refresh(user)

    if old_status != data.account_status:
        AuditLog.log_permission_change(
            user_id, current_user.id, "account_status", old_status.value, data.account_status.value
        )
    return user


@router.delete("/{user_id}", response_model=Message)
def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(super_admin)):
    """Users referenced by sales, borrowings or assignments cannot be deleted; disable them instead."""
    if user_id == current_user.id:
        raise ValidationError("You cannot delete your own account.")
    with atomic(db):
        db.delete(_get_user(db, user_id))
    AuditLog.log_action("delete", "user", user_id, current_user)
    return {"message": "User deleted successfully."}
