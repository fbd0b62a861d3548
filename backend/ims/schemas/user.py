from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator

from ims.core.config import settings
from ims.models.user import AccountStatus, UserRole


def _check_password(v: str) -> str:
    if len(v) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")
    return v


class UserRegister(BaseModel):
    username: str
    email: EmailStr
    password: str
    name: str

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("username", "name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class UserCreate(UserRegister):
    role: UserRole = UserRole.EMPLOYEE


class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    role: Optional[UserRole] = None


class UserStatusUpdate(BaseModel):
    account_status: AccountStatus


class ProfileUpdate(BaseModel):
    username: str
    email: EmailStr
    name: str


class PasswordChange(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        return _check_password(v)


class UserLogin(BaseModel):
    username: str
    password: str


class UserBrief(BaseModel):
    id: int
    username: str
    name: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: UserRole
    account_status: AccountStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenUser(BaseModel):
    """Identity carried inside the access token."""
    id: int
    username: str
    name: str
    role: UserRole

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    user: TokenUser
