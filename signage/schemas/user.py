from datetime import datetime
from pydantic import EmailStr, Field
from signage.schemas.common import CamelModel, UserRole


class RegisterIn(CamelModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginIn(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserCreate(RegisterIn):
    role: UserRole = "user"


class UserUpdate(CamelModel):
    username: str | None = Field(None, min_length=1)
    email: EmailStr | None = None
    role: UserRole | None = None


class UserOut(CamelModel):
    id: str
    username: str
    email: str
    role: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthOut(CamelModel):
    token: str
    user: UserOut
