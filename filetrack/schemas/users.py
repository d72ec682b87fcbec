from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .files import Department, Role, _strip_required


def _manageable_role(v):
    # Superadmin accounts are provisioned by the seed script only
    if v is not None and v == Role.superadmin:
        raise ValueError("Role must be user or admin")
    return v


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(min_length=6)
    department: Department
    role: Role = Role.user

    @field_validator("name")
    @classmethod
    def _name_required(cls, v):
        return _strip_required(v)

    @field_validator("role")
    @classmethod
    def _role(cls, v):
        return _manageable_role(v)


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    department: Optional[Department] = None
    role: Optional[Role] = None

    @field_validator("role")
    @classmethod
    def _role(cls, v):
        return _manageable_role(v)


class PasswordReset(BaseModel):
    new_password: str = Field(min_length=6)
