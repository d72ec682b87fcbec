from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .files import Department, _strip_required


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(min_length=6)
    department: Department

    @field_validator("name")
    @classmethod
    def _name_required(cls, v):
        return _strip_required(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: dict


class ProfileUpdate(BaseModel):
    # Names are fixed: files and forwards refer to users by name
    email: Optional[EmailStr] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
