from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str | None = Field(default=None, max_length=100)
    language: str = Field(default="en", max_length=5)
    family_name: str | None = Field(default=None, max_length=100)
    # Registering from an invitation link: skip creating a family so the
    # invitation can be accepted right after sign-up.
    invitation_token: str | None = None
