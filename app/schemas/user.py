from pydantic import BaseModel, Field
from datetime import datetime


class RegisterRequest(BaseModel):
    """Schema for creating a new account."""
    name: str = Field(..., min_length=1, max_length=255, description="User's display name")
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    """Schema for user response."""
    id: str
    name: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Response after register/login."""
    message: str
    user: UserResponse
