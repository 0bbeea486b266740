from app.schemas.user import (
    RegisterRequest,
    LoginRequest,
    UserResponse,
    AuthResponse,
)
from app.schemas.thumbnail import (
    GenerateThumbnailRequest,
    ThumbnailInfo,
    GenerateThumbnailResponse,
    GenerationErrorResponse,
    MessageResponse,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "AuthResponse",
    "GenerateThumbnailRequest",
    "ThumbnailInfo",
    "GenerateThumbnailResponse",
    "GenerationErrorResponse",
    "MessageResponse",
]
