"""Pydantic request/response schemas for rs_gateway.

All responses are wrapped in ApiResponse at the router layer.
"""

from pydantic import BaseModel, EmailStr, Field

from src.rs_gateway.user.db_models import UserModel


class UserProfile(BaseModel):
    user_id: str
    provider: str
    email: str
    name: str
    created_at: str
    updated_at: str

    @classmethod
    def from_model(cls, user: UserModel) -> "UserProfile":
        return cls(
            user_id=str(user.id),
            provider=user.provider,
            email=user.email,
            name=user.name,
            created_at=user.created_at.isoformat(),
            updated_at=user.updated_at.isoformat(),
        )


class UpdateProfileRequest(BaseModel):
    email: EmailStr | None = None
    name: str | None = Field(None, min_length=1, max_length=255)


class SessionStatus(BaseModel):
    authenticated: bool
    user: UserProfile | None = None
