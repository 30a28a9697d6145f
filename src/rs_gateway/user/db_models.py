"""ORM mapping for ``users`` (created by alembic/versions/001_create_users.py).

A user is an OAuth identity: (provider, provider_id) is unique. Library rows
reference users.id with ON DELETE CASCADE, so deleting a user empties both
libraries.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.rs_common.database import Base


class UserModel(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("provider_id", "provider", name="uq_users_provider_identity"),
        CheckConstraint("provider IN ('GITHUB', 'GOOGLE')", name="ck_users_provider"),
    )
    # Load server-side id and timestamps on flush
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(16), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

    def __repr__(self) -> str:
        return f"<UserModel {self.id} {self.provider}:{self.provider_id}>"
