"""User domain service: first-login find-or-create, lookup, profile edits.

All DB operations use the injected AsyncSession. The caller (router layer)
commits; nothing here commits on its own.
"""

import logging
import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_common.database import UniqueViolationError, constraint_name, is_unique_violation
from src.rs_common.enums import Provider
from src.rs_common.errors import InternalError, InvalidProviderError, UserNotFoundError
from src.rs_gateway.user.db_models import UserModel

logger = logging.getLogger("rs.user")


class UserService:
    """Stateless service: instantiate once, reuse across requests."""

    async def get(self, db: AsyncSession, user_id: uuid.UUID) -> UserModel:
        """Look up a user by primary key; this is the auth layer's user-lookup collaborator."""
        result = await db.execute(select(UserModel).where(UserModel.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def find_by_provider(
        self,
        db: AsyncSession,
        provider_id: str,
        provider: str,
    ) -> UserModel | None:
        result = await db.execute(
            select(UserModel).where(
                UserModel.provider_id == provider_id,
                UserModel.provider == provider,
            )
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        provider_id: str,
        provider: str,
        email: str,
        name: str,
    ) -> UserModel:
        if not Provider.is_valid(provider):
            raise InvalidProviderError(provider)

        user = UserModel(
            provider_id=provider_id,
            provider=Provider(provider).value,
            email=email,
            name=name,
        )
        db.add(user)
        try:
            await db.flush()  # Get user.id + timestamps without committing
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise UniqueViolationError(constraint_name(exc)) from exc
            raise
        return user

    async def find_or_create(
        self,
        db: AsyncSession,
        provider_id: str,
        provider: str,
        email: str,
        name: str,
    ) -> UserModel:
        """Resolve an OAuth identity to a user, creating it on first login.

        Two concurrent first logins race on the (provider_id, provider) UNIQUE
        constraint; the loser's insert is rolled back to a savepoint and the
        winner's row is returned.
        """
        user = await self.find_by_provider(db, provider_id, provider)
        if user is not None:
            return user

        try:
            async with db.begin_nested():
                return await self.create(db, provider_id, provider, email, name)
        except UniqueViolationError:
            logger.info("concurrent first login for %s user %s", provider, provider_id)

        user = await self.find_by_provider(db, provider_id, provider)
        if user is None:
            raise InternalError("User creation conflicted but no user was found")
        return user

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        email: str | None = None,
        name: str | None = None,
    ) -> UserModel:
        """Partial profile edit; unspecified fields keep their values."""
        values: dict[str, object] = {"updated_at": func.now()}
        if email is not None:
            values["email"] = email
        if name is not None:
            values["name"] = name

        result = await db.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(**values)
            .returning(UserModel)
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def delete(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        """Delete the user; library rows go with it (ON DELETE CASCADE)."""
        result = await db.execute(delete(UserModel).where(UserModel.id == user_id))
        if result.rowcount == 0:
            raise UserNotFoundError(str(user_id))
