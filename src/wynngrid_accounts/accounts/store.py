"""Identity store: account persistence keyed by email."""

import logging
from datetime import datetime
from collections.abc import Awaitable, Callable
from typing import Any, NoReturn, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wynngrid_accounts.errors import AccountError, ConflictError, StorageError
from wynngrid_accounts.models import Profile, Project, ProjectAverage, User

logger = logging.getLogger(__name__)


class IdentityStore(Protocol):
    """Account storage operations the lifecycle manager depends on."""

    async def get_by_email(self, email: str, for_update: bool = False) -> User | None:
        """Return the account for an email, or None."""
        ...

    async def create(self, **fields: Any) -> User:
        """Create an account, raising ConflictError if the email is taken."""
        ...

    async def update_by_email(self, email: str, **changes: Any) -> bool:
        """Apply changes to an account; return False if no account matched."""
        ...

    async def consume_pending_code(
        self, email: str, code: str, now: datetime, **changes: Any
    ) -> bool:
        """Clear a matching, unexpired code and apply changes in one step."""
        ...

    async def delete_by_email(
        self, email: str, authorize: Callable[[User], Awaitable[None]] | None = None
    ) -> bool:
        """Delete an account and everything it owns in one locked transaction."""
        ...


class SqlAccountStore:
    """Identity store backed by a SQLAlchemy async session."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the store.

        Args:
            session: Database session; the store commits its own writes
        """
        self.session = session

    async def _fail(self, action: str, error: SQLAlchemyError) -> NoReturn:
        await self.session.rollback()
        logger.exception("Storage failure during %s", action)
        raise StorageError(f"Storage failure during {action}") from error

    async def get_by_email(self, email: str, for_update: bool = False) -> User | None:
        """
        Look up an account by email.

        Args:
            email: Email exactly as stored
            for_update: Lock the row until the current transaction ends

        Returns:
            The account, or None if no account exists
        """
        stmt = (
            select(User)
            .where(User.email == email)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            await self._fail("account lookup", e)
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> User:
        """
        Insert a new account.

        Raises:
            ConflictError: If an account already exists for the email
            StorageError: If the insert fails for any other reason
        """
        user = User(**fields)
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("Email already registered") from e
        except SQLAlchemyError as e:
            await self._fail("account creation", e)
        await self.session.refresh(user)
        return user

    async def update_by_email(self, email: str, **changes: Any) -> bool:
        """Apply column changes to the account with this email."""
        stmt = (
            update(User)
            .where(User.email == email)
            .values(**changes)
            .returning(User.id)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            updated_id = result.scalar_one_or_none()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail("account update", e)
        return updated_id is not None

    async def consume_pending_code(
        self, email: str, code: str, now: datetime, **changes: Any
    ) -> bool:
        """
        Consume a pending verification code.

        The code, its expiry check and the resulting changes are a single
        conditional UPDATE, so two callers racing on the same code cannot
        both succeed. The pending code and expiry are cleared together.

        Args:
            email: Account email
            code: Code supplied by the caller
            now: Current time; the code must not have expired before it
            **changes: Extra columns to set when the code is accepted

        Returns:
            True if the code matched and was consumed
        """
        stmt = (
            update(User)
            .where(
                User.email == email,
                User.otp_code.is_not(None),
                User.otp_code == code,
                User.otp_expires_at >= now,
            )
            .values(otp_code=None, otp_expires_at=None, **changes)
            .returning(User.id)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            consumed_id = result.scalar_one_or_none()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail("code verification", e)
        return consumed_id is not None

    async def _delete_project_averages(self, profile_id: int) -> None:
        await self.session.execute(
            delete(ProjectAverage)
            .where(ProjectAverage.profile_id == profile_id)
            .execution_options(synchronize_session=False)
        )

    async def _delete_projects(self, user_id: int) -> None:
        await self.session.execute(
            delete(Project)
            .where(Project.user_id == user_id)
            .execution_options(synchronize_session=False)
        )

    async def _delete_profile(self, profile_id: int) -> None:
        await self.session.execute(
            delete(Profile)
            .where(Profile.id == profile_id)
            .execution_options(synchronize_session=False)
        )

    async def _delete_user(self, user_id: int) -> None:
        await self.session.execute(
            delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session=False)
        )

    async def delete_by_email(
        self, email: str, authorize: Callable[[User], Awaitable[None]] | None = None
    ) -> bool:
        """
        Delete an account together with its profile and projects.

        The account row is locked first and stays locked until the deletion
        commits or rolls back. Rows go in foreign-key order: project averages
        (when a profile exists), projects, profile, then the user. Everything
        happens in one transaction; on any failure it is rolled back and
        nothing is removed.

        Args:
            email: Account email
            authorize: Called with the locked account before anything is
                deleted; raising an AccountError aborts the deletion

        Returns:
            False if no account exists for the email

        Raises:
            StorageError: If any step fails
        """
        user = await self.get_by_email(email, for_update=True)
        if user is None:
            await self.session.rollback()
            return False
        user_id = user.id

        if authorize is not None:
            try:
                await authorize(user)
            except AccountError:
                await self.session.rollback()
                raise

        try:
            result = await self.session.execute(
                select(Profile.id).where(Profile.user_id == user_id)
            )
            profile_id = result.scalar_one_or_none()

            if profile_id is not None:
                await self._delete_project_averages(profile_id)
            await self._delete_projects(user_id)
            if profile_id is not None:
                await self._delete_profile(profile_id)
            await self._delete_user(user_id)

            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail("account deletion", e)

        logger.info("Deleted account %d and its owned data", user_id)
        return True
