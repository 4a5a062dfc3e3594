"""Tests for data models."""

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wynngrid_accounts.models import Profile, Project, ProjectAverage, User


class TestUser:
    """Tests for User model."""

    @pytest.mark.asyncio
    async def test_create_user_defaults(self, db_session: AsyncSession) -> None:
        """Test creating a user with only an email."""
        user = User(email="ada@example.com")
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)

        assert user.id is not None
        assert user.first_name == ""
        assert user.last_name == ""
        assert user.password_hash == ""
        assert user.is_verified is False
        assert user.otp_code is None
        assert user.otp_expires_at is None
        assert user.created_at is not None

    @pytest.mark.asyncio
    async def test_email_is_unique(self, db_session: AsyncSession) -> None:
        """Test that two users cannot share an email."""
        db_session.add(User(email="ada@example.com"))
        await db_session.commit()

        db_session.add(User(email="ada@example.com"))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_code_requires_expiry(self, db_session: AsyncSession) -> None:
        """Test that a pending code cannot be stored without its expiry."""
        db_session.add(User(email="ada@example.com", otp_code="123456"))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_code_with_expiry(self, db_session: AsyncSession) -> None:
        """Test that a code and expiry are stored together."""
        user = User(
            email="ada@example.com",
            otp_code="012345",
            otp_expires_at=datetime.now(UTC),
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)

        assert user.otp_code == "012345"
        assert user.otp_expires_at is not None


class TestOwnedData:
    """Tests for Profile, Project and ProjectAverage models."""

    @pytest.mark.asyncio
    async def test_create_profile_with_projects(self, db_session: AsyncSession) -> None:
        """Test creating a user's profile, project and average."""
        user = User(email="ada@example.com", password_hash="hash")
        db_session.add(user)
        await db_session.commit()

        profile = Profile(user_id=user.id, headline="Mathematician")
        project = Project(user_id=user.id, title="Analytical Engine")
        db_session.add_all([profile, project])
        await db_session.commit()

        average = ProjectAverage(profile_id=profile.id, project_id=project.id, average=4.8)
        db_session.add(average)
        await db_session.commit()
        await db_session.refresh(average)

        assert profile.user_id == user.id
        assert project.user_id == user.id
        assert average.profile_id == profile.id
        assert average.average == 4.8
        assert average.computed_at is not None
