"""User account model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wynngrid_accounts.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from wynngrid_accounts.models.profile import Profile, Project


class User(Base, TimestampMixin):
    """User account.

    ``otp_code`` and ``otp_expires_at`` are written and cleared together;
    both are set only while a verification or password reset is pending.
    An empty ``password_hash`` marks an account created through Google
    sign-in, which can never log in with a password.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(otp_code IS NULL) = (otp_expires_at IS NULL)", name="ck_users_otp_pair"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    otp_code: Mapped[str | None] = mapped_column(String(6), nullable=True)
    otp_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    profile: Mapped["Profile"] = relationship(back_populates="user", uselist=False)
    projects: Mapped[list["Project"]] = relationship(back_populates="user")
