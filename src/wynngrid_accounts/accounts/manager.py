"""Account lifecycle: signup, verification, login, password reset and deletion."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from wynngrid_accounts.accounts.store import IdentityStore
from wynngrid_accounts.auth import (
    PASSWORD_REQUIREMENTS_MESSAGE,
    hash_password,
    is_valid_password,
    new_one_time_code,
    verify_password,
)
from wynngrid_accounts.config import settings
from wynngrid_accounts.errors import (
    ConflictError,
    DeliveryError,
    InvalidAssertionError,
    InvalidCredentialError,
    InvalidOtpError,
    NotFoundError,
    ServiceFault,
    UnverifiedError,
    ValidationError,
)
from wynngrid_accounts.federated import FederatedIdentity, FederatedVerifier, VerificationError
from wynngrid_accounts.models import User
from wynngrid_accounts.notifier import Notifier
from wynngrid_accounts.tokens import create_session_token, decode_session_token

logger = logging.getLogger(__name__)

VERIFY_EMAIL_SUBJECT = "Verify your email"
VERIFY_EMAIL_BODY = "Your OTP is: {code}"
RESET_PASSWORD_SUBJECT = "Reset Password"
RESET_PASSWORD_BODY = "Your password reset OTP is: {code}"


@dataclass
class AccountIdentity:
    """Public identity fields of an account."""

    id: int
    email: str
    first_name: str
    last_name: str

    @classmethod
    def from_user(cls, user: User) -> "AccountIdentity":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
        )


@dataclass
class FederatedSignInResult:
    """Result of a federated sign-in."""

    token: str
    account: AccountIdentity
    created: bool


def derive_names(identity: FederatedIdentity) -> tuple[str, str]:
    """
    Pick first and last name for a new federated account.

    Preference order: the provider's given and family names (both present),
    then the full display name split on whitespace into first token and the
    rest, then the local part of the email with an empty last name.
    """
    if identity.given_name and identity.family_name:
        return identity.given_name, identity.family_name

    parts = (identity.full_name or "").split()
    if parts:
        return parts[0], " ".join(parts[1:])

    return identity.email.split("@")[0], ""


class AccountLifecycleManager:
    """Enforces the rules that move an account between its lifecycle states."""

    def __init__(
        self,
        store: IdentityStore,
        notifier: Notifier,
        verifier: FederatedVerifier | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            store: Identity store holding the accounts
            notifier: Channel used to deliver verification codes
            verifier: Federated identity verifier (federated sign-in is
                unavailable without one)
        """
        self.store = store
        self.notifier = notifier
        self.verifier = verifier
        self.session_token_lifetime = timedelta(hours=settings.session_token_hours)
        self.federated_token_lifetime = timedelta(hours=settings.federated_token_hours)

    async def _require_account(self, email: str) -> User:
        user = await self.store.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _dispatch_code(self, email: str, subject: str, body: str) -> None:
        try:
            await self.notifier.send(email, subject, body)
        except DeliveryError:
            logger.error("Could not deliver '%s' email to %s", subject, email)
            raise

    async def signup(
        self, first_name: str, last_name: str, email: str, password: str
    ) -> User:
        """
        Register a new, unverified account and email it a verification code.

        Returns:
            The created account

        Raises:
            ValidationError: If the password fails the password policy
            ConflictError: If an account already exists for the email
            DeliveryError: If the code could not be sent (the account stays created)
        """
        if not is_valid_password(password):
            raise ValidationError(PASSWORD_REQUIREMENTS_MESSAGE)

        if await self.store.get_by_email(email) is not None:
            raise ConflictError("Email already registered")

        password_hash = await asyncio.to_thread(hash_password, password)
        otp = new_one_time_code()

        user = await self.store.create(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=password_hash,
            is_verified=False,
            otp_code=otp.code,
            otp_expires_at=otp.expires_at,
        )
        logger.info("Created account %d, email verification pending", user.id)

        await self._dispatch_code(
            email, VERIFY_EMAIL_SUBJECT, VERIFY_EMAIL_BODY.format(code=otp.code)
        )
        return user

    async def verify_otp(self, email: str, code: str) -> str:
        """
        Complete email verification with the code sent at signup.

        Returns:
            Session token for the now verified account

        Raises:
            NotFoundError: If no account exists for the email
            InvalidOtpError: If the code is wrong or has expired
        """
        user = await self._require_account(email)

        consumed = bool(code) and await self.store.consume_pending_code(
            email, code, datetime.now(UTC), is_verified=True
        )
        if not consumed:
            logger.warning("Rejected verification code for account %d", user.id)
            raise InvalidOtpError("Invalid or expired OTP")

        logger.info("Account %d verified", user.id)
        return create_session_token(user.id, self.session_token_lifetime)

    async def login(self, email: str, password: str) -> str:
        """
        Authenticate with email and password.

        Returns:
            Session token

        Raises:
            NotFoundError: If no account exists for the email
            UnverifiedError: If the account has not been verified
            InvalidCredentialError: If the password does not match
        """
        user = await self._require_account(email)

        if not user.is_verified:
            raise UnverifiedError("Please verify your email first")

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.warning("Invalid password for account %d", user.id)
            raise InvalidCredentialError("Invalid password")

        return create_session_token(user.id, self.session_token_lifetime)

    async def forgot_password(self, email: str) -> None:
        """
        Email a password reset code, replacing any pending code.

        Raises:
            NotFoundError: If no account exists for the email
            DeliveryError: If the code could not be sent
        """
        user = await self._require_account(email)

        otp = new_one_time_code()
        await self.store.update_by_email(
            email, otp_code=otp.code, otp_expires_at=otp.expires_at
        )
        logger.info("Issued password reset code for account %d", user.id)

        await self._dispatch_code(
            email, RESET_PASSWORD_SUBJECT, RESET_PASSWORD_BODY.format(code=otp.code)
        )

    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        """
        Replace the password using a reset code.

        Raises:
            ValidationError: If the new password fails the password policy
            NotFoundError: If no account exists for the email
            InvalidOtpError: If the code is wrong or has expired
        """
        if not is_valid_password(new_password):
            raise ValidationError(PASSWORD_REQUIREMENTS_MESSAGE)

        user = await self._require_account(email)

        password_hash = await asyncio.to_thread(hash_password, new_password)
        consumed = bool(code) and await self.store.consume_pending_code(
            email, code, datetime.now(UTC), password_hash=password_hash
        )
        if not consumed:
            logger.warning("Rejected password reset code for account %d", user.id)
            raise InvalidOtpError("Invalid or expired OTP")

        logger.info("Password reset for account %d", user.id)

    async def delete_account(self, email: str, password: str) -> None:
        """
        Delete an account and all data it owns after checking its password.

        The password is checked against the locked account row, so a
        concurrent password reset either lands before the check or waits
        for the deletion to finish.

        Raises:
            NotFoundError: If no account exists for the email
            InvalidCredentialError: If the password does not match
            StorageError: If the deletion failed; nothing was removed
        """

        async def check_password(user: User) -> None:
            if not await asyncio.to_thread(verify_password, password, user.password_hash):
                logger.warning("Invalid password on deletion request for account %d", user.id)
                raise InvalidCredentialError("Invalid password")

        if not await self.store.delete_by_email(email, authorize=check_password):
            raise NotFoundError("User not found")

    async def logout(self, token: str | None) -> None:
        """
        Acknowledge a logout.

        Tokens are not revoked; the client is expected to discard its copy.

        Raises:
            ValidationError: If no token was supplied
        """
        if not token or not token.strip():
            raise ValidationError("Token is required for logout")

        account_id = decode_session_token(token)
        if account_id is None:
            logger.info("Logout acknowledged for an invalid or expired token")
        else:
            logger.info("Logout acknowledged for account %d", account_id)

    async def federated_sign_in(self, assertion_token: str) -> FederatedSignInResult:
        """
        Sign in with a federated identity assertion, creating the account if needed.

        New accounts are created verified and without a password.

        Returns:
            FederatedSignInResult with a session token and the account identity

        Raises:
            InvalidAssertionError: If the assertion is invalid or carries no email
        """
        if self.verifier is None:
            raise ServiceFault("Federated sign-in is not configured")

        try:
            identity = await self.verifier.verify(assertion_token)
        except VerificationError as e:
            raise InvalidAssertionError("Invalid Google token or missing email") from e

        if not identity.email:
            raise InvalidAssertionError("Invalid Google token or missing email")

        user = await self.store.get_by_email(identity.email)
        created = False

        if user is None:
            first_name, last_name = derive_names(identity)
            try:
                user = await self.store.create(
                    email=identity.email,
                    first_name=first_name,
                    last_name=last_name,
                    password_hash="",
                    is_verified=True,
                )
                created = True
                logger.info("Created account %d from federated sign-in", user.id)
            except ConflictError:
                # Another sign-in created the account first
                user = await self.store.get_by_email(identity.email)
                if user is None:
                    raise

        token = create_session_token(user.id, self.federated_token_lifetime)
        return FederatedSignInResult(
            token=token,
            account=AccountIdentity.from_user(user),
            created=created,
        )
