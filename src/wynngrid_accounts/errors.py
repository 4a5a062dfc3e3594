"""Error types raised by account operations."""


class AccountError(Exception):
    """Base exception for business-rule failures; safe to show to the caller."""

    pass


class ValidationError(AccountError):
    """Malformed input, such as a password that fails the policy."""

    pass


class ConflictError(AccountError):
    """An account already exists for the email."""

    pass


class NotFoundError(AccountError):
    """No account exists for the email."""

    pass


class InvalidOtpError(AccountError):
    """Verification code is wrong or expired."""

    pass


class InvalidCredentialError(AccountError):
    """Password does not match the stored credential."""

    pass


class UnverifiedError(AccountError):
    """Account has not completed email verification."""

    pass


class InvalidAssertionError(AccountError):
    """Federated sign-in assertion could not be verified."""

    pass


class ServiceFault(Exception):
    """Base exception for collaborator failures (storage, mail transport)."""

    pass


class StorageError(ServiceFault):
    """The identity store failed to complete an operation."""

    pass


class DeliveryError(ServiceFault):
    """The notifier failed to deliver a message."""

    pass
