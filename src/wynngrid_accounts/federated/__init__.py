"""Federated (third-party) identity verification."""

from wynngrid_accounts.federated.google import (
    FederatedIdentity,
    FederatedVerifier,
    GoogleVerifier,
    VerificationError,
)

__all__ = [
    "FederatedIdentity",
    "FederatedVerifier",
    "GoogleVerifier",
    "VerificationError",
]
