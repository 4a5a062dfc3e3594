"""Account lifecycle module."""

from wynngrid_accounts.accounts.manager import (
    AccountIdentity,
    AccountLifecycleManager,
    FederatedSignInResult,
    derive_names,
)
from wynngrid_accounts.accounts.store import IdentityStore, SqlAccountStore

__all__ = [
    "AccountIdentity",
    "AccountLifecycleManager",
    "FederatedSignInResult",
    "IdentityStore",
    "SqlAccountStore",
    "derive_names",
]
