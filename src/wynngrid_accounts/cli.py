"""Operator CLI for account lifecycle operations."""

import argparse
import asyncio
import getpass
import logging
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wynngrid_accounts.accounts import AccountLifecycleManager, SqlAccountStore
from wynngrid_accounts.database import async_session_maker, engine
from wynngrid_accounts.errors import AccountError, ServiceFault
from wynngrid_accounts.federated import FederatedVerifier, GoogleVerifier, VerificationError
from wynngrid_accounts.models import Base
from wynngrid_accounts.notifier import get_notifier

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Reduce noise from the database driver and Google transport
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="wynngrid-accounts",
        description="Wynngrid account service - manage accounts from the command line",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    signup = sub.add_parser("signup", help="Register an account and send a verification code")
    signup.add_argument("first_name")
    signup.add_argument("last_name")
    signup.add_argument("email")
    signup.add_argument("--password", help="Prompted for when omitted")

    verify = sub.add_parser("verify-otp", help="Verify an email with its code")
    verify.add_argument("email")
    verify.add_argument("code")

    login = sub.add_parser("login", help="Log in and print a session token")
    login.add_argument("email")
    login.add_argument("--password", help="Prompted for when omitted")

    forgot = sub.add_parser("forgot-password", help="Send a password reset code")
    forgot.add_argument("email")

    reset = sub.add_parser("reset-password", help="Set a new password using a reset code")
    reset.add_argument("email")
    reset.add_argument("code")
    reset.add_argument("--password", help="New password; prompted for when omitted")

    delete = sub.add_parser("delete-account", help="Delete an account and its data")
    delete.add_argument("email")
    delete.add_argument("--password", help="Prompted for when omitted")

    logout = sub.add_parser("logout", help="Acknowledge a logout")
    logout.add_argument("token")

    google = sub.add_parser("google-signin", help="Sign in with a Google ID token")
    google.add_argument("token")

    return parser


def _password(args: argparse.Namespace) -> str:
    return args.password if args.password is not None else getpass.getpass("Password: ")


async def _run_operation(manager: AccountLifecycleManager, args: argparse.Namespace) -> str:
    """Run the requested operation and return the text to print."""
    if args.command == "signup":
        await manager.signup(args.first_name, args.last_name, args.email, _password(args))
        return "User created. Please verify your email."
    if args.command == "verify-otp":
        return await manager.verify_otp(args.email, args.code)
    if args.command == "login":
        return await manager.login(args.email, _password(args))
    if args.command == "forgot-password":
        await manager.forgot_password(args.email)
        return "Password reset OTP sent to email"
    if args.command == "reset-password":
        await manager.reset_password(args.email, args.code, _password(args))
        return "Password reset successfully"
    if args.command == "delete-account":
        await manager.delete_account(args.email, _password(args))
        return "Account deleted successfully"
    if args.command == "logout":
        await manager.logout(args.token)
        return "Logged out successfully"
    if args.command == "google-signin":
        result = await manager.federated_sign_in(args.token)
        status = "User created successfully" if result.created else "User already exists"
        account = result.account
        return (
            f"{status}\n"
            f"id={account.id} email={account.email} "
            f"first_name={account.first_name} last_name={account.last_name}\n"
            f"{result.token}"
        )
    raise ValueError(f"Unknown command: {args.command}")


async def init_db() -> None:
    """Create all tables (development; use Alembic migrations in production)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def run_command(
    args: argparse.Namespace,
    session_maker: async_sessionmaker[AsyncSession] = async_session_maker,
) -> int:
    """
    Run a single CLI command.

    Args:
        args: Parsed command line arguments
        session_maker: Session factory for the identity store

    Returns:
        Exit code (0 success, 1 rejected by account rules, 2 service failure)
    """
    if args.command == "init-db":
        await init_db()
        return 0

    verifier: FederatedVerifier | None = None
    if args.command == "google-signin":
        try:
            verifier = GoogleVerifier()
        except VerificationError as e:
            logger.error("Google sign-in unavailable: %s", e)
            return 2

    async with session_maker() as db:
        manager = AccountLifecycleManager(SqlAccountStore(db), get_notifier(), verifier)
        try:
            output = await _run_operation(manager, args)
        except AccountError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except ServiceFault:
            logger.exception("%s failed", args.command)
            return 2

    print(output)
    return 0


def main() -> None:
    """Main entry point for the accounts CLI."""
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    exit_code = asyncio.run(run_command(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
