"""authflow entry point.

Commands:
  serve-mock   Run the mock OAuth provider server
  login        Sign in with an OAuth provider
  signup       Create an account with an OAuth provider
  register     Create a local username/password account
  signin       Sign in with a local account
  whoami       Show the signed-in user
  logout       Clear the session and every provider token
"""

import argparse
import asyncio
import getpass
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from authflow.app import AuthApp
from authflow.config import Settings, get_settings
from authflow.errors import AuthErrorKind, user_message
from authflow.logging_setup import setup_logging

logger = logging.getLogger(__name__)

COMMANDS = ("serve-mock", "login", "signup", "register", "signin", "whoami", "logout")


def _version() -> str:
    try:
        return get_version("authflow")
    except PackageNotFoundError:
        return "unknown"


def _print_user(user: dict) -> None:
    print(json.dumps(user, indent=2, ensure_ascii=False))


def _print_failure(kind: AuthErrorKind | None, detail: str) -> None:
    text = user_message(kind) if kind else "Operation failed."
    print(f"Error: {text}", file=sys.stderr)
    if detail:
        print(f"  ({detail})", file=sys.stderr)


async def run_oauth(app: AuthApp, provider: str, action: str) -> int:
    """Run one OAuth attempt; in real mode, listen for the redirect meanwhile."""
    controller = app.oauth
    server = None
    server_task = None

    if not controller.mock:
        from authflow.api.serve import build_callback_server

        server = build_callback_server(controller, "127.0.0.1", app.settings.callback_port)
        server_task = asyncio.create_task(server.serve())
        print(f"Waiting for {provider} to redirect back (opening your browser)...")

    try:
        if action == "signup":
            result = await controller.signup(provider)
        else:
            result = await controller.login(provider)
    finally:
        if server is not None and server_task is not None:
            server.should_exit = True
            await server_task

    if result.success and result.user is not None:
        _print_user(result.user.to_dict())
        return 0
    _print_failure(result.error_kind, result.error.detail if result.error else "")
    return 1


def _run_register(app: AuthApp, args: argparse.Namespace) -> int:
    email = args.email or input("Email: ")
    username = args.username or input("Username: ")
    password = args.password or getpass.getpass("Password: ")
    result = app.accounts.register_user(email, username, password, newsletter=args.newsletter)
    if result.success and result.user is not None:
        _print_user(result.user)
        return 0
    _print_failure(result.error.kind if result.error else None, result.message)
    return 1


def _run_signin(app: AuthApp, args: argparse.Namespace) -> int:
    username = args.username or app.accounts.remembered_username() or input("Username or email: ")
    password = args.password or getpass.getpass("Password: ")
    result = app.accounts.authenticate_user(username, password, remember=args.remember)
    if result.success and result.user is not None:
        _print_user(result.user)
        return 0
    _print_failure(result.error.kind if result.error else None, result.message)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="authflow",
        description="Demo sign-in flows: local accounts plus Google/GitHub OAuth",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  authflow serve-mock                      Start the mock OAuth provider on :3001
  authflow login --provider google         Mock Google login (default dev mode)
  authflow signup --provider github --real Real GitHub signup via your browser
  authflow register --email a@b.io --username alice
  authflow signin --username alice --remember
  authflow whoami
  authflow logout
""",
    )
    parser.add_argument("command", choices=COMMANDS, help="What to do")
    parser.add_argument(
        "--provider", choices=("google", "github"), default="google", help="OAuth provider"
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--mock", dest="mock", action="store_true", default=None,
                      help="Force the mock OAuth flow")
    mode.add_argument("--real", dest="mock", action="store_false",
                      help="Use the real provider flow")
    parser.add_argument("--host", default=None, help="Host for serve-mock")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port for serve-mock")
    parser.add_argument("--email", default=None)
    parser.add_argument("--username", default=None)
    parser.add_argument("--password", default=None)
    parser.add_argument("--newsletter", action="store_true")
    parser.add_argument("--remember", action="store_true", help="Remember the username")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {_version()}")

    args = parser.parse_args(argv)

    settings: Settings = get_settings()
    if args.mock is not None:
        settings = settings.model_copy(update={"mock_oauth": args.mock})
    setup_logging(level="DEBUG" if args.verbose else settings.log_level)

    if args.command == "serve-mock":
        from authflow.api.serve import run_mock_server

        run_mock_server(
            host=args.host or settings.mock_server_host,
            port=args.port or settings.mock_server_port,
        )
        return 0

    app = AuthApp.for_cli(settings)

    if args.command in ("login", "signup"):
        return asyncio.run(run_oauth(app, args.provider, args.command))
    if args.command == "register":
        return _run_register(app, args)
    if args.command == "signin":
        return _run_signin(app, args)
    if args.command == "whoami":
        user = app.accounts.current_user()
        if user is None:
            print("Not signed in.")
            return 1
        _print_user(user)
        return 0
    if args.command == "logout":
        app.accounts.logout()
        print("Signed out.")
        return 0

    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
