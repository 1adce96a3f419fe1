#!/usr/bin/env python3
"""
Forum API -- command line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 5000 --reload
  python main.py token issue 7
  python main.py token inspect <token>
  python main.py hash-password

Environment variables (see core/config.py for the full list):
  SECRET_KEY        Required. Token signing secret, at least 32 characters.
                    JWT_SECRET is accepted as an alias.
  ALLOWED_ORIGINS   Comma-separated browser origins allowed to call the API.
  DATABASE_URL      SQLAlchemy URL. Defaults to sqlite:///forum.db.
"""

import argparse
import getpass
import sys
from datetime import datetime, timezone

from pydantic import ValidationError

from auth.passwords import hash_password
from auth.tokens import TokenCodec, TokenError
from core.config import Settings, get_settings


def _load_settings() -> Settings:
    """Return Settings or exit with status 2 -- the service cannot run without a secret."""
    try:
        return get_settings()
    except ValidationError as e:
        for err in e.errors():
            print(f"  [!] Configuration error: {err['msg']}", file=sys.stderr)
        sys.exit(2)


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    _load_settings()  # fail fast before uvicorn spawns workers
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_token_issue(args: argparse.Namespace) -> int:
    settings = _load_settings()
    codec = TokenCodec(settings.secret_key, settings.token_lifetime_seconds)
    try:
        print(codec.issue(args.subject_id))
    except ValueError as e:
        print(f"  [!] {e}", file=sys.stderr)
        return 1
    return 0


def _cmd_token_inspect(args: argparse.Namespace) -> int:
    settings = _load_settings()
    codec = TokenCodec(settings.secret_key, settings.token_lifetime_seconds)
    try:
        claims = codec.verify(args.token)
    except TokenError as e:
        print(f"rejected: {e.reason}")
        return 1
    expires = datetime.fromtimestamp(claims.expires_at, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    print(f"subject: {claims.subject_id}")
    print(f"expires: {expires}")
    return 0


def _cmd_hash_password(args: argparse.Namespace) -> int:
    secret = getpass.getpass("Password: ")
    if not secret:
        print("  [!] Empty password.", file=sys.stderr)
        return 1
    if secret != getpass.getpass("Repeat: "):
        print("  [!] Passwords do not match.", file=sys.stderr)
        return 1
    print(hash_password(secret, rounds=args.rounds))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forum-api",
        description="Run and administer the forum API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  SECRET_KEY=... python main.py serve --port 5000
  python main.py token issue 7
  python main.py token inspect eyJ1aWQiOjcsImV4cCI6MTcwMDAwMDAwMH0.abc...
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API under uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=5000, help="Bind port (default: 5000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_cmd_serve)

    token = sub.add_parser("token", help="Issue or inspect bearer tokens")
    token_sub = token.add_subparsers(dest="token_command", required=True)
    issue = token_sub.add_parser("issue", help="Print a token for an account id")
    issue.add_argument("subject_id", type=int, metavar="ACCOUNT-ID")
    issue.set_defaults(func=_cmd_token_issue)
    inspect = token_sub.add_parser("inspect", help="Verify a token and print its claims")
    inspect.add_argument("token", metavar="TOKEN")
    inspect.set_defaults(func=_cmd_token_inspect)

    hp = sub.add_parser("hash-password", help="Read a password without echo and print its bcrypt digest")
    hp.add_argument("--rounds", type=int, default=12, help="bcrypt cost factor (default: 12)")
    hp.set_defaults(func=_cmd_hash_password)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
