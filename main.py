#!/usr/bin/env python3
"""
OfficeDesk -- Client, document and user management for a small law office.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py create-admin --username admin --email admin@example.com
  python main.py purge-sessions

Environment variables:
  SECRET_KEY      Required (>= 32 chars). Keys the session token HMAC.
  DATABASE_URL    SQLAlchemy URL. Defaults to a SQLite file next to the code.
  ADMIN_PASSWORD  When set, the server seeds the first admin on startup.
"""

import argparse
import getpass
import sys

from pydantic import ValidationError


def _load_settings():
    """Return Settings, or exit with a readable message when they are invalid."""
    from core.config import get_settings

    try:
        return get_settings()
    except ValidationError as e:
        for err in e.errors():
            print(f"  [!] {err['msg']}", file=sys.stderr)
        sys.exit(2)


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    _load_settings()
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_create_admin(args: argparse.Namespace) -> int:
    """Create the initial admin. Refuses when any user already exists.

    The account starts in the first-access state: the password given here
    must be changed at the first login.
    """
    from auth.passwords import BcryptHasher
    from auth.service import MIN_PASSWORD_LENGTH, seed_admin
    from auth.store import UserStore

    settings = _load_settings()
    password = args.password or settings.admin_password
    if not password:
        password = getpass.getpass("Initial admin password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {MIN_PASSWORD_LENGTH} characters.", file=sys.stderr)
        return 1

    users = UserStore(settings.database_url)
    try:
        user_id = seed_admin(
            users,
            BcryptHasher(rounds=settings.bcrypt_rounds),
            args.username or settings.admin_username,
            password,
            args.email or settings.admin_email,
            args.name or settings.admin_name,
        )
    finally:
        users.close()

    if user_id is None:
        print("  [!] Users already exist -- create further accounts through /api/usuarios.", file=sys.stderr)
        return 1
    print(f"Admin user created (id={user_id}). The password must be changed at first login.")
    return 0


def cmd_purge_sessions(args: argparse.Namespace) -> int:
    from auth.sessions import SqlSessionStore

    settings = _load_settings()
    sessions = SqlSessionStore(settings.database_url, ttl=settings.session_ttl_seconds)
    try:
        removed = sessions.purge_expired()
    finally:
        sessions.close()
    print(f"{removed} expired session(s) removed.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="officedesk",
        description="OfficeDesk server and maintenance commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  SECRET_KEY=... python main.py serve --reload
  SECRET_KEY=... python main.py create-admin --username admin --email admin@example.com
  SECRET_KEY=... python main.py purge-sessions
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=cmd_serve)

    admin = sub.add_parser("create-admin", help="Create the initial admin account")
    admin.add_argument("--username", help="Login name (default: ADMIN_USERNAME)")
    admin.add_argument("--email", help="Email address (default: ADMIN_EMAIL)")
    admin.add_argument("--name", help="Display name (default: ADMIN_NAME)")
    admin.add_argument(
        "--password",
        help="Initial password (default: ADMIN_PASSWORD, else prompted). Must be changed at first login.",
    )
    admin.set_defaults(func=cmd_create_admin)

    purge = sub.add_parser("purge-sessions", help="Delete expired sessions")
    purge.set_defaults(func=cmd_purge_sessions)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
