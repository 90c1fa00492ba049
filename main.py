#!/usr/bin/env python3
"""
AdminDesk management CLI -- provisioning and inspection outside the web app.

Usage:
  python main.py init-db
  python main.py create-user alice alice@example.com --role admin
  python main.py set-password admin
  python main.py delete-user 7
  python main.py list-users
  python main.py logs --limit 20

Passwords are read with getpass (or from ADMINDESK_PASSWORD for scripted
use) and never accepted as command-line arguments, which would leak them
into shell history and the process list.

Environment variables: see core/config.py (DATABASE_URL, SECRET_KEY, ...).
"""

import argparse
import getpass
import os
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from audit.store import AuditLog
from auth.models import ROLE_USER, ROLES, User
from auth.seed import ensure_default_admin
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings
from core.database import create_db_engine, init_db

_MIN_PASSWORD_LEN = 8


def _read_password() -> Optional[str]:
    """Prompt twice for a password, or take ADMINDESK_PASSWORD when set."""
    scripted = os.environ.get("ADMINDESK_PASSWORD")
    if scripted:
        return scripted
    first = getpass.getpass("Password: ")
    if first != getpass.getpass("Confirm password: "):
        print("  [!] Passwords do not match.")
        return None
    return first


def _valid_password(password: Optional[str]) -> bool:
    if not password or len(password) < _MIN_PASSWORD_LEN:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LEN} characters.")
        return False
    return True


def cmd_init_db(store: UserStore, args: argparse.Namespace) -> int:
    created = ensure_default_admin(store, get_settings())
    print("  Schema ready." + (" Bootstrap admin created." if created else ""))
    return 0


def cmd_create_user(store: UserStore, args: argparse.Namespace) -> int:
    password = _read_password()
    if not _valid_password(password):
        return 1
    user = User(username=args.username, email=args.email, role=args.role, hashed_password=hash_password(password))
    try:
        uid = store.create_user(user)
    except IntegrityError:
        print("  [!] A user with that username or email already exists.")
        return 1
    print(f"  Created user {args.username!r} (id={uid}, role={args.role}).")
    return 0


def cmd_set_password(store: UserStore, args: argparse.Namespace) -> int:
    user = store.get_by_username(args.username)
    if user is None:
        print(f"  [!] No user named {args.username!r}.")
        return 1
    password = _read_password()
    if not _valid_password(password):
        return 1
    store.update_password(user.id, hash_password(password))
    print(f"  Password updated for {args.username!r}.")
    return 0


def cmd_delete_user(store: UserStore, args: argparse.Namespace) -> int:
    if not store.delete_user(args.user_id):
        print(f"  [!] No user with id {args.user_id}.")
        return 1
    print(f"  Deleted user {args.user_id}. Their audit events are kept with no user reference.")
    return 0


def cmd_list_users(store: UserStore, args: argparse.Namespace) -> int:
    for u in store.list_users():
        print(f"  {u.id:>5}  {u.username:<20} {u.email:<32} {u.role:<6} {u.created_at}")
    return 0


def cmd_logs(store: UserStore, args: argparse.Namespace) -> int:
    audit_log = AuditLog(store.engine)
    try:
        events = audit_log.list_events(limit=args.limit, offset=args.offset)
    except ValueError as exc:
        print(f"  [!] {exc}")
        return 1
    for e in events:
        who = e.username or "-"
        print(f"  {e.created_at}  {e.action:<14} {who:<20} {e.ip_address or '':<16} {e.description or ''}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="admindesk", description="AdminDesk management commands")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables and the bootstrap admin").set_defaults(func=cmd_init_db)

    p = sub.add_parser("create-user", help="Provision a user (password prompted)")
    p.add_argument("username")
    p.add_argument("email")
    p.add_argument("--role", choices=ROLES, default=ROLE_USER)
    p.set_defaults(func=cmd_create_user)

    p = sub.add_parser("set-password", help="Rotate a user's password (prompted)")
    p.add_argument("username")
    p.set_defaults(func=cmd_set_password)

    p = sub.add_parser("delete-user", help="Delete a user; audit events keep a null reference")
    p.add_argument("user_id", type=int)
    p.set_defaults(func=cmd_delete_user)

    sub.add_parser("list-users", help="Print all users, newest first").set_defaults(func=cmd_list_users)

    p = sub.add_parser("logs", help="Print audit events, newest first")
    p.add_argument("--limit", type=int, default=50)
    p.add_argument("--offset", type=int, default=0)
    p.set_defaults(func=cmd_logs)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    engine = create_db_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        pool_timeout=settings.db_pool_timeout,
    )
    try:
        init_db(engine)
        return args.func(UserStore(engine), args)
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
