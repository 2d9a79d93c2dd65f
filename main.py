#!/usr/bin/env python3
"""
UserHub admin CLI -- account tasks that the public API deliberately cannot do.

Roles are not settable over HTTP: registration always creates USER accounts
and the update endpoint ignores role. Bootstrapping the first administrator,
and promoting or demoting users later, happens here against the database
directly.

Usage:
  python main.py create-admin --username root --email root@example.com --password s3cret
  python main.py set-role alice ADMIN
  python main.py set-role alice USER
  python main.py list-users

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the UserHub database (default: sqlite file
                next to the project). --database-url overrides it.
"""

import argparse
import logging
import sys
from typing import Optional

from auth.errors import AccountError
from auth.models import Role
from auth.service import AccountService
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("userhub.cli")


def _create_admin(service: AccountService, args: argparse.Namespace) -> int:
    user = service.register(
        username=args.username,
        password=args.password,
        email=args.email,
        real_name=args.real_name,
        phone_number=args.phone_number,
    )
    service.store.set_role(user.id, Role.ADMIN)
    logger.info("Created admin user_id=%s username=%s", user.id, user.username)
    print(f"  Created admin '{user.username}' (id {user.id}).")
    return 0


def _set_role(service: AccountService, args: argparse.Namespace) -> int:
    user = service.find_by_username(args.username)
    if user is None:
        print(f"  [!] No user named '{args.username}'.")
        return 1
    role = Role(args.role)
    if user.role == role:
        print(f"  '{user.username}' is already {role.value}.")
        return 0
    service.store.set_role(user.id, role)
    logger.info("Role of user_id=%s changed %s -> %s", user.id, user.role.value, role.value)
    print(f"  '{user.username}' is now {role.value}.")
    return 0


def _list_users(service: AccountService, args: argparse.Namespace) -> int:
    users = service.list_all()
    if not users:
        print("  No users.")
        return 0
    print(f"  {'ID':>5}  {'ROLE':<6} {'USERNAME':<24} EMAIL")
    for u in users:
        print(f"  {u.id:>5}  {u.role.value:<6} {u.username:<24} {u.email}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userhub",
        description="Administrative tasks for the UserHub account database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-admin --username root --email root@example.com --password s3cret
  python main.py set-role alice ADMIN
  python main.py list-users
  DATABASE_URL=sqlite:////var/lib/userhub.db python main.py list-users
        """,
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL setting)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = sub.add_parser("create-admin", help="Create a new account with the ADMIN role")
    create.add_argument("--username", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--password", required=True)
    create.add_argument("--real-name", default=None)
    create.add_argument("--phone-number", default=None)
    create.set_defaults(handler=_create_admin)

    set_role = sub.add_parser("set-role", help="Change an existing user's role")
    set_role.add_argument("username")
    set_role.add_argument("role", choices=[r.value for r in Role])
    set_role.set_defaults(handler=_set_role)

    list_cmd = sub.add_parser("list-users", help="Print every account")
    list_cmd.set_defaults(handler=_list_users)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    store = UserStore(args.database_url or get_settings().database_url)
    try:
        return args.handler(AccountService(store), args)
    except AccountError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
