"""
Make an existing user the super admin.

Any previous super admin is kept as a regular admin.

Usage:
    python -m mediashelf.scripts.configure_super_admin --email you@example.com
"""

from __future__ import annotations

import argparse
import asyncio

from mediashelf.core.exceptions import NotFoundError
from mediashelf.core.logging import setup_logging
from mediashelf.db.repositories.users import set_super_admin
from mediashelf.db.utils import get_session


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Promote a user to super admin.")
    p.add_argument("--email", required=True, help="Email of an existing account")
    return p.parse_args()


async def main() -> None:
    args = parse_args()
    setup_logging()

    try:
        async with get_session() as session:
            user = await set_super_admin(session, args.email)
    except NotFoundError:
        raise SystemExit(f"User with email {args.email} not found (sign up first)")

    print(f"✅ {user.email} (id={user.id}) is now super admin")


if __name__ == "__main__":
    asyncio.run(main())
