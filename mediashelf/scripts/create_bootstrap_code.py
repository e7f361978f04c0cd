"""
Create an invite code without an admin account.

Sign-up is invite-only, so the very first user needs a code minted straight
in the database.

Usage:
    python -m mediashelf.scripts.create_bootstrap_code
    python -m mediashelf.scripts.create_bootstrap_code --max-uses 5 --expires-in-days 7
    python -m mediashelf.scripts.create_bootstrap_code --intended-email first@example.com
"""

from __future__ import annotations

import argparse
import asyncio

from mediashelf.core.logging import setup_logging
from mediashelf.db.repositories.invite_codes import create_invite_code
from mediashelf.db.utils import get_session


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create a bootstrap invite code.")
    p.add_argument("--max-uses", type=int, default=1)
    p.add_argument("--expires-in-days", type=int, default=None)
    p.add_argument("--notes", default="bootstrap")
    p.add_argument("--intended-email", default=None, help="Only this address may sign up with the code")
    return p.parse_args()


async def main() -> None:
    args = parse_args()
    setup_logging()

    async with get_session() as session:
        invite = await create_invite_code(
            session,
            created_by=None,
            notes=args.notes,
            max_uses=args.max_uses,
            expires_in_days=args.expires_in_days,
            intended_email=args.intended_email,
        )

    expires = invite.expires_at.isoformat() if invite.expires_at else "never"
    print(f"✅ Invite code: {invite.code} (max uses: {invite.max_uses}, expires: {expires})")
    if invite.intended_email:
        print(f"   Only for: {invite.intended_email}")


if __name__ == "__main__":
    asyncio.run(main())
