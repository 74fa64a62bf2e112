#!/usr/bin/env python3
"""
Seed the default pricing rules and a first admin account.

Usage:
  python scripts/seed_rules.py admin@example.com 'S3cret!' "Admin Name"
  # Requires DATABASE_URL and SECRET_KEY in .env (or export)

Existing rule keys are left alone; only missing keys are written.
The admin is skipped when the email is already registered.
"""
import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.rules import DEFAULT_RULE_SETTINGS, RuleConfig
from app.database import AsyncSessionLocal, close_db
from app.services.settings_service import SettingsService
from app.services.user_service import UserService


async def seed(email: str, password: str, name: str) -> None:
    async with AsyncSessionLocal() as db:
        current = await SettingsService.get_rule_values(db)
        missing = {k: v for k, v in DEFAULT_RULE_SETTINGS.items() if k not in current}
        # Refuse to write a combination that would not load
        RuleConfig.from_settings({**DEFAULT_RULE_SETTINGS, **current})
        if missing:
            await SettingsService.save_rule_values(db, missing)
            await db.commit()
        print(f"Rule keys written: {len(missing)} (already present: {len(current)})")

        if await UserService.get_user_by_email(db, email):
            print(f"Admin {email} already exists, skipping")
        else:
            user = await UserService.create_admin(db, email=email, password=password, name=name)
            print(f"Admin created: {user.email} ({user.id})")
    await close_db()


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    email, password = sys.argv[1], sys.argv[2]
    name = sys.argv[3] if len(sys.argv) > 3 else "Administrator"
    asyncio.run(seed(email, password, name))


if __name__ == "__main__":
    main()
