"""
VCA Production Workflow - Seed Script
=====================================
Seeds the reference lists used by the assignment form and, optionally,
provisions the first super admin through the identity provider.

Usage:
    python -m scripts.seed_content_config
    python -m scripts.seed_content_config --admin-email admin@example.com \
        --admin-password '...' --admin-name 'Studio Admin'
"""

import argparse
import asyncio
import os
import sys

# Add parent dir to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import select  # noqa: E402

from app.core.database import async_session, init_db  # noqa: E402
from app.core.logging import get_logger, setup_logging  # noqa: E402
from app.models import CharacterTag, HookTag, Industry, ProfileListItem, UserRole  # noqa: E402
from app.repositories.profile_repository import profile_repository  # noqa: E402
from app.services.auth_bridge_service import auth_bridge_service  # noqa: E402

logger = get_logger("scripts.seed_content_config")

INDUSTRIES = [
    ("Food & Beverage", "FNB"),
    ("Fashion", "FSH"),
    ("Fitness", "FIT"),
    ("Beauty", "BTY"),
    ("Real Estate", "RES"),
    ("Education", "EDU"),
    ("Technology", "TEC"),
    ("Travel", "TRV"),
]

HOOK_TAGS = [
    "Question",
    "Bold Statement",
    "Before / After",
    "Shock Value",
    "Relatable Problem",
    "Countdown",
    "Behind The Scenes",
]

CHARACTER_TAGS = [
    "Founder",
    "Customer",
    "Employee",
    "Influencer",
    "Voice Over Only",
]

PROFILES = [
    "BCH Main",
    "Studio Reels",
]


async def _seed_named(session, model, names: list[str]) -> int:
    existing = set((await session.execute(select(model.name))).scalars().all())
    added = 0
    for name in names:
        if name in existing:
            continue
        session.add(model(name=name, is_active=True))
        added += 1
    return added


async def _seed_industries(session) -> int:
    existing = set((await session.execute(select(Industry.name))).scalars().all())
    added = 0
    for name, short_code in INDUSTRIES:
        if name in existing:
            continue
        session.add(Industry(name=name, short_code=short_code, is_active=True))
        added += 1
    return added


async def seed_content_config(admin_email: str | None, admin_password: str | None, admin_name: str | None) -> None:
    await init_db()

    async with async_session() as session:
        counts = {
            "industries": await _seed_industries(session),
            "hook_tags": await _seed_named(session, HookTag, HOOK_TAGS),
            "character_tags": await _seed_named(session, CharacterTag, CHARACTER_TAGS),
            "profiles": await _seed_named(session, ProfileListItem, PROFILES),
        }
        await session.commit()
        logger.info("content_config_seeded", **counts)

        if not admin_email:
            return
        if await profile_repository.get_by_email(session, admin_email):
            logger.info("seed_admin_exists", email=admin_email)
            return
        profile = await auth_bridge_service.provision_account(
            session,
            email=admin_email,
            password=admin_password or "",
            full_name=admin_name or "Admin",
            role=UserRole.SUPER_ADMIN,
        )
        await session.commit()
        logger.info("seed_admin_created", profile_id=str(profile.id), email=profile.email)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed reference lists and the first admin account.")
    parser.add_argument("--admin-email", default=os.getenv("VCA_SEED_ADMIN_EMAIL"))
    parser.add_argument("--admin-password", default=os.getenv("VCA_SEED_ADMIN_PASSWORD"))
    parser.add_argument("--admin-name", default=os.getenv("VCA_SEED_ADMIN_NAME"))
    args = parser.parse_args()

    setup_logging(debug=False)
    asyncio.run(seed_content_config(args.admin_email, args.admin_password, args.admin_name))


if __name__ == "__main__":
    main()
