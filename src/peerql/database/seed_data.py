"""
Reusable seed data functions for database initialization.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dbmodels import MemberTypes
from ..logging import get_logger

logger = get_logger(__name__)

# id -> (discount, posts limit per month)
DEFAULT_MEMBER_TYPES: dict[str, tuple[float, int]] = {
    "BASIC": (2.3, 20),
    "BUSINESS": (7.7, 100),
}


async def ensure_member_types(db: AsyncSession) -> list[str]:
    """
    Ensure the BASIC and BUSINESS member types exist.

    Existing rows are left untouched so operators can tune discounts and
    limits without the seed overwriting them.

    Args:
        db: Database session

    Returns:
        Ids of the member types that were created
    """
    result = await db.execute(select(MemberTypes.id))
    existing = set(result.scalars().all())

    created = []
    for member_type_id, (discount, posts_limit) in DEFAULT_MEMBER_TYPES.items():
        if member_type_id in existing:
            logger.debug("Member type already exists", member_type_id=member_type_id)
            continue
        db.add(
            MemberTypes(
                id=member_type_id,
                discount=discount,
                posts_limit_per_month=posts_limit,
            )
        )
        created.append(member_type_id)

    if created:
        await db.commit()
        logger.info("Created member types", member_type_ids=created)

    return created


async def seed_initial_data(db: AsyncSession) -> None:
    """Seed all initial data required for the application."""
    logger.info("Starting database seeding")
    await ensure_member_types(db)
    logger.info("Database seeding completed")
