"""
Seed development users with their daily task quotas.
Run: python -m scripts.seed_users  (from backend/)

Connection settings come from TOGO_DB_* environment variables.
"""

import asyncio

from togo.core.config import StoreConfig
from togo.db.bootstrap import ensure_schema
from togo.db.session import Database
from togo.repositories.users import create_user


SEED_USERS = [
    {
        "username": "secondUser",
        "password": "example",  # Change in production!
        "max_todo": 5,
    },
    {
        "username": "busyUser",
        "password": "example",
        "max_todo": 20,
    },
    {
        "username": "readOnlyUser",
        "password": "example",
        "max_todo": 0,
    },
]


async def seed():
    """Insert seed users."""
    db = await Database.connect(StoreConfig())
    try:
        await ensure_schema(db)
        async with db.transaction() as session:
            for data in SEED_USERS:
                user = await create_user(db=session, **data)
                print(f"  Created user: {user.username} (max_todo={user.max_todo})")
        print(f"Seeded {len(SEED_USERS)} users.")
    finally:
        await db.shutdown()


if __name__ == "__main__":
    asyncio.run(seed())
