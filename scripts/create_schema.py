#!/usr/bin/env python
"""Create the shiftpay tables in the configured database.

Usage:
    python scripts/create_schema.py
    python scripts/create_schema.py --database-url postgresql+asyncpg://...
    python scripts/create_schema.py --drop
"""

import argparse
import asyncio
import sys

from sqlalchemy.exc import SQLAlchemyError

from shiftpay.config import get_settings
from shiftpay.database import get_engine
from shiftpay.models import Base


async def create_schema(database_url: str, drop: bool) -> None:
    engine = get_engine(database_url)
    try:
        async with engine.begin() as conn:
            if drop:
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create shiftpay tables")
    parser.add_argument(
        "--database-url",
        default=get_settings().database_url,
        help="Database URL",
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables first (destroys data)",
    )

    args = parser.parse_args()

    print("shiftpay schema")
    print("=" * 50)
    print(f"Database: {args.database_url.split('@')[-1] if '@' in args.database_url else args.database_url}")
    print(f"Tables: {', '.join(sorted(Base.metadata.tables))}")

    try:
        asyncio.run(create_schema(args.database_url, args.drop))
    except SQLAlchemyError as e:
        print(f"FAILED: {e}")
        return 1

    print("OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())
