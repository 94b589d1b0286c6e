# scripts/init_db.py
import sys
from pathlib import Path

from sqlalchemy import text

# Ensure project root is on the path when running this script directly
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio

from app.config.settings import get_settings
from app.infrastructure.database.session import create_engine, create_schema


async def init_db():
    engine = create_engine(get_settings())
    try:
        async with engine.begin() as conn:
            result = await conn.execute(text("SELECT 1"))
            print("DB Connected:", result.scalar())
        await create_schema(engine)
        print("Schema ready: timesheet_history")
    finally:
        await engine.dispose()


asyncio.run(init_db())
