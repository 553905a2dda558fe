"""
Migration: create the external data tables (cache, user hints, usage events).

For PostgreSQL deployments that do not run init_db() on startup.
Run with: python migrate_external_data_tables.py
"""
import asyncio
from sqlalchemy import text
from cv_enrichment.database import engine


async def migrate():
    """Create external_data_cache, user_external_profiles and external_data_usage_events."""

    # Execute each statement separately (asyncpg requirement)
    statements = [
        """
        CREATE TABLE IF NOT EXISTS external_data_cache (
            doc_id VARCHAR(500) PRIMARY KEY,
            key TEXT NOT NULL,
            data JSON,
            source VARCHAR(100) NOT NULL DEFAULT 'external_data',
            hits INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMP WITH TIME ZONE NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS ix_external_data_cache_key ON external_data_cache(key)",
        "CREATE INDEX IF NOT EXISTS ix_external_data_cache_expires_at ON external_data_cache(expires_at)",
        """
        CREATE TABLE IF NOT EXISTS user_external_profiles (
            user_id VARCHAR(255) PRIMARY KEY,
            github VARCHAR(255),
            linkedin VARCHAR(500),
            website VARCHAR(500),
            name VARCHAR(255),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS external_data_usage_events (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(255) NOT NULL,
            cv_id VARCHAR(255),
            request_id VARCHAR(100),
            sources JSON,
            success BOOLEAN NOT NULL DEFAULT FALSE,
            status VARCHAR(20),
            fetch_duration_ms INTEGER DEFAULT 0,
            sources_queried INTEGER DEFAULT 0,
            sources_successful INTEGER DEFAULT 0,
            cache_hits INTEGER DEFAULT 0,
            errors JSON,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
        """,
        "CREATE INDEX IF NOT EXISTS ix_external_data_usage_events_user_id ON external_data_usage_events(user_id)",
        "CREATE INDEX IF NOT EXISTS ix_external_data_usage_events_created_at ON external_data_usage_events(created_at)",
    ]

    async with engine.begin() as conn:
        for statement in statements:
            await conn.execute(text(statement))

    print("✅ External data tables created successfully!")


if __name__ == "__main__":
    asyncio.run(migrate())
