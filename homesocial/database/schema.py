"""
Table definitions for HomeSocial.

Run `python -m homesocial.database.schema` against an empty database to create
every table. Statements are idempotent (IF NOT EXISTS), so re-running is safe.
"""

import asyncio
import logging

import asyncpg  # type: ignore

logger = logging.getLogger(__name__)


def create_profiles_table_sql():
    """Return SQL statement to create the 'profiles' table."""
    return """
    CREATE TABLE IF NOT EXISTS profiles (
      id VARCHAR(128) PRIMARY KEY,
      email VARCHAR(255),
      full_name VARCHAR(200),
      role VARCHAR(10) NOT NULL DEFAULT 'buyer'
        CHECK (role IN ('buyer', 'seller', 'pro', 'admin')),
      avatar_url VARCHAR(2048),
      bio TEXT,
      service_area VARCHAR(200),
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """


def create_listings_table_sql():
    """Return SQL statement to create the 'listings' table."""
    return """
    CREATE TABLE IF NOT EXISTS listings (
      id UUID PRIMARY KEY,
      owner_id VARCHAR(128) NOT NULL,
      title VARCHAR(200) NOT NULL,
      price NUMERIC(14, 2),
      beds NUMERIC(5, 1),
      baths NUMERIC(5, 1),
      sqft NUMERIC(10, 0),
      address VARCHAR(200),
      city VARCHAR(100),
      state CHAR(2),
      zip VARCHAR(10),
      description TEXT,
      status VARCHAR(10) NOT NULL DEFAULT 'draft'
        CHECK (status IN ('draft', 'active', 'pending', 'sold')),
      thumbnail_url VARCHAR(2048),
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS idx_listings_status_created ON listings(status, created_at DESC);
    CREATE INDEX IF NOT EXISTS idx_listings_owner ON listings(owner_id, created_at DESC);
    """


def create_media_table_sql():
    """Return SQL statement to create the 'media' table."""
    return """
    CREATE TABLE IF NOT EXISTS media (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      listing_id UUID NOT NULL REFERENCES listings(id) ON DELETE CASCADE,
      type VARCHAR(5) NOT NULL CHECK (type IN ('photo', 'video')),
      storage_bucket VARCHAR(100) NOT NULL,
      storage_path VARCHAR(1024) NOT NULL,
      thumbnail_path VARCHAR(1024),
      sort_order INTEGER NOT NULL DEFAULT 0,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      UNIQUE (storage_bucket, storage_path)
    );

    CREATE INDEX IF NOT EXISTS idx_media_listing ON media(listing_id, sort_order);
    """


def create_comments_table_sql():
    """Return SQL statement to create the 'comments' table."""
    return """
    CREATE TABLE IF NOT EXISTS comments (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      listing_id UUID NOT NULL REFERENCES listings(id) ON DELETE CASCADE,
      user_id VARCHAR(128) NOT NULL,
      body TEXT NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS idx_comments_listing ON comments(listing_id, created_at DESC);
    """


def create_messaging_tables_sql():
    """Return SQL statement to create 'threads', 'thread_members' and 'messages'."""
    return """
    CREATE TABLE IF NOT EXISTS threads (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      listing_id UUID REFERENCES listings(id) ON DELETE SET NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE TABLE IF NOT EXISTS thread_members (
      thread_id UUID NOT NULL REFERENCES threads(id) ON DELETE CASCADE,
      user_id VARCHAR(128) NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
      PRIMARY KEY (thread_id, user_id)
    );

    -- useful for "my threads" lookups
    CREATE INDEX IF NOT EXISTS idx_thread_members_user ON thread_members(user_id);

    CREATE TABLE IF NOT EXISTS messages (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      thread_id UUID NOT NULL REFERENCES threads(id) ON DELETE CASCADE,
      sender_id VARCHAR(128) NOT NULL,
      body TEXT NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
    );

    CREATE INDEX IF NOT EXISTS idx_messages_thread ON messages(thread_id, created_at);
    """


# Order matters: foreign keys point backwards in this list
SCHEMA_STATEMENTS = [
    ("profiles", create_profiles_table_sql),
    ("listings", create_listings_table_sql),
    ("media", create_media_table_sql),
    ("comments", create_comments_table_sql),
    ("messaging", create_messaging_tables_sql),
]


async def apply_schema(conn: asyncpg.Connection) -> None:
    """Create every table inside one transaction."""
    async with conn.transaction():
        for name, statement in SCHEMA_STATEMENTS:
            await conn.execute(statement())
            logger.info(f"'{name}' schema applied")


def main():
    """Create all HomeSocial tables using the configured connection."""
    from homesocial.database.connection import ASYNCPG_URL

    async def run():
        conn = await asyncpg.connect(ASYNCPG_URL)
        try:
            await apply_schema(conn)
            print("✅ HomeSocial tables created successfully.")
        except Exception as e:
            print(f"❌ Failed to create HomeSocial tables: {e}")
            raise
        finally:
            await conn.close()

    asyncio.run(run())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
