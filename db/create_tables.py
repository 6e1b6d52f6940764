"""
Database setup script for the JMCC dashboard.

This script creates the jmcc_list and sec_login tables and their indexes,
and can seed a dashboard user.

Database connection can be configured using environment variables:
- DATABASE_URL: Full PostgreSQL connection string (if provided, other DB_* variables are ignored)
- DB_USER: Database username (default: postgres)
- DB_PASSWORD: Database password
- DB_HOST: Database host (default: localhost)
- DB_PORT: Database port (default: 5432)
- DB_NAME: Database name (default: jmcc)

Usage:
    python db/create_tables.py [--user NAME --password SECRET]
"""
import os
import argparse
import asyncio
import asyncpg
from dotenv import load_dotenv
from passlib.context import CryptContext

load_dotenv()

TABLE_DEFINITIONS = {
    "sec_login": """
        CREATE TABLE IF NOT EXISTS sec_login (
            username TEXT PRIMARY KEY,
            password TEXT NOT NULL
        )
    """,
    "jmcc_list": """
        CREATE TABLE IF NOT EXISTS jmcc_list (
            journey_plan_no TEXT PRIMARY KEY,
            tracker TEXT,
            sjm TEXT,
            journey_plan_date DATE,
            scheduled_vehicle TEXT,
            carrier TEXT,
            jp_status TEXT,
            next_arrival_date TIMESTAMP,
            next_point TEXT,
            ivms_check_date TIMESTAMP,
            ivms_point TEXT,
            destination TEXT,
            offload_point TEXT,
            driver_name TEXT,
            remarks TEXT,
            accommodation TEXT,
            jm TEXT,
            item_type TEXT
        )
    """,
}

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_jmcc_list_status ON jmcc_list (LOWER(TRIM(jp_status)))",
    "CREATE INDEX IF NOT EXISTS idx_jmcc_list_sjm ON jmcc_list (sjm)",
]

def get_database_url() -> str:
    """Get the database connection URL from environment variables."""
    db_user = os.environ.get("DB_USER", "postgres")
    db_password = os.environ.get("DB_PASSWORD", "")
    db_host = os.environ.get("DB_HOST", "localhost")
    db_port = os.environ.get("DB_PORT", "5432")
    db_name = os.environ.get("DB_NAME", "jmcc")

    # Use DATABASE_URL if provided, otherwise build from individual parameters
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        database_url = f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"

    # Log the URL (with password masked for security)
    masked_url = database_url.replace(db_password, '********') if db_password else database_url
    print(f"Connecting to database: {masked_url}")
    # asyncpg does not understand the SQLAlchemy driver suffix
    return database_url.replace("postgresql+asyncpg://", "postgresql://")

async def create_tables(conn):
    """Create database tables if they don't exist."""
    for table_name, create_stmt in TABLE_DEFINITIONS.items():
        print(f"Creating table: {table_name}")
        await conn.execute(create_stmt)

async def create_db_indexes(conn):
    """Create database indexes for the alert snapshot query."""
    print("Creating indexes...")
    for index_stmt in INDEXES:
        await conn.execute(index_stmt)

async def seed_user(conn, username: str, password: str):
    """Insert or replace a dashboard login with a bcrypt hash."""
    hashed = CryptContext(schemes=["bcrypt"], deprecated="auto").hash(password)
    await conn.execute(
        """
        INSERT INTO sec_login (username, password) VALUES ($1, $2)
        ON CONFLICT (username) DO UPDATE SET password = EXCLUDED.password
        """,
        username, hashed
    )
    print(f"Seeded user: {username}")

def parse_args():
    parser = argparse.ArgumentParser(description="Create the JMCC dashboard tables")
    parser.add_argument("--user", type=str, help="Dashboard login to create")
    parser.add_argument("--password", type=str, help="Password for --user")
    return parser.parse_args()

async def main():
    """Main function to set up the database."""
    args = parse_args()
    conn = await asyncpg.connect(get_database_url())

    try:
        await create_tables(conn)
        await create_db_indexes(conn)
        if args.user and args.password:
            await seed_user(conn, args.user, args.password)
        print("Database setup completed successfully!")
    finally:
        await conn.close()

if __name__ == "__main__":
    asyncio.run(main())
