#!/usr/bin/env python3
"""
Database migration script for the Result Sink.

Creates:
- enriched_leads table
"""

import os
import sys

from dotenv import load_dotenv
from sqlalchemy import create_engine, text

from db.models import EnrichedLead

# Load environment variables
load_dotenv()


def get_database_url() -> str:
    """Get database URL from environment."""
    return os.getenv("DATABASE_URL", "sqlite:///leads.db")


def run_migration(database_url: str = None) -> bool:
    """Create the enriched_leads table if it does not exist."""
    database_url = database_url or get_database_url()

    print("=" * 70)
    print("Enriched Leads Migration")
    print("=" * 70)
    print(f"Database URL: {database_url.split('@')[1] if '@' in database_url else database_url}")
    print()

    engine = create_engine(database_url)

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            print("✓ Database connection successful")
    except Exception as e:
        print(f"✗ Database connection failed: {e}")
        return False

    try:
        EnrichedLead.__table__.create(engine, checkfirst=True)
        print("✓ Created table: enriched_leads")

        with engine.connect() as conn:
            lead_count = conn.execute(text("SELECT COUNT(*) FROM enriched_leads")).scalar()
            print(f"Enriched leads: {lead_count}")

        print()
        print("=" * 70)
        print("Migration completed successfully!")
        print("=" * 70)
        return True

    except Exception as e:
        print(f"✗ Migration failed: {e}")
        return False
    finally:
        engine.dispose()


if __name__ == "__main__":
    success = run_migration()
    sys.exit(0 if success else 1)
