#!/usr/bin/env python3
"""
Apply the job ingestion schema (sql/scraping_schema.sql).
Idempotent - safe to run multiple times.
"""
import sys
import argparse
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))
from app.db_config import db_config  # noqa: E402

SCHEMA_FILE = Path(__file__).parent.parent / "sql" / "scraping_schema.sql"
TABLES = ("jobs", "scrape_runs")


def get_table_summary(cursor) -> dict:
    """Row counts for the ingestion tables that exist."""
    cursor.execute("""
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = 'public' AND table_name = ANY(%s)
        ORDER BY table_name
    """, (list(TABLES),))
    tables = [row[0] for row in cursor.fetchall()]

    summary = {}
    for table in tables:
        cursor.execute(f"SELECT COUNT(*) FROM {table}")
        summary[table] = cursor.fetchone()[0]
    return summary


def main():
    parser = argparse.ArgumentParser(description="Apply the job ingestion schema")
    parser.add_argument(
        "--schema",
        type=Path,
        default=SCHEMA_FILE,
        help=f"SQL file to apply (default: {SCHEMA_FILE})",
    )
    args = parser.parse_args()

    load_dotenv()

    conn_params = db_config.get_connection_params()
    if not conn_params:
        print("Error: SUPABASE_DB_URL or DATABASE_URL environment variable is not set")
        sys.exit(1)

    if not args.schema.exists():
        print(f"Error: Schema file not found: {args.schema}")
        sys.exit(1)

    print("Job Ingestion Database Setup")
    print("=" * 60)
    print(f"Connecting to: {conn_params['host']}:{conn_params['port']}")

    try:
        conn = psycopg2.connect(**conn_params, connect_timeout=10)
        cursor = conn.cursor()
        print("✓ Connected successfully\n")
    except psycopg2.Error as e:
        print(f"✗ Connection failed: {e}\n")
        print("Please verify:")
        print("  - SUPABASE_DB_URL is correct")
        print("  - Password is URL-encoded if it contains special characters")
        sys.exit(1)

    try:
        initial_tables = get_table_summary(cursor)
        print(f"Applying schema ({args.schema.name})...")
        cursor.execute(args.schema.read_text())
        conn.commit()

        final_tables = get_table_summary(cursor)
        new_tables = set(final_tables) - set(initial_tables)
        if new_tables:
            print(f"✓ Created {len(new_tables)} new table(s): {', '.join(sorted(new_tables))}")
        else:
            print("✓ All tables already exist (idempotent)")

        print("\nDatabase Summary:")
        print("-" * 60)
        for table, count in sorted(final_tables.items()):
            print(f"  {table:30} {count} row(s)")
    except psycopg2.Error as e:
        conn.rollback()
        print(f"✗ Failed to apply schema: {e}")
        sys.exit(1)
    finally:
        cursor.close()
        conn.close()


if __name__ == "__main__":
    main()
