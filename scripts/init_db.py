#!/usr/bin/env python3
"""
Initialize the fund ledger database.

Run this script to create the SQLite schema at the configured db_path.
"""
from fund_ledger.config.settings import ConfigLoader
from fund_ledger.database.connection import DatabaseConfig, DatabaseManager, execute_schema

def main():
    """initialize the database."""
    settings = ConfigLoader.load_ledger_config()

    config = DatabaseConfig(settings.get("db_path", "data/fund_ledger.db"))
    print(f"Initializing database at: {config.db_path}")

    with DatabaseManager(config) as db:
        conn = db.get_connection()
        execute_schema(conn)

        cursor = conn.execute(
            "SELECT version, description FROM schema_version ORDER BY version DESC LIMIT 1"
        )
        row = cursor.fetchone()

        if row:
            print(f"✓ Database initialized successfully!")
            print(f"  Schema version: {row['version']}")
            print(f"  Description: {row['description']}")
        else:
            print("✗ Database initialization may have failed")

if __name__ == "__main__":
    main()
