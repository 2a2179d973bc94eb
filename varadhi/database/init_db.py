"""
Quick database connection and schema check.

Creates a small pool, confirms both tables the API relies on are reachable,
prints their row counts and closes the pool. Run it before starting the
server to rule out connection or schema problems:

    python -m varadhi.database.init_db
"""

import logging
import sys

from varadhi.database.db_connection import close_pool, create_pool
from varadhi.database.gateway import QueryError, QueryGateway

TABLES = ("helping_societies", "app_users")


def check_tables(gateway: QueryGateway) -> dict:
    """
    Count rows in every table the API uses.

    Returns:
        dict: table name -> row count.

    Raises:
        QueryError: If a table is missing or the store is unreachable.
    """
    counts = {}
    for table in TABLES:
        rows = gateway.execute(f'SELECT COUNT(*) AS "COUNT" FROM {table};')
        counts[table] = rows[0]["COUNT"]
    return counts


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")
    print("--- Running Database Quick Test ---")
    try:
        connection_pool = create_pool(minconn=1, maxconn=1)
    except Exception as e:
        print(f"Could not connect: {e}")
        return 1

    try:
        counts = check_tables(QueryGateway(connection_pool))
    except QueryError as e:
        print(f"Schema check failed: {e}")
        print("Apply varadhi/database/schema.sql and try again.")
        return 1
    finally:
        close_pool()

    for table, count in counts.items():
        print(f"  {table}: {count} rows")
    print("--- Database Quick Test Passed ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
