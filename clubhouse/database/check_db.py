"""
Quick database connection and schema check.

Confirms the server is reachable and that the tables the API relies on
(users, events, products) exist with the columns the routes read and write.
The schema itself is managed outside this project.

Run with:
    python -m clubhouse.database.check_db
"""

import sys
from typing import Dict, List

from clubhouse.config import load_config
from clubhouse.database.db_connection import Database

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "users": [
        "user_id", "username", "email", "password_hash",
        "role", "points", "is_active", "created_at",
    ],
    "events": [
        "event_id", "title", "description", "location", "start_time", "end_time",
        "status", "fee", "max_participants", "creator_id", "created_at", "updated_at",
    ],
    "products": [
        "product_id", "name", "description", "price", "category",
        "is_available", "image_url", "created_at", "updated_at",
    ],
}


def check_schema(db: Database) -> List[str]:
    """
    Compare the live schema against REQUIRED_COLUMNS.

    Returns:
        list: Human-readable problems; empty when the schema is usable.
    """
    problems = []
    with db.connection() as conn:
        with conn.cursor() as cur:
            for table, columns in REQUIRED_COLUMNS.items():
                cur.execute("SELECT to_regclass(%s) AS oid;", (table,))
                if not cur.fetchone()["oid"]:
                    problems.append(f"{table}: MISSING")
                    continue

                cur.execute(
                    """
                    SELECT column_name FROM information_schema.columns
                    WHERE table_name = %s;
                    """,
                    (table,),
                )
                present = {row["column_name"] for row in cur.fetchall()}
                for column in columns:
                    if column not in present:
                        problems.append(f"{table}.{column}: MISSING")
    return problems


def main() -> int:
    print("--- Running Database Schema Check ---")
    try:
        config = load_config()
    except RuntimeError as e:
        print(f"Configuration error: {e}")
        return 1

    db = Database(config["DATABASE_URL"], minconn=1, maxconn=1)
    try:
        db.open()
        problems = check_schema(db)
    except Exception as e:
        print("\nDatabase check FAILED:")
        print(f" Error: {e}")
        return 1
    finally:
        db.close()

    if problems:
        print("\nSchema check FAILED:")
        for problem in problems:
            print(f" - {problem}")
        return 1

    print("\nSchema check PASSED.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
