"""
Example 01: Basic Queries

This example demonstrates materializing query results into mapped dataclasses
with SnappySQL's Engine.
"""

from dataclasses import dataclass
from snappy_sql import Engine, ConnectionConfig, DbType, column, table
import tempfile
import sqlite3
from pathlib import Path


@table("users")
@dataclass
class User:
    """User mapped to the users table"""
    id: int = column("id", DbType.INT, identity=True, default=0)
    name: str = column("name", DbType.NVARCHAR, default="")
    email: str = column("email", DbType.NVARCHAR, default="")
    active: bool = column("active", DbType.BIT, default=True)


def main():
    # Create a temporary database
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    # Set up the database with some test data
    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            active INTEGER DEFAULT 1
        )
    """)
    conn.execute("INSERT INTO users (name, email) VALUES ('Alice', 'alice@example.com')")
    conn.execute("INSERT INTO users (name, email) VALUES ('Bob', 'bob@example.com')")
    conn.execute("INSERT INTO users (name, email, active) VALUES ('Charlie', 'charlie@example.com', 0)")
    conn.commit()
    conn.close()

    # Configure engine
    config = ConnectionConfig(driver="sqlite", database=db_path)
    engine = Engine.from_config(config)

    print("=== Basic Queries ===\n")

    # fetch_one: Materialize a single row
    user = engine.fetch_one(User, "SELECT * FROM users WHERE id = :id", {"id": 1})
    print(f"fetch_one result: {user}\n")

    # fetch_all: Materialize every row
    users = engine.fetch_all(User, "SELECT * FROM users WHERE active = 1")
    print(f"fetch_all result ({len(users)} rows):")
    for user in users:
        print(f"  - {user.name} ({user.email})")
    print()

    # fetch_scalar / fetch_scalars: First column only
    count = engine.fetch_scalar("SELECT COUNT(*) FROM users")
    print(f"fetch_scalar result: {count} total users")
    names = engine.fetch_scalars("SELECT name FROM users ORDER BY name")
    print(f"fetch_scalars result: {names}\n")

    # Clean up
    Path(db_path).unlink()


if __name__ == "__main__":
    main()
