"""
Example 02: Saving Objects

This example demonstrates the generated write strategies: identity inserts with
back-fill, composite-key update-or-insert, and idempotent inserts.
"""

from dataclasses import dataclass
from snappy_sql import Engine, ConnectionConfig, DbType, column, table
import tempfile
import sqlite3
from pathlib import Path


@table("teachers")
@dataclass
class Teacher:
    """Teacher keyed by a generated identity"""
    id: int = column("id", DbType.INT, identity=True, default=0)
    name: str = column("name", DbType.NVARCHAR, default="")


@table("classes")
@dataclass
class Course:
    """Class keyed by (code, year)"""
    code: str = column("code", DbType.NCHAR, key=True, default="")
    year: int = column("year", DbType.INT, key=True, default=0)
    title: str = column("title", DbType.NVARCHAR, default="")
    teacher_id: int = column("teacher_id", DbType.INT, default=0)


@table("enrollments")
@dataclass
class Enrollment:
    """Link row where every column is part of the key"""
    code: str = column("code", DbType.NCHAR, key=True, default="")
    student: str = column("student", DbType.NVARCHAR, key=True, default="")


def main():
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    conn = sqlite3.connect(db_path)
    conn.execute("CREATE TABLE teachers (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)")
    conn.execute("""
        CREATE TABLE classes (
            code TEXT, year INTEGER, title TEXT, teacher_id INTEGER,
            PRIMARY KEY (code, year)
        )
    """)
    conn.execute("CREATE TABLE enrollments (code TEXT, student TEXT)")
    conn.commit()
    conn.close()

    engine = Engine.from_config(ConnectionConfig(driver="sqlite", database=db_path))

    print("=== Identity Back-fill ===\n")
    teachers = [Teacher(name="Ann"), Teacher(name="Ben")]
    engine.save_many(teachers)
    for teacher in teachers:
        print(f"  - {teacher.name} got id {teacher.id}")
    print()

    print("=== Update or Insert ===\n")
    course = Course(code="MATH101", year=2024, title="Math", teacher_id=teachers[0].id)
    print(f"First save affected {engine.save(course)} row(s)")
    course.title = "Algebra"
    print(f"Second save affected {engine.save(course)} row(s)")
    print(f"Rows in classes: {engine.fetch_scalar('SELECT COUNT(*) FROM classes')}\n")

    print("=== Insert If Not Exists ===\n")
    enrollment = Enrollment(code="MATH101", student="Zoe")
    print(f"First save affected {engine.save(enrollment)} row(s)")
    print(f"Second save affected {engine.save(enrollment)} row(s)\n")

    print("=== Generated Statements ===\n")
    plan = engine.get_writer(Course).plan
    print(f"strategy: {plan.strategy.value}")
    print(f"update:   {plan.update.sql}")
    print(f"insert:   {plan.insert.sql}\n")

    Path(db_path).unlink()


if __name__ == "__main__":
    main()
