"""
Example 03: Custom Converters

This example demonstrates composing the default value converters with
enum codes and dates carried as yyyymmdd integers.
"""

from datetime import date
from enum import Enum
from typing import Annotated
from pydantic import BaseModel
from snappy_sql import (
    Column,
    ConnectionConfig,
    DbType,
    DefaultValueFromDb,
    DefaultValueToDb,
    Engine,
    null_safe,
)
import tempfile
import sqlite3
from pathlib import Path


class Gender(Enum):
    MALE = "M"
    FEMALE = "F"


class Student(BaseModel):
    """Student model using Pydantic"""
    __table_name__ = "students"

    id: Annotated[int, Column("id", DbType.INT, identity=True)] = 0
    name: Annotated[str, Column("name", DbType.NVARCHAR)] = ""
    gender: Annotated[Gender | None, Column("gender", DbType.CHAR)] = None
    birthday: Annotated[int, Column("birthday", DbType.DATE)] = 0


class StudentValueFromDb:
    """Reads DATE columns declared as int fields as yyyymmdd"""

    def __init__(self):
        self._default = DefaultValueFromDb(
            {Enum: null_safe(lambda ctx: ctx.column.field_type(ctx.value))}
        )

    def get_decoder(self, column):
        if column.field_type is int and column.db_type.is_date_type:
            return null_safe(lambda ctx: int(str(ctx.value)[:10].replace("-", "")))
        return self._default.get_decoder(column)


def encode_int(value, db_type):
    if db_type.is_date_type:
        return date(value // 10000, value // 100 % 100, value % 100)
    return value


def main():
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE students (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT, gender TEXT, birthday DATE
        )
    """)
    conn.commit()
    conn.close()

    value_to_db = DefaultValueToDb({Enum: lambda value, db_type: value.value, int: encode_int})
    engine = Engine.from_config(
        ConnectionConfig(driver="sqlite", database=db_path),
        value_from_db=StudentValueFromDb(),
        value_to_db=value_to_db,
    )

    print("=== Custom Converters ===\n")
    engine.save(Student(name="Bob", gender=Gender.MALE, birthday=19840321))

    raw = engine.fetch_scalar("SELECT gender || ' ' || birthday FROM students")
    print(f"Stored row: {raw}")

    student = engine.fetch_one(Student, "SELECT * FROM students")
    print(f"Materialized: {student}\n")

    Path(db_path).unlink()


if __name__ == "__main__":
    main()
