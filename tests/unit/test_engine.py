"""Unit tests for Engine."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from typing import Any

import pytest

from snappy_sql.core import engine as engine_module
from snappy_sql.core.connection import ConnectionConfig
from snappy_sql.core.engine import Engine
from snappy_sql.core.enums import DbType
from snappy_sql.core.exceptions import (
    AdapterError,
    ConversionError,
    MissingKeyError,
    MissingTableNameError,
    MixedBatchError,
    MixedKeyError,
)
from snappy_sql.core.params import TypedParam
from snappy_sql.mapping import reader as reader_module
from snappy_sql.mapping.conversion import DefaultValueToDb
from snappy_sql.mapping.declarative import column, table
from snappy_sql.mapping.statements import WriteStrategy

# --- Test models ---


@table("users")
@dataclass
class User:
    id: int = column("id", identity=True, default=0)
    name: str | None = column("name")
    email: str | None = column("email")


@dataclass
class UserSummary:
    name: str = column("name", default="")
    orders: int = column("orders", default=0)


@table("broken")
@dataclass
class Broken:
    id: int = column("id", identity=True, default=0)
    code: str = column("code", key=True, default="")


@table("log")
@dataclass
class LogLine:
    message: str = column("message", default="")


@pytest.fixture
def engine(engine: Engine, create_schema) -> Engine:
    create_schema(
        "CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, email TEXT)",
        "INSERT INTO users (name, email) VALUES ('Alice', 'alice@example.com')",
        "INSERT INTO users (name, email) VALUES ('Bob', 'bob@example.com')",
        "CREATE TABLE users_archive (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, email TEXT)",
        "CREATE TABLE log (message TEXT)",
    )
    return engine


class TestEngineQueries:
    def test_fetch_one(self, engine: Engine) -> None:
        user = engine.fetch_one(User, "SELECT * FROM users WHERE id = :id", {"id": 1})
        assert user == User(id=1, name="Alice", email="alice@example.com")

    def test_fetch_one_returns_none_on_zero_rows(self, engine: Engine) -> None:
        assert engine.fetch_one(User, "SELECT * FROM users WHERE id = :id", {"id": 999}) is None

    def test_fetch_one_returns_first_of_many(self, engine: Engine) -> None:
        user = engine.fetch_one(User, "SELECT * FROM users ORDER BY name DESC")
        assert user is not None
        assert user.name == "Bob"

    def test_fetch_all(self, engine: Engine) -> None:
        users = engine.fetch_all(User, "SELECT * FROM users ORDER BY name")
        assert [u.name for u in users] == ["Alice", "Bob"]
        assert all(isinstance(u, User) for u in users)

    def test_fetch_all_projection_without_table(self, engine: Engine) -> None:
        rows = engine.fetch_all(
            UserSummary, "SELECT name, 0 AS orders FROM users ORDER BY name"
        )
        assert rows == [UserSummary("Alice", 0), UserSummary("Bob", 0)]

    def test_fetch_scalar(self, engine: Engine) -> None:
        assert engine.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    def test_fetch_scalar_none_on_empty(self, engine: Engine) -> None:
        assert engine.fetch_scalar("SELECT id FROM users WHERE id = :id", {"id": 999}) is None

    def test_fetch_scalars(self, engine: Engine) -> None:
        assert engine.fetch_scalars("SELECT name FROM users ORDER BY id") == ["Alice", "Bob"]

    def test_execute_commits(self, engine: Engine) -> None:
        count = engine.execute("DELETE FROM users WHERE name = :name", {"name": "Bob"})
        assert count == 1
        assert engine.fetch_scalar("SELECT COUNT(*) FROM users") == 1

    def test_typed_param(self, sqlite_config: ConnectionConfig, create_schema) -> None:
        create_schema("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, email TEXT)")
        value_to_db = DefaultValueToDb({str: lambda value, db_type: value.upper()})
        engine = Engine.from_config(sqlite_config, value_to_db=value_to_db)

        engine.execute(
            "INSERT INTO users (name) VALUES (:name)", {"name": TypedParam("ann", DbType.NVARCHAR)}
        )
        assert engine.fetch_scalar("SELECT name FROM users") == "ANN"


class TestEngineSave:
    def test_save_inserts_and_backfills(self, engine: Engine) -> None:
        user = User(name="Carol", email="carol@example.com")
        assert engine.save(user) == 1
        assert user.id == 3
        assert engine.fetch_one(User, "SELECT * FROM users WHERE id = 3") == user

    def test_save_updates_existing(self, engine: Engine) -> None:
        user = engine.fetch_one(User, "SELECT * FROM users WHERE id = 1")
        assert user is not None
        user.email = "alice@new.example.com"
        assert engine.save(user) == 1
        assert engine.fetch_scalar("SELECT email FROM users WHERE id = 1") == (
            "alice@new.example.com"
        )

    def test_save_many(self, engine: Engine) -> None:
        users = [User(name=f"u{i}") for i in range(3)]
        assert engine.save_many(users) == 3
        assert [u.id for u in users] == [3, 4, 5]

    def test_save_many_empty(self, engine: Engine) -> None:
        assert engine.save_many([]) == 0

    def test_save_to_other_table(self, engine: Engine) -> None:
        user = User(name="Dan")
        engine.save(user, "users_archive")
        assert user.id == 1
        assert engine.fetch_scalars("SELECT name FROM users_archive") == ["Dan"]

    def test_save_many_rejects_mixed_types(self, engine: Engine) -> None:
        with pytest.raises(MixedBatchError, match="LogLine"):
            engine.save_many([User(name="Fay"), LogLine(message="x")])
        assert engine.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    def test_typed_param_encoder_failure(
        self, engine: Engine, sqlite_config: ConnectionConfig
    ) -> None:
        strict = Engine.from_config(
            sqlite_config,
            value_to_db=DefaultValueToDb({str: lambda value, db_type: int(value)}),
        )
        with pytest.raises(ConversionError, match="'name'"):
            strict.execute(
                "INSERT INTO users (name) VALUES (:name)",
                {"name": TypedParam("ann", DbType.NVARCHAR)},
            )

    def test_delete(self, engine: Engine) -> None:
        user = engine.fetch_one(User, "SELECT * FROM users WHERE id = 2")
        assert engine.delete(user) == 1
        assert engine.fetch_scalars("SELECT id FROM users") == [1]

    def test_delete_keyless(self, engine: Engine) -> None:
        with pytest.raises(MissingKeyError):
            engine.delete(LogLine(message="x"))

    def test_caller_connection_is_not_committed(
        self, engine: Engine, sqlite_connection: sqlite3.Connection
    ) -> None:
        engine.save(User(name="Eve"), connection=sqlite_connection)
        assert engine.fetch_scalar(
            "SELECT COUNT(*) FROM users", connection=sqlite_connection
        ) == 3

        sqlite_connection.rollback()
        assert engine.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    def test_driver_error_propagates(self, engine: Engine) -> None:
        with pytest.raises(sqlite3.OperationalError):
            engine.execute("INSERT INTO nowhere (name) VALUES (:name)", {"name": "x"})
        assert engine.fetch_scalar("SELECT COUNT(*) FROM users") == 2


class TestEngineCaches:
    def test_reader_cached(self, engine: Engine) -> None:
        assert engine.get_reader(User) is engine.get_reader(User)

    def test_writer_cached_per_table_and_idempotence(self, engine: Engine) -> None:
        writer = engine.get_writer(User)
        assert engine.get_writer(User) is writer
        assert engine.get_writer(User, "users_archive") is not writer
        assert engine.get_writer(LogLine, idempotent=True) is not engine.get_writer(LogLine)

    def test_writer_strategy(self, engine: Engine) -> None:
        assert engine.get_writer(User).strategy is WriteStrategy.IDENTITY
        assert engine.get_writer(LogLine).strategy is WriteStrategy.INSERT
        assert (
            engine.get_writer(LogLine, idempotent=True).strategy
            is WriteStrategy.INSERT_IF_NOT_EXISTS
        )

    def test_writer_requires_table(self, engine: Engine) -> None:
        with pytest.raises(MissingTableNameError):
            engine.get_writer(UserSummary)

    def test_configuration_error_raised_every_time(self, engine: Engine) -> None:
        for _ in range(2):
            with pytest.raises(MixedKeyError):
                engine.save(Broken())

    def test_concurrent_get_reader_builds_once(
        self, engine: Engine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        builds: list[Any] = []
        original = reader_module.ObjectReader.create.__func__  # type: ignore[attr-defined]

        def counting_create(cls: Any, mapping: Any, value_from_db: Any) -> Any:
            builds.append(mapping.target_class)
            return original(cls, mapping, value_from_db)

        monkeypatch.setattr(reader_module.ObjectReader, "create", classmethod(counting_create))
        barrier = threading.Barrier(8)
        readers: list[Any] = []

        def worker() -> None:
            barrier.wait()
            readers.append(engine.get_reader(User))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert builds == [User]
        assert all(r is readers[0] for r in readers)

    def test_concurrent_get_writer_builds_once(
        self, engine: Engine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        plans: list[Any] = []
        original = engine_module.build_write_plan

        def counting_plan(mapping: Any, *, idempotent: bool = False) -> Any:
            plans.append(mapping.target_class)
            return original(mapping, idempotent=idempotent)

        monkeypatch.setattr(engine_module, "build_write_plan", counting_plan)
        barrier = threading.Barrier(8)
        writers: list[Any] = []

        def worker() -> None:
            barrier.wait()
            writers.append(engine.get_writer(User))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert plans == [User]
        assert len(writers) == 8
        assert all(w is writers[0] for w in writers)


class TestEngineConfig:
    def test_unsupported_driver(self) -> None:
        with pytest.raises(AdapterError):
            Engine.from_config(ConnectionConfig(driver="oracle", database="x"))
