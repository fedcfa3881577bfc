"""Unit tests for mapping metadata resolution."""

from __future__ import annotations

import threading
from dataclasses import dataclass, make_dataclass
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

import pytest
from pydantic import BaseModel

from snappy_sql.core.enums import DbType
from snappy_sql.core.exceptions import (
    ConfigurationError,
    InvalidIdentifierError,
    MissingTableNameError,
    MixedKeyError,
    MultipleIdentityColumnsError,
    NoColumnsError,
    UnresolvedTypeHintError,
)
from snappy_sql.mapping import metadata
from snappy_sql.mapping.declarative import Column, column, table
from snappy_sql.mapping.metadata import MappingResolver, build_table_mapping

# --- Test models ---


@table("Teacher")
@dataclass
class Teacher:
    id: int = column("Id", DbType.INT, identity=True, default=0)
    name: str | None = column("Name", DbType.NVARCHAR)
    email: Optional[str] = column("Email")  # noqa: UP007
    notes: str | None = None


@dataclass
class Untabled:
    id: int = column("Id", key=True, default=0)


class TeacherModel(BaseModel):
    __table_name__ = "Teacher"

    id: Annotated[int, Column("Id", DbType.INT, identity=True)] = 0
    name: Annotated[str | None, Column("Name")] = None
    unmapped: str = ""


class PlainTerm:
    __table_name__ = "Term"

    code: Annotated[str, Column("Code", DbType.CHAR, key=True)]
    label: Annotated[str, Column("Label")]


@table("Nothing")
@dataclass
class NoColumns:
    id: int = 0


@table("Twins")
@dataclass
class TwoIdentities:
    a: int = column("A", identity=True, default=0)
    b: int = column("B", identity=True, default=0)


@table("Mixed")
@dataclass
class IdentityAndKey:
    id: int = column("Id", identity=True, default=0)
    code: str = column("Code", key=True, default="")


@table("Sentinels")
@dataclass
class Sentinels:
    id: int = column("Id", identity=True, identity_default=-1, default=-1)


@table("Money")
@dataclass
class DecimalIdentity:
    id: Decimal = column("Id", identity=True, default=Decimal(0))


@table("Maybe")
@dataclass
class OptionalIdentity:
    id: int | None = column("Id", identity=True)
    name: str | None = column("Name")


class TestBuildTableMapping:
    def test_dataclass_columns_in_declaration_order(self) -> None:
        mapping = build_table_mapping(Teacher, "Teacher")
        assert [c.name for c in mapping.columns] == ["Id", "Name", "Email"]
        assert [c.attribute for c in mapping.columns] == ["id", "name", "email"]

    def test_unmapped_fields_are_ignored(self) -> None:
        mapping = build_table_mapping(TeacherModel, "Teacher")
        assert [c.attribute for c in mapping.columns] == ["id", "name"]

    def test_identity_is_key(self) -> None:
        mapping = build_table_mapping(Teacher, "Teacher")
        identity = mapping.identity_column
        assert identity is not None
        assert identity.name == "Id"
        assert identity.is_key
        assert mapping.key_columns == (identity,)
        assert mapping.has_identity

    def test_optional_unwrapped(self) -> None:
        mapping = build_table_mapping(Teacher, "Teacher")
        name = mapping.column("Name")
        assert name.field_type is str
        assert name.nullable
        email = mapping.column("Email")
        assert email.field_type is str
        assert email.nullable

    def test_db_type_inferred_when_omitted(self) -> None:
        mapping = build_table_mapping(Teacher, "Teacher")
        assert mapping.column("Email").db_type is DbType.NVARCHAR
        assert mapping.column("Id").db_type is DbType.INT

    def test_pydantic_model(self) -> None:
        mapping = build_table_mapping(TeacherModel, "Teacher")
        assert mapping.identity_column is not None
        assert mapping.column("Name").nullable

    def test_plain_class(self) -> None:
        mapping = build_table_mapping(PlainTerm, "Term")
        assert [c.name for c in mapping.key_columns] == ["Code"]
        assert mapping.column("Code").db_type is DbType.CHAR
        assert not mapping.has_identity

    def test_accessors(self) -> None:
        mapping = build_table_mapping(Teacher, "Teacher")
        teacher = Teacher(id=3, name="Ann")
        name = mapping.column("Name")
        assert name.get(teacher) == "Ann"
        name.set(teacher, "Bea")
        assert teacher.name == "Bea"

    def test_views(self) -> None:
        mapping = build_table_mapping(Teacher, "Teacher")
        assert [c.name for c in mapping.non_identity_columns] == ["Name", "Email"]
        assert [c.name for c in mapping.non_key_columns] == ["Name", "Email"]
        assert not mapping.all_columns_are_keys

    def test_unknown_column_raises_key_error(self) -> None:
        mapping = build_table_mapping(Teacher, "Teacher")
        with pytest.raises(KeyError):
            mapping.column("Nope")


class TestIdentitySentinel:
    def test_zero_value_for_int(self) -> None:
        mapping = build_table_mapping(Teacher, "Teacher")
        assert mapping.column("Id").identity_default == 0

    def test_explicit_default(self) -> None:
        mapping = build_table_mapping(Sentinels, "Sentinels")
        assert mapping.column("Id").identity_default == -1

    def test_decimal_zero(self) -> None:
        mapping = build_table_mapping(DecimalIdentity, "Money")
        assert mapping.column("Id").identity_default == Decimal(0)

    def test_none_for_optional(self) -> None:
        mapping = build_table_mapping(OptionalIdentity, "Maybe")
        assert mapping.column("Id").identity_default is None


class TestConfigurationErrors:
    def test_no_columns(self) -> None:
        with pytest.raises(NoColumnsError):
            build_table_mapping(NoColumns, "Nothing")

    def test_multiple_identity_columns(self) -> None:
        with pytest.raises(MultipleIdentityColumnsError) as exc_info:
            build_table_mapping(TwoIdentities, "Twins")
        assert exc_info.value.columns == ["A", "B"]

    def test_identity_mixed_with_key(self) -> None:
        with pytest.raises(MixedKeyError) as exc_info:
            build_table_mapping(IdentityAndKey, "Mixed")
        assert exc_info.value.keys == ["Code"]

    def test_invalid_table_name(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            build_table_mapping(Teacher, "Teacher; DROP TABLE Teacher")

    def test_schema_qualified_table_name(self) -> None:
        mapping = build_table_mapping(Teacher, "school.Teacher")
        assert mapping.table_name == "school.Teacher"

    def test_invalid_column_name(self) -> None:
        @dataclass
        class BadColumn:
            name: str = column("Full Name", default="")

        with pytest.raises(InvalidIdentifierError):
            build_table_mapping(BadColumn, "Bad")

    def test_unresolvable_local_type_names_field(self) -> None:
        class Local(Enum):
            A = "A"

        @dataclass
        class WithLocalType:
            code: str = column("Code", default="")
            kind: Local | None = column("Kind")

        with pytest.raises(UnresolvedTypeHintError) as exc_info:
            build_table_mapping(WithLocalType, "T")
        assert exc_info.value.attribute == "kind"
        assert "kind" in str(exc_info.value)
        assert isinstance(exc_info.value, ConfigurationError)

    def test_unresolvable_plain_class_annotation(self) -> None:
        class Local(Enum):
            A = "A"

        class PlainWithLocalType:
            kind: Annotated[Local, Column("Kind")]

        with pytest.raises(UnresolvedTypeHintError) as exc_info:
            build_table_mapping(PlainWithLocalType, "T")
        assert exc_info.value.attribute == "kind"

    def test_evaluated_dataclass_types_skip_hint_resolution(self) -> None:
        class Local(Enum):
            A = "A"

        generated = make_dataclass(
            "Generated",
            [("id", int, column("Id", key=True, default=0)), ("kind", Local | None, column("Kind"))],
        )
        mapping = build_table_mapping(generated, "T")
        kind = mapping.column("Kind")
        assert kind.field_type is Local
        assert kind.nullable

    def test_errors_are_configuration_errors(self) -> None:
        assert issubclass(NoColumnsError, ConfigurationError)
        assert issubclass(MixedKeyError, ConfigurationError)
        assert issubclass(UnresolvedTypeHintError, ConfigurationError)


class TestMappingResolver:
    def test_declared_table_name(self) -> None:
        resolver = MappingResolver()
        assert resolver.resolve(Teacher).table_name == "Teacher"
        assert resolver.resolve(TeacherModel).table_name == "Teacher"
        assert resolver.resolve(PlainTerm).table_name == "Term"

    def test_override_table_name(self) -> None:
        resolver = MappingResolver()
        assert resolver.resolve(Teacher, "Teacher_Archive").table_name == "Teacher_Archive"

    def test_missing_table_name(self) -> None:
        resolver = MappingResolver()
        with pytest.raises(MissingTableNameError):
            resolver.resolve(Untabled)

    def test_missing_table_name_allowed_for_reads(self) -> None:
        resolver = MappingResolver()
        mapping = resolver.resolve(Untabled, require_table=False)
        assert mapping.table_name is None

    def test_cached_per_type_and_table(self) -> None:
        resolver = MappingResolver()
        first = resolver.resolve(Teacher)
        assert resolver.resolve(Teacher) is first
        assert resolver.resolve(Teacher, "Teacher") is first
        assert resolver.resolve(Teacher, "Teacher_Archive") is not first
        assert len(resolver) == 2

    def test_configuration_error_not_cached(self) -> None:
        resolver = MappingResolver()
        for _ in range(2):
            with pytest.raises(MixedKeyError):
                resolver.resolve(IdentityAndKey)
        assert len(resolver) == 0

    def test_concurrent_resolve_builds_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[type] = []
        original = metadata.build_table_mapping

        def counting_build(cls: type, table_name: str | None):  # type: ignore[no-untyped-def]
            calls.append(cls)
            return original(cls, table_name)

        monkeypatch.setattr(metadata, "build_table_mapping", counting_build)
        resolver = MappingResolver()
        barrier = threading.Barrier(8)
        results = []

        def worker() -> None:
            barrier.wait()
            results.append(resolver.resolve(Teacher))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == [Teacher]
        assert len(results) == 8
        assert all(r is results[0] for r in results)
