"""The database instance, its builder, statistics and snapshots."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from keyedstore.errors import DuplicateModelVersion
from keyedstore.keys import KeyDefinition
from keyedstore.model import DatabaseModel, native_db_model
from keyedstore.storage import Storage


@dataclass(frozen=True)
class StatsTable:
    """Entry count of one table; ``None`` when the table does not exist."""

    name: str
    n_entries: Optional[int]


@dataclass(frozen=True)
class Stats:
    """Entry counts of every primary and secondary table, sorted by name."""

    primary_tables: list
    secondary_tables: list


@dataclass
class NativeModelOptions:
    """Model id and version, and whether a newer version supersedes it."""

    native_model_id: int = 0
    native_model_version: int = 0
    native_model_legacy: bool = False


@dataclass(repr=False)
class PrimaryTableDefinition:
    """A model's primary table and the secondary tables indexing it."""

    model: DatabaseModel
    name: str
    native_model_options: NativeModelOptions
    secondary_tables: dict = field(default_factory=dict)

    def table_names(self) -> list[str]:
        """Return the primary table name followed by its secondary table names."""
        return [self.name, *self.secondary_tables.values()]

    def __repr__(self) -> str:
        options = self.native_model_options
        return (
            f"TableDefinition {{ name: {self.name!r}, "
            f"model_id: {options.native_model_id}, "
            f"model_version: {options.native_model_version}, "
            f"legacy: {options.native_model_legacy} }}"
        )


@dataclass
class _ModelBuilder:
    model: DatabaseModel
    native_model_options: NativeModelOptions


def _model_identity(model: DatabaseModel) -> tuple[int, int]:
    model_id, version, _ = model.primary_key.unique_table_name.split("_", 2)
    return int(model_id), int(version)


class Database:
    """An open database holding the tables of the defined models."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self.primary_table_definitions: dict[str, PrimaryTableDefinition] = {}

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _seed_model(self, model_builder: _ModelBuilder) -> None:
        model = model_builder.model
        name = model.primary_key.unique_table_name
        definition = PrimaryTableDefinition(
            model=model,
            name=name,
            native_model_options=dataclasses.replace(model_builder.native_model_options),
        )
        try:
            self.storage.open_table(name)
            for secondary in model.secondary_keys:
                definition.secondary_tables[secondary] = secondary.unique_table_name
                self.storage.open_table(secondary.unique_table_name)
            self.storage.commit()
        except BaseException:
            self.storage.rollback()
            raise
        self.primary_table_definitions[name] = definition

    def _table_stats(self, name: str) -> StatsTable:
        if not self.storage.has_table(name):
            return StatsTable(name, None)
        return StatsTable(name, self.storage.length(name))

    def redb_stats(self) -> Stats:
        """Count the entries of every primary and secondary table."""
        definitions = list(self.primary_table_definitions.values())
        primary = [self._table_stats(d.name) for d in definitions]
        secondary = [
            self._table_stats(table)
            for d in definitions
            for table in d.secondary_tables.values()
        ]
        return Stats(
            primary_tables=sorted(primary, key=lambda s: s.name),
            secondary_tables=sorted(secondary, key=lambda s: s.name),
        )

    def snapshot(self, builder: "DatabaseBuilder", path: Union[str, Path]) -> "Database":
        """Copy every table into a new database created at ``path``.

        ``builder`` should define the same models as this database.
        """
        new_db = builder.create(path)
        try:
            for definition in self.primary_table_definitions.values():
                for table in definition.table_names():
                    new_db.storage.open_table(table)
                    for key, value in self.storage.items(table):
                        new_db.storage.insert(table, key, value)
            new_db.storage.commit()
        except BaseException:
            new_db.close()
            raise
        return new_db

    def close(self) -> None:
        """Close the underlying storage."""
        self.storage.close()


class DatabaseBuilder:
    """Collects model definitions and creates or opens databases."""

    def __init__(self) -> None:
        self.cache_size_bytes: Optional[int] = None
        self._models: dict[str, _ModelBuilder] = {}

    def set_cache_size(self, size_bytes: int) -> "DatabaseBuilder":
        """Set the storage page cache size in bytes."""
        self.cache_size_bytes = size_bytes
        return self

    def define(self, model_cls: type) -> None:
        """Register a model class declared with ``native_db``.

        Raises :class:`DuplicateModelVersion` when a model with the same id
        and version is already defined.
        """
        model = native_db_model(model_cls)
        model_id, version = _model_identity(model)
        new = _ModelBuilder(model, NativeModelOptions(model_id, version))
        new_name = model.primary_key.unique_table_name

        for existing in self._models.values():
            options = existing.native_model_options
            if (options.native_model_id, options.native_model_version) == (model_id, version):
                raise DuplicateModelVersion(
                    existing.model.primary_key.unique_table_name, new_name
                )

        for existing in self._models.values():
            options = existing.native_model_options
            if options.native_model_version > version:
                options.native_model_legacy = False
                new.native_model_options.native_model_legacy = True
            else:
                options.native_model_legacy = True
                new.native_model_options.native_model_legacy = False

        self._models[new_name] = new

    def _init(self, storage: Storage) -> Database:
        try:
            if self.cache_size_bytes is not None:
                storage._set_cache_size(self.cache_size_bytes)
            database = Database(storage)
            for model_builder in self._models.values():
                database._seed_model(model_builder)
        except BaseException:
            storage.close()
            raise
        return database

    def create(self, path: Union[str, Path]) -> Database:
        """Create, or open if it already exists, the database file at ``path``."""
        return self._init(Storage.open(path, create=True))

    def open(self, path: Union[str, Path]) -> Database:
        """Open the existing database file at ``path``."""
        return self._init(Storage.open(path, create=False))

    def create_in_memory(self) -> Database:
        """Create a database that lives in memory only."""
        return self._init(Storage.in_memory())