"""Exceptions raised by the database."""

from __future__ import annotations

from typing import Any


class DatabaseError(Exception):
    """Base class of every error the database raises."""


class StorageError(DatabaseError):
    """The underlying storage failed to open, read, write or commit."""

    def __init__(self, message: str = "Storage error") -> None:
        super().__init__(message)
        self.message = message


class TableDefinitionNotFound(DatabaseError):
    """No table is defined for the requested model."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table definition not found {table}")
        self.table = table


class SecondaryKeyDefinitionNotFound(DatabaseError):
    """The model has no secondary key with the requested name."""

    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"Secondary key definition not found {table} {key}")
        self.table = table
        self.key = key


class SecondaryKeyConstraintMismatch(DatabaseError):
    """A secondary key's options do not satisfy the operation's requirement."""

    def __init__(self, table: str, key: str, got: Any) -> None:
        super().__init__(f"Secondary key constraint mismatch {table} {key} got: {got!r}")
        self.table = table
        self.key = key
        self.got = got


class NotUniqueSecondaryKey(DatabaseError):
    """The operation needs a unique secondary key but the key is not unique."""

    def __init__(self, key_name: str) -> None:
        super().__init__(f"The secondary key {key_name} is not unique ")
        self.key_name = key_name


class KeyNotFound(DatabaseError):
    """No entry is stored under the given key."""

    def __init__(self, key: bytes) -> None:
        self.key = bytes(key)
        super().__init__(f"Key not found {list(self.key)}")


class PrimaryKeyNotFound(DatabaseError):
    """A secondary index entry points at a primary key that does not exist."""

    def __init__(self) -> None:
        super().__init__("Primary key associated with the secondary key not found")


class DuplicateKey(DatabaseError):
    """A unique key already holds a value."""

    def __init__(self, key_name: str) -> None:
        super().__init__(f'Duplicate key for "{key_name}"')
        self.key_name = key_name


class MigrateLegacyModel(DatabaseError):
    """A legacy model version cannot be migrated."""

    def __init__(self, table: str) -> None:
        super().__init__(
            f"You can not migrate the table {table} because it is a legacy model"
        )
        self.table = table


class DuplicateModelVersion(DatabaseError):
    """Two defined models share the same model id and version."""

    def __init__(self, table: str, other_table: str) -> None:
        super().__init__(
            f"The table {table} has the same native model version as the table "
            f"{other_table} and it's not allowed"
        )
        self.table = table
        self.other_table = other_table