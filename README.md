# keyedstore

An embedded store for Python objects. You declare a model class once —
which attribute or method gives its primary key, and which give its secondary
keys — and keyedstore lays out one table for the model plus one table per
secondary key, with keys encoded as byte strings that sort in key order.

keyedstore has no runtime dependencies; tables are kept with the standard
library's `sqlite3`.

## Installation

```
pip install keyedstore
```

To run the test suite:

```
pip install "keyedstore[test]"
pytest
```

## Package layout

| Module                | What it holds                                                                 |
|-----------------------|-------------------------------------------------------------------------------|
| `keyedstore.keys`     | Key encoding (`to_key`, `IntType`, `FloatType`, `encode_char`, `InnerKeyValue`, `composite_key`), `KeyRange`, `KeyDefinition`, `SecondaryKeyOptions`, `DefaultKeyValue`, `OptionalKeyValue` |
| `keyedstore.model`    | Model declaration (`native_db`, `primary_key`, `secondary_key`), key extraction, `encode`/`decode` |
| `keyedstore.storage`  | `Storage`: named tables of byte keys and byte values, with commit and rollback |
| `keyedstore.database` | `DatabaseBuilder`, `Database`, `Stats`/`StatsTable`, snapshots                 |
| `keyedstore.errors`   | The exception hierarchy, rooted at `DatabaseError`                            |

## Keys

`to_key(value)` turns a value into an `InnerKeyValue`, a frozen, ordered
wrapper around bytes:

- `str` — its UTF-8 bytes; `bytes`, `bytearray`, `memoryview` — as is;
- `int` — unsigned 64-bit big-endian; `float` — 64-bit IEEE big-endian;
- `None` — the empty key;
- `tuple` and `list` — the concatenation of the keys of their items;
- `uuid.UUID` — its 16 bytes;
- `datetime.datetime` — its whole-second Unix timestamp as a signed 64-bit integer.

`bool` and other types raise `TypeError`. Other widths are chosen explicitly
with `IntType` (`U8` … `U128`, `I8` … `I128`) and `FloatType` (`F32`, `F64`);
a value that does not fit raises `OverflowError`. `encode_char(c)` writes a
single character's code point as four big-endian bytes.

```python
from keyedstore.keys import IntType, composite_key, to_key

IntType.U32.encode(1).data      # b"\x00\x00\x00\x01"
composite_key(to_key("test"), to_key("1")).data   # b"test1"
```

`KeyRange.from_bounds(start, end, start_inclusive, end_inclusive)` builds a
range over encoded keys; `key in rng` (or `rng.contains(key)`) tests
membership. A start bound is always included, and the end is only inclusive
when both bounds are given and `end_inclusive` is set.

A `KeyDefinition` names a key's table as `"<model id>_<version>_<name>"`; two
definitions are equal when their table names are, whatever their options.

```python
from keyedstore.keys import KeyDefinition, SecondaryKeyOptions

KeyDefinition.new(1, 1, "name", SecondaryKeyOptions()).unique_table_name  # "1_1_name"
KeyDefinition.from_name("name").unique_table_name                          # "0_0_name"
```

`SecondaryKeyOptions` has two flags, `unique` and `optional`, both off by
default.

## Models

Apply `native_db` above `@dataclass`. Keys are either fields marked with
`primary_key()` / `secondary_key()`, or methods named in the decorator;
key names are lower-cased when building table names. A primary key field
takes precedence over a primary key method, and a model without a primary
key raises `TypeError`.

```python
from dataclasses import dataclass
from keyedstore.keys import IntType
from keyedstore.model import native_db, primary_key, secondary_key


@native_db(id=1, version=1)
@dataclass
class Item:
    id: int = primary_key(key_type=IntType.U32)
    name: str = secondary_key(unique=True)


@native_db(id=2, version=1, primary_key="pk", secondary_keys=[("tag", "optional")])
@dataclass
class Note:
    id: int
    label: str | None

    def pk(self) -> str:
        return str(self.id)

    def tag(self) -> str | None:
        return self.label
```

`secondary_keys` entries are method names, or tuples of a method name
followed by `"unique"` and/or `"optional"`; any other flag raises
`ValueError`.

For a declared model:

- `native_db_model(cls)` returns its `DatabaseModel` (primary `KeyDefinition`
  and the set of secondary ones); `DatabaseModel.check_secondary_options`
  raises `SecondaryKeyDefinitionNotFound` or `SecondaryKeyConstraintMismatch`.
- `native_db_primary_key(obj)` returns the encoded primary key.
- `native_db_secondary_keys(obj)` maps each secondary `KeyDefinition` to a
  `DefaultKeyValue`, or an `OptionalKeyValue` (holding `None` when the value
  is absent) for optional keys.
- `to_item(obj)` gathers both with the encoded value into a `DatabaseInput`;
  its `secondary_key_value(definition)` returns the key to store in that
  secondary table — for non-unique keys, the secondary value followed by the
  primary key.
- `encode(obj)` serializes the instance with a header of its model id and
  version; `decode(cls, data)` reverses it, raising `StorageError` when the
  header does not match the class or the data is damaged.
  `OutputValue(data).inner(cls)` does the same.

## Storage

`Storage.open(path, create=False)`, `Storage.in_memory()` and the methods
`open_table`, `has_table`, `insert`, `get`, `remove`, `items` (ordered by
key bytes), `length`, `commit`, `rollback` and `close` work on named tables
of bytes. Changes are pending until `commit`. Opening a missing file without
`create` raises `StorageError`.

## Databases

```python
from keyedstore.database import DatabaseBuilder

builder = DatabaseBuilder()
builder.define(Item)
db = builder.create_in_memory()

for table in db.redb_stats().primary_tables:
    print(table.name, table.n_entries)    # 1_1_id 0
db.close()
```

- `create(path)` opens the database file at `path`, creating it if missing;
- `open(path)` opens an existing file;
- `create_in_memory()` gives a database that lives only in memory.

Each creates every defined model's primary and secondary tables.
`set_cache_size(size_bytes)` may be called first; it returns the builder.

Defining two models with the same id and version raises
`DuplicateModelVersion`. Each defined model carries `NativeModelOptions`
(`native_model_id`, `native_model_version`, `native_model_legacy`); when a
model is defined it is compared with each model already defined, and the one
with the lower version is flagged as legacy.

`Database.primary_table_definitions` maps each primary table name to its
`PrimaryTableDefinition`. `Database.redb_stats()` returns a `Stats` with the
primary and secondary tables, each sorted by name, and their entry counts
(`None` for a table that does not exist). `Database.snapshot(builder, path)`
copies every table into a new database at `path` and returns it. A `Database`
is a context manager and has `close()`.

## What keyedstore does not do

There is no transaction or query layer over models: a `Database` has no
methods to insert, fetch, update, remove, count or drain model instances by
primary or secondary key, no uniqueness checks on insert, no change
notifications and no conversion between model versions. Records can be
written through `Database.storage`, using `to_item` and
`DatabaseInput.secondary_key_value` to obtain the keys and value, and read
back with `decode`.

## Errors

All errors derive from `keyedstore.errors.DatabaseError`: `StorageError`,
`TableDefinitionNotFound`, `SecondaryKeyDefinitionNotFound`,
`SecondaryKeyConstraintMismatch`, `NotUniqueSecondaryKey`, `KeyNotFound`,
`PrimaryKeyNotFound`, `DuplicateKey`, `MigrateLegacyModel` and
`DuplicateModelVersion`.