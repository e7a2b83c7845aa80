from dataclasses import dataclass

import pytest

from keyedstore.database import DatabaseBuilder, StatsTable
from keyedstore.errors import DuplicateModelVersion, StorageError
from keyedstore.keys import IntType
from keyedstore.model import decode, native_db, primary_key, secondary_key, to_item


@native_db(id=1, version=1)
@dataclass
class Item:
    id: int = primary_key(key_type=IntType.U32)
    name: str = secondary_key()


@native_db(
    id=1,
    version=1,
    primary_key="generate_my_primary_key",
    secondary_keys=[("generate_my_secondary_key", "unique")],
)
@dataclass
class Tagged:
    id: int
    name: str
    tag: str

    def generate_my_primary_key(self):
        return self.id

    def generate_my_secondary_key(self):
        return f"{self.tag}{self.id}"


@native_db(id=1, version=1)
@dataclass
class OldItem:
    id: int = primary_key()


@native_db(id=2, version=2)
@dataclass
class NewItem:
    id: str = primary_key()


def _store(db, obj):
    item = to_item(obj)
    table = type(obj)
    primary = next(
        d for d in db.primary_table_definitions.values()
        if d.model.primary_key.unique_table_name.endswith(
            "_" + d.model.primary_key.unique_table_name.split("_", 2)[2]
        )
        and d.model == _model(table)
    )
    db.storage.insert(primary.name, item.primary_key.data, item.value)
    for definition in item.secondary_keys:
        key = item.secondary_key_value(definition)
        if key.value is not None:
            db.storage.insert(
                definition.unique_table_name, key.value.data, item.primary_key.data
            )
    db.storage.commit()


def _model(cls):
    from keyedstore.model import native_db_model

    return native_db_model(cls)


def test_stats_of_fresh_database():
    builder = DatabaseBuilder()
    builder.define(Item)
    with builder.create_in_memory() as db:
        stats = db.redb_stats()
    assert stats.primary_tables == [StatsTable("1_1_id", 0)]
    assert stats.secondary_tables == [StatsTable("1_1_name", 0)]


def test_stats_count_entries():
    builder = DatabaseBuilder()
    builder.define(Tagged)
    with builder.create_in_memory() as db:
        for number in range(1, 6):
            _store(db, Tagged(number, "test", "red"))
        stats = db.redb_stats()
    assert len(stats.primary_tables) == 1
    assert stats.primary_tables[0].name == "1_1_generate_my_primary_key"
    assert stats.primary_tables[0].n_entries == 5
    assert len(stats.secondary_tables) == 1
    assert stats.secondary_tables[0].name == "1_1_generate_my_secondary_key"
    assert stats.secondary_tables[0].n_entries == 5


def test_stats_sorted_by_name():
    builder = DatabaseBuilder()
    builder.define(NewItem)
    builder.define(OldItem)
    with builder.create_in_memory() as db:
        names = [table.name for table in db.redb_stats().primary_tables]
    assert names == sorted(names)
    assert set(names) == {"1_1_id", "2_2_id"}


def test_snapshot_copies_data(tmp_path):
    builder = DatabaseBuilder()
    builder.define(Item)
    item = Item(1, "test")
    with builder.create_in_memory() as db:
        _store(db, item)
        with db.snapshot(builder, tmp_path / "snapshot.db") as copy:
            raw = copy.storage.get("1_1_id", to_item(item).primary_key.data)
            assert decode(Item, raw) == item
            assert copy.redb_stats() == db.redb_stats()


def test_data_persists_across_open(tmp_path):
    path = tmp_path / "test"
    builder = DatabaseBuilder()
    builder.define(Item)
    item = Item(7, "seven")
    with builder.create(path) as db:
        _store(db, item)
    with builder.open(path) as db:
        stats = db.redb_stats()
        raw = db.storage.get("1_1_id", to_item(item).primary_key.data)
    assert stats.primary_tables[0].n_entries == 1
    assert decode(Item, raw) == item


def test_open_missing_file_raises(tmp_path):
    builder = DatabaseBuilder()
    builder.define(Item)
    with pytest.raises(StorageError):
        builder.open(tmp_path / "missing")


def test_duplicate_model_version_raises():
    builder = DatabaseBuilder()
    builder.define(Item)
    with pytest.raises(DuplicateModelVersion) as info:
        builder.define(OldItem)
    assert info.value.table == "1_1_id"
    assert info.value.other_table == "1_1_id"


def test_define_rejects_plain_class():
    builder = DatabaseBuilder()
    with pytest.raises(TypeError):
        builder.define(dict)


@pytest.mark.parametrize("order", [(OldItem, NewItem), (NewItem, OldItem)])
def test_older_version_is_legacy(order):
    builder = DatabaseBuilder()
    for cls in order:
        builder.define(cls)
    with builder.create_in_memory() as db:
        definitions = db.primary_table_definitions
        assert definitions["1_1_id"].native_model_options.native_model_legacy is True
        assert definitions["2_2_id"].native_model_options.native_model_legacy is False


def test_table_definition_repr():
    builder = DatabaseBuilder()
    builder.define(Item)
    with builder.create_in_memory() as db:
        text = repr(db.primary_table_definitions["1_1_id"])
    assert text.startswith("TableDefinition")
    assert "'1_1_id'" in text


def test_set_cache_size_chains():
    builder = DatabaseBuilder()
    assert builder.set_cache_size(1 << 20) is builder
    builder.define(Item)
    with builder.create_in_memory() as db:
        assert db.redb_stats().primary_tables[0].n_entries == 0


def test_closed_database_raises():
    builder = DatabaseBuilder()
    builder.define(Item)
    db = builder.create_in_memory()
    db.close()
    with pytest.raises(StorageError):
        db.redb_stats()