"""Model declaration, key extraction and record serialization."""

from __future__ import annotations

import dataclasses
import pickle
import struct
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from keyedstore.errors import (
    SecondaryKeyConstraintMismatch,
    SecondaryKeyDefinitionNotFound,
    StorageError,
)
from keyedstore.keys import (
    DefaultKeyValue,
    FloatType,
    InnerKeyValue,
    IntType,
    KeyDefinition,
    KeyValue,
    OptionalKeyValue,
    SecondaryKeyOptions,
    composite_key,
    to_key,
)

KeyType = Optional[Union[IntType, FloatType]]

_MARK = "keyedstore.key"
_HEADER = struct.Struct("<II")
_SPEC_ATTR = "_native_db_spec"
_FLAGS = ("unique", "optional")


@dataclass(frozen=True)
class DatabaseModel:
    """The key layout of a model: its primary key and its secondary keys."""

    primary_key: KeyDefinition
    secondary_keys: frozenset = frozenset()

    def check_secondary_options(
        self,
        secondary_key: KeyDefinition,
        check: Callable[[SecondaryKeyOptions], bool],
    ) -> None:
        """Raise unless ``secondary_key`` exists and its options pass ``check``."""
        found = next((key for key in self.secondary_keys if key == secondary_key), None)
        if found is None:
            raise SecondaryKeyDefinitionNotFound(
                self.primary_key.unique_table_name, secondary_key.unique_table_name
            )
        if not check(found.options):
            raise SecondaryKeyConstraintMismatch(
                self.primary_key.unique_table_name,
                secondary_key.unique_table_name,
                found.options,
            )


@dataclass(frozen=True)
class DatabaseInput:
    """A record ready to be stored: its keys and its encoded value."""

    primary_key: InnerKeyValue
    secondary_keys: dict
    value: bytes

    def secondary_key_value(self, secondary_key_def: KeyDefinition) -> KeyValue:
        """Return the key stored in the secondary index for this record.

        Non-unique keys are suffixed with the primary key so that several
        records can share the same secondary value.
        """
        try:
            secondary = self.secondary_keys[secondary_key_def]
        except KeyError:
            raise SecondaryKeyDefinitionNotFound(
                "", secondary_key_def.unique_table_name
            ) from None
        options = secondary_key_def.options or SecondaryKeyOptions()
        if options.unique:
            return secondary
        if isinstance(secondary, DefaultKeyValue):
            return DefaultKeyValue(composite_key(secondary.value, self.primary_key))
        if secondary.value is None:
            return OptionalKeyValue(None)
        return OptionalKeyValue(composite_key(secondary.value, self.primary_key))


@dataclass(frozen=True)
class OutputValue:
    """An encoded record read back from storage."""

    data: bytes

    def inner(self, model_cls: type) -> Any:
        """Decode the record as an instance of ``model_cls``."""
        return decode(model_cls, self.data)


@dataclass(frozen=True)
class _PrimaryMarker:
    key_type: KeyType


@dataclass(frozen=True)
class _SecondaryMarker:
    options: SecondaryKeyOptions
    key_type: KeyType


@dataclass(frozen=True)
class _KeySource:
    attr: str
    is_field: bool
    key_type: KeyType = None

    @property
    def name(self) -> str:
        return self.attr.lower()

    def read(self, obj: Any) -> Any:
        value = getattr(obj, self.attr)
        return value if self.is_field else value()

    def encode(self, value: Any) -> InnerKeyValue:
        if self.key_type is not None:
            return self.key_type.encode(value)
        return to_key(value)


@dataclass(frozen=True)
class _ModelSpec:
    name: str
    model_id: int
    version: int
    primary: _KeySource
    secondaries: tuple  # of (_KeySource, KeyDefinition)
    model: DatabaseModel


def primary_key(key_type: KeyType = None) -> Any:
    """Mark a dataclass field as the model's primary key."""
    return dataclasses.field(metadata={_MARK: _PrimaryMarker(key_type)})


def secondary_key(
    unique: bool = False, optional: bool = False, key_type: KeyType = None
) -> Any:
    """Mark a dataclass field as a secondary key."""
    options = SecondaryKeyOptions(unique=unique, optional=optional)
    return dataclasses.field(metadata={_MARK: _SecondaryMarker(options, key_type)})


def _require_method(cls: type, name: str) -> None:
    if not callable(getattr(cls, name, None)):
        raise TypeError(f"{cls.__name__} has no method {name!r}")


def _parse_secondary_entry(entry: Union[str, tuple]) -> tuple:
    if isinstance(entry, str):
        return entry, SecondaryKeyOptions()
    if not isinstance(entry, tuple) or not entry or not isinstance(entry[0], str):
        raise ValueError(f"Unknown attribute: {entry!r}")
    name, *flags = entry
    for flag in flags:
        if flag not in _FLAGS:
            raise ValueError(f"Unknown attribute: {flag}")
    return name, SecondaryKeyOptions(
        unique="unique" in flags, optional="optional" in flags
    )


def _build_spec(
    cls: type,
    model_id: int,
    version: int,
    primary_method: Optional[str],
    secondary_entries: Iterable[Union[str, tuple]],
) -> _ModelSpec:
    primary: Optional[_KeySource] = None
    if primary_method is not None:
        _require_method(cls, primary_method)
        primary = _KeySource(primary_method, is_field=False)

    secondaries: dict[str, tuple] = {}
    for entry in secondary_entries:
        name, options = _parse_secondary_entry(entry)
        _require_method(cls, name)
        secondaries.setdefault(name, (_KeySource(name, is_field=False), options))

    if dataclasses.is_dataclass(cls):
        for fld in dataclasses.fields(cls):
            marker = fld.metadata.get(_MARK)
            if isinstance(marker, _PrimaryMarker):
                primary = _KeySource(fld.name, True, marker.key_type)
            elif isinstance(marker, _SecondaryMarker):
                secondaries.setdefault(
                    fld.name,
                    (_KeySource(fld.name, True, marker.key_type), marker.options),
                )

    if primary is None:
        raise TypeError(f"Primary key is not set on {cls.__name__}")

    primary_def = KeyDefinition.new(model_id, version, primary.name, None)
    resolved = tuple(
        (source, KeyDefinition.new(model_id, version, source.name, options))
        for source, options in secondaries.values()
    )
    model = DatabaseModel(
        primary_key=primary_def,
        secondary_keys=frozenset(definition for _, definition in resolved),
    )
    return _ModelSpec(cls.__name__, model_id, version, primary, resolved, model)


def native_db(
    cls: Optional[type] = None,
    *,
    id: int,
    version: int,
    primary_key: Optional[str] = None,
    secondary_keys: Iterable[Union[str, tuple]] = (),
) -> Any:
    """Declare a class as a stored model.

    Apply it above ``@dataclass``. ``primary_key`` names a method computing
    the primary key; ``secondary_keys`` lists method names, or tuples of a
    method name followed by the flags ``"unique"`` and ``"optional"``.
    Fields marked with :func:`primary_key` or :func:`secondary_key` are
    keys too; a primary key field takes precedence over a method.
    """
    entries = tuple(secondary_keys)

    def wrap(model_cls: type) -> type:
        spec = _build_spec(model_cls, id, version, primary_key, entries)
        setattr(model_cls, _SPEC_ATTR, spec)
        return model_cls

    if cls is None:
        return wrap
    return wrap(cls)


def _spec_of(model: Any) -> _ModelSpec:
    cls = model if isinstance(model, type) else type(model)
    spec = getattr(cls, _SPEC_ATTR, None)
    if not isinstance(spec, _ModelSpec):
        raise TypeError(f"{cls.__name__} is not a native_db model")
    return spec


def native_db_model(model_cls: type) -> DatabaseModel:
    """Return the key layout of a model class."""
    return _spec_of(model_cls).model


def native_db_primary_key(obj: Any) -> InnerKeyValue:
    """Compute the encoded primary key of a model instance."""
    source = _spec_of(obj).primary
    return source.encode(source.read(obj))


def native_db_secondary_keys(obj: Any) -> dict:
    """Compute every secondary key value of a model instance."""
    result: dict = {}
    for source, definition in _spec_of(obj).secondaries:
        value = source.read(obj)
        if definition.options.optional:
            encoded = None if value is None else source.encode(value)
            result[definition] = OptionalKeyValue(encoded)
        else:
            result[definition] = DefaultKeyValue(source.encode(value))
    return result


def to_item(obj: Any) -> DatabaseInput:
    """Turn a model instance into a record ready to be stored."""
    return DatabaseInput(
        primary_key=native_db_primary_key(obj),
        secondary_keys=native_db_secondary_keys(obj),
        value=encode(obj),
    )


def encode(obj: Any) -> bytes:
    """Serialize a model instance with its model id and version header."""
    spec = _spec_of(obj)
    try:
        state = vars(obj)
    except TypeError:
        raise TypeError(f"Failed to serialize the struct {spec.name}") from None
    body = pickle.dumps(dict(state), protocol=pickle.HIGHEST_PROTOCOL)
    return _HEADER.pack(spec.model_id, spec.version) + body


def decode(model_cls: type, data: bytes) -> Any:
    """Deserialize bytes produced by :func:`encode` into ``model_cls``."""
    spec = _spec_of(model_cls)
    raw = bytes(data)
    failure = f"Failed to deserialize the struct {spec.name}"
    if len(raw) < _HEADER.size:
        raise StorageError(failure)
    model_id, version = _HEADER.unpack_from(raw)
    if (model_id, version) != (spec.model_id, spec.version):
        raise StorageError(failure)
    try:
        state = pickle.loads(raw[_HEADER.size:])
    except Exception:
        raise StorageError(failure) from None
    if not isinstance(state, dict):
        raise StorageError(failure)
    obj = model_cls.__new__(model_cls)
    obj.__dict__.update(state)
    return obj