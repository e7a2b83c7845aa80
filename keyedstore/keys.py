"""Key encoding, key definitions and key ranges."""

from __future__ import annotations

import datetime as _dt
import enum
import struct
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True, order=True)
class InnerKeyValue:
    """An encoded key: raw bytes compared lexicographically."""

    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))

    def extend(self, other: "InnerKeyValue") -> "InnerKeyValue":
        """Return a new key made of this key followed by ``other``."""
        return InnerKeyValue(self.data + to_key(other).data)

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return len(self.data)


class IntType(enum.Enum):
    """Fixed-width integer encodings, big-endian."""

    U8 = (8, False)
    U16 = (16, False)
    U32 = (32, False)
    U64 = (64, False)
    U128 = (128, False)
    I8 = (8, True)
    I16 = (16, True)
    I32 = (32, True)
    I64 = (64, True)
    I128 = (128, True)

    @property
    def bits(self) -> int:
        return self.value[0]

    @property
    def signed(self) -> bool:
        return self.value[1]

    def encode(self, value: int) -> InnerKeyValue:
        """Encode ``value`` as a big-endian integer of this width."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{self.name} key expects an int, got {type(value).__name__}")
        try:
            raw = value.to_bytes(self.bits // 8, "big", signed=self.signed)
        except OverflowError:
            raise OverflowError(f"{value} does not fit in {self.name}") from None
        return InnerKeyValue(raw)


class FloatType(enum.Enum):
    """IEEE-754 float encodings, big-endian."""

    F32 = ">f"
    F64 = ">d"

    def encode(self, value: float) -> InnerKeyValue:
        """Encode ``value`` as a big-endian float of this width."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{self.name} key expects a number, got {type(value).__name__}")
        return InnerKeyValue(struct.pack(self.value, float(value)))


def encode_char(char: str) -> InnerKeyValue:
    """Encode a single character as its code point in four big-endian bytes."""
    if not isinstance(char, str) or len(char) != 1:
        raise ValueError("encode_char expects a string of exactly one character")
    return IntType.U32.encode(ord(char))


def to_key(value: Any) -> InnerKeyValue:
    """Encode a Python value as a key.

    Strings are UTF-8, bytes are taken as is, plain ints are unsigned
    64-bit and floats 64-bit, both big-endian. ``None`` is the empty key;
    tuples and lists concatenate the keys of their items. Datetimes encode
    their whole-second Unix timestamp as a signed 64-bit integer and UUIDs
    their 16 bytes.
    """
    if isinstance(value, InnerKeyValue):
        return value
    if value is None:
        return InnerKeyValue(b"")
    if isinstance(value, str):
        return InnerKeyValue(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return InnerKeyValue(bytes(value))
    if isinstance(value, bool):
        raise TypeError("bool cannot be used as a key")
    if isinstance(value, int):
        return IntType.U64.encode(value)
    if isinstance(value, float):
        return FloatType.F64.encode(value)
    if isinstance(value, uuid.UUID):
        return InnerKeyValue(value.bytes)
    if isinstance(value, _dt.datetime):
        return IntType.I64.encode(int(value.timestamp() // 1))
    if isinstance(value, (tuple, list)):
        return InnerKeyValue(b"".join(to_key(item).data for item in value))
    raise TypeError(f"cannot use a value of type {type(value).__name__} as a key")


@dataclass(frozen=True)
class KeyRange:
    """A range over encoded keys.

    ``start``, when set, is always inclusive. ``end`` is inclusive only when
    ``end_inclusive`` is set.
    """

    start: Optional[InnerKeyValue] = None
    end: Optional[InnerKeyValue] = None
    end_inclusive: bool = False

    @classmethod
    def from_bounds(
        cls,
        start: Any = None,
        end: Any = None,
        start_inclusive: bool = True,
        end_inclusive: bool = False,
    ) -> "KeyRange":
        """Build a range from optional bounds.

        An excluded start is treated as included, and an end without a start
        is always excluded, matching the storage layer's range semantics.
        """
        del start_inclusive  # the start bound is always included
        start_key = None if start is None else to_key(start)
        end_key = None if end is None else to_key(end)
        inclusive = end_inclusive and start_key is not None and end_key is not None
        return cls(start=start_key, end=end_key, end_inclusive=inclusive)

    def contains(self, key: Any) -> bool:
        """Tell whether ``key`` lies inside the range."""
        encoded = to_key(key)
        if self.start is not None and encoded < self.start:
            return False
        if self.end is not None:
            if self.end_inclusive:
                return encoded <= self.end
            return encoded < self.end
        return True

    __contains__ = contains


@dataclass(frozen=True)
class SecondaryKeyOptions:
    """Options of a secondary key."""

    unique: bool = False
    optional: bool = False


@dataclass(frozen=True)
class KeyDefinition:
    """A key's table name and options; equal when table names are equal."""

    unique_table_name: str
    options: Any = field(default=None, compare=False)

    @classmethod
    def new(
        cls, model_id: int, model_version: int, name: str, options: Any = None
    ) -> "KeyDefinition":
        """Build the definition of key ``name`` of the given model version."""
        return cls(f"{model_id}_{model_version}_{name}", options)

    @classmethod
    def from_name(cls, name: str, options: Any = None) -> "KeyDefinition":
        """Build a definition for model id 0, version 0."""
        return cls.new(0, 0, name, options)


@dataclass(frozen=True)
class DefaultKeyValue:
    """A secondary key value that is always present."""

    value: InnerKeyValue


@dataclass(frozen=True)
class OptionalKeyValue:
    """A secondary key value that may be absent."""

    value: Optional[InnerKeyValue] = None


KeyValue = Union[DefaultKeyValue, OptionalKeyValue]


def composite_key(secondary_key: InnerKeyValue, primary_key: InnerKeyValue) -> InnerKeyValue:
    """Join a secondary key with its primary key, for non-unique indexes."""
    return to_key(secondary_key).extend(primary_key)