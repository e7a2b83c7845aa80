import datetime
import uuid

import pytest

from keyedstore.keys import (
    DefaultKeyValue,
    FloatType,
    InnerKeyValue,
    IntType,
    KeyDefinition,
    KeyRange,
    OptionalKeyValue,
    SecondaryKeyOptions,
    composite_key,
    encode_char,
    to_key,
)


def test_range_from_source():
    stored = [IntType.U32.encode(0)]
    key_range = KeyRange.from_bounds(IntType.I32.encode(0), IntType.I32.encode(2))
    result = [k for k in stored if key_range.contains(k)]
    assert len(result) == 1


def test_u32_encoding_is_big_endian():
    assert IntType.U32.encode(1).data == b"\x00\x00\x00\x01"


def test_signed_encoding():
    assert IntType.I8.encode(-1).data == b"\xff"
    assert IntType.I16.encode(-2).data == b"\xff\xfe"


def test_int_overflow_raises():
    with pytest.raises(OverflowError):
        IntType.U8.encode(256)
    with pytest.raises(OverflowError):
        IntType.U32.encode(-1)


def test_int_rejects_non_int():
    with pytest.raises(TypeError):
        IntType.U32.encode("1")
    with pytest.raises(TypeError):
        IntType.U32.encode(True)


@pytest.mark.parametrize(
    "name,size",
    [
        ("U8", 1),
        ("U16", 2),
        ("U32", 4),
        ("U64", 8),
        ("I8", 1),
        ("I16", 2),
        ("I32", 4),
        ("I64", 8),
    ],
)
def test_int_widths(name, size):
    encoded = IntType[name].encode(5)
    assert len(encoded.data) == size
    assert encoded.data[-1] == 5


def test_float_encodings():
    assert FloatType.F64.encode(1.0).data == b"\x3f\xf0\x00\x00\x00\x00\x00\x00"
    assert FloatType.F32.encode(1.0).data == b"\x3f\x80\x00\x00"


def test_char_encoding():
    assert encode_char("A") == IntType.U32.encode(65)
    with pytest.raises(ValueError):
        encode_char("ab")


def test_to_key_strings_and_bytes():
    assert to_key("test").data == b"test"
    assert to_key(b"\x01\x02").data == b"\x01\x02"
    assert to_key(None).data == b""


def test_to_key_int_defaults_to_u64():
    assert to_key(1) == IntType.U64.encode(1)


def test_to_key_tuple_concatenates():
    assert to_key(("a", "b")) == to_key("ab")
    assert to_key([IntType.U8.encode(1), "x"]).data == b"\x01x"


def test_to_key_uuid_and_datetime():
    u = uuid.UUID(int=1)
    assert to_key(u).data == u.bytes
    epoch = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
    assert to_key(epoch) == IntType.I64.encode(0)


def test_to_key_rejects_unknown_and_bool():
    with pytest.raises(TypeError):
        to_key(object())
    with pytest.raises(TypeError):
        to_key(True)


def test_inner_key_value_passthrough_and_ordering():
    key = to_key("abc")
    assert to_key(key) is key
    assert to_key("a") < to_key("b")
    assert to_key("a") < to_key("ab")


def test_extend_and_composite_key():
    sk = to_key("test")
    pk = IntType.U32.encode(1)
    combined = composite_key(sk, pk)
    assert combined.data == b"test\x00\x00\x00\x01"
    assert sk.extend(pk) == combined
    assert sk.data == b"test"


def test_range_end_inclusive_and_exclusive():
    exclusive = KeyRange.from_bounds("a", "c")
    inclusive = KeyRange.from_bounds("a", "c", end_inclusive=True)
    assert not exclusive.contains("c")
    assert inclusive.contains("c")
    assert exclusive.contains("a")


def test_range_excluded_start_is_included():
    key_range = KeyRange.from_bounds("a", "c", start_inclusive=False)
    assert key_range.contains("a")


def test_range_without_start_excludes_end():
    key_range = KeyRange.from_bounds(end="c", end_inclusive=True)
    assert not key_range.contains("c")
    assert key_range.contains("b")


def test_full_and_open_ranges():
    assert KeyRange.from_bounds().contains("anything")
    from_b = KeyRange.from_bounds("b")
    assert "z" in from_b
    assert "a" not in from_b


def test_key_definition_table_name():
    definition = KeyDefinition.new(1, 1, "name", SecondaryKeyOptions())
    assert definition.unique_table_name == "1_1_name"
    assert KeyDefinition.from_name("id").unique_table_name == "0_0_id"


def test_key_definition_equality_ignores_options():
    a = KeyDefinition.new(4, 1, "name", SecondaryKeyOptions(unique=True))
    b = KeyDefinition.new(4, 1, "name", SecondaryKeyOptions())
    assert a == b
    assert hash(a) == hash(b)
    assert {a: 1}[b] == 1
    assert a != KeyDefinition.new(4, 1, "name2")


def test_secondary_key_options_defaults():
    options = SecondaryKeyOptions()
    assert (options.unique, options.optional) == (False, False)


def test_key_values_compare_by_content():
    assert DefaultKeyValue(to_key("test")) == DefaultKeyValue(to_key("test"))
    assert OptionalKeyValue(None) == OptionalKeyValue()
    assert OptionalKeyValue(to_key("test")) != DefaultKeyValue(to_key("test"))