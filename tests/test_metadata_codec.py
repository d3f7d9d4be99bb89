import pytest

from collection_datum_types import Absent, FalseData, SomeBytes, SomeInt, TrueData
from collection_errors import EncodingError
from metadata_codec import (
    as_chain_boolean,
    as_chain_map,
    as_chunked_bytes,
    as_nullable_bytes,
    as_nullable_int,
    chunk,
    chunk_metadata_text,
    create_reference_data,
    from_chain_boolean,
    from_nullable,
    from_plutus_value,
    remove_empty,
    to_joined_text,
    to_plutus_value,
    unchunk,
)


@pytest.mark.parametrize("text", ["", "a", "x" * 64, "x" * 65, "hello world " * 20, "żółć" * 40])
def test_unchunk_restores_chunked_text(text):
    assert unchunk(chunk(text)) == text


def test_chunk_of_empty_text_is_empty():
    assert chunk("") == []


def test_chunk_sizes():
    parts = chunk("a" * 130)
    assert [len(p) for p in parts] == [64, 64, 2]


def test_chunk_prefix_applied_to_every_part():
    parts = chunk("abcdef", 2, prefix="0x")
    assert parts == ["0xab", "0xcd", "0xef"]
    assert unchunk(parts, prefix="0x") == "abcdef"


def test_chunk_rejects_non_positive_size():
    with pytest.raises(EncodingError):
        chunk("abc", 0)


def test_chunked_bytes_join_across_multibyte_boundary():
    text = "é" * 100
    parts = as_chunked_bytes(text)
    assert all(len(p) <= 64 for p in parts)
    assert to_joined_text(parts) == text


def test_chunk_metadata_text_short_and_long():
    assert chunk_metadata_text("short") == "short"
    long = "ü" * 50
    parts = chunk_metadata_text(long)
    assert isinstance(parts, list)
    assert all(len(p.encode("utf-8")) <= 64 for p in parts)
    assert "".join(parts) == long


def test_nullable_wrappers():
    assert isinstance(as_nullable_bytes(None), Absent)
    assert as_nullable_bytes(b"ab") == SomeBytes(b"ab")
    assert as_nullable_int(0) == SomeInt(0)
    assert from_nullable(SomeInt(5)) == 5
    assert from_nullable(Absent()) is None


def test_chain_boolean():
    assert isinstance(as_chain_boolean(True), TrueData)
    assert isinstance(as_chain_boolean(False), FalseData)
    assert from_chain_boolean(TrueData()) is True
    assert from_chain_boolean(FalseData()) is False
    with pytest.raises(EncodingError):
        from_chain_boolean(SomeInt(1))


def test_reference_data_envelope():
    assert create_reference_data({b"a": 1}) == {"metadata": {b"a": 1}, "version": 1, "extra": b""}
    with pytest.raises(EncodingError):
        create_reference_data({}, version=0)


def test_remove_empty_is_recursive():
    value = {"a": None, "b": {"c": None, "d": 1}, "e": [{"f": None}]}
    assert remove_empty(value) == {"b": {"d": 1}, "e": [{}]}


def test_plutus_value_conversion():
    assert to_plutus_value("name") == b"name"
    assert to_plutus_value("0xdead") == bytes.fromhex("dead")
    assert isinstance(to_plutus_value(True), TrueData)
    assert to_plutus_value({"k": [1, "v"]}) == {b"k": [1, b"v"]}
    with pytest.raises(EncodingError):
        to_plutus_value(None)
    with pytest.raises(EncodingError):
        to_plutus_value("0xnothex")
    with pytest.raises(EncodingError):
        to_plutus_value(1.5)


def test_from_plutus_value():
    assert from_plutus_value({b"name": b"Ape", b"raw": b"\xff\x00"}) == {"name": "Ape", "raw": "0xff00"}
    assert from_plutus_value([TrueData(), FalseData(), 3]) == [True, False, 3]


def test_as_chain_map_drops_empty_fields():
    assert as_chain_map({"name": "x", "image": None}) == {b"name": b"x"}
