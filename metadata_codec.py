"""
Deterministic chunking and encoding of text and metadata fields.

Plutus data byte strings and transaction metadata strings are both limited to
64 bytes, so long text is split into ordered chunks and joined back on read.
Free-form metadata (NFT maps, collection extra) is converted between a
JSON-like Python value and plutus data the same way the contracts read it:
strings become UTF-8 bytes unless they carry a ``0x`` prefix, in which case
they are raw hex bytes.
"""
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from cbor2 import CBORTag
from pycardano.plutus import PlutusData, RawPlutusData
from pycardano.serialization import IndefiniteList

from collection_contract_config import METADATA_CHUNK_SIZE, REFERENCE_DATA_VERSION
from collection_datum_types import (
    Absent,
    FalseData,
    SomeBytes,
    SomeInt,
    TrueData,
)
from collection_errors import EncodingError

HEX_PREFIX = "0x"

# cbor tags of constructor 0 and 1 (False / True)
_FALSE_TAG = 121
_TRUE_TAG = 122


# =============================================================================
# CHUNKING
# =============================================================================

def chunk(text: str, chars_per_chunk: int = METADATA_CHUNK_SIZE, prefix: str = "") -> List[str]:
    """
    Split ``text`` into ``ceil(len / chars_per_chunk)`` slices.

    ``prefix`` is applied to every chunk, mainly for ``0x`` on chunked hex.
    Empty text yields an empty list, never a single empty chunk.
    """
    if chars_per_chunk <= 0:
        raise EncodingError("Chunk size must be a positive number of characters")

    count = math.ceil(len(text) / chars_per_chunk)
    return [
        f"{prefix}{text[i * chars_per_chunk:(i + 1) * chars_per_chunk]}"
        for i in range(count)
    ]


def unchunk(chunks: Union[str, Sequence[str]], prefix: str = "") -> str:
    """Join chunks in order, dropping ``prefix`` from each chunk when given."""
    if isinstance(chunks, str):
        chunks = [chunks]
    if prefix:
        chunks = [c[len(prefix):] if c.startswith(prefix) else c for c in chunks]
    return "".join(chunks)


def as_chunked_bytes(text: str, bytes_per_chunk: int = METADATA_CHUNK_SIZE) -> List[bytes]:
    """UTF-8 encode ``text`` and split the bytes into fixed size records."""
    encoded = text.encode("utf-8")
    return [encoded[i:i + bytes_per_chunk] for i in range(0, len(encoded), bytes_per_chunk)]


def to_joined_text(chunks: Union[bytes, Iterable[bytes]]) -> str:
    """Reverse of ``as_chunked_bytes``. Multi-byte characters may span chunks."""
    if isinstance(chunks, (bytes, bytearray)):
        return bytes(chunks).decode("utf-8")
    return b"".join(bytes(c) for c in chunks).decode("utf-8")


def chunk_metadata_text(text: str, bytes_per_chunk: int = METADATA_CHUNK_SIZE) -> Union[str, List[str]]:
    """
    Transaction metadata form of ``text``: the string itself when it fits in
    one metadata string, otherwise a list of strings each within
    ``bytes_per_chunk`` UTF-8 bytes. Characters are never split.
    """
    if len(text.encode("utf-8")) <= bytes_per_chunk:
        return text

    chunks, current, size = [], [], 0
    for char in text:
        width = len(char.encode("utf-8"))
        if size + width > bytes_per_chunk:
            chunks.append("".join(current))
            current, size = [], 0
        current.append(char)
        size += width
    if current:
        chunks.append("".join(current))
    return chunks


# =============================================================================
# NULLABLE / BOOLEAN WRAPPERS
# =============================================================================

def as_nullable_bytes(value: Optional[bytes]):
    return Absent() if value is None else SomeBytes(value)


def as_nullable_int(value: Optional[int]):
    return Absent() if value is None else SomeInt(value)


def from_nullable(value) -> Any:
    """Unwrap any Some* constructor, absent decodes to None."""
    if isinstance(value, Absent):
        return None
    return value.value


def as_chain_boolean(flag: bool):
    return TrueData() if flag else FalseData()


def from_chain_boolean(value) -> bool:
    if isinstance(value, TrueData):
        return True
    if isinstance(value, FalseData):
        return False
    raise EncodingError(f"Not an on-chain boolean: {value!r}")


# =============================================================================
# REFERENCE DATA ENVELOPE
# =============================================================================

def create_reference_data(metadata, extra=b"", version: int = REFERENCE_DATA_VERSION) -> Dict[str, Any]:
    """Fields of the ``{metadata, version, extra}`` envelope every datum uses."""
    if version < 1:
        raise EncodingError("Reference data version must be a positive integer")
    return {"metadata": metadata, "version": version, "extra": extra}


# =============================================================================
# FREE-FORM VALUES
# =============================================================================

def remove_empty(value: Any) -> Any:
    """
    Return a copy of ``value`` with every ``None`` entry of a mapping removed,
    recursively. Plutus data and transaction metadata have no null primitive.
    """
    if isinstance(value, dict):
        return {k: remove_empty(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [remove_empty(v) for v in value]
    return value


def _text_or_hex(text: str) -> bytes:
    if text.startswith(HEX_PREFIX):
        try:
            return bytes.fromhex(text[len(HEX_PREFIX):])
        except ValueError as err:
            raise EncodingError(f"Invalid hex string {text!r}") from err
    return text.encode("utf-8")


def to_plutus_value(value: Any) -> Any:
    """
    Convert a JSON-like value into plutus data.

    str -> bytes, int -> int, bool -> constructor 0/1, list -> list,
    dict -> map with encoded keys. ``None`` is rejected, strip it first
    with ``remove_empty``.
    """
    if isinstance(value, bool):
        return as_chain_boolean(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return _text_or_hex(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, PlutusData):
        return value
    if isinstance(value, (list, tuple)):
        return [to_plutus_value(v) for v in value]
    if isinstance(value, dict):
        return {_text_or_hex(str(k)): to_plutus_value(v) for k, v in value.items()}
    if value is None:
        raise EncodingError("None has no plutus data representation, use remove_empty first")
    raise EncodingError(f"Unsupported metadata value of type {type(value).__name__}")


def as_chain_map(data: Dict[str, Any]) -> Dict[bytes, Any]:
    """Encode a record as ``Dict<bytearray, Data>``, the flexible metadata shape."""
    return {key.encode("utf-8"): to_plutus_value(value) for key, value in remove_empty(data).items()}


def _decode_bytes(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return HEX_PREFIX + value.hex()


def from_plutus_value(value: Any) -> Any:
    """Convert decoded plutus data back into a JSON-like value."""
    if isinstance(value, TrueData):
        return True
    if isinstance(value, FalseData):
        return False
    if isinstance(value, RawPlutusData):
        return from_plutus_value(value.data)
    if isinstance(value, CBORTag):
        if value.tag == _FALSE_TAG and not value.value:
            return False
        if value.tag == _TRUE_TAG and not value.value:
            return True
        raise EncodingError(f"Cannot convert constructor with tag {value.tag} to metadata")
    if isinstance(value, (bytes, bytearray)):
        return _decode_bytes(bytes(value))
    if isinstance(value, int):
        return value
    if isinstance(value, (list, tuple, IndefiniteList)):
        return [from_plutus_value(v) for v in value]
    if isinstance(value, dict):
        return {_decode_bytes(bytes(k)): from_plutus_value(v) for k, v in value.items()}
    raise EncodingError(f"Cannot convert {type(value).__name__} to metadata")
