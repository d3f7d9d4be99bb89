"""
Asset names and units of a collection.

Every NFT asset name is exactly laid out as:

    label (4) | purpose (1) | sequence (3, big-endian) | content (<= 24)

so minting one item always mints a reference token (label 100) and a user
token (label 222) sharing purpose, sequence and content. Management tokens
(info, owner) use the Management purpose followed by "Collection".

A unit is the hex policy id followed by the hex asset name.
"""
import enum
from dataclasses import dataclass
from typing import Tuple

from collection_contract_config import (
    ASSET_NAME_MAX_BYTES,
    CIP68_REFERENCE_LABEL,
    CIP68_USER_LABEL,
    COLLECTION_OWNER_TOKEN_LABEL,
    COLLECTION_STATE_ASSET_NAME,
    COLLECTION_TOKEN_CONTENT,
    CONTENT_NAME_MAX_BYTES,
    NFT_TOKEN_LABEL,
    LABEL_NUM_BYTES,
    POLICY_ID_BYTE_LENGTH,
    PURPOSE_NUM_BYTES,
    REFERENCE_TOKEN_LABEL,
    ROYALTY_TOKEN_CONTENT,
    ROYALTY_TOKEN_LABEL,
    SCRIPT_REFERENCE_TOKEN_LABEL,
    SEQUENCE_MAX_VALUE,
    SEQUENCE_NUM_BYTES,
)
from collection_errors import EncodingError, RangeError


class CollectionTokenPurpose(enum.Enum):
    """Management tokens carry collection state/info, NFT tokens are items."""
    MANAGEMENT = 0x00
    NFT = 0x01


@dataclass(frozen=True)
class NftAssetName:
    label: int
    purpose: CollectionTokenPurpose
    sequence: int
    content: str


# =============================================================================
# CIP-67 LABELS
# =============================================================================

def _crc8(data: bytes) -> int:
    """CRC-8 (polynomial 0x07) used as the CIP-67 label checksum."""
    crc = 0
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x80:
                crc = ((crc << 1) ^ 0x07) & 0xFF
            else:
                crc = (crc << 1) & 0xFF
    return crc


def to_label(label: int) -> bytes:
    """Encode a CIP-67 label: 0000 | 16 bit number | 8 bit checksum | 0000."""
    if label < 0 or label > 0xFFFF:
        raise RangeError(f"Label {label} is outside 0..65535")
    number = label.to_bytes(2, "big")
    value = (label << 12) | (_crc8(number) << 4)
    return value.to_bytes(LABEL_NUM_BYTES, "big")


def from_label(prefix: bytes) -> int:
    """Decode and verify a 4 byte CIP-67 label prefix."""
    if len(prefix) != LABEL_NUM_BYTES:
        raise EncodingError("A label is exactly 4 bytes")
    value = int.from_bytes(prefix, "big")
    if value & 0xF000000F:
        raise EncodingError(f"Not a CIP-67 label: {prefix.hex()}")
    label = (value >> 12) & 0xFFFF
    if to_label(label) != prefix:
        raise EncodingError(f"Label checksum mismatch for {prefix.hex()}")
    return label


# =============================================================================
# SEQUENCE / PURPOSE
# =============================================================================

def sequence_bytes(sequence: int) -> bytes:
    """Fixed 3 byte big-endian sequence number."""
    if sequence < 0 or sequence >= SEQUENCE_MAX_VALUE:
        raise RangeError(f"Sequence {sequence} is outside 0..{SEQUENCE_MAX_VALUE - 1}")
    return sequence.to_bytes(SEQUENCE_NUM_BYTES, "big")


def decode_sequence(data: bytes) -> int:
    if len(data) != SEQUENCE_NUM_BYTES:
        raise RangeError(f"A sequence number is exactly {SEQUENCE_NUM_BYTES} bytes")
    return int.from_bytes(data, "big")


def purpose_byte(purpose: CollectionTokenPurpose) -> bytes:
    if purpose is CollectionTokenPurpose.MANAGEMENT:
        return b"\x00"
    if purpose is CollectionTokenPurpose.NFT:
        return b"\x01"
    raise EncodingError(f"Unknown token purpose {purpose!r}")


def truncate_content(content: str) -> bytes:
    """UTF-8 content trimmed to the content budget without splitting a character."""
    encoded = content[:CONTENT_NAME_MAX_BYTES].encode("utf-8")
    if len(encoded) <= CONTENT_NAME_MAX_BYTES:
        return encoded
    return encoded[:CONTENT_NAME_MAX_BYTES].decode("utf-8", errors="ignore").encode("utf-8")


# =============================================================================
# ASSET NAMES
# =============================================================================

def build_asset_name(label: int, purpose: CollectionTokenPurpose, sequence: int, content: str) -> bytes:
    return to_label(label) + purpose_byte(purpose) + sequence_bytes(sequence) + truncate_content(content)


def nft_reference_asset_name(sequence: int, content: str) -> bytes:
    """Create CIP-68 reference NFT name: (100) prefix + NFT purpose + sequence + content."""
    return build_asset_name(REFERENCE_TOKEN_LABEL, CollectionTokenPurpose.NFT, sequence, content)


def nft_user_asset_name(sequence: int, content: str) -> bytes:
    """Create CIP-68 user NFT name: (222) prefix + NFT purpose + sequence + content."""
    return build_asset_name(NFT_TOKEN_LABEL, CollectionTokenPurpose.NFT, sequence, content)


def decode_asset_name(name: bytes) -> NftAssetName:
    """Split an asset name built by ``build_asset_name`` into its parts."""
    prefix_len = LABEL_NUM_BYTES + PURPOSE_NUM_BYTES + SEQUENCE_NUM_BYTES
    if len(name) < prefix_len or len(name) > ASSET_NAME_MAX_BYTES:
        raise EncodingError(f"Asset name of {len(name)} bytes is not a collection asset name")

    label = from_label(name[:LABEL_NUM_BYTES])
    try:
        purpose = CollectionTokenPurpose(name[LABEL_NUM_BYTES])
    except ValueError as err:
        raise EncodingError(f"Unknown purpose byte {name[LABEL_NUM_BYTES]:#04x}") from err
    sequence = decode_sequence(name[LABEL_NUM_BYTES + PURPOSE_NUM_BYTES:prefix_len])
    content = name[prefix_len:].decode("utf-8", errors="replace")
    return NftAssetName(label=label, purpose=purpose, sequence=sequence, content=content)


# =============================================================================
# UNITS
# =============================================================================

def check_policy_id(policy_id: str) -> bool:
    """Sanity check for a 28 byte hex string. Does not prove it is a real policy."""
    if len(policy_id) != 2 * POLICY_ID_BYTE_LENGTH:
        return False
    try:
        bytes.fromhex(policy_id)
    except ValueError:
        return False
    return True


def to_unit(policy_id: str, asset_name: bytes) -> str:
    return policy_id + asset_name.hex()


def from_unit(unit: str) -> Tuple[str, bytes]:
    policy_id = unit[:2 * POLICY_ID_BYTE_LENGTH]
    if not check_policy_id(policy_id):
        raise EncodingError(f"Unit {unit!r} does not start with a policy id")
    try:
        return policy_id, bytes.fromhex(unit[2 * POLICY_ID_BYTE_LENGTH:])
    except ValueError as err:
        raise EncodingError(f"Unit {unit!r} has a malformed asset name") from err


def nft_reference_unit(policy_id: str, sequence: int, content: str) -> str:
    return to_unit(policy_id, nft_reference_asset_name(sequence, content))


def nft_user_unit(policy_id: str, sequence: int, content: str) -> str:
    return to_unit(policy_id, nft_user_asset_name(sequence, content))


def nft_reference_prefix(policy_id: str) -> str:
    """Unit prefix shared by every reference NFT of a collection."""
    return to_unit(policy_id, CIP68_REFERENCE_LABEL + purpose_byte(CollectionTokenPurpose.NFT))


def _manage_unit(policy_id: str, label: int) -> str:
    name = to_label(label) + purpose_byte(CollectionTokenPurpose.MANAGEMENT) + COLLECTION_TOKEN_CONTENT.encode()
    return to_unit(policy_id, name)


def info_unit(policy_id: str) -> str:
    """Management reference unit (label 100) holding the collection info."""
    return _manage_unit(policy_id, REFERENCE_TOKEN_LABEL)


def owner_unit(policy_id: str) -> str:
    """Management owner unit (label 111)."""
    return _manage_unit(policy_id, COLLECTION_OWNER_TOKEN_LABEL)


def state_unit(policy_id: str) -> str:
    return to_unit(policy_id, COLLECTION_STATE_ASSET_NAME)


def royalty_unit(policy_id: str) -> str:
    """CIP-102 royalty token unit (label 500)."""
    return to_unit(policy_id, to_label(ROYALTY_TOKEN_LABEL) + ROYALTY_TOKEN_CONTENT.encode())


def script_reference_unit(policy_id: str, script_name: str) -> str:
    """
    Unit of a token holding a script reference. ``policy_id`` is the
    derivative/delegate policy, NOT the collection minting policy.
    """
    encoded = script_name.encode("utf-8")
    if LABEL_NUM_BYTES + len(encoded) > ASSET_NAME_MAX_BYTES:
        raise EncodingError(
            f"Script name {script_name!r} does not fit in {ASSET_NAME_MAX_BYTES - LABEL_NUM_BYTES} bytes"
        )
    return to_unit(policy_id, to_label(SCRIPT_REFERENCE_TOKEN_LABEL) + encoded)


def nft_user_prefix(policy_id: str) -> str:
    """Unit prefix shared by every user NFT of a collection."""
    return to_unit(policy_id, CIP68_USER_LABEL + purpose_byte(CollectionTokenPurpose.NFT))
