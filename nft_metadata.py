"""
NFT metadata and asset preparation.

Each NFT mints a CIP-68 pair: the reference token (label 100) carries the
metadata as an inline datum and goes to the NFT validator (or the
recipient when the collection has none), the user token (label 222) goes
to the recipient. Optionally the same metadata is attached as CIP-25.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pycardano import UTxO

from asset_naming import nft_reference_asset_name, nft_reference_prefix, nft_user_asset_name, to_unit
from collection_datum_types import NftMetadataWrapped
from collection_errors import ConfigurationError, EncodingError
from collection_info import ImageDimension, ImagePurpose
from ledger_client import LedgerClient, call_client, decode_datum, utxo_units
from metadata_codec import (
    as_chain_map,
    as_chunked_bytes,
    chunk_metadata_text,
    create_reference_data,
    from_plutus_value,
    remove_empty,
    to_joined_text,
)

NftTraitValue = Union[str, int]

ROYALTY_INCLUDED_KEY = b"royalty_included"


@dataclass(frozen=True)
class NftFile:
    """CIP-25/68 file with optional dimension and purpose hints."""
    src: str
    media_type: str
    name: Optional[str] = None
    dimension: Optional[ImageDimension] = None
    purpose: Optional[ImagePurpose] = None


@dataclass(frozen=True)
class Nft:
    name: str
    image: Optional[str] = None
    media_type: Optional[str] = None
    description: Optional[str] = None
    files: Tuple[NftFile, ...] = ()
    id: Optional[str] = None
    traits: Dict[str, NftTraitValue] = field(default_factory=dict)
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AddressedNft:
    metadata: Nft
    recipient: Optional[str] = None


@dataclass(frozen=True)
class NftBuilder:
    """Immutable helper to assemble an ``Nft``; every call returns a new builder."""
    nft_record: Nft

    @classmethod
    def nft(cls, name: str) -> "NftBuilder":
        if not name:
            raise ConfigurationError("An NFT needs a name")
        return cls(Nft(name=name))

    def thumbnail(self, src: str, media_type: str, dimension: Optional[ImageDimension] = None) -> "NftBuilder":
        return self.image(src, media_type, ImagePurpose.THUMBNAIL, dimension)

    def image(
        self,
        src: str,
        media_type: str,
        purpose: Optional[ImagePurpose] = None,
        dimension: Optional[ImageDimension] = None,
    ) -> "NftBuilder":
        record = self.nft_record
        files = record.files + (NftFile(src=src, media_type=media_type, purpose=purpose, dimension=dimension),)
        if purpose is ImagePurpose.THUMBNAIL:
            record = replace(record, image=src, media_type=media_type)
        return NftBuilder(replace(record, files=files))

    def description(self, description: str) -> "NftBuilder":
        return NftBuilder(replace(self.nft_record, description=description))

    def id(self, nft_id: str) -> "NftBuilder":
        return NftBuilder(replace(self.nft_record, id=nft_id))

    def trait(self, key: str, value: NftTraitValue) -> "NftBuilder":
        return self.traits({**self.nft_record.traits, key: value})

    def traits(self, traits: Dict[str, NftTraitValue]) -> "NftBuilder":
        return NftBuilder(replace(self.nft_record, traits=dict(traits)))

    def tag(self, tag: str) -> "NftBuilder":
        return self.tags(self.nft_record.tags + (tag,))

    def tags(self, tags: Sequence[str]) -> "NftBuilder":
        return NftBuilder(replace(self.nft_record, tags=tuple(tags)))

    def build(self) -> Nft:
        return self.nft_record


# =============================================================================
# CHAIN ENCODING (CIP-68 reference datum)
# =============================================================================

def _utf8(text: Optional[str]) -> Optional[bytes]:
    return None if text is None else text.encode("utf-8")


def _file_record(nft_file: NftFile) -> Dict[str, Any]:
    return {
        "name": _utf8(nft_file.name),
        "mediaType": _utf8(nft_file.media_type),
        "src": as_chunked_bytes(nft_file.src),
        "dimension": None if nft_file.dimension is None else {
            "width": nft_file.dimension.width,
            "height": nft_file.dimension.height,
        },
        "purpose": None if nft_file.purpose is None else nft_file.purpose.value,
    }


def as_chain_nft_data(nft: Nft) -> Dict[bytes, Any]:
    """
    Metadata map of the reference datum.

    Fixed text fields are stored as UTF-8 bytes, description and file
    sources as 64 byte chunks. Only traits and tags are free-form values.
    """
    record = {
        "name": _utf8(nft.name),
        "image": _utf8(nft.image),
        "mediaType": _utf8(nft.media_type),
        "description": as_chunked_bytes(nft.description) if nft.description else [],
        "files": [_file_record(f) for f in nft.files],
        "id": _utf8(nft.id),
        "traits": dict(nft.traits) if nft.traits else None,
        "tags": list(nft.tags) if nft.tags else None,
    }
    return as_chain_map(record)


def _raw_field(raw: Dict[Any, Any], key: str) -> Any:
    encoded = key.encode("utf-8")
    for raw_key, value in raw.items():
        if bytes(raw_key) == encoded:
            return value
    return None


def _to_nft_file(record: Dict[str, Any], raw: Dict[Any, Any]) -> NftFile:
    dimension = record.get("dimension")
    purpose = record.get("purpose")
    src = _raw_field(raw, "src")
    return NftFile(
        src=to_joined_text(src) if src else "",
        media_type=record.get("mediaType"),
        name=record.get("name"),
        dimension=None if dimension is None else ImageDimension(dimension["width"], dimension["height"]),
        purpose=None if purpose is None else ImagePurpose(purpose),
    )


def to_nft_data(metadata: Dict[Any, Any]) -> Nft:
    """Decode the metadata map of a reference datum."""
    record = from_plutus_value(metadata)
    if not isinstance(record, dict) or "name" not in record:
        raise EncodingError("NFT metadata must be a map with a name")
    # chunks are joined as bytes, a character may span two chunks
    description = _raw_field(metadata, "description")
    raw_files = _raw_field(metadata, "files") or []
    return Nft(
        name=record["name"],
        image=record.get("image"),
        media_type=record.get("mediaType"),
        description=to_joined_text(description) if description else None,
        files=tuple(_to_nft_file(f, raw) for f, raw in zip(record.get("files", []), raw_files)),
        id=record.get("id"),
        traits=record.get("traits", {}),
        tags=tuple(record.get("tags", [])),
    )


def create_nft_reference_data(nft: Nft, royalty_included: bool = False) -> NftMetadataWrapped:
    extra = {ROYALTY_INCLUDED_KEY: 1} if royalty_included else b""
    return NftMetadataWrapped(**create_reference_data(as_chain_nft_data(nft), extra))


def extract_nft(utxo: UTxO) -> Nft:
    return to_nft_data(decode_datum(utxo, NftMetadataWrapped).metadata)


# =============================================================================
# CIP-25
# =============================================================================

def cip25_nft_metadata(nft: Nft) -> Dict[str, Any]:
    """CIP-25 form of an NFT, every string within the 64 byte metadata limit."""
    record = {
        "name": chunk_metadata_text(nft.name),
        "image": None if nft.image is None else chunk_metadata_text(nft.image),
        "mediaType": nft.media_type,
        "description": None if not nft.description else chunk_metadata_text(nft.description),
        "files": [
            remove_empty({
                "name": f.name,
                "mediaType": f.media_type,
                "src": chunk_metadata_text(f.src),
            })
            for f in nft.files
        ] or None,
        "id": nft.id,
        "traits": dict(nft.traits) if nft.traits else None,
        "tags": list(nft.tags) if nft.tags else None,
    }
    return remove_empty(record)


def cip25_metadata(policy_id: str, nfts: Dict[bytes, Nft]) -> Dict[Any, Any]:
    """Label 721 payload, version 2 (raw bytes policy id and asset name keys)."""
    return {
        bytes.fromhex(policy_id): {name: cip25_nft_metadata(nft) for name, nft in nfts.items()},
        "version": 2,
    }


# =============================================================================
# ASSET PREPARATION
# =============================================================================

@dataclass(frozen=True)
class ReferencePayout:
    unit: str
    address: str
    datum: NftMetadataWrapped


@dataclass
class PreparedAssets:
    user_mints: Dict[str, int] = field(default_factory=dict)
    user_payouts: Dict[str, List[str]] = field(default_factory=dict)
    reference_mints: Dict[str, int] = field(default_factory=dict)
    reference_payouts: List[ReferencePayout] = field(default_factory=list)
    cip25_metadata: Dict[bytes, Nft] = field(default_factory=dict)


def prepare_assets(
    nfts: Sequence[AddressedNft],
    policy_id: str,
    sequence: int,
    default_recipient: str,
    has_royalty: bool,
    nft_validator_address: Optional[str] = None,
) -> PreparedAssets:
    """
    Allocate sequence numbers starting at ``sequence`` in input order and
    group the user tokens by recipient.
    """
    prepared = PreparedAssets()
    for nft in nfts:
        metadata = nft.metadata
        user_name = nft_user_asset_name(sequence, metadata.name)
        user_unit = to_unit(policy_id, user_name)
        reference_unit = to_unit(policy_id, nft_reference_asset_name(sequence, metadata.name))
        recipient = nft.recipient or default_recipient

        prepared.user_mints[user_unit] = 1
        prepared.user_payouts.setdefault(recipient, []).append(user_unit)
        prepared.reference_mints[reference_unit] = 1
        prepared.reference_payouts.append(ReferencePayout(
            unit=reference_unit,
            address=nft_validator_address or recipient,
            datum=create_nft_reference_data(metadata, has_royalty),
        ))
        prepared.cip25_metadata[user_name] = metadata

        sequence += 1

    return prepared


async def fetch_nft_reference_utxos(client: LedgerClient, policy_id: str, address: str) -> List[UTxO]:
    """Every UTxO at ``address`` holding a reference NFT of the collection."""
    prefix = nft_reference_prefix(policy_id)
    utxos = await call_client(f"list utxos at {address}", client.lookup_utxos_at_address(address))
    return [utxo for utxo in utxos if any(unit.startswith(prefix) for unit in utxo_units(utxo))]
