"""
Collection info held by the label 100 management token at the immutable
info validator. Marketplaces read it to show the collection.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pycardano import UTxO

from asset_naming import info_unit
from collection_datum_types import (
    Absent,
    Banner,
    Brand,
    CollectionImageDatum,
    CollectionInfoDatum,
    CollectionInfoMetadata,
    Gallery,
    General,
    ImageDimensionDatum,
    SomeImageDimension,
    SomeImagePurpose,
    Thumbnail,
)
from collection_errors import ConfigurationError, EncodingError
from ledger_client import LedgerClient, decode_datum, find_utxo
from metadata_codec import (
    as_chain_boolean,
    as_chunked_bytes,
    as_nullable_bytes,
    create_reference_data,
    from_chain_boolean,
    from_nullable,
    from_plutus_value,
    remove_empty,
    to_joined_text,
    to_plutus_value,
)


class ImagePurpose(enum.Enum):
    """Hints at how the creator intended an image to be used."""
    THUMBNAIL = "Thumbnail"
    BANNER = "Banner"
    BRAND = "Brand"
    GALLERY = "Gallery"
    GENERAL = "General"


_PURPOSE_TO_CHAIN = {
    ImagePurpose.THUMBNAIL: Thumbnail,
    ImagePurpose.BANNER: Banner,
    ImagePurpose.BRAND: Brand,
    ImagePurpose.GALLERY: Gallery,
    ImagePurpose.GENERAL: General,
}
_CHAIN_TO_PURPOSE = {chain: purpose for purpose, chain in _PURPOSE_TO_CHAIN.items()}


@dataclass(frozen=True)
class ImageDimension:
    """Width and height in pixels."""
    width: int
    height: int

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise ConfigurationError("Image dimensions must be positive")


@dataclass(frozen=True)
class CollectionImage:
    src: str
    purpose: Optional[ImagePurpose] = None
    dimension: Optional[ImageDimension] = None
    media_type: Optional[str] = None


@dataclass(frozen=True)
class CollectionInfo:
    name: str
    nsfw: bool = False
    artist: Optional[str] = None
    project: Optional[str] = None
    description: Optional[str] = None
    images: List[CollectionImage] = field(default_factory=list)
    traits: List[str] = field(default_factory=list)
    links: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# IMAGES
# =============================================================================

def as_chain_image_purpose(purpose: ImagePurpose):
    try:
        return _PURPOSE_TO_CHAIN[purpose]()
    except KeyError as err:
        raise EncodingError(f"Unknown image purpose {purpose!r}") from err


def to_image_purpose(chain_purpose) -> ImagePurpose:
    try:
        return _CHAIN_TO_PURPOSE[type(chain_purpose)]
    except KeyError as err:
        raise EncodingError(f"Unknown image purpose constructor {chain_purpose!r}") from err


def as_chain_collection_image(image: CollectionImage) -> CollectionImageDatum:
    purpose = Absent() if image.purpose is None else SomeImagePurpose(as_chain_image_purpose(image.purpose))
    if image.dimension is None:
        dimension = Absent()
    else:
        dimension = SomeImageDimension(ImageDimensionDatum(image.dimension.width, image.dimension.height))
    media_type = as_nullable_bytes(None if image.media_type is None else image.media_type.encode("utf-8"))
    return CollectionImageDatum(purpose, dimension, media_type, as_chunked_bytes(image.src))


def to_collection_image(chain_image: CollectionImageDatum) -> CollectionImage:
    purpose = None
    if isinstance(chain_image.purpose, SomeImagePurpose):
        purpose = to_image_purpose(chain_image.purpose.value)

    dimension = None
    if isinstance(chain_image.dimension, SomeImageDimension):
        dimension = ImageDimension(chain_image.dimension.value.width, chain_image.dimension.value.height)

    media_type = from_nullable(chain_image.media_type)
    return CollectionImage(
        src=to_joined_text(chain_image.src),
        purpose=purpose,
        dimension=dimension,
        media_type=None if media_type is None else media_type.decode("utf-8"),
    )


# =============================================================================
# INFO
# =============================================================================

def _optional_text(value: Optional[str]):
    return as_nullable_bytes(value.encode("utf-8") if value else None)


def as_chain_collection_info(info: CollectionInfo) -> CollectionInfoMetadata:
    if not info.name:
        raise ConfigurationError("Collection name is required")

    metadata = CollectionInfoDatum(
        name=info.name.encode("utf-8"),
        artist=_optional_text(info.artist),
        project=_optional_text(info.project),
        nsfw=as_chain_boolean(info.nsfw),
        description=as_chunked_bytes(info.description) if info.description else [],
        images=[as_chain_collection_image(image) for image in info.images],
        links={key.encode("utf-8"): as_chunked_bytes(uri) for key, uri in info.links.items() if uri},
        traits=[trait.encode("utf-8") for trait in info.traits],
        extra={key.encode("utf-8"): to_plutus_value(value) for key, value in remove_empty(info.extra).items()},
    )
    return CollectionInfoMetadata(**create_reference_data(metadata))


def to_collection_info(chain_info: CollectionInfoMetadata) -> CollectionInfo:
    metadata = chain_info.metadata
    artist = from_nullable(metadata.artist)
    project = from_nullable(metadata.project)
    return CollectionInfo(
        name=metadata.name.decode("utf-8"),
        nsfw=from_chain_boolean(metadata.nsfw),
        artist=None if artist is None else artist.decode("utf-8"),
        project=None if project is None else project.decode("utf-8"),
        description=to_joined_text(metadata.description) if metadata.description else None,
        images=[to_collection_image(image) for image in metadata.images],
        traits=[trait.decode("utf-8") for trait in metadata.traits],
        links={bytes(key).decode("utf-8"): to_joined_text(value) for key, value in metadata.links.items()},
        extra={bytes(key).decode("utf-8"): from_plutus_value(value) for key, value in metadata.extra.items()},
    )


def extract_collection_info(utxo: UTxO) -> CollectionInfo:
    return to_collection_info(decode_datum(utxo, CollectionInfoMetadata))


async def fetch_collection_info(client: LedgerClient, policy_id: str) -> Optional[CollectionInfo]:
    """Info of a collection, or None when the info token cannot be found."""
    utxo = await find_utxo(client, info_unit(policy_id), required=False)
    if utxo is None:
        return None
    return extract_collection_info(utxo)
