"""
CIP-88 Token Policy Registration (metadata label 867)

    {0: version, 1: payload, 2: witness}

The payload declares the scope (policy id and script type), the feature
set (25, 27, 68, 102), how the registration is validated (witness
signature or beacon token), a nonce, an oracle URI and per-feature
details. A token project (CIP-25 or CIP-68) can be declared only once.

Witness validation signs the canonical CBOR of the payload.
"""
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

import cbor2
from pycardano import NativeScript, PlutusV1Script, PlutusV2Script, PlutusV3Script, plutus_script_hash

from asset_naming import from_unit
from collection_contract_config import CIP_88_METADATA_LABEL, METADATA_CHUNK_SIZE
from collection_errors import ConfigurationError, EncodingError
from collection_info import CollectionImage, CollectionInfo, ImagePurpose
from metadata_codec import chunk, remove_empty
from royalty_encoding import Royalty, encode_fixed_fee, encode_variable_fee

logger = logging.getLogger(__name__)

REGISTRATION_VERSION = 1

# Registration metadata fields
VERSION_FIELD = 0
PAYLOAD_FIELD = 1
WITNESS_FIELD = 2

# Payload fields
SCOPE_FIELD = 1
FEATURE_SET_FIELD = 2
VALIDATION_METHOD_FIELD = 3
NONCE_FIELD = 4
ORACLE_URI_FIELD = 5
FEATURE_DETAILS_FIELD = 6

SCOPE_NATIVE = 0
SCOPE_PLUTUS_V1 = 1
SCOPE_PLUTUS_V2 = 2
SCOPE_PLUTUS_V3 = 3

VALIDATION_WITNESS = 0
VALIDATION_BEACON = 1

CIP_25 = 25
CIP_27 = 27
CIP_68 = 68
CIP_102 = 102
TOKEN_PROJECT_STANDARDS = (CIP_25, CIP_68)

# Feature detail fields
FEATURE_VERSION_FIELD = 0
FEATURE_DETAIL_FIELD = 1

# Token project detail
TOKEN_NAME_FIELD = 0
TOKEN_DESCRIPTION_FIELD = 1
TOKEN_PROJECT_IMAGE_FIELD = 2
TOKEN_PROJECT_BANNER_FIELD = 3
TOKEN_NSFW_FIELD = 4
TOKEN_SOCIAL_FIELD = 5
TOKEN_ARTIST_FIELD = 6

# CIP-27 detail
CIP27_RATE_FIELD = 0
CIP27_RECIPIENT_FIELD = 1

# CIP-102 recipient
CIP102_ADDRESS_FIELD = 0
CIP102_VARIABLE_FEE_FIELD = 1
CIP102_MIN_FEE_FIELD = 2
CIP102_MAX_FEE_FIELD = 3


def cip88_uri(uri: str) -> List[str]:
    """Split a URI into ``[scheme://, path...]`` with the path chunked when long."""
    scheme, separator, path = uri.partition("://")
    if len(scheme) > 1 and separator and path:
        return [f"{scheme}://", *chunk(path)]
    raise ConfigurationError(f"Unable to parse scheme from URI {uri}")


# =============================================================================
# FEATURE DETAILS
# =============================================================================

def _select_images(images: Sequence[CollectionImage]):
    """Best match for the project profile image and banner."""
    def first(purpose):
        return next((image for image in images if image.purpose is purpose), None)

    general = first(ImagePurpose.GENERAL)
    profile = first(ImagePurpose.BRAND) or first(ImagePurpose.THUMBNAIL) or general
    banner = first(ImagePurpose.BANNER) or first(ImagePurpose.GALLERY) or general
    return profile, banner


def to_token_project_detail(info: CollectionInfo) -> Dict[int, Any]:
    profile, banner = _select_images(info.images)
    detail = {
        TOKEN_NAME_FIELD: info.name,
        TOKEN_DESCRIPTION_FIELD: chunk(info.description) if info.description else None,
        TOKEN_PROJECT_IMAGE_FIELD: cip88_uri(profile.src) if profile else None,
        TOKEN_PROJECT_BANNER_FIELD: cip88_uri(banner.src) if banner else None,
        TOKEN_NSFW_FIELD: 1 if info.nsfw else 0,
        TOKEN_SOCIAL_FIELD: {label: cip88_uri(uri) for label, uri in info.links.items() if uri} or None,
        TOKEN_ARTIST_FIELD: info.project or info.artist,
    }
    return {FEATURE_VERSION_FIELD: 1, FEATURE_DETAIL_FIELD: remove_empty(detail)}


def to_cip27_royalty_detail(royalty: Royalty) -> Dict[int, Any]:
    detail = {CIP27_RECIPIENT_FIELD: chunk(royalty.address)}
    if royalty.variable_fee:
        detail[CIP27_RATE_FIELD] = str(royalty.variable_fee / 100)
    return {FEATURE_VERSION_FIELD: 1, FEATURE_DETAIL_FIELD: detail}


def to_cip102_royalty_recipient(royalty: Royalty) -> Dict[int, Any]:
    recipient = {
        CIP102_ADDRESS_FIELD: chunk(royalty.address),
        CIP102_VARIABLE_FEE_FIELD: encode_variable_fee(royalty.variable_fee),
        CIP102_MIN_FEE_FIELD: encode_fixed_fee(royalty.min_fee),
        CIP102_MAX_FEE_FIELD: encode_fixed_fee(royalty.max_fee),
    }
    return remove_empty(recipient)


def to_cip102_royalty_detail(royalties: Sequence[Royalty]) -> Dict[int, Any]:
    return {
        FEATURE_VERSION_FIELD: 1,
        FEATURE_DETAIL_FIELD: [to_cip102_royalty_recipient(r) for r in royalties],
    }


# =============================================================================
# SCOPE
# =============================================================================

def registration_scope(script) -> List[Any]:
    if isinstance(script, NativeScript):
        script_bytes = script.to_cbor()
        chunks = [script_bytes[i:i + METADATA_CHUNK_SIZE] for i in range(0, len(script_bytes), METADATA_CHUNK_SIZE)]
        return [SCOPE_NATIVE, [script.hash().payload, chunks]]
    if isinstance(script, PlutusV1Script):
        return [SCOPE_PLUTUS_V1, [plutus_script_hash(script).payload]]
    if isinstance(script, PlutusV3Script):
        return [SCOPE_PLUTUS_V3, [plutus_script_hash(script).payload]]
    if isinstance(script, PlutusV2Script):
        return [SCOPE_PLUTUS_V2, [plutus_script_hash(script).payload]]
    raise EncodingError(f"Could not determine scope. Unexpected script type {type(script).__name__}")


# =============================================================================
# BUILDER
# =============================================================================

@dataclass(frozen=True)
class RegistrationBuilder:
    """Immutable CIP-88 registration builder."""
    script: Any
    features: Dict[int, Any] = field(default_factory=dict)
    oracle_uri: Optional[str] = None
    beacon_unit: Optional[str] = None

    @classmethod
    def register(cls, script) -> "RegistrationBuilder":
        return cls(script)

    def _with_feature(self, standard: int, detail) -> "RegistrationBuilder":
        return replace(self, features={**self.features, standard: detail})

    def _token_project(self, standard: int, info: CollectionInfo) -> "RegistrationBuilder":
        if any(s in self.features for s in TOKEN_PROJECT_STANDARDS):
            raise ConfigurationError(
                "Cannot declare a token project more than once. A CIP-68 policy that also "
                "emits CIP-25 for backward compatibility should only declare 68."
            )
        return self._with_feature(standard, to_token_project_detail(info))

    def cip68_info(self, info: CollectionInfo) -> "RegistrationBuilder":
        return self._token_project(CIP_68, info)

    def cip25_info(self, info: CollectionInfo) -> "RegistrationBuilder":
        return self._token_project(CIP_25, info)

    def cip27_royalty(self, royalty: Royalty) -> "RegistrationBuilder":
        return self._with_feature(CIP_27, to_cip27_royalty_detail(royalty))

    def cip102_royalties(self, royalties: Sequence[Royalty]) -> "RegistrationBuilder":
        return self._with_feature(CIP_102, to_cip102_royalty_detail(royalties))

    def oracle(self, url: str) -> "RegistrationBuilder":
        cip88_uri(url)
        return replace(self, oracle_uri=url)

    def validate_with_beacon(self, unit: str) -> "RegistrationBuilder":
        from_unit(unit)
        return replace(self, beacon_unit=unit)

    def build_payload(self, nonce: Optional[int] = None) -> Dict[int, Any]:
        if self.beacon_unit is not None:
            policy_id, asset_name = from_unit(self.beacon_unit)
            validation_method = [VALIDATION_BEACON, [bytes.fromhex(policy_id), asset_name]]
        else:
            validation_method = [VALIDATION_WITNESS]

        return {
            SCOPE_FIELD: registration_scope(self.script),
            FEATURE_SET_FIELD: list(self.features),
            VALIDATION_METHOD_FIELD: validation_method,
            NONCE_FIELD: int(time.time() * 1000) if nonce is None else nonce,
            ORACLE_URI_FIELD: cip88_uri(self.oracle_uri) if self.oracle_uri else [],
            FEATURE_DETAILS_FIELD: dict(self.features),
        }

    def build(self, signing_key=None, nonce: Optional[int] = None) -> Dict[int, Any]:
        """
        Registration metadata. Beacon validation leaves the witness set empty,
        witness validation needs ``signing_key`` (a pycardano signing key).
        """
        payload = self.build_payload(nonce)

        witness: List[List[bytes]] = [[]]
        if self.beacon_unit is None:
            if signing_key is None:
                raise ConfigurationError("Witness validation requires a signing key or a beacon token")
            signature = signing_key.sign(cbor2.dumps(payload, canonical=True))
            witness = [[signing_key.to_verification_key().payload, signature]]

        logger.debug("Built CIP-88 registration with features %s", list(self.features))
        return {
            VERSION_FIELD: REGISTRATION_VERSION,
            PAYLOAD_FIELD: payload,
            WITNESS_FIELD: witness,
        }


def registration_metadata(
    script,
    beacon_unit: str,
    info: Optional[CollectionInfo] = None,
    cip27_royalty: Optional[Royalty] = None,
    cip102_royalties: Sequence[Royalty] = (),
    nonce: Optional[int] = None,
) -> Dict[int, Any]:
    """Label 867 entry for a collection validated by its beacon token."""
    builder = RegistrationBuilder.register(script).validate_with_beacon(beacon_unit)
    if cip27_royalty is not None:
        builder = builder.cip27_royalty(cip27_royalty)
    if cip102_royalties:
        builder = builder.cip102_royalties(cip102_royalties)
    if info is not None:
        builder = builder.cip68_info(info)
    return {CIP_88_METADATA_LABEL: builder.build(nonce=nonce)}
