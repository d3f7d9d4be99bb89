"""
Collection Contract Configuration - TRUE CONSTANTS ONLY

This file contains values that are fixed by the token standards or by the
collection contracts and never change between collections:
- CIP-67 label prefixes used in asset names (CIP-68 reference/user, owner, royalty)
- Asset name byte layout (label + purpose + sequence + content)
- Transaction metadata labels (CIP-25, CIP-88)
- Validator titles inside the script bundle

Per-collection values (policy ids, validator addresses, seed) live in the
collection state datum and the script cache, never here.
"""
import os

# =============================================================================
# CIP-67 TOKEN LABELS - Universal Constants
# =============================================================================
# Reference: https://cips.cardano.org/cip/CIP-0067/
#            https://cips.cardano.org/cip/CIP-0068/

SCRIPT_REFERENCE_TOKEN_LABEL = 0
COLLECTION_STATE_TOKEN_LABEL = 1
REFERENCE_TOKEN_LABEL = 100
COLLECTION_OWNER_TOKEN_LABEL = 111    # no standard, chosen to look like the others
NFT_TOKEN_LABEL = 222
ROYALTY_TOKEN_LABEL = 500

CIP68_REFERENCE_LABEL: bytes = bytes.fromhex("000643b0")  # Label 100 - Reference NFT
CIP68_USER_LABEL: bytes = bytes.fromhex("000de140")       # Label 222 - User NFT

# Fixed asset name of the collection state token (not a CIP-67 label)
COLLECTION_STATE_ASSET_NAME: bytes = bytes.fromhex("00000070436f6c6c656374696f6e")
COLLECTION_TOKEN_CONTENT = "Collection"
ROYALTY_TOKEN_CONTENT = "Royalty"

# =============================================================================
# ASSET NAME LAYOUT
# =============================================================================

POLICY_ID_BYTE_LENGTH = 28
ASSET_NAME_MAX_BYTES = 32
LABEL_NUM_BYTES = 4
PURPOSE_NUM_BYTES = 1
SEQUENCE_NUM_BYTES = 3
SEQUENCE_MAX_VALUE = 256 ** SEQUENCE_NUM_BYTES
ASSET_NAME_PREFIX_BYTES = LABEL_NUM_BYTES + PURPOSE_NUM_BYTES + SEQUENCE_NUM_BYTES
CONTENT_NAME_MAX_BYTES = ASSET_NAME_MAX_BYTES - ASSET_NAME_PREFIX_BYTES

# =============================================================================
# DATUM / METADATA
# =============================================================================

REFERENCE_DATA_VERSION = 1
ROYALTY_DATA_VERSION = 1

CIP_25_METADATA_LABEL = 721
CIP_88_METADATA_LABEL = 867

# Transaction metadata strings and byte strings are limited to 64 bytes
METADATA_CHUNK_SIZE = 64

# =============================================================================
# SCRIPT BUNDLE
# =============================================================================

NFT_MINTING_POLICY = "mint.mint"
DERIVATIVE_MINTING_POLICY = "derivative.mint"
DELEGATE_MINTING_POLICY = "delegate.mint"
MINTING_STATE_VALIDATOR = "state.spend"
IMMUTABLE_INFO_VALIDATOR = "immutable_info.spend"
IMMUTABLE_NFT_VALIDATOR = "immutable_nft.spend"
PERMISSIVE_NFT_VALIDATOR = "permissive_nft.spend"
SPEND_LOCK_VALIDATOR = "lock.spend"

# "local" resolves to the blueprint produced by the contracts build
LOCAL_CONTRACTS_URL = "local"
LOCAL_CONTRACTS_PATH = "plutus.json"
DEFAULT_CONTRACTS_URL = LOCAL_CONTRACTS_URL
CONTRACTS_URL_ENV = "COLLECTION_CONTRACTS_URL"


def default_contracts_url() -> str:
    """Bundle URL written into new collections, overridable from the environment."""
    return os.environ.get(CONTRACTS_URL_ENV) or DEFAULT_CONTRACTS_URL
