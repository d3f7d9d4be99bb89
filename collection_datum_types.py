"""
Collection Datum Types - Shared On-Chain Data Structures

This file contains the canonical datum, redeemer and parameter definitions
used by the collection contracts (minting policy, state validator, info/NFT
validators and the CIP-102 royalty token).

All constructor ids mirror the contract library types EXACTLY:
- Option<T>:        Some = 0, None = 1
- Bool:             False = 0, True = 1
- Credential:       VerificationKey = 0, Script = 1
- Referenced<T>:    Inline = 0, Pointer = 1
- IntervalBoundType: NegativeInfinity = 0, Finite = 1, PositiveInfinity = 2

CRITICAL: Any change to these structures must be matched by the contracts.
"""
from opshin.prelude import *
from pycardano import Datum

# =============================================================================
# PRIMITIVES
# =============================================================================

@dataclass
class FalseData(PlutusData):
    CONSTR_ID = 0


@dataclass
class TrueData(PlutusData):
    CONSTR_ID = 1


BoolData = Union[FalseData, TrueData]


@dataclass
class Absent(PlutusData):
    """None variant shared by every nullable field."""
    CONSTR_ID = 1


@dataclass
class SomeBytes(PlutusData):
    CONSTR_ID = 0
    value: bytes


@dataclass
class SomeInt(PlutusData):
    CONSTR_ID = 0
    value: int


NullableBytes = Union[SomeBytes, Absent]
NullableInt = Union[SomeInt, Absent]


# =============================================================================
# OUTPUT REFERENCE (minting policy seed)
# =============================================================================

@dataclass
class TransactionId(PlutusData):
    CONSTR_ID = 0
    tx_hash: bytes                  # 32 bytes


@dataclass
class OutputReference(PlutusData):
    CONSTR_ID = 0
    transaction_id: TransactionId
    output_index: int


# =============================================================================
# TIME INTERVAL
# =============================================================================

@dataclass
class NegativeInfinity(PlutusData):
    CONSTR_ID = 0


@dataclass
class Finite(PlutusData):
    CONSTR_ID = 1
    time: int                       # POSIX ms


@dataclass
class PositiveInfinity(PlutusData):
    CONSTR_ID = 2


IntervalBoundType = Union[NegativeInfinity, Finite, PositiveInfinity]


@dataclass
class IntervalBound(PlutusData):
    CONSTR_ID = 0
    bound_type: IntervalBoundType
    is_inclusive: BoolData


@dataclass
class PosixTimeInterval(PlutusData):
    CONSTR_ID = 0
    lower_bound: IntervalBound
    upper_bound: IntervalBound


@dataclass
class SomeInterval(PlutusData):
    CONSTR_ID = 0
    value: PosixTimeInterval


NullableInterval = Union[SomeInterval, Absent]


# =============================================================================
# ADDRESS
# =============================================================================

@dataclass
class VerificationKeyCredential(PlutusData):
    CONSTR_ID = 0
    credential_hash: bytes          # 28 bytes


@dataclass
class ScriptCredential(PlutusData):
    CONSTR_ID = 1
    credential_hash: bytes          # 28 bytes


ChainCredential = Union[VerificationKeyCredential, ScriptCredential]


@dataclass
class InlineStakeCredential(PlutusData):
    CONSTR_ID = 0
    credential: ChainCredential


@dataclass
class PointerStakeCredential(PlutusData):
    CONSTR_ID = 1
    slot_number: int
    transaction_index: int
    certificate_index: int


StakeCredential = Union[InlineStakeCredential, PointerStakeCredential]


@dataclass
class SomeStakeCredential(PlutusData):
    CONSTR_ID = 0
    value: StakeCredential


@dataclass
class ChainAddress(PlutusData):
    CONSTR_ID = 0
    payment_credential: ChainCredential
    stake_credential: Union[SomeStakeCredential, Absent]


@dataclass
class SomeChainAddress(PlutusData):
    CONSTR_ID = 0
    value: ChainAddress


NullableChainAddress = Union[SomeChainAddress, Absent]


# =============================================================================
# COLLECTION STATE DATUM (state validator, collection state token)
# =============================================================================

@dataclass
class CollectionStateInfoDatum(PlutusData):
    """
    Immutable-after-genesis collection configuration.

    Fields:
        contracts_url: Script bundle URL, UTF-8 split into 64 byte chunks
        seed: UTxO spent at genesis, parameterizes the minting policy
        group: Optional policy id of a group the collection belongs to
        mint_window: Optional inclusive window in which mints are allowed
        max_nfts: Optional maximum number of NFTs (1 .. 256^3)
        nft_validator_address: Where reference tokens are sent
        script_reference_policy_id: Policy of tokens holding script references
    """
    CONSTR_ID = 0
    contracts_url: List[bytes]
    seed: OutputReference
    group: NullableBytes
    mint_window: NullableInterval
    max_nfts: NullableInt
    nft_validator_address: NullableChainAddress
    script_reference_policy_id: bytes   # 28 bytes


@dataclass
class CollectionStateDatum(PlutusData):
    """
    Mutable issuance record. nfts counts issued items, next_sequence is the
    next sequence number to allocate (never reused).
    """
    CONSTR_ID = 0
    info: CollectionStateInfoDatum
    force_locked: BoolData
    nfts: int
    next_sequence: int


@dataclass
class CollectionStateMetadata(PlutusData):
    """CIP-68 style envelope around the state datum."""
    CONSTR_ID = 0
    metadata: CollectionStateDatum
    version: int
    extra: Datum


# =============================================================================
# COLLECTION INFO DATUM (immutable info validator, label 100 management token)
# =============================================================================

@dataclass
class Thumbnail(PlutusData):
    CONSTR_ID = 0


@dataclass
class Banner(PlutusData):
    CONSTR_ID = 1


@dataclass
class Brand(PlutusData):
    CONSTR_ID = 2


@dataclass
class Gallery(PlutusData):
    CONSTR_ID = 3


@dataclass
class General(PlutusData):
    CONSTR_ID = 4


ChainImagePurpose = Union[Thumbnail, Banner, Brand, Gallery, General]


@dataclass
class SomeImagePurpose(PlutusData):
    CONSTR_ID = 0
    value: ChainImagePurpose


@dataclass
class ImageDimensionDatum(PlutusData):
    CONSTR_ID = 0
    width: int
    height: int


@dataclass
class SomeImageDimension(PlutusData):
    CONSTR_ID = 0
    value: ImageDimensionDatum


@dataclass
class CollectionImageDatum(PlutusData):
    CONSTR_ID = 0
    purpose: Union[SomeImagePurpose, Absent]
    dimension: Union[SomeImageDimension, Absent]
    media_type: NullableBytes
    src: List[bytes]                # chunked URI


@dataclass
class CollectionInfoDatum(PlutusData):
    """Descriptive collection record shown by marketplaces."""
    CONSTR_ID = 0
    name: bytes
    artist: NullableBytes
    project: NullableBytes
    nsfw: BoolData
    description: List[bytes]        # chunked text
    images: List[CollectionImageDatum]
    links: Dict[bytes, List[bytes]]
    traits: List[bytes]
    extra: Dict[bytes, Datum]


@dataclass
class CollectionInfoMetadata(PlutusData):
    CONSTR_ID = 0
    metadata: CollectionInfoDatum
    version: int
    extra: Datum


# =============================================================================
# NFT REFERENCE DATUM (CIP-68 label 100 NFT token)
# =============================================================================

@dataclass
class NftMetadataWrapped(PlutusData):
    """CIP-68 reference datum: free-form metadata map plus version and extra."""
    CONSTR_ID = 0
    metadata: Dict[bytes, Datum]
    version: int
    extra: Datum


# =============================================================================
# CIP-102 ROYALTY DATUM (label 500 royalty token)
# =============================================================================

@dataclass
class RoyaltyRecipientDatum(PlutusData):
    CONSTR_ID = 0
    address: ChainAddress
    variable_fee: int               # floor(1000 / percent)
    min_fee: NullableInt            # lovelace
    max_fee: NullableInt            # lovelace


@dataclass
class RoyaltyInfo(PlutusData):
    CONSTR_ID = 0
    metadata: List[RoyaltyRecipientDatum]
    version: int
    extra: Datum


# =============================================================================
# REDEEMERS
# =============================================================================

@dataclass
class GenesisCollection(PlutusData):
    """Mint the management tokens (state, info, owner) once from the seed."""
    CONSTR_ID = 0
    state_validator_policy_id: bytes    # 28 bytes
    info_validator_policy_id: bytes     # 28 bytes


@dataclass
class MintNfts(PlutusData):
    """Mint reference + user NFT pairs."""
    CONSTR_ID = 1


@dataclass
class BurnNfts(PlutusData):
    CONSTR_ID = 2


MintRedeemer = Union[GenesisCollection, MintNfts, BurnNfts]


@dataclass
class SpendStateForMint(PlutusData):
    """Spend the state UTxO to record new mints."""
    CONSTR_ID = 0


@dataclass
class SpendStateForBurn(PlutusData):
    CONSTR_ID = 1


StateValidatorRedeemer = Union[SpendStateForMint, SpendStateForBurn]


@dataclass
class VoidData(PlutusData):
    """Unit value, used as datum of locked script references."""
    CONSTR_ID = 0
