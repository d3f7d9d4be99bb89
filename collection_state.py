"""
Collection State Machine

Off-chain mirror of the state validator. The on-chain validator is the
authority; these checks only stop us from building transactions that would
fail, so boundaries must match it exactly (inclusive mint window, nfts <=
max_nfts).

    Uninitialized --genesis--> Genesis --mint--> Active --mint--> Active
                                  |                 |
                                  +------lock-------+--> Locked (terminal)

Sequence numbers are never reused: next_sequence only grows, independently
of nfts.
"""
import enum
import time
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from pycardano import Network, UTxO

from chain_data import (
    TimeWindow,
    TxReference,
    as_chain_address,
    as_chain_output_reference,
    as_chain_time_window,
    to_bech32_address,
    to_time_window,
    to_tx_reference,
)
from collection_contract_config import REFERENCE_DATA_VERSION, SEQUENCE_MAX_VALUE
from collection_datum_types import (
    Absent,
    CollectionStateDatum,
    CollectionStateInfoDatum,
    CollectionStateMetadata,
    SomeChainAddress,
    SomeInterval,
)
from collection_errors import (
    CapacityExceeded,
    ConfigurationError,
    StateLockedError,
    WindowViolation,
)
from ledger_client import decode_datum
from metadata_codec import (
    as_chain_boolean,
    as_chunked_bytes,
    as_nullable_bytes,
    as_nullable_int,
    from_chain_boolean,
    from_nullable,
    to_joined_text,
)


class CollectionPhase(enum.Enum):
    UNINITIALIZED = "uninitialized"
    GENESIS = "genesis"
    ACTIVE = "active"
    LOCKED = "locked"


@dataclass(frozen=True)
class CollectionStateInfo:
    """Configuration fixed at genesis."""
    contracts_url: str
    seed: Optional[TxReference]
    script_reference_policy_id: str
    group: Optional[str] = None
    mint_window: Optional[TimeWindow] = None
    max_nfts: Optional[int] = None
    nft_validator_address: Optional[str] = None

    def __post_init__(self):
        if self.max_nfts is not None and not 1 <= self.max_nfts <= SEQUENCE_MAX_VALUE:
            raise ConfigurationError(f"Maximum NFTs must be between 1 and {SEQUENCE_MAX_VALUE}")


@dataclass(frozen=True)
class CollectionState:
    info: CollectionStateInfo
    locked: bool = False
    nfts: int = 0
    next_sequence: int = 0
    # envelope extra, carried through untouched
    extra: Any = field(default=b"", compare=False)

    def __post_init__(self):
        if self.nfts < 0 or self.next_sequence < 0:
            raise ConfigurationError("NFT count and next sequence must be non-negative")
        if self.next_sequence < self.nfts:
            raise ConfigurationError("Next sequence can never be lower than the number of NFTs")


def phase(state: Optional[CollectionState]) -> CollectionPhase:
    if state is None:
        return CollectionPhase.UNINITIALIZED
    if state.locked:
        return CollectionPhase.LOCKED
    if state.next_sequence == 0:
        return CollectionPhase.GENESIS
    return CollectionPhase.ACTIVE


# =============================================================================
# TRANSITIONS
# =============================================================================

def genesis(info: Optional[CollectionStateInfo]) -> CollectionState:
    """Initial state: nothing minted, unlocked."""
    if info is None:
        raise ConfigurationError("Collection state information must be specified.")
    if info.seed is None:
        raise ConfigurationError("A seed UTxO is required for genesis.")
    return CollectionState(info=info)


def now_ms() -> int:
    return int(time.time() * 1000)


def mint(state: CollectionState, count: int, reference_time_ms: Optional[int] = None) -> CollectionState:
    """
    Record ``count`` new NFTs.

    ``reference_time_ms`` defaults to the current time and must fall inside
    the mint window when one is set.
    """
    if state.locked:
        raise StateLockedError("The state locked flag is set to true so it cannot be updated with new mints")

    if count < 1:
        raise ConfigurationError("At least one NFT must be minted")

    window = state.info.mint_window
    if window is not None:
        at = now_ms() if reference_time_ms is None else reference_time_ms
        if not window.contains(at):
            raise WindowViolation(
                f"Mint time {at} is outside the mint window [{window.from_ms}, {window.to_ms}]"
            )

    next_nfts = state.nfts + count
    max_nfts = state.info.max_nfts
    if max_nfts is not None and next_nfts > max_nfts:
        raise CapacityExceeded(
            f"Minting {count} would exceed the maximum of {max_nfts} NFTs ({state.nfts} minted)"
        )

    next_sequence = state.next_sequence + count
    if next_sequence > SEQUENCE_MAX_VALUE:
        raise CapacityExceeded("No sequence numbers left for this collection")

    return replace(state, nfts=next_nfts, next_sequence=next_sequence)


def lock(state: CollectionState) -> CollectionState:
    """Irreversibly lock the collection."""
    if state.locked:
        raise StateLockedError("The collection state is already locked")
    return replace(state, locked=True)


# =============================================================================
# CHAIN ENCODING
# =============================================================================

def _as_chain_state_info(info: Optional[CollectionStateInfo]) -> CollectionStateInfoDatum:
    if info is None:
        raise ConfigurationError("Collection state information must be specified.")
    if info.seed is None:
        raise ConfigurationError("Collection state information requires a seed.")

    if info.mint_window is None:
        mint_window = Absent()
    else:
        mint_window = SomeInterval(as_chain_time_window(info.mint_window.from_ms, info.mint_window.to_ms))

    if info.nft_validator_address is None:
        nft_validator_address = Absent()
    else:
        nft_validator_address = SomeChainAddress(as_chain_address(info.nft_validator_address))

    return CollectionStateInfoDatum(
        contracts_url=as_chunked_bytes(info.contracts_url),
        seed=as_chain_output_reference(info.seed),
        group=as_nullable_bytes(None if info.group is None else bytes.fromhex(info.group)),
        mint_window=mint_window,
        max_nfts=as_nullable_int(info.max_nfts),
        nft_validator_address=nft_validator_address,
        script_reference_policy_id=bytes.fromhex(info.script_reference_policy_id),
    )


def as_chain_state_data(state: CollectionState) -> CollectionStateMetadata:
    metadata = CollectionStateDatum(
        info=_as_chain_state_info(state.info),
        force_locked=as_chain_boolean(state.locked),
        nfts=state.nfts,
        next_sequence=state.next_sequence,
    )
    return CollectionStateMetadata(metadata=metadata, version=REFERENCE_DATA_VERSION, extra=state.extra)


def create_genesis_state_data(info: CollectionStateInfo) -> CollectionStateMetadata:
    return as_chain_state_data(genesis(info))


def to_collection_state(chain_state: CollectionStateMetadata, network: Network = Network.TESTNET) -> CollectionState:
    """Convert the decoded state datum into its off-chain form."""
    metadata = chain_state.metadata
    chain_info = metadata.info

    mint_window = None
    if isinstance(chain_info.mint_window, SomeInterval):
        mint_window = to_time_window(chain_info.mint_window.value)

    nft_validator_address = None
    if isinstance(chain_info.nft_validator_address, SomeChainAddress):
        nft_validator_address = to_bech32_address(chain_info.nft_validator_address.value, network)

    group = from_nullable(chain_info.group)
    info = CollectionStateInfo(
        contracts_url=to_joined_text(chain_info.contracts_url),
        seed=to_tx_reference(chain_info.seed),
        script_reference_policy_id=chain_info.script_reference_policy_id.hex(),
        group=None if group is None else group.hex(),
        mint_window=mint_window,
        max_nfts=from_nullable(chain_info.max_nfts),
        nft_validator_address=nft_validator_address,
    )

    return CollectionState(
        info=info,
        locked=from_chain_boolean(metadata.force_locked),
        nfts=metadata.nfts,
        next_sequence=metadata.next_sequence,
        extra=chain_state.extra,
    )


def extract_collection_state(utxo: UTxO, network: Network = Network.TESTNET) -> CollectionState:
    """Decode the state datum held by the collection state UTxO."""
    return to_collection_state(decode_datum(utxo, CollectionStateMetadata), network)
