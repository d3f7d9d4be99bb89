"""
Royalty encodings.

CIP-102 stores a variable fee as ``floor(1000 / percent)`` on chain, so
smaller percentages become larger integers. The mapping is lossy: decoding
rounds up to the nearest 0.1% and only approximates the original percent.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pycardano import Network

from asset_naming import royalty_unit
from chain_data import as_chain_address, to_bech32_address
from collection_contract_config import ROYALTY_DATA_VERSION
from collection_datum_types import RoyaltyInfo, RoyaltyRecipientDatum
from collection_errors import ConfigurationError, EncodingError, RangeError
from ledger_client import decode_datum, find_utxo
from metadata_codec import as_nullable_int, from_nullable

logger = logging.getLogger(__name__)

MIN_VARIABLE_FEE = 0.1
MAX_VARIABLE_FEE = 100
MAX_TOTAL_VARIABLE_FEE = 100


@dataclass(frozen=True)
class Royalty:
    """
    Off-chain royalty.

    address: bech32 address of the beneficiary
    variable_fee: percentage in [0.1, 100], applied within min/max bounds
    min_fee / max_fee: optional lovelace bounds
    """
    address: str
    variable_fee: float
    min_fee: Optional[int] = None
    max_fee: Optional[int] = None


# =============================================================================
# FEES
# =============================================================================

def encode_variable_fee(percent: float) -> int:
    """Convert a percentage in [0.1, 100] into the CIP-102 fee integer."""
    if isinstance(percent, bool) or percent < MIN_VARIABLE_FEE or percent > MAX_VARIABLE_FEE:
        raise RangeError("Royalty fee must be between 0.1 and 100 percent")
    return math.floor(1000 / percent)


def decode_variable_fee(fee: int) -> float:
    """Convert a CIP-102 fee integer back to a percentage, rounded up to 0.1%."""
    if fee <= 0:
        raise RangeError("Chain fee can't be zero or below.")
    return math.ceil(10000 / fee) / 10


def encode_fixed_fee(fee: Optional[int]) -> Optional[int]:
    """A fixed fee is absent or a non-negative integer of lovelace."""
    if fee is None:
        return None
    if isinstance(fee, bool) or not isinstance(fee, int) or fee < 0:
        raise RangeError("Fixed fee must be a positive integer or 0")
    return fee


# =============================================================================
# VALIDATION
# =============================================================================

def total_variable_fee(royalties: Sequence[Royalty]) -> float:
    return sum(r.variable_fee for r in royalties)


def validate_royalty(royalty: Royalty, existing: Sequence[Royalty] = ()) -> None:
    """Check one royalty against the ones already configured."""
    try:
        encode_variable_fee(royalty.variable_fee)
        encode_fixed_fee(royalty.min_fee)
        encode_fixed_fee(royalty.max_fee)
    except RangeError as err:
        raise ConfigurationError(str(err)) from err

    if royalty.min_fee is not None and royalty.max_fee is not None and royalty.min_fee > royalty.max_fee:
        raise ConfigurationError("Royalty minimum fee is greater than the maximum fee")

    if any(r.address == royalty.address for r in existing):
        raise ConfigurationError(f"Royalty recipient {royalty.address} is already added")

    # 0.1 granularity: compare in tenths to avoid float drift
    total = round(total_variable_fee(existing) * 10) + round(royalty.variable_fee * 10)
    if total > MAX_TOTAL_VARIABLE_FEE * 10:
        raise ConfigurationError("Total royalty percentage exceeds 100 percent")


# =============================================================================
# CIP-102 DATUM
# =============================================================================

def to_royalty_recipient(royalty: Royalty) -> RoyaltyRecipientDatum:
    return RoyaltyRecipientDatum(
        address=as_chain_address(royalty.address),
        variable_fee=encode_variable_fee(royalty.variable_fee),
        min_fee=as_nullable_int(encode_fixed_fee(royalty.min_fee)),
        max_fee=as_nullable_int(encode_fixed_fee(royalty.max_fee)),
    )


def to_cip102_royalty_datum(royalties: Sequence[Royalty]) -> RoyaltyInfo:
    """Datum locked with the label 500 royalty token."""
    if not royalties:
        raise EncodingError("At least one royalty is required for a royalty datum")
    return RoyaltyInfo(
        metadata=[to_royalty_recipient(r) for r in royalties],
        version=ROYALTY_DATA_VERSION,
        extra=b"",
    )


def to_royalties(info: RoyaltyInfo, network: Network = Network.TESTNET) -> List[Royalty]:
    return [
        Royalty(
            address=to_bech32_address(recipient.address, network),
            variable_fee=decode_variable_fee(recipient.variable_fee),
            min_fee=from_nullable(recipient.min_fee),
            max_fee=from_nullable(recipient.max_fee),
        )
        for recipient in info.metadata
    ]


async def fetch_royalties(client, policy_id: str, network: Network = Network.TESTNET) -> List[Royalty]:
    """Read the royalty token datum of a collection. Empty when there is none."""
    unit = royalty_unit(policy_id)
    utxo = await find_utxo(client, unit, required=False)
    if utxo is None:
        logger.debug("No royalty token %s", unit)
        return []
    return to_royalties(decode_datum(utxo, RoyaltyInfo), network)
