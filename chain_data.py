"""
Conversions between off-chain values and their on-chain plutus form.

- bech32 address  <-> ChainAddress
- TimeWindow      <-> PosixTimeInterval (inclusive bounds)
- TxReference     <-> OutputReference
"""
from dataclasses import dataclass
from typing import Optional

from pycardano import Address, Network, PointerAddress, ScriptHash, VerificationKeyHash
from pycardano.exception import PyCardanoException

from collection_datum_types import (
    Absent,
    ChainAddress,
    Finite,
    InlineStakeCredential,
    IntervalBound,
    NegativeInfinity,
    OutputReference,
    PointerStakeCredential,
    PositiveInfinity,
    PosixTimeInterval,
    ScriptCredential,
    SomeStakeCredential,
    TransactionId,
    VerificationKeyCredential,
)
from collection_errors import ConfigurationError, EncodingError
from metadata_codec import as_chain_boolean


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive window in POSIX milliseconds."""
    from_ms: int
    to_ms: int

    def contains(self, time_ms: int) -> bool:
        return self.from_ms <= time_ms <= self.to_ms


@dataclass(frozen=True)
class TxReference:
    """A transaction output reference (hex tx hash + output index)."""
    tx_hash: str
    index: int

    def __str__(self):
        return f"{self.tx_hash}#{self.index}"


# =============================================================================
# ADDRESSES
# =============================================================================

def parse_address(address) -> Address:
    """Accept a bech32 string or a pycardano Address."""
    if isinstance(address, Address):
        return address
    try:
        return Address.from_primitive(address)
    except (PyCardanoException, ValueError, TypeError) as err:
        raise ConfigurationError(f"{address!r} is not a valid bech32 address") from err


def _as_chain_credential(part):
    if isinstance(part, VerificationKeyHash):
        return VerificationKeyCredential(part.payload)
    if isinstance(part, ScriptHash):
        return ScriptCredential(part.payload)
    raise EncodingError(f"Unsupported credential {part!r}")


def _from_chain_credential(credential):
    if isinstance(credential, VerificationKeyCredential):
        return VerificationKeyHash(credential.credential_hash)
    if isinstance(credential, ScriptCredential):
        return ScriptHash(credential.credential_hash)
    raise EncodingError(f"Unsupported chain credential {credential!r}")


def as_chain_address(address) -> ChainAddress:
    """Convert a bech32 address into the contracts' address representation."""
    parsed = parse_address(address)
    if parsed.payment_part is None:
        raise EncodingError("Not a valid payment address.")

    staking = parsed.staking_part
    if staking is None:
        stake_credential = Absent()
    elif isinstance(staking, PointerAddress):
        stake_credential = SomeStakeCredential(
            PointerStakeCredential(staking.slot, staking.tx_index, staking.cert_index)
        )
    else:
        stake_credential = SomeStakeCredential(InlineStakeCredential(_as_chain_credential(staking)))

    return ChainAddress(_as_chain_credential(parsed.payment_part), stake_credential)


def to_bech32_address(address: ChainAddress, network: Network = Network.TESTNET) -> str:
    payment_part = _from_chain_credential(address.payment_credential)

    staking_part = None
    if isinstance(address.stake_credential, SomeStakeCredential):
        stake = address.stake_credential.value
        if isinstance(stake, InlineStakeCredential):
            staking_part = _from_chain_credential(stake.credential)
        else:
            staking_part = PointerAddress(stake.slot_number, stake.transaction_index, stake.certificate_index)

    return Address(payment_part=payment_part, staking_part=staking_part, network=network).encode()


# =============================================================================
# TIME WINDOW
# =============================================================================

def as_chain_time_window(
    lower_ms: Optional[int],
    upper_ms: Optional[int],
    inclusive_lower_bound: bool = True,
    inclusive_upper_bound: bool = True,
) -> PosixTimeInterval:
    """
    Build the on-chain interval from bounds in milliseconds.

    ``None`` stands for negative (lower) or positive (upper) infinity.
    """
    for bound in (lower_ms, upper_ms):
        if bound is not None and (isinstance(bound, bool) or not isinstance(bound, int)):
            raise EncodingError("POSIX time bounds must be integers representing milliseconds since epoch")

    lower_type = NegativeInfinity() if lower_ms is None else Finite(lower_ms)
    upper_type = PositiveInfinity() if upper_ms is None else Finite(upper_ms)
    return PosixTimeInterval(
        IntervalBound(lower_type, as_chain_boolean(inclusive_lower_bound)),
        IntervalBound(upper_type, as_chain_boolean(inclusive_upper_bound)),
    )


def to_time_window(interval: PosixTimeInterval) -> TimeWindow:
    """Inclusive flags are dropped, collection windows are always inclusive."""
    lower = interval.lower_bound.bound_type
    upper = interval.upper_bound.bound_type
    if not isinstance(lower, Finite):
        raise EncodingError(f"Invalid lower bound of type {type(lower).__name__}")
    if not isinstance(upper, Finite):
        raise EncodingError(f"Invalid upper bound of type {type(upper).__name__}")
    return TimeWindow(lower.time, upper.time)


# =============================================================================
# OUTPUT REFERENCE
# =============================================================================

def as_chain_output_reference(reference: TxReference) -> OutputReference:
    try:
        tx_hash = bytes.fromhex(reference.tx_hash)
    except ValueError as err:
        raise EncodingError(f"Invalid transaction hash {reference.tx_hash!r}") from err
    return OutputReference(TransactionId(tx_hash), reference.index)


def to_tx_reference(reference: OutputReference) -> TxReference:
    return TxReference(reference.transaction_id.tx_hash.hex(), reference.output_index)
