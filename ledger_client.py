"""
Ledger Client Boundary

The collection modules never talk to a node, an indexer or a wallet
directly. Everything that needs the ledger goes through an object
implementing ``LedgerClient``; everything the modules produce is an
unsigned ``TxRequest`` that the client balances, signs and submits.

UTxOs are pycardano ``UTxO`` values.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple, Type

from pycardano import (
    Address,
    AlonzoMetadata,
    AssetName,
    AuxiliaryData,
    Metadata,
    MultiAsset,
    PlutusData,
    ScriptHash,
    TransactionOutput,
    UTxO,
    Value,
)
from pycardano.exception import PyCardanoException

from asset_naming import from_unit
from chain_data import TimeWindow, TxReference, parse_address
from collection_errors import CollectionError, EncodingError, ExternalError, NotFoundError

logger = logging.getLogger(__name__)


class LedgerClient(Protocol):
    """Operations the collection modules need from the outside world."""

    async def lookup_utxo_by_asset(self, unit: str) -> Optional[UTxO]:
        ...

    async def lookup_utxos_at_address(self, address: str) -> List[UTxO]:
        ...

    async def wallet_address(self) -> str:
        ...

    async def wallet_utxos(self) -> List[UTxO]:
        ...

    async def sign_and_submit(self, request: "TxRequest") -> str:
        ...

    async def await_confirmation(self, tx_id: str) -> bool:
        ...

    async def derive_script_address(self, script: bytes) -> Tuple[str, str]:
        """Return ``(policy_id, bech32 address)`` of compiled script bytes."""
        ...


# =============================================================================
# UNSIGNED TRANSACTION REQUEST
# =============================================================================

@dataclass
class InputSpec:
    utxo: UTxO
    redeemer: Optional[PlutusData] = None


@dataclass
class OutputSpec:
    """
    One output. ``lovelace`` of 0 leaves the minimum ada to the client.
    ``assets`` maps unit -> quantity.
    """
    address: str
    assets: Dict[str, int] = field(default_factory=dict)
    lovelace: int = 0
    datum: Optional[PlutusData] = None
    reference_script: Any = None

    def to_transaction_output(self) -> TransactionOutput:
        amount = Value(self.lovelace, to_multi_asset(self.assets))
        return TransactionOutput(
            parse_address(self.address),
            amount,
            datum=self.datum,
            script=self.reference_script,
        )


@dataclass
class TxRequest:
    """
    Everything a client needs to balance and sign a collection transaction.

    mint maps unit -> quantity and is minted with ``mint_redeemer`` under
    the scripts in ``mint_scripts`` (or their reference inputs). Validators
    of spent script inputs not covered by a reference input are in
    ``spend_scripts``.
    """
    inputs: List[InputSpec] = field(default_factory=list)
    reference_inputs: List[UTxO] = field(default_factory=list)
    mint: Dict[str, int] = field(default_factory=dict)
    mint_redeemers: Dict[str, PlutusData] = field(default_factory=dict)
    mint_scripts: List[Any] = field(default_factory=list)
    spend_scripts: List[Any] = field(default_factory=list)
    outputs: List[OutputSpec] = field(default_factory=list)
    metadata: Dict[int, Any] = field(default_factory=dict)
    validity: Optional[TimeWindow] = None
    required_signers: List[str] = field(default_factory=list)

    def mint_multi_asset(self) -> MultiAsset:
        return to_multi_asset(self.mint)

    def transaction_outputs(self) -> List[TransactionOutput]:
        return [output.to_transaction_output() for output in self.outputs]

    def to_auxiliary_data(self) -> Optional[AuxiliaryData]:
        if not self.metadata:
            return None
        try:
            return AuxiliaryData(AlonzoMetadata(metadata=Metadata(self.metadata)))
        except PyCardanoException as err:
            raise EncodingError(f"Invalid transaction metadata: {err}") from err


def to_multi_asset(assets: Dict[str, int]) -> MultiAsset:
    grouped: Dict[bytes, Dict[bytes, int]] = {}
    for unit, quantity in assets.items():
        policy_id, name = from_unit(unit)
        grouped.setdefault(bytes.fromhex(policy_id), {})[name] = quantity
    return MultiAsset.from_primitive(grouped)


# =============================================================================
# UTXO HELPERS
# =============================================================================

def utxo_reference(utxo: UTxO) -> TxReference:
    return TxReference(utxo.input.transaction_id.payload.hex(), utxo.input.index)


def unit_quantity(utxo: UTxO, unit: str) -> int:
    amount = utxo.output.amount
    if isinstance(amount, int):
        return 0
    policy_id, name = from_unit(unit)
    asset = amount.multi_asset.get(ScriptHash(bytes.fromhex(policy_id)))
    if asset is None:
        return 0
    return asset.get(AssetName(name), 0)


def utxo_units(utxo: UTxO) -> List[str]:
    amount = utxo.output.amount
    if isinstance(amount, int):
        return []
    return [
        policy_id.payload.hex() + name.payload.hex()
        for policy_id, asset in amount.multi_asset.items()
        for name in asset
    ]


def decode_datum(utxo: UTxO, datum_type: Type[PlutusData]):
    """Decode the inline datum of ``utxo`` as ``datum_type``."""
    datum = utxo.output.datum
    if datum is None:
        raise NotFoundError(f"UTxO {utxo_reference(utxo)} has no inline datum")
    if isinstance(datum, datum_type):
        return datum
    try:
        return datum_type.from_cbor(datum if isinstance(datum, (bytes, str)) else datum.to_cbor())
    except (PyCardanoException, ValueError, TypeError, KeyError) as err:
        raise EncodingError(
            f"Datum of {utxo_reference(utxo)} is not a {datum_type.__name__}"
        ) from err


async def call_client(description: str, awaitable):
    """Await a client call, surfacing client failures as ExternalError."""
    try:
        return await awaitable
    except CollectionError:
        raise
    except Exception as err:
        raise ExternalError(f"Ledger client failed to {description}: {err}") from err


async def find_utxo(client: LedgerClient, unit: str, required: bool = True) -> Optional[UTxO]:
    """Look for ``unit`` in the wallet first, then anywhere on chain."""
    for utxo in await call_client("list wallet utxos", client.wallet_utxos()):
        if unit_quantity(utxo, unit) > 0:
            return utxo

    utxo = await call_client(f"look up {unit}", client.lookup_utxo_by_asset(unit))
    if utxo is None and required:
        raise NotFoundError(f"Could not find UTxO holding {unit}")
    return utxo


async def fetch_utxo(client: LedgerClient, address: str, unit: str) -> UTxO:
    """UTxO at ``address`` holding ``unit``."""
    utxos = await call_client(f"list utxos at {address}", client.lookup_utxos_at_address(address))
    for utxo in utxos:
        if unit_quantity(utxo, unit) > 0:
            return utxo
    raise NotFoundError(f"No UTxO at {address} holds {unit}")


async def wallet_address(client: LedgerClient) -> str:
    address = await call_client("read wallet address", client.wallet_address())
    if isinstance(address, Address):
        return address.encode()
    return address


async def submit(client: LedgerClient, request: TxRequest) -> str:
    """Sign, submit and wait for confirmation. Returns the transaction id."""
    tx_id = await call_client("sign and submit", client.sign_and_submit(request))
    logger.info("Submitted transaction %s", tx_id)

    confirmed = await call_client(f"confirm {tx_id}", client.await_confirmation(tx_id))
    if not confirmed:
        raise ExternalError(f"Transaction {tx_id} was not confirmed")
    logger.info("Confirmed transaction %s", tx_id)
    return tx_id
