"""
Mint Transaction Builder

Spends the collection state UTxO and mints a CIP-68 pair for every NFT:

    state token    -> state validator    (next state datum)
    owner token    -> recipient          (spent as witness and returned)
    reference NFTs -> NFT validator      (metadata datum)
    user NFTs      -> recipients

Sequence numbers are allocated from the current ``next_sequence`` in the
order the NFTs were added.
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from pycardano import Network, UTxO

from asset_naming import check_policy_id, royalty_unit
from chain_data import TimeWindow, parse_address
from collection_contract_config import CIP_25_METADATA_LABEL, MINTING_STATE_VALIDATOR, NFT_MINTING_POLICY
from collection_datum_types import MintNfts, SpendStateForMint
from collection_errors import ConfigurationError
from collection_state import CollectionState, as_chain_state_data, extract_collection_state, mint, now_ms
from ledger_client import InputSpec, LedgerClient, OutputSpec, TxRequest, find_utxo, wallet_address
from nft_metadata import AddressedNft, Nft, cip25_metadata, prepare_assets
from script_bundle import Parameterizer, fetch_bundle
from script_cache import BundleLoader, ScriptParameterCache, fetch_owner_utxo, fetch_state_utxo
from script_references import find_script_reference_utxo

logger = logging.getLogger(__name__)

# Default validity when none is given, relative to the reference time
DEFAULT_VALID_FROM_OFFSET_MS = 500_000_000
DEFAULT_VALID_TO_OFFSET_MS = 600_000


@dataclass(frozen=True)
class MintResult:
    request: TxRequest
    cache: ScriptParameterCache
    # tentative until the transaction is confirmed
    state: CollectionState


def default_validity(reference_time_ms: int, window: Optional[TimeWindow] = None) -> TimeWindow:
    """Validity around ``reference_time_ms``, clamped to the mint window."""
    valid_from = reference_time_ms - DEFAULT_VALID_FROM_OFFSET_MS
    valid_to = reference_time_ms + DEFAULT_VALID_TO_OFFSET_MS
    if window is not None:
        valid_from = max(valid_from, window.from_ms)
        valid_to = min(valid_to, window.to_ms)
    return TimeWindow(valid_from, valid_to)


@dataclass(frozen=True)
class MintBuilder:
    minting_policy_id: Optional[str] = None
    script_cache: Optional[ScriptParameterCache] = None
    recipient_address: Optional[str] = None
    state_utxo: Optional[UTxO] = None
    owner_utxo: Optional[UTxO] = None
    minting_policy_reference_utxo: Optional[UTxO] = None
    state_validator_reference_utxo: Optional[UTxO] = None
    current_state: Optional[CollectionState] = None
    pending: Tuple[AddressedNft, ...] = ()
    has_royalty: Optional[bool] = None
    cip25: bool = False
    valid_from_ms: Optional[int] = None
    valid_to_ms: Optional[int] = None
    reference_time_ms: Optional[int] = None
    network: Network = Network.TESTNET
    parameterizer: Optional[Parameterizer] = None
    bundle_loader: BundleLoader = fetch_bundle

    @classmethod
    def create(cls, network: Network = Network.TESTNET, parameterizer: Optional[Parameterizer] = None,
               bundle_loader: BundleLoader = fetch_bundle) -> "MintBuilder":
        return cls(network=network, parameterizer=parameterizer, bundle_loader=bundle_loader)

    # =========================================================================
    # SETTERS
    # =========================================================================

    def policy_id(self, policy_id: str) -> "MintBuilder":
        if not check_policy_id(policy_id):
            raise ConfigurationError("Minting policy id must be a 28 bytes hex string")
        return replace(self, minting_policy_id=policy_id)

    def cache(self, cache: ScriptParameterCache) -> "MintBuilder":
        return replace(self, script_cache=cache)

    def recipient(self, address: str) -> "MintBuilder":
        parse_address(address)
        return replace(self, recipient_address=address)

    def state_utxo_input(self, utxo: UTxO) -> "MintBuilder":
        return replace(self, state_utxo=utxo)

    def owner_utxo_input(self, utxo: UTxO) -> "MintBuilder":
        return replace(self, owner_utxo=utxo)

    def minting_policy_reference(self, utxo: UTxO) -> "MintBuilder":
        return replace(self, minting_policy_reference_utxo=utxo)

    def state_validator_reference(self, utxo: UTxO) -> "MintBuilder":
        return replace(self, state_validator_reference_utxo=utxo)

    def state(self, state: CollectionState) -> "MintBuilder":
        return replace(self, current_state=state)

    def royalty_included(self, has_royalty: bool = True) -> "MintBuilder":
        return replace(self, has_royalty=has_royalty)

    def nft(self, metadata: Nft, recipient: Optional[str] = None) -> "MintBuilder":
        if not metadata.name:
            raise ConfigurationError("NFT name is required")
        if recipient is not None:
            parse_address(recipient)
        return replace(self, pending=self.pending + (AddressedNft(metadata, recipient),))

    def nfts(self, nfts: Sequence[Nft], recipient: Optional[str] = None) -> "MintBuilder":
        builder = self
        for metadata in nfts:
            builder = builder.nft(metadata, recipient)
        return builder

    def use_cip25(self, use_cip25: bool = True) -> "MintBuilder":
        return replace(self, cip25=use_cip25)

    def valid_from(self, time_ms: int) -> "MintBuilder":
        if self.valid_to_ms is not None and time_ms >= self.valid_to_ms:
            raise ConfigurationError("Valid from must be before valid to")
        return replace(self, valid_from_ms=time_ms)

    def valid_to(self, time_ms: int) -> "MintBuilder":
        if self.valid_from_ms is not None and time_ms <= self.valid_from_ms:
            raise ConfigurationError("Valid to must be after valid from")
        return replace(self, valid_to_ms=time_ms)

    def reference_time(self, time_ms: int) -> "MintBuilder":
        return replace(self, reference_time_ms=time_ms)

    # =========================================================================
    # RESOLVE / BUILD
    # =========================================================================

    async def resolve(self, client: LedgerClient) -> "MintBuilder":
        """
        Fetch everything ``build`` needs from the ledger: cache, state UTxO,
        current state, owner token, recipient, royalty presence and the
        script reference UTxOs when they exist.
        """
        builder = self
        if builder.script_cache is None:
            if builder.state_utxo is not None:
                state, cache = ScriptParameterCache.from_state_utxo(
                    builder.state_utxo, builder.network, builder.parameterizer, builder.bundle_loader
                )
            elif builder.minting_policy_id is not None:
                state, cache = await ScriptParameterCache.from_mint_policy_id(
                    client, builder.minting_policy_id, builder.network, builder.parameterizer, builder.bundle_loader
                )
            else:
                raise ConfigurationError(
                    "Must either supply a script cache, state utxo, or minting policy id to build transaction"
                )
            builder = replace(builder, script_cache=cache, current_state=builder.current_state or state)

        cache = builder.script_cache
        policy_id = cache.mint().policy_id

        if builder.state_utxo is None:
            builder = replace(builder, state_utxo=await fetch_state_utxo(client, cache))
        if builder.current_state is None:
            builder = replace(builder, current_state=extract_collection_state(builder.state_utxo, builder.network))
        if builder.owner_utxo is None:
            builder = replace(builder, owner_utxo=await fetch_owner_utxo(client, cache))
        if builder.recipient_address is None:
            builder = replace(builder, recipient_address=await wallet_address(client))

        if builder.has_royalty is None:
            royalty = await find_utxo(client, royalty_unit(policy_id), required=False)
            builder = replace(builder, has_royalty=royalty is not None)

        reference_policy_id = builder.current_state.info.script_reference_policy_id
        if reference_policy_id:
            if builder.minting_policy_reference_utxo is None:
                builder = replace(builder, minting_policy_reference_utxo=await find_script_reference_utxo(
                    client, cache, reference_policy_id, NFT_MINTING_POLICY
                ))
            if builder.state_validator_reference_utxo is None:
                builder = replace(builder, state_validator_reference_utxo=await find_script_reference_utxo(
                    client, cache, reference_policy_id, MINTING_STATE_VALIDATOR
                ))
        return builder

    def build(self) -> MintResult:
        if not self.pending:
            raise ConfigurationError("Cannot build a mint transaction with no NFTs to mint")
        if self.script_cache is None or self.state_utxo is None or self.current_state is None:
            raise ConfigurationError("Missing cache or state. Did you forget to call `resolve(client)`?")
        if self.owner_utxo is None:
            raise ConfigurationError("The owner token UTxO is required to mint")
        if self.recipient_address is None:
            raise ConfigurationError("Missing recipient. Set `recipient` or call `resolve(client)`")

        cache = self.script_cache
        mint_script = cache.mint()
        state_script = cache.state()
        policy_id = mint_script.policy_id
        if self.minting_policy_id is not None and self.minting_policy_id != policy_id:
            raise ConfigurationError(f"Script cache is for policy {policy_id}, not {self.minting_policy_id}")

        reference_time = now_ms() if self.reference_time_ms is None else self.reference_time_ms
        current = self.current_state
        next_state = mint(current, len(self.pending), reference_time)
        logger.debug("Minting %d NFT(s) from sequence %d", len(self.pending), current.next_sequence)

        prepared = prepare_assets(
            self.pending,
            policy_id,
            current.next_sequence,
            self.recipient_address,
            bool(self.has_royalty),
            current.info.nft_validator_address,
        )

        validity = default_validity(reference_time, current.info.mint_window)
        if self.valid_from_ms is not None:
            validity = replace(validity, from_ms=self.valid_from_ms)
        if self.valid_to_ms is not None:
            validity = replace(validity, to_ms=self.valid_to_ms)

        request = TxRequest(
            inputs=[
                InputSpec(self.state_utxo, SpendStateForMint()),
                InputSpec(self.owner_utxo),
            ],
            mint={**prepared.user_mints, **prepared.reference_mints},
            mint_redeemers={policy_id: MintNfts()},
            validity=validity,
        )

        if self.state_validator_reference_utxo is not None:
            request.reference_inputs.append(self.state_validator_reference_utxo)
        else:
            request.spend_scripts.append(state_script.script)
        if self.minting_policy_reference_utxo is not None:
            request.reference_inputs.append(self.minting_policy_reference_utxo)
        else:
            request.mint_scripts.append(mint_script.script)

        request.outputs.append(OutputSpec(self.recipient_address, {cache.unit().owner: 1}))
        request.outputs.append(OutputSpec(
            state_script.address, {cache.unit().state: 1}, datum=as_chain_state_data(next_state)
        ))
        for payout in prepared.reference_payouts:
            request.outputs.append(OutputSpec(payout.address, {payout.unit: 1}, datum=payout.datum))
        for address, units in prepared.user_payouts.items():
            request.outputs.append(OutputSpec(address, {unit: 1 for unit in units}))

        if self.cip25:
            request.metadata[CIP_25_METADATA_LABEL] = cip25_metadata(policy_id, prepared.cip25_metadata)

        logger.info(
            "Prepared mint of %d NFT(s) for %s, next sequence %d",
            len(self.pending), policy_id, next_state.next_sequence,
        )
        return MintResult(request=request, cache=cache, state=next_state)
