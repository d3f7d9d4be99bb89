"""
Genesis Transaction Builder

Spends the seed UTxO and mints the management tokens of a new collection:

    state token  -> state validator       (inline genesis state datum)
    info token   -> immutable info        (inline collection info datum)
    owner token  -> owner address
    royalty      -> royalty address       (optional, CIP-102 datum)

The minting policy is parameterized by the seed, so every script of the
collection is fixed as soon as the seed is chosen.

Setters validate immediately and return a new builder. ``resolve`` fills
in what has to come from the ledger, ``build`` is pure.
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from pycardano import Address, Network, UTxO, plutus_script_hash

from asset_naming import check_policy_id, royalty_unit
from chain_data import TimeWindow, TxReference, parse_address
from collection_contract_config import CIP_88_METADATA_LABEL, SEQUENCE_MAX_VALUE, default_contracts_url
from collection_datum_types import GenesisCollection
from collection_errors import ConfigurationError
from collection_info import CollectionInfo, as_chain_collection_info
from collection_state import CollectionState, CollectionStateInfo, as_chain_state_data, genesis
from ledger_client import InputSpec, LedgerClient, OutputSpec, TxRequest, utxo_reference, wallet_address
from registration_metadata import RegistrationBuilder
from royalty_encoding import Royalty, to_cip102_royalty_datum, validate_royalty
from script_bundle import Parameterizer, ScriptBundle, fetch_bundle
from script_cache import BundleLoader, ScriptParameterCache

logger = logging.getLogger(__name__)

IMMUTABLE = "immutable"
PERMISSIVE = "permissive"
CUSTOM = "custom"


@dataclass(frozen=True)
class GenesisResult:
    request: TxRequest
    cache: ScriptParameterCache
    # tentative until the transaction is confirmed
    state: CollectionState
    recipient: str


def _script_address(script, network: Network) -> str:
    return Address(payment_part=plutus_script_hash(script), network=network).encode()


def _check_address(address: str, what: str) -> str:
    try:
        parse_address(address)
    except ConfigurationError as err:
        raise ConfigurationError(f"{what} must be a bech32 encoded address: {address!r}") from err
    return address


@dataclass(frozen=True)
class GenesisBuilder:
    seed_utxo: Optional[UTxO] = None
    info_record: Optional[CollectionInfo] = None
    contracts_url: str = ""
    bundle: Optional[ScriptBundle] = None
    script_cache: Optional[ScriptParameterCache] = None
    group_policy_id: Optional[str] = None
    window: Optional[TimeWindow] = None
    max_nft_count: Optional[int] = None
    nft_validator_kind: str = IMMUTABLE
    custom_nft_validator_address: Optional[str] = None
    delegate: Optional[str] = None
    royalties: Tuple[Royalty, ...] = ()
    royalty_address: Optional[str] = None
    owner: Optional[str] = None
    cip88: bool = False
    cip88_nonce: Optional[int] = None
    network: Network = Network.TESTNET
    parameterizer: Optional[Parameterizer] = None
    bundle_loader: BundleLoader = fetch_bundle

    @classmethod
    def create(cls, network: Network = Network.TESTNET, parameterizer: Optional[Parameterizer] = None,
               bundle_loader: BundleLoader = fetch_bundle) -> "GenesisBuilder":
        return cls(
            contracts_url=default_contracts_url(),
            network=network,
            parameterizer=parameterizer,
            bundle_loader=bundle_loader,
        )

    # =========================================================================
    # SETTERS
    # =========================================================================

    def seed(self, utxo: UTxO) -> "GenesisBuilder":
        return replace(self, seed_utxo=utxo)

    def info(self, info: CollectionInfo) -> "GenesisBuilder":
        if not info.name:
            raise ConfigurationError("Collection name is required")
        return replace(self, info_record=info)

    def contracts(self, url: str) -> "GenesisBuilder":
        if not url:
            raise ConfigurationError("Contracts url can't be empty")
        return replace(self, contracts_url=url, bundle=None)

    def with_bundle(self, bundle: ScriptBundle) -> "GenesisBuilder":
        return replace(self, bundle=bundle, contracts_url=bundle.url)

    def cache(self, cache: ScriptParameterCache) -> "GenesisBuilder":
        return replace(self, script_cache=cache, bundle=cache.bundle, contracts_url=cache.contracts_url())

    def group(self, policy_id: str) -> "GenesisBuilder":
        if not check_policy_id(policy_id):
            raise ConfigurationError("Group policy id must be a 28 bytes hex string")
        return replace(self, group_policy_id=policy_id)

    def mint_window(self, from_ms: int, to_ms: int) -> "GenesisBuilder":
        if not isinstance(from_ms, int) or not isinstance(to_ms, int) or from_ms < 0 or from_ms >= to_ms:
            raise ConfigurationError("Start and End milliseconds must be positive integers with end > start")
        return replace(self, window=TimeWindow(from_ms, to_ms))

    def max_nfts(self, max_nfts: int) -> "GenesisBuilder":
        if isinstance(max_nfts, bool) or not isinstance(max_nfts, int) or not 1 <= max_nfts <= SEQUENCE_MAX_VALUE:
            raise ConfigurationError(f"If using max NFTs it must be between 1 and {SEQUENCE_MAX_VALUE}")
        return replace(self, max_nft_count=max_nfts)

    def nft_validator_address(self, address: str) -> "GenesisBuilder":
        _check_address(address, "Reference token validator address")
        return replace(self, nft_validator_kind=CUSTOM, custom_nft_validator_address=address)

    def nft_validator(self, script) -> "GenesisBuilder":
        return replace(
            self,
            nft_validator_kind=CUSTOM,
            custom_nft_validator_address=_script_address(script, self.network),
        )

    def use_immutable_nft_validator(self) -> "GenesisBuilder":
        return replace(self, nft_validator_kind=IMMUTABLE, custom_nft_validator_address=None)

    def use_permissive_nft_validator(self) -> "GenesisBuilder":
        return replace(self, nft_validator_kind=PERMISSIVE, custom_nft_validator_address=None)

    def allow_delegate_to_create_script_references(self, delegate: str) -> "GenesisBuilder":
        if not check_policy_id(delegate):
            raise ConfigurationError("Delegate must be a 28 bytes hex public key hash")
        return replace(self, delegate=delegate)

    def royalty_validator_address(self, address: str) -> "GenesisBuilder":
        _check_address(address, "Royalty address")
        return replace(self, royalty_address=address)

    def royalty_validator(self, script) -> "GenesisBuilder":
        return replace(self, royalty_address=_script_address(script, self.network))

    def owner_address(self, address: str) -> "GenesisBuilder":
        _check_address(address, "Owner address")
        return replace(self, owner=address)

    def use_cip88(self, use_cip88: bool = True, nonce: Optional[int] = None) -> "GenesisBuilder":
        return replace(self, cip88=use_cip88, cip88_nonce=nonce)

    def royalty(
        self,
        address: str,
        variable_fee: float,
        min_fee: Optional[int] = None,
        max_fee: Optional[int] = None,
    ) -> "GenesisBuilder":
        _check_address(address, "Royalty recipient")
        royalty = Royalty(address, variable_fee, min_fee, max_fee)
        validate_royalty(royalty, self.royalties)
        return replace(self, royalties=self.royalties + (royalty,))

    # =========================================================================
    # RESOLVE / BUILD
    # =========================================================================

    async def resolve(self, client: LedgerClient) -> "GenesisBuilder":
        """Load the bundle and default the owner to the wallet address."""
        builder = self
        if builder.script_cache is None and builder.bundle is None:
            builder = replace(builder, bundle=builder.bundle_loader(builder.contracts_url))
        if builder.owner is None:
            builder = replace(builder, owner=await wallet_address(client))
        return builder

    def _resolve_cache(self, seed: TxReference) -> ScriptParameterCache:
        if self.script_cache is not None:
            if self.script_cache.seed != seed:
                raise ConfigurationError("Script cache was created for a different seed")
            return self.script_cache
        if self.bundle is None:
            raise ConfigurationError("Missing contracts bundle. Did you forget to call `resolve(client)`?")
        return ScriptParameterCache.cold(self.bundle, seed, self.network, self.parameterizer)

    def build(self) -> GenesisResult:
        if self.seed_utxo is None:
            raise ConfigurationError("Missing required field seed. Did you forget to call `seed(utxo)`?")
        if self.info_record is None:
            raise ConfigurationError("Missing required collection information. Did you call `info(info)`?")
        if self.owner is None:
            raise ConfigurationError("Missing owner address. Set `owner_address` or call `resolve(client)`")

        seed = utxo_reference(self.seed_utxo)
        cache = self._resolve_cache(seed)
        logger.debug("Building genesis from seed %s", seed)

        mint_script = cache.mint()
        state_script = cache.state()
        info_script = cache.immutable_info()
        unit = cache.unit()

        if self.nft_validator_kind == IMMUTABLE:
            nft_validator_address = cache.immutable_nft().address
        elif self.nft_validator_kind == PERMISSIVE:
            nft_validator_address = cache.permissive_nft().address
        else:
            nft_validator_address = self.custom_nft_validator_address

        if self.delegate is not None:
            script_reference_policy_id = cache.delegate_mint(self.delegate).policy_id
        else:
            script_reference_policy_id = cache.derivative_mint().policy_id

        state = genesis(CollectionStateInfo(
            contracts_url=cache.contracts_url(),
            seed=seed,
            script_reference_policy_id=script_reference_policy_id,
            group=self.group_policy_id,
            mint_window=self.window,
            max_nfts=self.max_nft_count,
            nft_validator_address=nft_validator_address,
        ))

        redeemer = GenesisCollection(
            state_validator_policy_id=bytes.fromhex(state_script.policy_id),
            info_validator_policy_id=bytes.fromhex(info_script.policy_id),
        )

        request = TxRequest(
            inputs=[InputSpec(self.seed_utxo)],
            mint={unit.state: 1, unit.info: 1, unit.owner: 1},
            mint_redeemers={mint_script.policy_id: redeemer},
            mint_scripts=[mint_script.script],
            outputs=[
                OutputSpec(state_script.address, {unit.state: 1}, datum=as_chain_state_data(state)),
                OutputSpec(info_script.address, {unit.info: 1}, datum=as_chain_collection_info(self.info_record)),
                OutputSpec(self.owner, {unit.owner: 1}),
            ],
        )

        if self.royalties:
            royalty = royalty_unit(mint_script.policy_id)
            request.mint[royalty] = 1
            request.outputs.append(OutputSpec(
                self.royalty_address or cache.spend_lock().address,
                {royalty: 1},
                datum=to_cip102_royalty_datum(self.royalties),
            ))

        if self.cip88:
            registration = RegistrationBuilder.register(mint_script.script).validate_with_beacon(unit.owner)
            if self.royalties:
                registration = registration.cip102_royalties(self.royalties)
            registration = registration.cip68_info(self.info_record)
            request.metadata[CIP_88_METADATA_LABEL] = registration.build(nonce=self.cip88_nonce)

        logger.info("Prepared genesis of collection %s", mint_script.policy_id)
        return GenesisResult(request=request, cache=cache, state=state, recipient=self.owner)
