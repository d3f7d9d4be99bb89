"""
Script Parameter Cache

Every collection script is a pure function of (template, seed) or
(template, minting policy id), so each one is derived at most once per
cache and memoized. A cache is either:

- cold: only the bundle and seed are known, everything derives lazily
- warm: seeded with already known script infos (e.g. after a restart)

The delegate minting policy is the exception: it is re-derived whenever
the delegate key differs from the last one used.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from pycardano import Network, UTxO

from asset_naming import info_unit, owner_unit, state_unit
from chain_data import TxReference
from collection_contracts import (
    parameterize_delegate_minting_policy,
    parameterize_derivative_minting_policy,
    parameterize_immutable_info_validator,
    parameterize_immutable_nft_validator,
    parameterize_minting_policy,
    parameterize_permissive_nft_validator,
    parameterize_spend_lock_validator,
    parameterize_state_validator,
)
from collection_errors import ExternalError
from collection_state import CollectionState, extract_collection_state
from ledger_client import LedgerClient, call_client, fetch_utxo, find_utxo
from script_bundle import Parameterizer, ScriptBundle, ScriptInfo, fetch_bundle

logger = logging.getLogger(__name__)

BundleLoader = Callable[[str], ScriptBundle]

MINT_SLOT = "mint"
STATE_SLOT = "state"
IMMUTABLE_INFO_SLOT = "immutable_info"
IMMUTABLE_NFT_SLOT = "immutable_nft"
PERMISSIVE_NFT_SLOT = "permissive_nft"
SPEND_LOCK_SLOT = "spend_lock"
DERIVATIVE_MINT_SLOT = "derivative_mint"
DELEGATE_MINT_SLOT = "delegate_mint"


@dataclass(frozen=True)
class ManageUnitLookup:
    """Management token units of a collection."""
    info: str
    owner: str
    state: str


class ScriptParameterCache:

    def __init__(
        self,
        bundle: ScriptBundle,
        seed: TxReference,
        network: Network = Network.TESTNET,
        parameterizer: Optional[Parameterizer] = None,
    ):
        self.bundle = bundle
        self.seed = seed
        self.network = network
        self.parameterizer = parameterizer
        self._slots: Dict[str, ScriptInfo] = {}
        self._delegate: Optional[str] = None
        self._unit: Optional[ManageUnitLookup] = None

    @classmethod
    def cold(cls, bundle, seed, network=Network.TESTNET, parameterizer=None) -> "ScriptParameterCache":
        return cls(bundle, seed, network, parameterizer)

    @classmethod
    def warm(
        cls,
        bundle: ScriptBundle,
        seed: TxReference,
        mint: Optional[ScriptInfo] = None,
        state: Optional[ScriptInfo] = None,
        unit: Optional[ManageUnitLookup] = None,
        network: Network = Network.TESTNET,
        parameterizer: Optional[Parameterizer] = None,
    ) -> "ScriptParameterCache":
        cache = cls(bundle, seed, network, parameterizer)
        if mint is not None:
            cache._slots[MINT_SLOT] = mint
        if state is not None:
            cache._slots[STATE_SLOT] = state
        cache._unit = unit
        return cache

    @classmethod
    def copy(cls, cache: "ScriptParameterCache") -> "ScriptParameterCache":
        """New cache sharing the minting policy, state validator and units."""
        return cls.warm(
            cache.bundle,
            cache.seed,
            mint=cache._slots.get(MINT_SLOT),
            state=cache._slots.get(STATE_SLOT),
            unit=cache._unit,
            network=cache.network,
            parameterizer=cache.parameterizer,
        )

    @classmethod
    def from_state_utxo(
        cls,
        state_utxo: UTxO,
        network: Network = Network.TESTNET,
        parameterizer: Optional[Parameterizer] = None,
        bundle_loader: BundleLoader = fetch_bundle,
    ) -> Tuple[CollectionState, "ScriptParameterCache"]:
        """Rebuild the cache from the bundle url and seed recorded in the state datum."""
        state = extract_collection_state(state_utxo, network)
        bundle = bundle_loader(state.info.contracts_url)
        return state, cls.cold(bundle, state.info.seed, network, parameterizer)

    @classmethod
    async def from_mint_policy_id(
        cls,
        client: LedgerClient,
        policy_id: str,
        network: Network = Network.TESTNET,
        parameterizer: Optional[Parameterizer] = None,
        bundle_loader: BundleLoader = fetch_bundle,
    ) -> Tuple[CollectionState, "ScriptParameterCache"]:
        state_utxo = await find_utxo(client, state_unit(policy_id))
        return cls.from_state_utxo(state_utxo, network, parameterizer, bundle_loader)

    def _get_or_derive(self, slot: str, derive: Callable[[], ScriptInfo]) -> ScriptInfo:
        info = self._slots.get(slot)
        if info is None:
            info = derive()
            logger.debug("Derived %s script %s", slot, info.policy_id)
            self._slots[slot] = info
        return info

    def contracts_url(self) -> str:
        return self.bundle.url

    def mint(self) -> ScriptInfo:
        return self._get_or_derive(
            MINT_SLOT,
            lambda: parameterize_minting_policy(self.bundle, self.seed, self.parameterizer, self.network),
        )

    def _by_policy_id(self, slot: str, parameterize) -> ScriptInfo:
        return self._get_or_derive(
            slot,
            lambda: parameterize(self.bundle, self.mint().policy_id, self.parameterizer, self.network),
        )

    def state(self) -> ScriptInfo:
        return self._by_policy_id(STATE_SLOT, parameterize_state_validator)

    def immutable_info(self) -> ScriptInfo:
        return self._by_policy_id(IMMUTABLE_INFO_SLOT, parameterize_immutable_info_validator)

    def immutable_nft(self) -> ScriptInfo:
        return self._by_policy_id(IMMUTABLE_NFT_SLOT, parameterize_immutable_nft_validator)

    def permissive_nft(self) -> ScriptInfo:
        return self._by_policy_id(PERMISSIVE_NFT_SLOT, parameterize_permissive_nft_validator)

    def spend_lock(self) -> ScriptInfo:
        return self._by_policy_id(SPEND_LOCK_SLOT, parameterize_spend_lock_validator)

    def derivative_mint(self) -> ScriptInfo:
        return self._by_policy_id(DERIVATIVE_MINT_SLOT, parameterize_derivative_minting_policy)

    def delegate_mint(self, delegate: str) -> ScriptInfo:
        if self._delegate != delegate:
            self._slots.pop(DELEGATE_MINT_SLOT, None)
            self._delegate = delegate
        return self._get_or_derive(
            DELEGATE_MINT_SLOT,
            lambda: parameterize_delegate_minting_policy(
                self.bundle, self.mint().policy_id, delegate, self.parameterizer, self.network
            ),
        )

    def unit(self) -> ManageUnitLookup:
        if self._unit is None:
            policy_id = self.mint().policy_id
            self._unit = ManageUnitLookup(
                info=info_unit(policy_id),
                owner=owner_unit(policy_id),
                state=state_unit(policy_id),
            )
        return self._unit


# =============================================================================
# FETCH HELPERS
# =============================================================================

async def fetch_state_utxo(client: LedgerClient, cache: ScriptParameterCache) -> UTxO:
    """UTxO holding the state token at the state validator."""
    return await fetch_utxo(client, cache.state().address, cache.unit().state)


async def fetch_info_utxo(client: LedgerClient, cache: ScriptParameterCache) -> UTxO:
    return await fetch_utxo(client, cache.immutable_info().address, cache.unit().info)


async def fetch_owner_utxo(client: LedgerClient, cache: ScriptParameterCache) -> UTxO:
    return await find_utxo(client, cache.unit().owner)


async def check_script_address(client: LedgerClient, info: ScriptInfo) -> None:
    """Confirm the client derives the same policy id and address for ``info``."""
    policy_id, address = await call_client(
        f"derive address of {info.name}", client.derive_script_address(bytes(info.script))
    )
    if policy_id != info.policy_id or address != info.address:
        raise ExternalError(
            f"Ledger client derived {policy_id}/{address} for {info.name}, expected {info.policy_id}/{info.address}"
        )
