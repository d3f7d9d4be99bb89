import asyncio

import pytest

from asset_naming import info_unit, owner_unit, state_unit
from collection_errors import ExternalError, NotFoundError
from collection_state import CollectionStateInfo, create_genesis_state_data, genesis
from script_cache import (
    ManageUnitLookup,
    ScriptParameterCache,
    check_script_address,
    fetch_owner_utxo,
    fetch_state_utxo,
)


def test_cold_cache_memoizes(bundle, seed, parameterizer):
    calls = []

    def counting(code, params):
        calls.append(code)
        return parameterizer(code, params)

    cache = ScriptParameterCache.cold(bundle, seed, parameterizer=counting)
    first = cache.mint()
    assert cache.mint() is first
    cache.state()
    cache.state()
    assert len(calls) == 2


def test_roles_derive_distinct_scripts(bundle, seed, parameterizer):
    cache = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    policy_ids = {
        cache.mint().policy_id,
        cache.state().policy_id,
        cache.immutable_info().policy_id,
        cache.immutable_nft().policy_id,
        cache.permissive_nft().policy_id,
        cache.spend_lock().policy_id,
        cache.derivative_mint().policy_id,
    }
    assert len(policy_ids) == 7


def test_derivation_is_deterministic(bundle, seed, parameterizer):
    one = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    two = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    assert one.mint() == two.mint()
    assert one.state() == two.state()


def test_delegate_policy_rederived_for_new_delegate(bundle, seed, parameterizer):
    cache = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    first = cache.delegate_mint("11" * 28)
    assert cache.delegate_mint("11" * 28) is first
    second = cache.delegate_mint("22" * 28)
    assert second.policy_id != first.policy_id


def test_unit_lookup(bundle, seed, parameterizer):
    cache = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    policy_id = cache.mint().policy_id
    assert cache.unit() == ManageUnitLookup(info_unit(policy_id), owner_unit(policy_id), state_unit(policy_id))


def test_warm_cache_skips_derivation(bundle, seed, parameterizer):
    cold = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)

    def forbidden(code, params):
        raise AssertionError("should not derive")

    warm = ScriptParameterCache.warm(bundle, seed, mint=cold.mint(), state=cold.state(), unit=cold.unit(),
                                     parameterizer=forbidden)
    assert warm.mint() is cold.mint()
    assert warm.state() is cold.state()
    assert warm.unit() is cold.unit()


def test_copy_shares_mint_and_state(bundle, seed, parameterizer):
    cache = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    cache.state()
    copied = ScriptParameterCache.copy(cache)
    assert copied.mint() is cache.mint()
    assert copied.state() is cache.state()
    assert copied.contracts_url() == bundle.url


def test_from_state_utxo(bundle, seed, parameterizer, owner_address, utxo_factory):
    info = CollectionStateInfo(bundle.url, seed, "ef" * 28)
    utxo = utxo_factory(owner_address, datum=create_genesis_state_data(info))
    loaded = []

    def loader(url):
        loaded.append(url)
        return bundle

    state, cache = ScriptParameterCache.from_state_utxo(utxo, parameterizer=parameterizer, bundle_loader=loader)
    assert state == genesis(info)
    assert loaded == [bundle.url]
    assert cache.seed == seed
    assert cache.mint() == ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer).mint()


def test_from_mint_policy_id(bundle, seed, parameterizer, ledger, utxo_factory):
    cache = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    info = CollectionStateInfo(bundle.url, seed, "ef" * 28)
    ledger.chain.append(utxo_factory(
        cache.state().address, {cache.unit().state: 1}, datum=create_genesis_state_data(info)
    ))

    state, rebuilt = asyncio.run(ScriptParameterCache.from_mint_policy_id(
        ledger, cache.mint().policy_id, parameterizer=parameterizer, bundle_loader=lambda url: bundle
    ))
    assert state.nfts == 0
    assert rebuilt.mint().policy_id == cache.mint().policy_id


def test_fetch_helpers(bundle, seed, parameterizer, ledger, owner_address, utxo_factory):
    cache = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    with pytest.raises(NotFoundError):
        asyncio.run(fetch_state_utxo(ledger, cache))

    state_utxo = utxo_factory(cache.state().address, {cache.unit().state: 1}, tx_byte=2)
    owner_utxo = utxo_factory(owner_address, {cache.unit().owner: 1}, tx_byte=3)
    ledger.chain.append(state_utxo)
    ledger.wallet.append(owner_utxo)
    assert asyncio.run(fetch_state_utxo(ledger, cache)) is state_utxo
    assert asyncio.run(fetch_owner_utxo(ledger, cache)) is owner_utxo


def test_check_script_address(bundle, seed, parameterizer, ledger):
    cache = ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)
    asyncio.run(check_script_address(ledger, cache.mint()))

    async def wrong(script):
        return "00" * 28, cache.state().address

    ledger.derive_script_address = wrong
    with pytest.raises(ExternalError):
        asyncio.run(check_script_address(ledger, cache.mint()))
