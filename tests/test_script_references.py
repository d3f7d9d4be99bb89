import asyncio

import pytest

from asset_naming import script_reference_unit
from collection_contract_config import MINTING_STATE_VALIDATOR, NFT_MINTING_POLICY
from collection_datum_types import VoidData
from collection_errors import ConfigurationError
from script_cache import ScriptParameterCache
from script_references import (
    DELEGATE,
    DERIVATIVE,
    SCRIPT_REFERENCE_VALIDITY_MS,
    create_collection_script_references,
    create_script_reference_request,
    fetch_minting_policy_reference_utxo,
    find_script_reference_utxo,
    reference_mint_info,
)

DELEGATE_KEY = "11" * 28


@pytest.fixture
def cache(bundle, seed, parameterizer):
    return ScriptParameterCache.cold(bundle, seed, parameterizer=parameterizer)


def test_reference_mint_info(cache):
    assert reference_mint_info(cache) is cache.derivative_mint()
    assert reference_mint_info(cache, DELEGATE, DELEGATE_KEY) is cache.delegate_mint(DELEGATE_KEY)
    with pytest.raises(ConfigurationError):
        reference_mint_info(cache, DELEGATE)
    with pytest.raises(ConfigurationError):
        reference_mint_info(cache, "other")


def test_derivative_references_spend_owner_token(cache, owner_address, utxo_factory):
    owner_utxo = utxo_factory(owner_address, {cache.unit().owner: 1})
    scripts = [(cache.mint().script, NFT_MINTING_POLICY), (cache.state().script, MINTING_STATE_VALIDATOR)]
    request = create_script_reference_request(cache, scripts, owner_utxo=owner_utxo, reference_time_ms=1000)

    policy_id = cache.derivative_mint().policy_id
    units = [script_reference_unit(policy_id, name) for _, name in scripts]
    assert request.mint == {unit: 1 for unit in units}
    assert request.mint_redeemers == {policy_id: VoidData()}
    assert request.validity.from_ms == 1000
    assert request.validity.to_ms == 1000 + SCRIPT_REFERENCE_VALIDITY_MS

    locked = request.outputs[:2]
    assert all(output.address == cache.spend_lock().address for output in locked)
    assert [output.reference_script for output in locked] == [cache.mint().script, cache.state().script]
    assert request.inputs[0].utxo is owner_utxo
    assert request.outputs[2].assets == {cache.unit().owner: 1}
    assert request.required_signers == []


def test_derivative_references_need_owner_token(cache):
    with pytest.raises(ConfigurationError):
        create_script_reference_request(cache, [(cache.mint().script, NFT_MINTING_POLICY)])


def test_delegate_references_require_signature(cache):
    request = create_script_reference_request(
        cache, [(cache.mint().script, NFT_MINTING_POLICY)], DELEGATE, DELEGATE_KEY
    )
    assert request.required_signers == [DELEGATE_KEY]
    assert request.inputs == []
    assert cache.delegate_mint(DELEGATE_KEY).policy_id in request.mint_redeemers


def test_collection_script_references(cache, ledger, owner_address, utxo_factory):
    ledger.wallet.append(utxo_factory(owner_address, {cache.unit().owner: 1}))
    request = asyncio.run(create_collection_script_references(ledger, cache, DERIVATIVE))
    assert len(request.mint) == 2


def test_find_reference_utxos(cache, ledger, utxo_factory):
    policy_id = cache.derivative_mint().policy_id
    assert asyncio.run(find_script_reference_utxo(ledger, cache, policy_id, NFT_MINTING_POLICY)) is None

    utxo = utxo_factory(cache.spend_lock().address, {script_reference_unit(policy_id, NFT_MINTING_POLICY): 1})
    ledger.chain.append(utxo)
    assert asyncio.run(find_script_reference_utxo(ledger, cache, policy_id, NFT_MINTING_POLICY)) is utxo
    assert asyncio.run(fetch_minting_policy_reference_utxo(ledger, cache)) is utxo
