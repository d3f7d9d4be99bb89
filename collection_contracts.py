"""
Collection contract parameterization.

    mint.mint             <- seed OutputReference
    state.spend           <- minting policy id
    immutable_info.spend  <- minting policy id
    immutable_nft.spend   <- minting policy id
    permissive_nft.spend  <- minting policy id
    lock.spend            <- minting policy id
    derivative.mint       <- minting policy id
    delegate.mint         <- minting policy id, delegate key hash
"""
from typing import Optional

from pycardano import Network

from chain_data import TxReference, as_chain_output_reference
from collection_contract_config import (
    DELEGATE_MINTING_POLICY,
    DERIVATIVE_MINTING_POLICY,
    IMMUTABLE_INFO_VALIDATOR,
    IMMUTABLE_NFT_VALIDATOR,
    MINTING_STATE_VALIDATOR,
    NFT_MINTING_POLICY,
    PERMISSIVE_NFT_VALIDATOR,
    POLICY_ID_BYTE_LENGTH,
    SPEND_LOCK_VALIDATOR,
)
from collection_errors import ConfigurationError
from script_bundle import Parameterizer, ScriptBundle, ScriptInfo, parameterize_script


def _policy_id_bytes(policy_id: str, what: str = "policy id") -> bytes:
    try:
        raw = bytes.fromhex(policy_id)
    except ValueError as err:
        raise ConfigurationError(f"Invalid {what} {policy_id!r}") from err
    if len(raw) != POLICY_ID_BYTE_LENGTH:
        raise ConfigurationError(f"A {what} is {POLICY_ID_BYTE_LENGTH} bytes, got {len(raw)}")
    return raw


def parameterize_minting_policy(
    bundle: ScriptBundle,
    seed: TxReference,
    parameterizer: Optional[Parameterizer] = None,
    network: Network = Network.TESTNET,
) -> ScriptInfo:
    """The collection minting policy is unique to the UTxO spent at genesis."""
    return parameterize_script(
        bundle, NFT_MINTING_POLICY, [as_chain_output_reference(seed)], parameterizer, network
    )


def parameterize_policy_id_validator(
    bundle: ScriptBundle,
    minting_policy_id: str,
    title: str,
    parameterizer: Optional[Parameterizer] = None,
    network: Network = Network.TESTNET,
) -> ScriptInfo:
    return parameterize_script(bundle, title, [_policy_id_bytes(minting_policy_id)], parameterizer, network)


def parameterize_state_validator(bundle, minting_policy_id, parameterizer=None, network=Network.TESTNET):
    return parameterize_policy_id_validator(
        bundle, minting_policy_id, MINTING_STATE_VALIDATOR, parameterizer, network
    )


def parameterize_immutable_info_validator(bundle, minting_policy_id, parameterizer=None, network=Network.TESTNET):
    return parameterize_policy_id_validator(
        bundle, minting_policy_id, IMMUTABLE_INFO_VALIDATOR, parameterizer, network
    )


def parameterize_immutable_nft_validator(bundle, minting_policy_id, parameterizer=None, network=Network.TESTNET):
    return parameterize_policy_id_validator(
        bundle, minting_policy_id, IMMUTABLE_NFT_VALIDATOR, parameterizer, network
    )


def parameterize_permissive_nft_validator(bundle, minting_policy_id, parameterizer=None, network=Network.TESTNET):
    return parameterize_policy_id_validator(
        bundle, minting_policy_id, PERMISSIVE_NFT_VALIDATOR, parameterizer, network
    )


def parameterize_spend_lock_validator(bundle, minting_policy_id, parameterizer=None, network=Network.TESTNET):
    return parameterize_policy_id_validator(
        bundle, minting_policy_id, SPEND_LOCK_VALIDATOR, parameterizer, network
    )


def parameterize_derivative_minting_policy(bundle, minting_policy_id, parameterizer=None, network=Network.TESTNET):
    return parameterize_policy_id_validator(
        bundle, minting_policy_id, DERIVATIVE_MINTING_POLICY, parameterizer, network
    )


def parameterize_delegate_minting_policy(
    bundle: ScriptBundle,
    minting_policy_id: str,
    delegate_key_hash: str,
    parameterizer: Optional[Parameterizer] = None,
    network: Network = Network.TESTNET,
) -> ScriptInfo:
    params = [_policy_id_bytes(minting_policy_id), _policy_id_bytes(delegate_key_hash, "delegate key hash")]
    return parameterize_script(bundle, DELEGATE_MINTING_POLICY, params, parameterizer, network)
