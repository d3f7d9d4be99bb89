"""
Script references.

Scripts used by every mint (minting policy, state validator) can be stored
once as reference scripts. Each one is held by a token minted under the
derivative policy (owner token witness) or a delegate policy (delegate key
witness) and locked forever at the spend-lock validator of the collection.
"""
import logging
from typing import Any, List, Optional, Sequence, Tuple

from pycardano import UTxO

from asset_naming import script_reference_unit
from chain_data import TimeWindow
from collection_contract_config import MINTING_STATE_VALIDATOR, NFT_MINTING_POLICY
from collection_datum_types import VoidData
from collection_errors import ConfigurationError
from collection_state import now_ms
from ledger_client import InputSpec, LedgerClient, OutputSpec, TxRequest, call_client, fetch_utxo, unit_quantity
from script_bundle import ScriptInfo
from script_cache import ScriptParameterCache, fetch_owner_utxo

logger = logging.getLogger(__name__)

DERIVATIVE = "derivative"
DELEGATE = "delegate"

# validity of the script reference transaction
SCRIPT_REFERENCE_VALIDITY_MS = 2 * 60 * 1000


def reference_mint_info(cache: ScriptParameterCache, kind: str = DERIVATIVE, delegate: Optional[str] = None) -> ScriptInfo:
    if kind == DELEGATE:
        if delegate is None:
            raise ConfigurationError(
                "Delegate public key hash must be set to generate the correct policy "
                "even if the owner token is used as witness"
            )
        return cache.delegate_mint(delegate)
    if kind == DERIVATIVE:
        return cache.derivative_mint()
    raise ConfigurationError(f"Unknown script reference policy type {kind!r}")


def create_script_reference_request(
    cache: ScriptParameterCache,
    scripts: Sequence[Tuple[Any, str]],
    kind: str = DERIVATIVE,
    delegate: Optional[str] = None,
    owner_utxo: Optional[UTxO] = None,
    reference_time_ms: Optional[int] = None,
) -> TxRequest:
    """
    Mint one reference token per ``(script, name)`` and lock each with its
    script at the spend-lock address. The derivative policy needs the owner
    token spent (and returned) as witness.
    """
    if not scripts:
        raise ConfigurationError("At least one script is required")
    if kind == DERIVATIVE and owner_utxo is None:
        raise ConfigurationError("The owner token UTxO is required to mint derivative script references")

    mint_info = reference_mint_info(cache, kind, delegate)
    lock_address = cache.spend_lock().address

    start = now_ms() if reference_time_ms is None else reference_time_ms
    request = TxRequest(
        mint_scripts=[mint_info.script],
        validity=TimeWindow(start, start + SCRIPT_REFERENCE_VALIDITY_MS),
    )
    for script, name in scripts:
        unit = script_reference_unit(mint_info.policy_id, name)
        request.mint[unit] = 1
        request.outputs.append(OutputSpec(
            address=lock_address,
            assets={unit: 1},
            datum=VoidData(),
            reference_script=script,
        ))
    request.mint_redeemers[mint_info.policy_id] = VoidData()

    if owner_utxo is not None:
        request.inputs.append(InputSpec(owner_utxo))
        request.outputs.append(OutputSpec(
            address=owner_utxo.output.address.encode(),
            assets={cache.unit().owner: 1},
        ))
    if kind == DELEGATE:
        request.required_signers.append(delegate)

    logger.info("Prepared %d script reference(s) under %s", len(scripts), mint_info.policy_id)
    return request


async def create_collection_script_references(
    client: LedgerClient,
    cache: ScriptParameterCache,
    kind: str = DERIVATIVE,
    delegate: Optional[str] = None,
) -> TxRequest:
    """Reference scripts for the minting policy and the state validator."""
    owner_utxo = await fetch_owner_utxo(client, cache) if kind == DERIVATIVE else None
    scripts: List[Tuple[Any, str]] = [
        (cache.mint().script, NFT_MINTING_POLICY),
        (cache.state().script, MINTING_STATE_VALIDATOR),
    ]
    return create_script_reference_request(cache, scripts, kind, delegate, owner_utxo)


async def fetch_reference_utxo(
    client: LedgerClient,
    cache: ScriptParameterCache,
    script_name: str,
    delegate: Optional[str] = None,
) -> UTxO:
    policy_id = cache.delegate_mint(delegate).policy_id if delegate else cache.derivative_mint().policy_id
    return await fetch_utxo(client, cache.spend_lock().address, script_reference_unit(policy_id, script_name))


async def fetch_minting_policy_reference_utxo(client, cache, delegate=None) -> UTxO:
    return await fetch_reference_utxo(client, cache, NFT_MINTING_POLICY, delegate)


async def fetch_state_validator_reference_utxo(client, cache, delegate=None) -> UTxO:
    return await fetch_reference_utxo(client, cache, MINTING_STATE_VALIDATOR, delegate)


async def find_script_reference_utxo(
    client: LedgerClient,
    cache: ScriptParameterCache,
    policy_id: str,
    script_name: str,
) -> Optional[UTxO]:
    """Reference UTxO minted under ``policy_id``, or None when it was never created."""
    unit = script_reference_unit(policy_id, script_name)
    utxos = await call_client(
        f"list utxos at {cache.spend_lock().address}",
        client.lookup_utxos_at_address(cache.spend_lock().address),
    )
    return next((utxo for utxo in utxos if unit_quantity(utxo, unit) > 0), None)
