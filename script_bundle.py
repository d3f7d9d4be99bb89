"""
Script bundle (contracts blueprint) loading and script parameterization.

A bundle is the JSON blueprint produced by the contracts build:

    {"preamble": {...}, "validators": [{"title", "compiledCode", "hash"}], "definitions": {...}}

``compiledCode`` is the CBOR wrapped flat encoding of a UPLC program.
Parameterizing a template applies each parameter (as a data constant) to
the program, which is how the collection scripts get bound to a seed or a
minting policy id.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import cbor2
import requests
from pycardano import Address, Network, PlutusV2Script, PlutusV3Script, ScriptHash, plutus_script_hash
from uplc.ast import data_from_cbor
from uplc.tools import apply, flatten, unflatten

from collection_contract_config import LOCAL_CONTRACTS_PATH, LOCAL_CONTRACTS_URL
from collection_errors import EncodingError, ExternalError, NotFoundError

logger = logging.getLogger(__name__)

# Takes the template compiled code (hex) and the parameters, returns the
# parameterized compiled code (hex)
Parameterizer = Callable[[str, Sequence[Any]], str]

PLUTUS_V2 = "v2"
PLUTUS_V3 = "v3"


@dataclass(frozen=True)
class ValidatorEntry:
    title: str
    compiled_code: str
    hash: str = ""
    parameters: Any = None


@dataclass(frozen=True)
class ScriptBundle:
    url: str
    validators: List[ValidatorEntry]
    preamble: Dict[str, Any] = field(default_factory=dict)
    definitions: Dict[str, Any] = field(default_factory=dict)

    @property
    def plutus_version(self) -> str:
        return str(self.preamble.get("plutusVersion", PLUTUS_V2)).lower()


@dataclass(frozen=True)
class ScriptInfo:
    """Everything commonly needed about a parameterized script."""
    name: str
    script: Any                 # PlutusV2Script / PlutusV3Script
    policy_id: str
    credential: ScriptHash
    address: str


# =============================================================================
# LOADING
# =============================================================================

def load_bundle(data: Dict[str, Any], url: str) -> ScriptBundle:
    """Build a bundle from parsed blueprint JSON, lightly checking its shape."""
    if not isinstance(data, dict) or "preamble" not in data or "validators" not in data:
        raise EncodingError(f"Contracts at {url} are not a script bundle")
    try:
        validators = [
            ValidatorEntry(
                title=v["title"],
                compiled_code=v["compiledCode"],
                hash=v.get("hash", ""),
                parameters=v.get("parameters"),
            )
            for v in data["validators"]
        ]
    except (KeyError, TypeError) as err:
        raise EncodingError(f"Malformed validator entry in contracts at {url}") from err
    return ScriptBundle(
        url=url,
        validators=validators,
        preamble=data.get("preamble") or {},
        definitions=data.get("definitions") or {},
    )


def fetch_bundle(url: str, local_path: str = LOCAL_CONTRACTS_PATH, timeout: int = 10) -> ScriptBundle:
    """
    Load the bundle at ``url``. The ``local`` url reads the blueprint at
    ``local_path``, anything else is fetched over HTTP(S).
    """
    logger.info("Loading contracts from %s", url)
    if url == LOCAL_CONTRACTS_URL:
        try:
            with open(os.path.expanduser(local_path), "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as err:
            raise ExternalError(f"Failed to read contracts at {local_path}") from err
        return load_bundle(data, url)

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as err:
        raise ExternalError(f"Failed to fetch contract json at url: {url}") from err
    return load_bundle(data, url)


def get_script(bundle: ScriptBundle, title: str) -> ValidatorEntry:
    for validator in bundle.validators:
        if validator.title == title:
            return validator
    raise NotFoundError(f"Script {title} not found in contracts {bundle.url}")


# =============================================================================
# PARAMETERIZATION
# =============================================================================

def _param_cbor(param) -> bytes:
    if hasattr(param, "to_cbor"):
        encoded = param.to_cbor()
        return bytes.fromhex(encoded) if isinstance(encoded, str) else encoded
    return cbor2.dumps(param)


def apply_params_to_script(compiled_code: str, params: Sequence[Any]) -> str:
    """Apply plutus data parameters, in order, to a compiled UPLC program."""
    try:
        program = unflatten(bytes.fromhex(compiled_code))
    except Exception as err:
        raise EncodingError("Compiled code is not a CBOR wrapped UPLC program") from err

    return flatten(apply(program, *(data_from_cbor(_param_cbor(param)) for param in params))).hex()


def to_plutus_script(compiled_code: str, plutus_version: str = PLUTUS_V2):
    script_bytes = bytes.fromhex(compiled_code)
    if plutus_version == PLUTUS_V3:
        return PlutusV3Script(script_bytes)
    if plutus_version == PLUTUS_V2:
        return PlutusV2Script(script_bytes)
    raise EncodingError(f"Unsupported plutus version {plutus_version}")


def get_script_info(
    name: str,
    compiled_code: str,
    plutus_version: str = PLUTUS_V2,
    network: Network = Network.TESTNET,
) -> ScriptInfo:
    script = to_plutus_script(compiled_code, plutus_version)
    script_hash = plutus_script_hash(script)
    address = Address(payment_part=script_hash, network=network)
    return ScriptInfo(
        name=name,
        script=script,
        policy_id=script_hash.payload.hex(),
        credential=script_hash,
        address=address.encode(),
    )


def parameterize_script(
    bundle: ScriptBundle,
    title: str,
    params: Sequence[Any],
    parameterizer: Optional[Parameterizer] = None,
    network: Network = Network.TESTNET,
) -> ScriptInfo:
    template = get_script(bundle, title)
    apply = parameterizer or apply_params_to_script
    return get_script_info(template.title, apply(template.compiled_code, params), bundle.plutus_version, network)
