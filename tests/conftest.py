import hashlib
import pathlib
import sys

import pytest
import pycardano
from pycardano import (
    Address,
    Network,
    TransactionInput,
    TransactionOutput,
    UTxO,
    Value,
    VerificationKeyHash,
)


# Ensure repo root is on PYTHONPATH for direct module imports (e.g. `import asset_naming`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from chain_data import TxReference  # noqa: E402
from collection_contract_config import (  # noqa: E402
    DELEGATE_MINTING_POLICY,
    DERIVATIVE_MINTING_POLICY,
    IMMUTABLE_INFO_VALIDATOR,
    IMMUTABLE_NFT_VALIDATOR,
    MINTING_STATE_VALIDATOR,
    NFT_MINTING_POLICY,
    PERMISSIVE_NFT_VALIDATOR,
    SPEND_LOCK_VALIDATOR,
)
from ledger_client import to_multi_asset, unit_quantity  # noqa: E402
from script_bundle import ScriptBundle, ValidatorEntry  # noqa: E402

SEED_TX_HASH = "5c" * 32
GROUP_POLICY_ID = "de2340edc45629456bf695200e8ea32f948a653b21ada10bc6f0c554"

_TITLES = [
    NFT_MINTING_POLICY,
    MINTING_STATE_VALIDATOR,
    IMMUTABLE_INFO_VALIDATOR,
    IMMUTABLE_NFT_VALIDATOR,
    PERMISSIVE_NFT_VALIDATOR,
    SPEND_LOCK_VALIDATOR,
    DERIVATIVE_MINTING_POLICY,
    DELEGATE_MINTING_POLICY,
]


def key_address(byte: int, network: Network = Network.TESTNET) -> str:
    return Address(payment_part=VerificationKeyHash(bytes([byte]) * 28), network=network).encode()


def fake_parameterizer(compiled_code, params):
    """Deterministic stand-in for UPLC application: code + digest of the params."""
    digest = hashlib.sha256(repr(list(params)).encode()).hexdigest()
    return compiled_code + digest


def make_utxo(address, assets=None, datum=None, tx_byte=1, index=0, lovelace=2_000_000):
    amount = Value(lovelace, to_multi_asset(assets)) if assets else Value(lovelace)
    output = TransactionOutput(Address.from_primitive(address), amount, datum=datum)
    return UTxO(TransactionInput(pycardano.TransactionId(bytes([tx_byte]) * 32), index), output)


class FakeLedgerClient:
    """In-memory ledger: a wallet and the rest of the chain."""

    def __init__(self, address, wallet=(), chain=()):
        self.address = address
        self.wallet = list(wallet)
        self.chain = list(chain)
        self.submitted = []
        self.confirmed = True
        self.fail_with = None

    def _all(self):
        return self.wallet + self.chain

    async def lookup_utxo_by_asset(self, unit):
        if self.fail_with is not None:
            raise self.fail_with
        return next((u for u in self._all() if unit_quantity(u, unit) > 0), None)

    async def lookup_utxos_at_address(self, address):
        if self.fail_with is not None:
            raise self.fail_with
        return [u for u in self._all() if u.output.address.encode() == address]

    async def wallet_address(self):
        return self.address

    async def wallet_utxos(self):
        return list(self.wallet)

    async def sign_and_submit(self, request):
        if self.fail_with is not None:
            raise self.fail_with
        self.submitted.append(request)
        return "ab" * 32

    async def await_confirmation(self, tx_id):
        return self.confirmed

    async def derive_script_address(self, script):
        script_hash = pycardano.plutus_script_hash(pycardano.PlutusV2Script(script))
        address = Address(payment_part=script_hash, network=Network.TESTNET)
        return script_hash.payload.hex(), address.encode()


@pytest.fixture
def owner_address():
    return key_address(1)


@pytest.fixture
def other_address():
    return key_address(2)


@pytest.fixture
def third_address():
    return key_address(3)


@pytest.fixture
def seed():
    return TxReference(SEED_TX_HASH, 0)


@pytest.fixture
def seed_utxo(owner_address):
    return make_utxo(owner_address, tx_byte=0x5C, index=0, lovelace=10_000_000)


@pytest.fixture
def bundle():
    validators = [
        ValidatorEntry(title=title, compiled_code=f"{i + 1:02x}" * 16)
        for i, title in enumerate(_TITLES)
    ]
    return ScriptBundle(url="https://contracts.example/plutus.json", validators=validators,
                        preamble={"plutusVersion": "v2"})


@pytest.fixture
def parameterizer():
    return fake_parameterizer


@pytest.fixture
def utxo_factory():
    return make_utxo


@pytest.fixture
def ledger(owner_address):
    return FakeLedgerClient(owner_address)
