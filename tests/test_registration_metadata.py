import cbor2
import pytest
from pycardano import PaymentSigningKey, PlutusV2Script, PlutusV3Script, plutus_script_hash

from asset_naming import owner_unit
from collection_contract_config import CIP_88_METADATA_LABEL
from collection_errors import ConfigurationError
from collection_info import CollectionImage, CollectionInfo, ImagePurpose
from registration_metadata import (
    CIP_27,
    CIP_68,
    CIP_102,
    FEATURE_DETAILS_FIELD,
    FEATURE_SET_FIELD,
    NONCE_FIELD,
    PAYLOAD_FIELD,
    SCOPE_FIELD,
    SCOPE_PLUTUS_V2,
    SCOPE_PLUTUS_V3,
    VALIDATION_BEACON,
    VALIDATION_METHOD_FIELD,
    VALIDATION_WITNESS,
    WITNESS_FIELD,
    RegistrationBuilder,
    cip88_uri,
    registration_metadata,
    registration_scope,
    to_token_project_detail,
)
from royalty_encoding import Royalty

SCRIPT = PlutusV2Script(bytes.fromhex("4e4d01000033222220051200120011"))
POLICY_ID = plutus_script_hash(SCRIPT).payload.hex()

INFO = CollectionInfo(
    name="Registered",
    description="Registered collection",
    artist="Artist",
    images=[
        CollectionImage("ipfs://brand", ImagePurpose.BRAND),
        CollectionImage("ipfs://gallery", ImagePurpose.GALLERY),
    ],
    links={"website": "https://example.com"},
)


def test_cip88_uri():
    assert cip88_uri("https://example.com") == ["https://", "example.com"]
    long = cip88_uri("ipfs://" + "a" * 100)
    assert long[0] == "ipfs://"
    assert "".join(long[1:]) == "a" * 100
    with pytest.raises(ConfigurationError):
        cip88_uri("no scheme here")


def test_registration_scope():
    assert registration_scope(SCRIPT) == [SCOPE_PLUTUS_V2, [bytes.fromhex(POLICY_ID)]]
    v3 = PlutusV3Script(b"\x01\x02")
    assert registration_scope(v3)[0] == SCOPE_PLUTUS_V3


def test_token_project_detail_picks_images():
    detail = to_token_project_detail(INFO)[1]
    assert detail[0] == "Registered"
    assert detail[2] == ["ipfs://", "brand"]
    assert detail[3] == ["ipfs://", "gallery"]
    assert detail[4] == 0
    assert detail[6] == "Artist"


def test_token_project_declared_once():
    builder = RegistrationBuilder.register(SCRIPT).cip68_info(INFO)
    with pytest.raises(ConfigurationError):
        builder.cip25_info(INFO)


def test_beacon_registration(owner_address):
    beacon = owner_unit(POLICY_ID)
    metadata = (
        RegistrationBuilder.register(SCRIPT)
        .validate_with_beacon(beacon)
        .cip102_royalties([Royalty(owner_address, 5)])
        .cip68_info(INFO)
        .build(nonce=42)
    )
    payload = metadata[PAYLOAD_FIELD]
    assert payload[SCOPE_FIELD] == [SCOPE_PLUTUS_V2, [bytes.fromhex(POLICY_ID)]]
    assert payload[FEATURE_SET_FIELD] == [CIP_102, CIP_68]
    assert payload[VALIDATION_METHOD_FIELD][0] == VALIDATION_BEACON
    assert payload[NONCE_FIELD] == 42
    assert payload[FEATURE_DETAILS_FIELD][CIP_102][1][0][1] == 200
    assert metadata[WITNESS_FIELD] == [[]]


def test_witness_registration_signs_canonical_payload(owner_address):
    key = PaymentSigningKey.generate()
    metadata = RegistrationBuilder.register(SCRIPT).cip27_royalty(Royalty(owner_address, 2.5)).build(key, nonce=1)
    payload = metadata[PAYLOAD_FIELD]
    assert payload[VALIDATION_METHOD_FIELD] == [VALIDATION_WITNESS]
    assert payload[FEATURE_SET_FIELD] == [CIP_27]

    [[verification_key, signature]] = metadata[WITNESS_FIELD]
    assert verification_key == key.to_verification_key().payload
    # ed25519 signatures are deterministic
    assert signature == key.sign(cbor2.dumps(payload, canonical=True))


def test_witness_registration_needs_a_key():
    with pytest.raises(ConfigurationError):
        RegistrationBuilder.register(SCRIPT).build()


def test_registration_metadata_label():
    metadata = registration_metadata(SCRIPT, owner_unit(POLICY_ID), info=INFO, nonce=7)
    assert list(metadata) == [CIP_88_METADATA_LABEL]
    assert metadata[CIP_88_METADATA_LABEL][PAYLOAD_FIELD][FEATURE_SET_FIELD] == [CIP_68]
