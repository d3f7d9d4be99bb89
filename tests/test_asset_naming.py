import pytest

from asset_naming import (
    CollectionTokenPurpose,
    build_asset_name,
    check_policy_id,
    decode_asset_name,
    decode_sequence,
    from_label,
    from_unit,
    info_unit,
    nft_reference_asset_name,
    nft_reference_prefix,
    nft_reference_unit,
    nft_user_asset_name,
    nft_user_unit,
    owner_unit,
    royalty_unit,
    script_reference_unit,
    sequence_bytes,
    state_unit,
    to_label,
    to_unit,
    truncate_content,
)
from collection_contract_config import (
    CIP68_REFERENCE_LABEL,
    CIP68_USER_LABEL,
    COLLECTION_STATE_ASSET_NAME,
    SEQUENCE_MAX_VALUE,
)
from collection_errors import EncodingError, RangeError

POLICY_ID = "ab" * 28


@pytest.mark.parametrize("label, expected", [
    (100, "000643b0"),
    (222, "000de140"),
    (333, "0014df10"),
    (444, "001bc280"),
])
def test_cip67_labels(label, expected):
    assert to_label(label).hex() == expected
    assert from_label(bytes.fromhex(expected)) == label


def test_label_constants_match_computed_labels():
    assert to_label(100) == CIP68_REFERENCE_LABEL
    assert to_label(222) == CIP68_USER_LABEL


def test_from_label_rejects_bad_checksum():
    with pytest.raises(EncodingError):
        from_label(bytes.fromhex("000643a0"))


@pytest.mark.parametrize("n", [0, 1, 255, 256, 65535, 65536, SEQUENCE_MAX_VALUE - 1])
def test_sequence_round_trip(n):
    assert len(sequence_bytes(n)) == 3
    assert decode_sequence(sequence_bytes(n)) == n


@pytest.mark.parametrize("n", [-1, SEQUENCE_MAX_VALUE])
def test_sequence_out_of_range(n):
    with pytest.raises(RangeError):
        sequence_bytes(n)


def test_sequence_is_big_endian():
    assert sequence_bytes(1) == b"\x00\x00\x01"
    assert sequence_bytes(0x010203) == b"\x01\x02\x03"


def test_nft_asset_name_layout():
    name = nft_reference_asset_name(5, "Ape")
    assert name[:4] == CIP68_REFERENCE_LABEL
    assert name[4:5] == b"\x01"
    assert name[5:8] == b"\x00\x00\x05"
    assert name[8:] == b"Ape"

    user = nft_user_asset_name(5, "Ape")
    assert user[:4] == CIP68_USER_LABEL
    assert user[4:] == name[4:]


def test_content_truncated_to_32_byte_name():
    name = nft_user_asset_name(1, "A very long name that does not fit in an asset name")
    assert len(name) == 32


def test_truncation_never_splits_a_character():
    content = truncate_content("é" * 30)
    assert len(content) <= 24
    content.decode("utf-8")


def test_decode_asset_name():
    decoded = decode_asset_name(build_asset_name(222, CollectionTokenPurpose.NFT, 42, "Item"))
    assert decoded.label == 222
    assert decoded.purpose is CollectionTokenPurpose.NFT
    assert decoded.sequence == 42
    assert decoded.content == "Item"


def test_decode_asset_name_too_short():
    with pytest.raises(EncodingError):
        decode_asset_name(b"\x00\x06")


def test_units():
    assert check_policy_id(POLICY_ID)
    assert not check_policy_id("This is not a 28 byte hex string")
    assert not check_policy_id("ab" * 27)
    assert to_unit(POLICY_ID, b"\x01") == POLICY_ID + "01"
    assert from_unit(POLICY_ID + "01") == (POLICY_ID, b"\x01")
    with pytest.raises(EncodingError):
        from_unit("nothex")


def test_nft_units_share_prefixes():
    assert nft_reference_unit(POLICY_ID, 3, "x").startswith(nft_reference_prefix(POLICY_ID))
    assert nft_user_unit(POLICY_ID, 3, "x") == to_unit(POLICY_ID, nft_user_asset_name(3, "x"))


def test_management_units():
    assert info_unit(POLICY_ID) == POLICY_ID + "000643b0" + "00" + b"Collection".hex()
    assert owner_unit(POLICY_ID) == POLICY_ID + to_label(111).hex() + "00" + b"Collection".hex()
    assert state_unit(POLICY_ID) == POLICY_ID + COLLECTION_STATE_ASSET_NAME.hex()
    assert royalty_unit(POLICY_ID) == POLICY_ID + to_label(500).hex() + b"Royalty".hex()
    assert len({info_unit(POLICY_ID), owner_unit(POLICY_ID), state_unit(POLICY_ID)}) == 3


def test_script_reference_unit():
    assert script_reference_unit(POLICY_ID, "mint.mint") == POLICY_ID + to_label(0).hex() + b"mint.mint".hex()
    assert script_reference_unit(POLICY_ID, "p" * 28).endswith(("p" * 28).encode().hex())
    with pytest.raises(EncodingError):
        script_reference_unit(POLICY_ID, "p" * 29)


def test_asset_names_never_exceed_budget():
    name = build_asset_name(100, CollectionTokenPurpose.NFT, SEQUENCE_MAX_VALUE - 1, "é" * 40)
    assert len(name) <= 32
