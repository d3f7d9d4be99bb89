import asyncio

import pytest

from asset_naming import royalty_unit
from collection_errors import ConfigurationError, EncodingError, RangeError
from royalty_encoding import (
    Royalty,
    decode_variable_fee,
    encode_fixed_fee,
    encode_variable_fee,
    fetch_royalties,
    to_cip102_royalty_datum,
    to_royalties,
    validate_royalty,
)

POLICY_ID = "cd" * 28


@pytest.mark.parametrize("percent, fee", [(0.1, 10000), (1, 1000), (4.3, 232), (10, 100), (100, 10)])
def test_encode_variable_fee(percent, fee):
    assert encode_variable_fee(percent) == fee


@pytest.mark.parametrize("percent", [0.1, 0.5, 1, 2.5, 4.3, 7.7, 9.9])
def test_decode_approximates_encode(percent):
    assert abs(decode_variable_fee(encode_variable_fee(percent)) - percent) <= 0.1 + 1e-9


@pytest.mark.parametrize("percent", [0.01, 0.09, 100.1, -1])
def test_encode_variable_fee_out_of_range(percent):
    with pytest.raises(RangeError):
        encode_variable_fee(percent)


@pytest.mark.parametrize("fee", [0, -10])
def test_decode_rejects_non_positive_fee(fee):
    with pytest.raises(RangeError):
        decode_variable_fee(fee)


def test_decode_rounds_up_to_tenth():
    assert decode_variable_fee(232) == 4.4
    assert decode_variable_fee(1000) == 1.0


def test_fixed_fee():
    assert encode_fixed_fee(None) is None
    assert encode_fixed_fee(0) == 0
    assert encode_fixed_fee(1_000_000) == 1_000_000
    for bad in (-1, 1.5, True):
        with pytest.raises(RangeError):
            encode_fixed_fee(bad)


def test_range_error_is_an_encoding_error():
    assert issubclass(RangeError, EncodingError)


def test_validate_royalty(owner_address, other_address):
    first = Royalty(owner_address, 60)
    validate_royalty(first)

    with pytest.raises(ConfigurationError):
        validate_royalty(Royalty(owner_address, 10), [first])
    with pytest.raises(ConfigurationError):
        validate_royalty(Royalty(other_address, 60), [first])
    with pytest.raises(ConfigurationError):
        validate_royalty(Royalty(other_address, 0.01))
    with pytest.raises(ConfigurationError):
        validate_royalty(Royalty(other_address, 5, min_fee=10, max_fee=5))

    validate_royalty(Royalty(other_address, 40), [first])


def test_validate_royalty_total_has_no_float_drift(owner_address, other_address, third_address):
    existing = [Royalty(owner_address, 33.3), Royalty(other_address, 33.3)]
    validate_royalty(Royalty(third_address, 33.4), existing)


def test_cip102_datum_round_trip(owner_address, other_address):
    royalties = [Royalty(owner_address, 1, min_fee=1_000_000), Royalty(other_address, 10, max_fee=5_000_000)]
    datum = to_cip102_royalty_datum(royalties)
    assert datum.version == 1
    assert [r.variable_fee for r in datum.metadata] == [1000, 100]
    assert to_royalties(datum) == royalties


def test_cip102_datum_requires_a_royalty():
    with pytest.raises(EncodingError):
        to_cip102_royalty_datum([])


def test_fetch_royalties(ledger, owner_address, utxo_factory):
    unit = royalty_unit(POLICY_ID)
    assert asyncio.run(fetch_royalties(ledger, POLICY_ID)) == []

    royalties = [Royalty(owner_address, 2.5)]
    ledger.chain.append(utxo_factory(owner_address, {unit: 1}, datum=to_cip102_royalty_datum(royalties)))
    assert asyncio.run(fetch_royalties(ledger, POLICY_ID)) == royalties
