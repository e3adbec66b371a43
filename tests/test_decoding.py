"""
Tests for response schemas and the ResponseDecoder.
"""
import json

import pytest
from eth_abi import encode as abi_encode
from hypothesis import given, settings, strategies as st
from web3 import Web3

from fdc_sdk.decoding import (
    AbiField, BUILTIN_SCHEMAS, ResponseDecoder, SchemaRegistry, decode_abi_payload, decode_value
)
from fdc_sdk.exceptions import MalformedResponse, UnknownAttestationType
from fdc_sdk.utils import bytes_to_hex

from helpers import TEST_ADDRESS_STR, address_validity_record, address_validity_response_hex


def values_for(field: AbiField):
    """Hypothesis strategy producing records shaped like decoder output."""
    if field.is_array:
        return st.lists(values_for(field.element()), max_size=3)
    if field.type == "tuple":
        return st.fixed_dictionaries({c.name: values_for(c) for c in field.components})
    if field.type == "bool":
        return st.booleans()
    if field.type == "address":
        return st.binary(min_size=20, max_size=20).map(Web3.to_checksum_address)
    if field.type == "string":
        return st.text(alphabet=st.characters(blacklist_categories=("Cs",)), max_size=40)
    if field.type == "bytes":
        return st.binary(max_size=80)
    if field.type.startswith("bytes"):
        size = int(field.type[len("bytes"):])
        return st.binary(min_size=size, max_size=size)
    if field.type.startswith("uint"):
        return st.integers(min_value=0, max_value=2 ** int(field.type[len("uint"):]) - 1)
    if field.type.startswith("int"):
        bits = int(field.type[len("int"):])
        return st.integers(min_value=-2 ** (bits - 1), max_value=2 ** (bits - 1) - 1)
    raise AssertionError(f"no strategy for {field.type}")


@pytest.mark.parametrize("attestation_type", sorted(BUILTIN_SCHEMAS))
@settings(max_examples=25, deadline=None)
@given(data=st.data())
def test_builtin_schemas_decode_what_they_encode(attestation_type, data):
    decoder = ResponseDecoder()
    record = data.draw(values_for(BUILTIN_SCHEMAS[attestation_type]))

    decoded = decoder.decode(attestation_type, decoder.encode(attestation_type, record))

    assert decoded.attestation_type == attestation_type
    assert decoded.data == record


def test_decode_address_validity_hex():
    decoded = ResponseDecoder().decode("AddressValidity", address_validity_response_hex(voting_round=7))

    assert decoded.data["votingRound"] == 7
    assert decoded.data["requestBody"] == {"addressStr": TEST_ADDRESS_STR}
    assert decoded.data["responseBody"]["isValid"] is True
    assert decoded.data["responseBody"]["standardAddressHash"] == b"\x11" * 32
    assert decoded.data["attestationType"].rstrip(b"\x00") == b"AddressValidity"


def test_encode_accepts_hex_strings_for_bytes():
    record = address_validity_record()
    record["responseBody"] = dict(record["responseBody"], standardAddressHash="0x" + "11" * 32)
    assert ResponseDecoder().encode("AddressValidity", record) == ResponseDecoder().encode(
        "AddressValidity", address_validity_record()
    )


def test_unknown_attestation_type():
    with pytest.raises(UnknownAttestationType) as exc_info:
        ResponseDecoder().decode("NoSuchType", b"\x00" * 32)
    assert exc_info.value.attestation_type == "NoSuchType"
    assert exc_info.value.stage == "decode"


def test_truncated_bytes_are_malformed():
    data = ResponseDecoder().encode("AddressValidity", address_validity_record())
    with pytest.raises(MalformedResponse) as exc_info:
        ResponseDecoder().decode("AddressValidity", data[:100])
    assert exc_info.value.stage == "decode"


def test_invalid_hex_is_malformed():
    with pytest.raises(MalformedResponse):
        ResponseDecoder().decode("AddressValidity", "0xnothex")


def test_encode_missing_field_is_malformed():
    record = address_validity_record()
    del record["responseBody"]
    with pytest.raises(MalformedResponse):
        ResponseDecoder().encode("AddressValidity", record)


def test_abi_type_strings():
    assert BUILTIN_SCHEMAS["ConfirmedBlockHeightExists"].abi_type() == (
        "(bytes32,bytes32,uint64,uint64,(uint64,uint64),(uint64,uint64,uint64,uint64))"
    )
    events = BUILTIN_SCHEMAS["EVMTransaction"].components[5].components[8]
    assert events.abi_type() == "(uint32,address,bytes32[],bytes,bool)[]"
    assert events.element().type == "tuple"


def test_from_abi_json_string():
    field = AbiField.from_abi(json.dumps({
        "components": [
            {"internalType": "uint256", "name": "price", "type": "uint256"},
            {"internalType": "string", "name": "symbol", "type": "string"},
        ],
        "name": "task",
        "type": "tuple",
    }))
    assert field.name == "task"
    assert [c.name for c in field.components] == ["price", "symbol"]
    assert field.abi_type() == "(uint256,string)"


def test_decode_abi_payload_for_web2_data():
    signature = {
        "components": [
            {"name": "name", "type": "string"},
            {"name": "height", "type": "uint256"},
            {"name": "aliases", "type": "string[]"},
        ],
        "name": "character",
        "type": "tuple",
    }
    data = abi_encode(["(string,uint256,string[])"], [("Luke Skywalker", 172, ["Red Five"])])

    assert decode_abi_payload(signature, bytes_to_hex(data)) == {
        "name": "Luke Skywalker",
        "height": 172,
        "aliases": ["Red Five"],
    }


def test_decode_value_plain_type():
    assert decode_value(AbiField("n", "uint256"), abi_encode(["uint256"], [5])) == 5


def test_registry_register_and_lookup():
    registry = SchemaRegistry()
    assert "Payment" in registry
    assert "Custom" not in registry

    registry.register("Custom", {"name": "custom", "type": "tuple", "components": [{"name": "x", "type": "uint8"}]})

    assert "Custom" in registry
    assert "Custom" in registry.names()
    decoder = ResponseDecoder(registry)
    assert decoder.decode("Custom", decoder.encode("Custom", {"x": 3})).data == {"x": 3}


def test_registry_with_explicit_schemas():
    registry = SchemaRegistry({"AddressValidity": BUILTIN_SCHEMAS["AddressValidity"]})
    assert list(registry.names()) == ["AddressValidity"]
    with pytest.raises(UnknownAttestationType):
        registry.get("Payment")


def test_addresses_are_checksummed():
    field = AbiField("emitter", "address")
    data = abi_encode(["address"], ["0x000000000000000000000000000000000000002d"])
    assert decode_value(field, data) == "0x000000000000000000000000000000000000002D"


def test_trailing_bytes_are_malformed():
    data = ResponseDecoder().encode("AddressValidity", address_validity_record())
    with pytest.raises(MalformedResponse, match="canonical"):
        ResponseDecoder().decode("AddressValidity", data + b"\x00" * 32)
