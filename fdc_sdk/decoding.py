"""
ResponseDecoder - decodes DA layer response bytes into structured records.

Response layouts are declared statically per attestation type in a
SchemaRegistry instead of being read from contract artifacts at runtime.
"""
import json
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Any, Iterable, Mapping, Optional, Tuple, Union

from eth_abi import decode as abi_decode, encode as abi_encode
from eth_abi.exceptions import DecodingError, EncodingError
from web3 import Web3

from .exceptions import MalformedResponse, UnknownAttestationType
from .models import DecodedResponse
from .utils import hex_to_bytes


@dataclass(frozen=True)
class AbiField:
    """A named ABI parameter; tuples carry their components."""
    name: str
    type: str
    components: Tuple["AbiField", ...] = ()

    @classmethod
    def from_abi(cls, item: Union[Mapping[str, Any], str]) -> "AbiField":
        """
        Build a field from an ABI JSON parameter (dict or JSON string).

        Example:
            {"name": "task", "type": "tuple", "components": [...]}
        """
        if isinstance(item, str):
            item = json.loads(item)
        return cls(
            name=item.get("name", ""),
            type=item["type"],
            components=tuple(cls.from_abi(c) for c in item.get("components", [])),
        )

    @property
    def is_array(self) -> bool:
        return self.type.endswith("]")

    def element(self) -> "AbiField":
        """The field describing one element of an array type."""
        return AbiField(self.name, self.type[:self.type.rindex("[")], self.components)

    def abi_type(self) -> str:
        """Canonical type string understood by eth-abi, e.g. "(uint64,bytes32[])"."""
        if self.type.startswith("tuple"):
            inner = ",".join(c.abi_type() for c in self.components)
            return f"({inner}){self.type[len('tuple'):]}"
        return self.type


def to_record(field: AbiField, value: Any) -> Any:
    """Turn eth-abi output into dicts keyed by component name, lists and checksummed addresses."""
    if field.is_array:
        element = field.element()
        return [to_record(element, v) for v in value]
    if field.type == "tuple":
        return {c.name: to_record(c, v) for c, v in zip(field.components, value)}
    if field.type == "address":
        return Web3.to_checksum_address(value)
    return value


def from_record(field: AbiField, value: Any) -> Any:
    """Inverse of to_record; also accepts hex strings for bytes values."""
    if field.is_array:
        element = field.element()
        return [from_record(element, v) for v in value]
    if field.type == "tuple":
        if isinstance(value, Mapping):
            return tuple(from_record(c, value[c.name]) for c in field.components)
        return tuple(from_record(c, v) for c, v in zip(field.components, value))
    if field.type.startswith("bytes") and isinstance(value, str):
        return hex_to_bytes(value)
    return value


def _field(spec: Union[str, AbiField]) -> AbiField:
    if isinstance(spec, AbiField):
        return spec
    type_, name = spec.split()
    return AbiField(name, type_)


def _struct(name: str, *fields: Union[str, AbiField], array: bool = False) -> AbiField:
    return AbiField(name, "tuple[]" if array else "tuple", tuple(_field(f) for f in fields))


def _response(request_body: AbiField, response_body: AbiField) -> AbiField:
    return _struct(
        "response",
        "bytes32 attestationType",
        "bytes32 sourceId",
        "uint64 votingRound",
        "uint64 lowestUsedTimestamp",
        request_body,
        response_body,
    )


ADDRESS_VALIDITY = _response(
    _struct("requestBody", "string addressStr"),
    _struct("responseBody", "bool isValid", "string standardAddress", "bytes32 standardAddressHash"),
)

EVM_TRANSACTION = _response(
    _struct(
        "requestBody",
        "bytes32 transactionHash",
        "uint16 requiredConfirmations",
        "bool provideInput",
        "bool listEvents",
        "uint32[] logIndices",
    ),
    _struct(
        "responseBody",
        "uint64 blockNumber",
        "uint64 timestamp",
        "address sourceAddress",
        "bool isDeployment",
        "address receivingAddress",
        "uint256 value",
        "bytes input",
        "uint8 status",
        _struct(
            "events",
            "uint32 logIndex",
            "address emitterAddress",
            "bytes32[] topics",
            "bytes data",
            "bool removed",
            array=True,
        ),
    ),
)

PAYMENT = _response(
    _struct("requestBody", "bytes32 transactionId", "uint256 inUtxo", "uint256 utxo"),
    _struct(
        "responseBody",
        "uint64 blockNumber",
        "uint64 blockTimestamp",
        "bytes32 sourceAddressHash",
        "bytes32 sourceAddressesRoot",
        "bytes32 receivingAddressHash",
        "bytes32 intendedReceivingAddressHash",
        "int256 spentAmount",
        "int256 intendedSpentAmount",
        "int256 receivedAmount",
        "int256 intendedReceivedAmount",
        "bytes32 standardPaymentReference",
        "bool oneToOne",
        "uint8 status",
    ),
)

BALANCE_DECREASING_TRANSACTION = _response(
    _struct("requestBody", "bytes32 transactionId", "bytes32 sourceAddressIndicator"),
    _struct(
        "responseBody",
        "uint64 blockNumber",
        "uint64 blockTimestamp",
        "bytes32 sourceAddressHash",
        "int256 spentAmount",
        "bytes32 standardPaymentReference",
    ),
)

CONFIRMED_BLOCK_HEIGHT_EXISTS = _response(
    _struct("requestBody", "uint64 blockNumber", "uint64 queryWindow"),
    _struct(
        "responseBody",
        "uint64 blockTimestamp",
        "uint64 numberOfConfirmations",
        "uint64 lowestQueryWindowBlockNumber",
        "uint64 lowestQueryWindowBlockTimestamp",
    ),
)

REFERENCED_PAYMENT_NONEXISTENCE = _response(
    _struct(
        "requestBody",
        "uint64 minimalBlockNumber",
        "uint64 deadlineBlockNumber",
        "uint64 deadlineTimestamp",
        "bytes32 destinationAddressHash",
        "uint256 amount",
        "bytes32 standardPaymentReference",
        "bool checkSourceAddresses",
        "bytes32 sourceAddressesRoot",
    ),
    _struct(
        "responseBody",
        "uint64 minimalBlockTimestamp",
        "uint64 firstOverflowBlockNumber",
        "uint64 firstOverflowBlockTimestamp",
    ),
)

WEB2_JSON = _response(
    _struct(
        "requestBody",
        "string url",
        "string httpMethod",
        "string headers",
        "string queryParams",
        "string body",
        "string postProcessJq",
        "string abiSignature",
    ),
    _struct("responseBody", "bytes abiEncodedData"),
)

JSON_API = _response(
    _struct("requestBody", "string url", "string postprocessJq", "string abi_signature"),
    _struct("responseBody", "bytes abi_encoded_data"),
)

BUILTIN_SCHEMAS: Dict[str, AbiField] = {
    "AddressValidity": ADDRESS_VALIDITY,
    "EVMTransaction": EVM_TRANSACTION,
    "Payment": PAYMENT,
    "BalanceDecreasingTransaction": BALANCE_DECREASING_TRANSACTION,
    "ConfirmedBlockHeightExists": CONFIRMED_BLOCK_HEIGHT_EXISTS,
    "ReferencedPaymentNonexistence": REFERENCED_PAYMENT_NONEXISTENCE,
    "Web2Json": WEB2_JSON,
    "JsonApi": JSON_API,
}


class SchemaRegistry:
    """Attestation type -> response schema table."""

    def __init__(self, schemas: Optional[Mapping[str, AbiField]] = None):
        self._schemas: Dict[str, AbiField] = dict(BUILTIN_SCHEMAS if schemas is None else schemas)
        self._lock = threading.Lock()

    def register(self, attestation_type: str, schema: Union[AbiField, Mapping[str, Any], str]) -> None:
        """Register a schema, given as an AbiField or an ABI JSON parameter."""
        if not isinstance(schema, AbiField):
            schema = AbiField.from_abi(schema)
        with self._lock:
            self._schemas[attestation_type] = schema

    def get(self, attestation_type: str) -> AbiField:
        with self._lock:
            schema = self._schemas.get(attestation_type)
        if schema is None:
            raise UnknownAttestationType(attestation_type)
        return schema

    def names(self) -> Iterable[str]:
        with self._lock:
            return sorted(self._schemas)

    def __contains__(self, attestation_type: object) -> bool:
        with self._lock:
            return attestation_type in self._schemas


def decode_value(schema: AbiField, data: Union[bytes, str]) -> Any:
    """
    Decode ABI-encoded bytes against a schema.

    Raises:
        MalformedResponse: If the bytes do not match the schema, including
            trailing or non-canonical data
    """
    abi_type = schema.abi_type()
    try:
        raw = hex_to_bytes(data)
        (value,) = abi_decode([abi_type], raw)
        canonical = abi_encode([abi_type], [value])
    except (DecodingError, EncodingError, ValueError, OverflowError) as e:
        raise MalformedResponse(f"Cannot decode {abi_type}: {e}") from e
    # Trailing or non-canonical bytes would hash differently on-chain
    if canonical != raw:
        raise MalformedResponse(
            f"Response is not the canonical {abi_type} encoding ({len(raw)} bytes, expected {len(canonical)})"
        )
    return to_record(schema, value)


def encode_value(schema: AbiField, record: Any) -> bytes:
    """ABI-encode a record shaped like the output of decode_value."""
    try:
        return abi_encode([schema.abi_type()], [from_record(schema, record)])
    except (EncodingError, KeyError, ValueError, TypeError) as e:
        raise MalformedResponse(f"Cannot encode {schema.abi_type()}: {e}") from e


def decode_abi_payload(abi_signature: Union[Mapping[str, Any], str], data: Union[bytes, str]) -> Any:
    """
    Decode the `abiEncodedData` of a Web2Json or JsonApi response.

    Args:
        abi_signature: The ABI signature sent with the request
        data: The encoded data from the response body
    """
    return decode_value(AbiField.from_abi(abi_signature), data)


class ResponseDecoder:
    """Decodes attestation responses with the schema registered for their type."""

    def __init__(self, registry: Optional[SchemaRegistry] = None, logger: Optional[logging.Logger] = None):
        self.registry = registry or SchemaRegistry()
        self.logger = logger or logging.getLogger(__name__)

    def decode(self, attestation_type: str, response_bytes: Union[bytes, str]) -> DecodedResponse:
        """
        Decode raw response bytes.

        Raises:
            UnknownAttestationType: If no schema is registered for the type
            MalformedResponse: If the bytes do not match the schema
        """
        schema = self.registry.get(attestation_type)
        data = decode_value(schema, response_bytes)
        self.logger.debug(f"Decoded {attestation_type} response")
        return DecodedResponse(attestation_type=attestation_type, data=data)

    def encode(self, attestation_type: str, record: Mapping[str, Any]) -> bytes:
        """ABI-encode a response record of the given type."""
        return encode_value(self.registry.get(attestation_type), record)
