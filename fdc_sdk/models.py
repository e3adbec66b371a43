"""
Data models for the FDC SDK.
"""
from enum import Enum
from types import MappingProxyType
from typing import Dict, Any, Optional, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .utils import hex_to_bytes, bytes_to_hex


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


class AttestationRequest(BaseModel):
    """A typed attestation request before it is encoded by a verifier. The body is read-only."""
    model_config = ConfigDict(frozen=True)

    attestation_type: str
    source_id: str
    body: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("body")
    @classmethod
    def _freeze_body(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return _freeze(value)

    @field_serializer("body")
    def _serialize_body(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        return _thaw(value)

    def body_dict(self) -> Dict[str, Any]:
        """Mutable copy of the body, as sent to the verifier."""
        return _thaw(self.body)


class VotingRound(BaseModel):
    """Voting round a request was submitted in, with the epoch it was computed from"""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    epoch_start_timestamp: int
    epoch_duration_seconds: int = Field(..., gt=0)

    @property
    def start_timestamp(self) -> int:
        return self.epoch_start_timestamp + self.id * self.epoch_duration_seconds

    @property
    def end_timestamp(self) -> int:
        return self.start_timestamp + self.epoch_duration_seconds


class FinalizationStatus(str, Enum):
    """Finalization state of a (protocol, round) pair. Never goes back to PENDING."""
    PENDING = "Pending"
    FINALIZED = "Finalized"


class Submission(BaseModel):
    """Result of submitting an encoded request to the FDC hub"""
    model_config = ConfigDict(frozen=True)

    tx_hash: str
    block_number: int
    block_timestamp: int
    fee: int
    voting_round: VotingRound

    @property
    def round_id(self) -> int:
        return self.voting_round.id


class Proof(BaseModel):
    """Merkle proof and raw response bytes served by the DA layer"""
    model_config = ConfigDict(frozen=True)

    merkle_path: List[str]
    response_bytes: bytes

    @property
    def response_hex(self) -> str:
        return bytes_to_hex(self.response_bytes)

    @classmethod
    def from_da_payload(cls, payload: Dict[str, Any]) -> "Proof":
        """
        Build a proof from a DA layer `proof-by-request-round-raw` payload.

        Args:
            payload: JSON object containing `response_hex` and `proof`

        Returns:
            Proof instance
        """
        response_hex = payload.get("response_hex", payload.get("responseHex"))
        return cls(
            merkle_path=list(payload["proof"]),
            response_bytes=hex_to_bytes(response_hex),
        )


class DecodedResponse(BaseModel):
    """Attestation response decoded with the schema of its attestation type"""
    model_config = ConfigDict(frozen=True)

    attestation_type: str
    data: Dict[str, Any]


class AttestationResult(BaseModel):
    """Everything produced by one run of the attestation pipeline"""
    model_config = ConfigDict(frozen=True)

    request: Optional[AttestationRequest] = None
    encoded_request: str
    submission: Optional[Submission] = None
    round_id: int
    proof: Proof
    response: DecodedResponse

    def verifier_argument(self) -> Dict[str, Any]:
        """
        Argument expected by FDC verifying contracts.

        Returns:
            Dictionary with `merkleProof` and `data` keys
        """
        return {
            "merkleProof": list(self.proof.merkle_path),
            "data": self.response.data,
        }
