"""
FDC SDK - request attestations from the Flare Data Connector and retrieve
their Merkle proofs.
"""
from .version import __version__
from .client import FdcClient
from .config import ClientConfig, NetworkConfig, FLARE_CONTRACT_REGISTRY_ADDRESS
from .builder import RequestBuilder
from .fees import FeeResolver
from .submitter import RequestSubmitter, compute_round_id
from .finalization import FinalizationWaiter
from .proofs import ProofRetriever
from .decoding import ResponseDecoder, SchemaRegistry, AbiField, decode_abi_payload
from .signer import Signer, LocalSigner
from .models import (
    AttestationRequest, AttestationResult, DecodedResponse, FinalizationStatus,
    Proof, Submission, VotingRound
)
from .exceptions import (
    FdcError, ConfigError, InvalidRequest, FeeLookupFailed, SubmissionReverted,
    FinalizationQueryFailed, FinalizationTimeout, ProofRetrievalExhausted, UnknownAttestationType,
    MalformedResponse, OperationCancelled
)

__all__ = [
    "__version__",
    "FdcClient",
    "ClientConfig",
    "NetworkConfig",
    "FLARE_CONTRACT_REGISTRY_ADDRESS",
    "RequestBuilder",
    "FeeResolver",
    "RequestSubmitter",
    "compute_round_id",
    "FinalizationWaiter",
    "ProofRetriever",
    "ResponseDecoder",
    "SchemaRegistry",
    "AbiField",
    "decode_abi_payload",
    "Signer",
    "LocalSigner",
    "AttestationRequest",
    "AttestationResult",
    "DecodedResponse",
    "FinalizationStatus",
    "Proof",
    "Submission",
    "VotingRound",
    "FdcError",
    "ConfigError",
    "InvalidRequest",
    "FeeLookupFailed",
    "SubmissionReverted",
    "FinalizationQueryFailed",
    "FinalizationTimeout",
    "ProofRetrievalExhausted",
    "UnknownAttestationType",
    "MalformedResponse",
    "OperationCancelled",
]
