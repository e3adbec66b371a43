"""
Exceptions for the FDC SDK.
"""
from typing import Optional


class FdcError(Exception):
    """Base exception for all attestation workflow errors."""

    stage: str = "unknown"

    def __init__(self, message: str, stage: Optional[str] = None):
        if stage is not None:
            self.stage = stage
        super().__init__(message)


class ConfigError(FdcError):
    """Raised when the client configuration cannot be resolved."""
    stage = "config"


class InvalidRequest(FdcError):
    """Raised when an attestation request is malformed or the verifier rejects it."""
    stage = "build"


class FeeLookupFailed(FdcError):
    """Raised when the on-chain fee lookup reverts."""
    stage = "fee"


class SubmissionReverted(FdcError):
    """Raised when the attestation request transaction fails on-chain."""
    stage = "submit"

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class FinalizationTimeout(FdcError):
    """Raised when a voting round is not finalized before the deadline."""
    stage = "finalization"

    def __init__(self, message: str, round_id: Optional[int] = None):
        self.round_id = round_id
        super().__init__(message)


class FinalizationQueryFailed(FdcError):
    """Raised when the Relay cannot be queried for a round's finalization status."""
    stage = "finalization"

    def __init__(self, message: str, round_id: Optional[int] = None):
        self.round_id = round_id
        super().__init__(message)


class ProofRetrievalExhausted(FdcError):
    """Raised when the DA layer did not produce a proof within the attempt budget."""
    stage = "proof"

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        message = f"Failed to retrieve proof after {attempts} attempts"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)


class UnknownAttestationType(FdcError):
    """Raised when no response schema is registered for an attestation type."""
    stage = "decode"

    def __init__(self, attestation_type: str):
        self.attestation_type = attestation_type
        super().__init__(f"No response schema registered for attestation type '{attestation_type}'")


class MalformedResponse(FdcError):
    """Raised when response bytes or a DA payload cannot be interpreted."""
    stage = "decode"


class OperationCancelled(FdcError):
    """Raised when a wait is interrupted through its cancellation event."""
    pass
