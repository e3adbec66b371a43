"""
FeeResolver - reads the fee required for an attestation request.
"""
import logging
from typing import Any, Optional

from .contracts import RPC_ERRORS
from .exceptions import FeeLookupFailed
from .utils import hex_to_bytes


class FeeResolver:
    """Queries FdcRequestFeeConfigurations.getRequestFee for an encoded request."""

    def __init__(self, fee_configurations: Any, logger: Optional[logging.Logger] = None):
        self.fee_configurations = fee_configurations
        self.logger = logger or logging.getLogger(__name__)

    def resolve_fee(self, encoded_request: str) -> int:
        """
        Get the fee in wei for an encoded request.

        Raises:
            FeeLookupFailed: If the fee call reverts or fails, or the request is
                not valid hex
        """
        try:
            fee = self.fee_configurations.functions.getRequestFee(hex_to_bytes(encoded_request)).call()
        except RPC_ERRORS as e:
            # A revert means the request type is not configured on-chain
            raise FeeLookupFailed(f"Fee lookup failed: {e}") from e

        self.logger.debug(f"Request fee: {fee} wei")
        return int(fee)
