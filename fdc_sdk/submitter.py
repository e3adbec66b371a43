"""
RequestSubmitter - submits encoded requests to the FDC hub and works out
the voting round they were submitted in.
"""
import logging
import threading
from typing import Any, Optional, Tuple

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from .contracts import RPC_ERRORS
from .exceptions import InvalidRequest, SubmissionReverted
from .models import Submission, VotingRound
from .signer import Signer, raw_transaction_bytes
from .utils import hex_to_bytes, bytes_to_hex

DEFAULT_GAS_LIMIT = 500000


def compute_round_id(timestamp: int, epoch_start_timestamp: int, epoch_duration_seconds: int) -> int:
    """
    Voting round containing a timestamp.

    Uses integer floor division exactly like the FDC protocol does.

    Args:
        timestamp: Block timestamp of the submission transaction
        epoch_start_timestamp: Start of voting round 0
        epoch_duration_seconds: Length of a voting epoch

    Returns:
        The voting round id

    Raises:
        ValueError: If the timestamp precedes round 0 or the duration is not positive
    """
    if epoch_duration_seconds <= 0:
        raise ValueError(f"Epoch duration must be positive, got {epoch_duration_seconds}")
    if timestamp < epoch_start_timestamp:
        raise ValueError(
            f"Timestamp {timestamp} is before the first voting round start {epoch_start_timestamp}"
        )
    return (int(timestamp) - int(epoch_start_timestamp)) // int(epoch_duration_seconds)


class RequestSubmitter:
    """
    Pays for and submits attestation requests.

    Args:
        w3: Web3 instance
        fdc_hub: FdcHub contract object
        systems_manager: FlareSystemsManager contract object
        signer: Signer paying the fee and gas
        receipt_timeout: Seconds to wait for the transaction receipt
        receipt_poll_interval: Seconds between receipt polls
        logger: Optional logger
    """

    def __init__(
        self,
        w3: Web3,
        fdc_hub: Any,
        systems_manager: Any,
        signer: Signer,
        receipt_timeout: int = 120,
        receipt_poll_interval: float = 0.5,
        logger: Optional[logging.Logger] = None
    ):
        self.w3 = w3
        self.fdc_hub = fdc_hub
        self.systems_manager = systems_manager
        self.signer = signer
        self.receipt_timeout = receipt_timeout
        self.receipt_poll_interval = receipt_poll_interval
        self.logger = logger or logging.getLogger(__name__)
        self._epoch: Optional[Tuple[int, int]] = None
        self._epoch_lock = threading.Lock()

    def epoch_config(self) -> Tuple[int, int]:
        """
        First voting round start timestamp and epoch duration, read once.

        Raises:
            SubmissionReverted: If the systems manager cannot be queried
        """
        with self._epoch_lock:
            if self._epoch is None:
                functions = self.systems_manager.functions
                try:
                    start = int(functions.firstVotingRoundStartTs().call())
                    duration = int(functions.votingEpochDurationSeconds().call())
                except RPC_ERRORS as e:
                    raise SubmissionReverted(f"Could not read the voting epoch configuration: {e}") from e
                self.logger.debug(f"Voting epochs start at {start}, last {duration}s")
                self._epoch = (start, duration)
            return self._epoch

    def voting_round_at(self, timestamp: int) -> VotingRound:
        start, duration = self.epoch_config()
        return VotingRound(
            id=compute_round_id(timestamp, start, duration),
            epoch_start_timestamp=start,
            epoch_duration_seconds=duration,
        )

    def submit(self, encoded_request: str, fee: int) -> Submission:
        """
        Submit an encoded request, paying `fee` as value.

        Args:
            encoded_request: abiEncodedRequest hex string
            fee: Fee in wei, as returned by the FeeResolver

        Returns:
            Submission with the transaction hash and voting round

        Raises:
            InvalidRequest: If the encoded request is not valid hex
            SubmissionReverted: If the transaction cannot be built or sent,
                reverts, or its receipt or block cannot be read
        """
        try:
            data = hex_to_bytes(encoded_request)
        except ValueError as e:
            raise InvalidRequest(f"Encoded request is not valid hex: {e}", stage="submit") from e

        function = self.fdc_hub.functions.requestAttestation(data)
        from_address = self.signer.address

        try:
            gas = function.estimate_gas({"from": from_address, "value": fee})
            gas = int(gas * 1.1)
        except ContractLogicError as e:
            raise SubmissionReverted(f"requestAttestation would revert: {e}") from e
        except RPC_ERRORS as e:
            gas = DEFAULT_GAS_LIMIT
            self.logger.warning(f"Gas estimation failed, using default: {gas}. Error: {e}")

        try:
            tx = function.build_transaction({
                "from": from_address,
                "nonce": self.w3.eth.get_transaction_count(from_address),
                "gas": gas,
                "gasPrice": self.w3.eth.gas_price,
                "value": fee,
            })
        except RPC_ERRORS as e:
            self.logger.error(f"Failed to build attestation request transaction: {e}")
            raise SubmissionReverted(f"Failed to build attestation request transaction: {e}") from e

        try:
            signed_tx = self.signer.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(raw_transaction_bytes(signed_tx))
        except RPC_ERRORS as e:
            self.logger.error(f"Failed to send attestation request: {e}")
            raise SubmissionReverted(f"Failed to send attestation request: {e}") from e

        tx_hash_hex = bytes_to_hex(tx_hash)
        self.logger.info(f"Submitted attestation request: {tx_hash_hex}")

        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.receipt_poll_interval
            )
        except TimeExhausted as e:
            raise SubmissionReverted(
                f"No receipt for {tx_hash_hex} after {self.receipt_timeout}s", tx_hash=tx_hash_hex
            ) from e
        except RPC_ERRORS as e:
            raise SubmissionReverted(
                f"Could not read receipt for {tx_hash_hex}: {e}", tx_hash=tx_hash_hex
            ) from e

        if receipt["status"] != 1:
            raise SubmissionReverted(f"Attestation request {tx_hash_hex} reverted", tx_hash=tx_hash_hex)

        block_number = int(receipt["blockNumber"])
        try:
            block = self.w3.eth.get_block(block_number)
        except RPC_ERRORS as e:
            raise SubmissionReverted(
                f"Request {tx_hash_hex} was mined but block {block_number} could not be read: {e}",
                tx_hash=tx_hash_hex
            ) from e
        block_timestamp = int(block["timestamp"])
        try:
            voting_round = self.voting_round_at(block_timestamp)
        except ValueError as e:
            raise SubmissionReverted(
                f"Cannot place request {tx_hash_hex} in a voting round: {e}", tx_hash=tx_hash_hex
            ) from e
        self.logger.info(f"Request {tx_hash_hex} falls into voting round {voting_round.id}")
        self._cross_check(voting_round.id)

        return Submission(
            tx_hash=tx_hash_hex,
            block_number=block_number,
            block_timestamp=block_timestamp,
            fee=fee,
            voting_round=voting_round,
        )

    def _cross_check(self, round_id: int) -> None:
        """Compare the computed round with the chain's current epoch; the chain may be ahead."""
        try:
            current = int(self.systems_manager.functions.getCurrentVotingEpochId().call())
        except RPC_ERRORS as e:
            self.logger.debug(f"Could not read current voting epoch: {e}")
            return
        if current != round_id:
            self.logger.warning(f"Computed voting round {round_id}, chain reports current epoch {current}")
