"""
ProofRetriever - fetches Merkle proofs for finalized requests from the
Data Availability layer.

Two separate budgets apply:

* attempts: transport failures, non-2xx statuses and unreadable bodies.
  Each one consumes an attempt and is followed by exponential backoff.
* polls: the DA layer answered but has not materialized the proof yet.
  These are retried at the (shorter) poll interval inside one attempt.
"""
import logging
import random
import threading
from typing import Dict, Any, Optional

import requests

from ._rate_limited_log import rate_limited_log
from .exceptions import MalformedResponse, ProofRetrievalExhausted
from .models import Proof
from .polling import Poller, Sleeper, Clock
from .utils import hex_to_bytes, is_hex_string

PROOF_BY_REQUEST_ROUND_PATH = "api/v1/fdc/proof-by-request-round-raw"


class DALayerUnavailable(Exception):
    """A retryable DA layer failure. Never leaves the retriever."""
    pass


def proof_endpoint(da_layer_url: str) -> str:
    """Full proof-by-request-round-raw URL for a DA layer base URL."""
    url = da_layer_url.rstrip("/")
    if url.endswith("proof-by-request-round-raw"):
        return url
    return f"{url}/{PROOF_BY_REQUEST_ROUND_PATH}"


def parse_proof_payload(payload: Any) -> Optional[Proof]:
    """
    Interpret a DA layer response body.

    Returns:
        The proof, or None while the DA layer has not produced it yet

    Raises:
        MalformedResponse: If the payload carries a response but it cannot
            be interpreted
    """
    if not isinstance(payload, dict):
        raise MalformedResponse(f"DA layer returned a non-object payload: {payload!r}", stage="proof")

    response_hex = payload.get("response_hex", payload.get("responseHex"))
    if response_hex is None:
        return None
    if not is_hex_string(response_hex):
        raise MalformedResponse(f"DA layer returned invalid response_hex: {response_hex!r}", stage="proof")

    merkle_path = payload.get("proof")
    if merkle_path is None:
        return None
    if not isinstance(merkle_path, list) or not all(is_hex_string(node) for node in merkle_path):
        raise MalformedResponse(f"DA layer returned an invalid Merkle proof: {merkle_path!r}", stage="proof")

    return Proof(merkle_path=list(merkle_path), response_bytes=hex_to_bytes(response_hex))


class ProofRetriever:
    """
    Polls the DA layer for the proof of an (encoded request, round) pair.

    Args:
        session: requests session without transport retries
        api_key: Optional X-API-KEY for the DA layer
        timeout: HTTP timeout in seconds
        poll_interval: Seconds between "not ready yet" polls
        max_polls: Polls per attempt before the attempt counts as failed,
            None to poll until the proof appears
        retry_interval: Base delay after a failed attempt
        max_retry_interval: Upper bound for the backoff delay
        initial_delay: Delay before the very first request
        sleep: Sleeper used between polls (tests inject a fake)
        clock: Monotonic clock
        logger: Optional logger
    """

    def __init__(
        self,
        session: requests.Session,
        api_key: Optional[str] = None,
        timeout: int = 30,
        poll_interval: float = 10.0,
        max_polls: Optional[int] = 60,
        retry_interval: float = 20.0,
        max_retry_interval: float = 160.0,
        initial_delay: float = 0.0,
        sleep: Optional[Sleeper] = None,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None
    ):
        if max_polls is not None and max_polls < 1:
            raise ValueError("max_polls must be at least 1 or None")
        self.session = session
        self.api_key = api_key
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.retry_interval = retry_interval
        self.max_retry_interval = max_retry_interval
        self.initial_delay = initial_delay
        self.sleep = sleep
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def retrieve_proof(
        self,
        da_endpoint: str,
        encoded_request: str,
        round_id: int,
        max_attempts: int = 10,
        cancel_event: Optional[threading.Event] = None
    ) -> Proof:
        """
        Retrieve the proof for a request submitted in `round_id`.

        Args:
            da_endpoint: DA layer base URL or full proof endpoint URL
            encoded_request: abiEncodedRequest hex string
            round_id: Voting round the request was submitted in
            max_attempts: Attempt budget for hard failures
            cancel_event: Event that aborts the retrieval when set

        Returns:
            The proof

        Raises:
            ProofRetrievalExhausted: If every attempt failed
            MalformedResponse: If the DA layer returned an unusable proof
            OperationCancelled: If cancel_event is set
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        url = proof_endpoint(da_endpoint)
        request = {"votingRoundId": round_id, "requestBytes": encoded_request}
        poller = Poller(sleep=self.sleep, clock=self.clock, cancel_event=cancel_event, stage="proof")
        self.logger.debug(f"Retrieving proof from {url}: {request}")

        if self.initial_delay > 0:
            poller.pause(self.initial_delay)

        last_error: Optional[DALayerUnavailable] = None
        for attempt in range(1, max_attempts + 1):
            try:
                proof = self._poll_until_ready(url, request, poller)
            except DALayerUnavailable as e:
                last_error = e
                rate_limited_log(f"DA layer at {url} unavailable: {e}", "warning", 60, self.logger)
            else:
                self.logger.info(f"Proof for round {round_id} retrieved on attempt {attempt}")
                return proof

            if attempt < max_attempts:
                delay = self._backoff(attempt)
                self.logger.warning(
                    f"Proof retrieval attempt {attempt}/{max_attempts} failed: {last_error}. "
                    f"Retrying in {delay:.2f}s"
                )
                poller.pause(delay)

        self.logger.error(f"Giving up on proof for round {round_id} after {max_attempts} attempts")
        raise ProofRetrievalExhausted(max_attempts, last_error)

    def _poll_until_ready(self, url: str, request: Dict[str, Any], poller: Poller) -> Proof:
        polls = 0
        while True:
            payload = self._fetch(url, request)
            polls += 1
            proof = parse_proof_payload(payload)
            if proof is not None:
                return proof
            if self.max_polls is not None and polls >= self.max_polls:
                raise DALayerUnavailable(f"proof not ready after {polls} polls")
            self.logger.debug(f"Proof not ready yet (poll {polls}), waiting {self.poll_interval}s")
            poller.pause(self.poll_interval)

    def _fetch(self, url: str, request: Dict[str, Any]) -> Any:
        headers = {"X-API-KEY": self.api_key} if self.api_key else None
        try:
            response = self.session.post(url, json=request, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise DALayerUnavailable(f"request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise DALayerUnavailable(f"status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise DALayerUnavailable(f"invalid JSON: {e}") from e

    def _backoff(self, attempt: int) -> float:
        delay = min(self.retry_interval * (2 ** (attempt - 1)), self.max_retry_interval)
        # Up to 10% jitter
        return delay + delay * random.uniform(0, 0.1)
