"""
FdcClient - runs the Flare Data Connector attestation workflow.

    prepare request -> resolve fee -> submit -> wait for finalization
    -> retrieve proof -> decode response

Each step is also exposed on its own so callers can resume a workflow, e.g.
retrieve the proof for a request submitted by another process.
"""
import logging
import threading
from typing import Dict, Any, Optional

import requests
from web3 import Web3

from .builder import RequestBuilder
from .config import ClientConfig, NetworkConfig
from .contracts import (
    RPC_ERRORS, ContractResolver, FDC_HUB, FDC_REQUEST_FEE_CONFIGURATIONS,
    FLARE_SYSTEMS_MANAGER, RELAY, FDC_VERIFICATION
)
from .decoding import ResponseDecoder, SchemaRegistry
from .exceptions import ConfigError, FdcError
from .fees import FeeResolver
from .finalization import FinalizationWaiter
from .models import AttestationRequest, AttestationResult, DecodedResponse, Proof, Submission
from .polling import Sleeper, Clock
from .proofs import ProofRetriever
from .session import create_session
from .signer import Signer, LocalSigner
from .submitter import RequestSubmitter


class FdcClient:
    """
    Client for requesting attestations from the Flare Data Connector.

    To use this client, you'll need:
    - A ClientConfig (RPC, verifier and DA layer URLs, verifier API key)
    - A private key or custom signer, only for submitting requests

    Args:
        config: Client configuration
        signer: Custom signer object (optional if priv_key provided)
        priv_key: Private key used to build a LocalSigner
        w3: Web3 instance, created from config.rpc_url when omitted
        session: requests session for the verifier and the DA layer
        schema_registry: Response schemas, the built-in ones by default
        sleep: Sleeper for the polling stages (tests inject a fake)
        clock: Monotonic clock for the polling stages
        logger: Optional logger instance
    """

    def __init__(
        self,
        config: ClientConfig,
        signer: Optional[Signer] = None,
        priv_key: Optional[str] = None,
        w3: Optional[Web3] = None,
        session: Optional[requests.Session] = None,
        schema_registry: Optional[SchemaRegistry] = None,
        sleep: Optional[Sleeper] = None,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.signer: Optional[Signer] = signer
        if self.signer is None and priv_key:
            self.signer = LocalSigner(priv_key)

        self.w3 = w3 or Web3(Web3.HTTPProvider(config.rpc_url, request_kwargs={"timeout": config.timeout}))
        self.contracts = ContractResolver(
            self.w3,
            config.registry_address,
            {
                FDC_HUB: config.fdc_hub_address,
                FDC_REQUEST_FEE_CONFIGURATIONS: config.fee_configurations_address,
                FLARE_SYSTEMS_MANAGER: config.systems_manager_address,
                RELAY: config.relay_address,
                FDC_VERIFICATION: config.fdc_verification_address,
            },
            logger=self.logger
        )

        # The DA session must not retry on its own: the retriever counts attempts
        self._owns_sessions = session is None
        self.session = session or create_session(config.retry_count)
        self.da_session = session or create_session(0)

        self.builder = RequestBuilder(
            config.verifier_url,
            config.verifier_api_key,
            self.session,
            timeout=config.timeout,
            logger=self.logger,
            web2_verifier_urls=config.web2_verifier_urls()
        )
        self.retriever = ProofRetriever(
            self.da_session,
            api_key=config.da_api_key,
            timeout=config.timeout,
            poll_interval=config.proof_poll_interval,
            max_polls=config.proof_max_polls,
            retry_interval=config.proof_retry_interval,
            max_retry_interval=config.proof_max_retry_interval,
            initial_delay=config.proof_initial_delay,
            sleep=sleep,
            clock=clock,
            logger=self.logger
        )
        self.decoder = ResponseDecoder(schema_registry, logger=self.logger)

        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._fee_resolver: Optional[FeeResolver] = None
        self._submitter: Optional[RequestSubmitter] = None
        self._waiter: Optional[FinalizationWaiter] = None
        self._protocol_id: Optional[int] = config.protocol_id

    @classmethod
    def from_network(
        cls,
        network: str,
        signer: Optional[Signer] = None,
        priv_key: Optional[str] = None,
        **overrides: Any
    ) -> "FdcClient":
        """
        Create a client for one of the bundled networks.

        Args:
            network: Network name, e.g. "coston2"
            signer: Custom signer object
            priv_key: Private key (alternative to signer)
            **overrides: ClientConfig fields to override

        Returns:
            Configured FdcClient
        """
        return cls(ClientConfig.from_network(network, **overrides), signer=signer, priv_key=priv_key)

    # Lazily built so constructing a client does not touch the chain

    @property
    def fee_resolver(self) -> FeeResolver:
        with self._lock:
            if self._fee_resolver is None:
                self._fee_resolver = FeeResolver(
                    self.contracts.contract(FDC_REQUEST_FEE_CONFIGURATIONS), logger=self.logger
                )
            return self._fee_resolver

    @property
    def submitter(self) -> RequestSubmitter:
        if self.signer is None:
            raise ValueError("Either priv_key or signer must be provided to submit requests")
        with self._lock:
            if self._submitter is None:
                self._submitter = RequestSubmitter(
                    self.w3,
                    self.contracts.contract(FDC_HUB),
                    self.contracts.contract(FLARE_SYSTEMS_MANAGER),
                    self.signer,
                    receipt_timeout=self.config.receipt_timeout,
                    receipt_poll_interval=self.config.receipt_poll_interval,
                    logger=self.logger
                )
            return self._submitter

    @property
    def finalization_waiter(self) -> FinalizationWaiter:
        with self._lock:
            if self._waiter is None:
                self._waiter = FinalizationWaiter(
                    self.contracts.contract(RELAY),
                    poll_interval=self.config.finalization_poll_interval,
                    timeout=self.config.finalization_timeout,
                    sleep=self._sleep,
                    clock=self._clock,
                    logger=self.logger
                )
            return self._waiter

    @property
    def protocol_id(self) -> int:
        """FDC protocol id, from the config or FdcVerification.fdcProtocolId()."""
        if self._protocol_id is None:
            verification = self.contracts.contract(FDC_VERIFICATION)
            try:
                self._protocol_id = int(verification.functions.fdcProtocolId().call())
            except RPC_ERRORS as e:
                raise ConfigError(f"Could not read the FDC protocol id: {e}") from e
        return self._protocol_id

    def assert_chain_id(self) -> None:
        """
        Check that the RPC endpoint serves the configured chain.

        Raises:
            ConfigError: On mismatch or when the chain ID cannot be read
        """
        if self.config.chain_id is None:
            return
        try:
            actual = self.w3.eth.chain_id
        except RPC_ERRORS as e:
            raise ConfigError(f"Could not read chain ID from {self.config.rpc_url}: {e}") from e
        if actual != self.config.chain_id:
            raise ConfigError(f"Chain ID mismatch: expected {self.config.chain_id}, got {actual}")

    def round_explorer_url(self, round_id: int) -> Optional[str]:
        if not self.config.network:
            return None
        return NetworkConfig.get_round_explorer_url(self.config.network, round_id)

    # Individual steps

    def prepare_request(
        self,
        attestation_type: str,
        source_id: str,
        body: Dict[str, Any],
        url: Optional[str] = None
    ) -> str:
        """Prepare an ABI-encoded request through the verifier."""
        return self.builder.build(attestation_type, source_id, body, url=url)

    def get_request_fee(self, encoded_request: str) -> int:
        return self.fee_resolver.resolve_fee(encoded_request)

    def submit_request(self, encoded_request: str, fee: Optional[int] = None) -> Submission:
        """Submit an encoded request, resolving the fee first when not given."""
        if fee is None:
            fee = self.get_request_fee(encoded_request)
        submission = self.submitter.submit(encoded_request, fee)
        explorer_url = self.round_explorer_url(submission.round_id)
        if explorer_url:
            self.logger.info(f"Check round progress at: {explorer_url}")
        return submission

    def wait_for_round(
        self,
        round_id: int,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> None:
        self.finalization_waiter.await_finalization(
            self.protocol_id, round_id, timeout=timeout, cancel_event=cancel_event
        )

    def retrieve_proof(
        self,
        encoded_request: str,
        round_id: int,
        max_attempts: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Proof:
        return self.retriever.retrieve_proof(
            self.config.da_layer_url,
            encoded_request,
            round_id,
            max_attempts=self.config.proof_max_attempts if max_attempts is None else max_attempts,
            cancel_event=cancel_event
        )

    def decode_response(self, attestation_type: str, proof: Proof) -> DecodedResponse:
        return self.decoder.decode(attestation_type, proof.response_bytes)

    # Whole workflow

    def retrieve_attestation(
        self,
        attestation_type: str,
        encoded_request: str,
        round_id: int,
        finalization_timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AttestationResult:
        """
        Finish the workflow for a request that was already submitted.

        Args:
            attestation_type: Attestation type of the request
            encoded_request: abiEncodedRequest hex string
            round_id: Voting round the request was submitted in
            finalization_timeout: Seconds to wait for finalization
            cancel_event: Event that aborts the waits when set

        Returns:
            AttestationResult without request or submission details
        """
        return self._finish(
            attestation_type, encoded_request, round_id,
            finalization_timeout=finalization_timeout,
            cancel_event=cancel_event
        )

    def request_attestation(
        self,
        attestation_type: str,
        source_id: str,
        body: Dict[str, Any],
        url: Optional[str] = None,
        finalization_timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AttestationResult:
        """
        Run the full attestation workflow for one request.

        Args:
            attestation_type: Attestation type name, e.g. "EVMTransaction"
            source_id: Source name, e.g. "testETH"
            body: Type-specific request body
            url: Full prepareRequest URL, overriding the derived one
            finalization_timeout: Seconds to wait for finalization
            cancel_event: Event that aborts the waits when set

        Returns:
            AttestationResult; `verifier_argument()` gives the argument for
            the verifying contract

        Raises:
            FdcError: Any stage failure, with `stage` naming the stage
        """
        request = AttestationRequest(attestation_type=attestation_type, source_id=source_id, body=body)
        try:
            encoded_request = self.builder.build_request(request, url=url)
            submission = self.submit_request(encoded_request)
        except FdcError as e:
            self.logger.error(f"Attestation workflow failed at stage '{e.stage}': {e}")
            raise
        return self._finish(
            attestation_type, encoded_request, submission.round_id,
            request=request,
            submission=submission,
            finalization_timeout=finalization_timeout,
            cancel_event=cancel_event
        )

    def _finish(
        self,
        attestation_type: str,
        encoded_request: str,
        round_id: int,
        request: Optional[AttestationRequest] = None,
        submission: Optional[Submission] = None,
        finalization_timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AttestationResult:
        try:
            self.wait_for_round(round_id, timeout=finalization_timeout, cancel_event=cancel_event)
            proof = self.retrieve_proof(encoded_request, round_id, cancel_event=cancel_event)
            response = self.decode_response(attestation_type, proof)
        except FdcError as e:
            self.logger.error(f"Attestation workflow failed at stage '{e.stage}': {e}")
            raise

        return AttestationResult(
            request=request,
            encoded_request=encoded_request,
            submission=submission,
            round_id=round_id,
            proof=proof,
            response=response,
        )

    def close(self) -> None:
        """Close the HTTP sessions created by this client."""
        if self._owns_sessions:
            self.session.close()
            self.da_session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
