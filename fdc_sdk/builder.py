"""
RequestBuilder - turns typed attestation requests into ABI-encoded requests
by calling a verifier's prepareRequest endpoint.
"""
import logging
from typing import Dict, Any, Mapping, Optional

import requests

from .exceptions import InvalidRequest
from .models import AttestationRequest
from .utils import to_utf8_hex_string, is_hex_string

# Sources served by the Web2 verifier at the root of the verifier URL
WEB2_SOURCES = frozenset({"PublicWeb2", "WEB2"})


def verifier_path_for(source_id: str) -> str:
    """
    Path segment of the verifier serving a source.

    Chain sources live under verifier/<chain> ("testBTC" -> "verifier/btc"),
    Web2 sources at the root.
    """
    if source_id in WEB2_SOURCES:
        return ""
    chain = source_id[4:] if source_id.startswith("test") else source_id
    return f"verifier/{chain.lower()}"


class RequestBuilder:
    """
    Builds ABI-encoded attestation requests through a verifier server.

    Args:
        verifier_url: Base URL of the verifier server
        api_key: Value for the X-API-KEY header
        session: requests session to use
        timeout: HTTP timeout in seconds
        logger: Optional logger
        web2_verifier_urls: Base URL per attestation type for Web2 sources,
            e.g. {"Web2Json": ..., "JsonApi": ...}; others use verifier_url
    """

    def __init__(
        self,
        verifier_url: str,
        api_key: str,
        session: requests.Session,
        timeout: int = 30,
        logger: Optional[logging.Logger] = None,
        web2_verifier_urls: Optional[Mapping[str, str]] = None
    ):
        self.verifier_url = verifier_url.rstrip("/")
        self.web2_verifier_urls = {
            attestation_type: url.rstrip("/") for attestation_type, url in (web2_verifier_urls or {}).items()
        }
        self.api_key = api_key
        self.session = session
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def prepare_url(self, attestation_type: str, source_id: str) -> str:
        path = verifier_path_for(source_id)
        base = self.verifier_url
        if source_id in WEB2_SOURCES:
            base = self.web2_verifier_urls.get(attestation_type, base)
        parts = [base]
        if path:
            parts.append(path)
        parts.append(f"{attestation_type}/prepareRequest")
        return "/".join(parts)

    def build(
        self,
        attestation_type: str,
        source_id: str,
        body: Dict[str, Any],
        url: Optional[str] = None
    ) -> str:
        """
        Prepare an ABI-encoded request.

        Args:
            attestation_type: Attestation type name, e.g. "AddressValidity"
            source_id: Source name, e.g. "testBTC"
            body: Type-specific request body
            url: Full prepareRequest URL, overriding the derived one

        Returns:
            The `abiEncodedRequest` hex string

        Raises:
            InvalidRequest: If a tag is too long, the verifier call fails or
                the verifier does not return a VALID encoded request
        """
        request = {
            "attestationType": to_utf8_hex_string(attestation_type),
            "sourceId": to_utf8_hex_string(source_id),
            "requestBody": body,
        }
        url = url or self.prepare_url(attestation_type, source_id)
        self.logger.debug(f"Preparing {attestation_type} request at {url}: {request}")

        try:
            response = self.session.post(
                url,
                json=request,
                headers={"X-API-KEY": self.api_key},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            self.logger.error(f"Verifier request failed: {e}")
            raise InvalidRequest(f"Verifier request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise InvalidRequest(
                f"Verifier responded with status {response.status_code} {response.reason}"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise InvalidRequest(f"Invalid JSON response from verifier: {e}") from e

        status = result.get("status") if isinstance(result, dict) else None
        if status != "VALID":
            raise InvalidRequest(f"Verifier rejected {attestation_type} request with status {status}: {result}")

        encoded = result.get("abiEncodedRequest")
        if not is_hex_string(encoded) or len(encoded) <= 2:
            raise InvalidRequest(f"Missing abiEncodedRequest in verifier response: {result}")

        self.logger.info(f"Prepared {attestation_type} request for source {source_id}")
        return encoded

    def build_request(self, request: AttestationRequest, url: Optional[str] = None) -> str:
        """Prepare an ABI-encoded request from an AttestationRequest."""
        return self.build(request.attestation_type, request.source_id, request.body_dict(), url=url)
