"""
Pytest fixtures for the FDC SDK tests.
"""
import time

import pytest
from web3.providers.rpc import HTTPProvider

from fdc_sdk._rate_limited_log import reset_rate_limits
from fdc_sdk.config import ClientConfig, NetworkConfig
from fdc_sdk.signer import LocalSigner

from helpers import (
    FakeClock, TEST_RPC_URL, TEST_VERIFIER_URL, TEST_DA_URL, TEST_API_KEY, TEST_PRIV_KEY,
    TEST_HUB, TEST_FEE_CONFIG, TEST_SYSTEMS_MANAGER, TEST_RELAY, TEST_FDC_VERIFICATION
)


# Make time.sleep instantaneous so polling and retries don't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    """
    def _dummy(self, method, params=None, _=None):
        if method in {"eth_chainId"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x72"}  # coston2
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


@pytest.fixture(autouse=True)
def _reset_caches():
    reset_rate_limits()
    NetworkConfig._networks_cache = None
    yield
    NetworkConfig._networks_cache = None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Config with every contract address set so nothing hits the registry."""
    return ClientConfig(
        rpc_url=TEST_RPC_URL,
        verifier_url=TEST_VERIFIER_URL,
        da_layer_url=TEST_DA_URL,
        verifier_api_key=TEST_API_KEY,
        protocol_id=200,
        chain_id=114,
        fdc_hub_address=TEST_HUB,
        fee_configurations_address=TEST_FEE_CONFIG,
        systems_manager_address=TEST_SYSTEMS_MANAGER,
        relay_address=TEST_RELAY,
        fdc_verification_address=TEST_FDC_VERIFICATION,
        proof_initial_delay=0,
    )


@pytest.fixture
def signer():
    return LocalSigner(TEST_PRIV_KEY)
