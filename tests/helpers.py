"""
Shared fakes and sample data for the FDC SDK tests.
"""
from unittest.mock import MagicMock

from fdc_sdk.decoding import ResponseDecoder
from fdc_sdk.utils import hex_to_bytes, to_utf8_hex_string, bytes_to_hex

TEST_RPC_URL = "https://rpc.example.com"
TEST_VERIFIER_URL = "https://verifier.example.com"
TEST_DA_URL = "https://da.example.com"
TEST_API_KEY = "test-api-key"
TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_HUB = "0x1111111111111111111111111111111111111111"
TEST_FEE_CONFIG = "0x2222222222222222222222222222222222222222"
TEST_SYSTEMS_MANAGER = "0x3333333333333333333333333333333333333333"
TEST_RELAY = "0x4444444444444444444444444444444444444444"
TEST_FDC_VERIFICATION = "0x5555555555555555555555555555555555555555"

TEST_ADDRESS_STR = "mg9P9f4wr9w7c1sgFeiTC5oMLYXCc2c7hs"
TEST_ENCODED_REQUEST = "0x" + "41646472657373" + "00" * 57 + "ab" * 64
DA_PROOF_URL = f"{TEST_DA_URL}/api/v1/fdc/proof-by-request-round-raw"
PREPARE_URL = f"{TEST_VERIFIER_URL}/verifier/btc/AddressValidity/prepareRequest"

MERKLE_PATH = ["0x" + "aa" * 32, "0x" + "bb" * 32]


class FakeClock:
    """Monotonic clock advanced only by its own sleep."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def address_validity_record(voting_round: int = 10) -> dict:
    return {
        "attestationType": hex_to_bytes(to_utf8_hex_string("AddressValidity")),
        "sourceId": hex_to_bytes(to_utf8_hex_string("testBTC")),
        "votingRound": voting_round,
        "lowestUsedTimestamp": 0,
        "requestBody": {"addressStr": TEST_ADDRESS_STR},
        "responseBody": {
            "isValid": True,
            "standardAddress": TEST_ADDRESS_STR,
            "standardAddressHash": b"\x11" * 32,
        },
    }


def address_validity_response_hex(voting_round: int = 10) -> str:
    return bytes_to_hex(ResponseDecoder().encode("AddressValidity", address_validity_record(voting_round)))


def make_call(value=None, side_effect=None) -> MagicMock:
    """A contract function call whose .call() returns `value`."""
    fn = MagicMock()
    if side_effect is not None:
        fn.call.side_effect = side_effect
    else:
        fn.call.return_value = value
    return fn


def make_systems_manager(start: int = 0, duration: int = 90, current: int = None) -> MagicMock:
    manager = MagicMock()
    manager.functions.firstVotingRoundStartTs.return_value = make_call(start)
    manager.functions.votingEpochDurationSeconds.return_value = make_call(duration)
    manager.functions.getCurrentVotingEpochId.return_value = make_call(current if current is not None else 0)
    return manager


def make_relay(*answers) -> MagicMock:
    relay = MagicMock()
    relay.functions.isFinalized.return_value.call.side_effect = list(answers)
    return relay


def make_fee_configurations(fee: int = 100) -> MagicMock:
    fee_config = MagicMock()
    fee_config.functions.getRequestFee.return_value = make_call(fee)
    return fee_config


def make_hub() -> MagicMock:
    hub = MagicMock()
    function = hub.functions.requestAttestation.return_value
    function.estimate_gas.return_value = 100000
    function.build_transaction.side_effect = lambda params: {**params, "to": TEST_HUB, "data": "0x1234"}
    return hub


def make_w3(block_timestamp: int = 900, status: int = 1, block_number: int = 12345) -> MagicMock:
    w3 = MagicMock()
    w3.eth.chain_id = 114
    w3.eth.gas_price = 25000000000
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = bytes.fromhex("ab" * 32)
    w3.eth.wait_for_transaction_receipt.return_value = {
        "transactionHash": bytes.fromhex("ab" * 32),
        "blockNumber": block_number,
        "status": status,
    }
    w3.eth.get_block.return_value = {"number": block_number, "timestamp": block_timestamp}
    return w3
