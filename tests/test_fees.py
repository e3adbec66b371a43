"""
Tests for the FeeResolver.
"""
import pytest
import requests
from unittest.mock import MagicMock
from web3.exceptions import ContractLogicError

from fdc_sdk.exceptions import FeeLookupFailed
from fdc_sdk.fees import FeeResolver
from fdc_sdk.utils import hex_to_bytes

from helpers import TEST_ENCODED_REQUEST, make_fee_configurations


def test_resolve_fee():
    fee_config = make_fee_configurations(1000000000000000)
    resolver = FeeResolver(fee_config)

    assert resolver.resolve_fee(TEST_ENCODED_REQUEST) == 1000000000000000
    fee_config.functions.getRequestFee.assert_called_once_with(hex_to_bytes(TEST_ENCODED_REQUEST))


def test_revert_raises_fee_lookup_failed():
    fee_config = MagicMock()
    fee_config.functions.getRequestFee.return_value.call.side_effect = ContractLogicError("execution reverted")
    resolver = FeeResolver(fee_config)

    with pytest.raises(FeeLookupFailed, match="reverted") as exc_info:
        resolver.resolve_fee(TEST_ENCODED_REQUEST)
    assert exc_info.value.stage == "fee"


def test_no_retry_on_revert():
    fee_config = MagicMock()
    call = fee_config.functions.getRequestFee.return_value.call
    call.side_effect = ContractLogicError("execution reverted")

    with pytest.raises(FeeLookupFailed):
        FeeResolver(fee_config).resolve_fee(TEST_ENCODED_REQUEST)
    assert call.call_count == 1


def test_invalid_hex_request():
    with pytest.raises(FeeLookupFailed):
        FeeResolver(make_fee_configurations()).resolve_fee("0xnothex")


def test_rpc_transport_error_reports_fee_stage():
    fee_config = MagicMock()
    fee_config.functions.getRequestFee.return_value.call.side_effect = requests.ConnectionError("rpc down")

    with pytest.raises(FeeLookupFailed, match="rpc down") as exc_info:
        FeeResolver(fee_config).resolve_fee(TEST_ENCODED_REQUEST)

    assert exc_info.value.stage == "fee"
    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)
