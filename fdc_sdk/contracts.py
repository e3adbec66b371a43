"""
ABI fragments and address resolution for the FDC system contracts.

Only the functions the attestation workflow calls are listed here.
"""
import logging
import threading
from typing import Dict, Optional, Any

import requests
from web3 import Web3
from web3.exceptions import Web3Exception

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

FDC_HUB = "FdcHub"
FDC_REQUEST_FEE_CONFIGURATIONS = "FdcRequestFeeConfigurations"
FLARE_SYSTEMS_MANAGER = "FlareSystemsManager"
RELAY = "Relay"
FDC_VERIFICATION = "FdcVerification"

FLARE_CONTRACT_REGISTRY_ABI = [
    {
        "inputs": [{"internalType": "string", "name": "_name", "type": "string"}],
        "name": "getContractAddressByName",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    }
]

FDC_HUB_ABI = [
    {
        "inputs": [{"internalType": "bytes", "name": "_data", "type": "bytes"}],
        "name": "requestAttestation",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    }
]

FDC_REQUEST_FEE_CONFIGURATIONS_ABI = [
    {
        "inputs": [{"internalType": "bytes", "name": "_data", "type": "bytes"}],
        "name": "getRequestFee",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    }
]

FLARE_SYSTEMS_MANAGER_ABI = [
    {
        "inputs": [],
        "name": "firstVotingRoundStartTs",
        "outputs": [{"internalType": "uint64", "name": "", "type": "uint64"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "votingEpochDurationSeconds",
        "outputs": [{"internalType": "uint64", "name": "", "type": "uint64"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "getCurrentVotingEpochId",
        "outputs": [{"internalType": "uint32", "name": "", "type": "uint32"}],
        "stateMutability": "view",
        "type": "function"
    }
]

RELAY_ABI = [
    {
        "inputs": [
            {"internalType": "uint256", "name": "_protocolId", "type": "uint256"},
            {"internalType": "uint256", "name": "_votingRoundId", "type": "uint256"}
        ],
        "name": "isFinalized",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function"
    }
]

FDC_VERIFICATION_ABI = [
    {
        "inputs": [],
        "name": "fdcProtocolId",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function"
    }
]

CONTRACT_ABIS = {
    FDC_HUB: FDC_HUB_ABI,
    FDC_REQUEST_FEE_CONFIGURATIONS: FDC_REQUEST_FEE_CONFIGURATIONS_ABI,
    FLARE_SYSTEMS_MANAGER: FLARE_SYSTEMS_MANAGER_ABI,
    RELAY: RELAY_ABI,
    FDC_VERIFICATION: FDC_VERIFICATION_ABI,
}

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Raised by contract calls and RPC requests: reverts, bad input, transport failures
RPC_ERRORS = (Web3Exception, ValueError, requests.RequestException)


class ContractResolver:
    """
    Hands out web3 contract objects for the FDC system contracts.

    Addresses come from the explicit mapping first and from the Flare
    contract registry otherwise. Registry lookups are cached.
    """

    def __init__(
        self,
        w3: Web3,
        registry_address: str,
        addresses: Optional[Dict[str, Optional[str]]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.w3 = w3
        self.registry_address = registry_address
        self.logger = logger or logging.getLogger(__name__)
        self._addresses: Dict[str, str] = {
            name: address for name, address in (addresses or {}).items() if address
        }
        self._contracts: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def address_of(self, name: str) -> str:
        """
        Get the address of a system contract.

        Raises:
            ConfigError: If the registry has no address for the name
        """
        with self._lock:
            if name in self._addresses:
                return self._addresses[name]

        registry = self.w3.eth.contract(
            address=Web3.to_checksum_address(self.registry_address),
            abi=FLARE_CONTRACT_REGISTRY_ABI
        )
        try:
            address = registry.functions.getContractAddressByName(name).call()
        except RPC_ERRORS as e:
            raise ConfigError(f"Contract registry lookup for {name} failed: {e}") from e

        if not address or address == ZERO_ADDRESS:
            raise ConfigError(f"Contract registry has no address for {name}")

        self.logger.debug(f"Resolved {name} to {address} via contract registry")
        with self._lock:
            self._addresses[name] = address
        return address

    def contract(self, name: str) -> Any:
        """Get a web3 contract object for one of the known system contracts."""
        with self._lock:
            cached = self._contracts.get(name)
        if cached is not None:
            return cached

        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(self.address_of(name)),
            abi=CONTRACT_ABIS[name]
        )
        with self._lock:
            self._contracts[name] = contract
        return contract
