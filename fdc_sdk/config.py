"""
Network and client configuration for the FDC SDK.
"""
import json
import os
import urllib.parse
import importlib.resources
from typing import Dict, Any, Optional, Mapping

from pydantic import BaseModel, field_validator

# Address of the FlareContractRegistry, identical on every Flare network
FLARE_CONTRACT_REGISTRY_ADDRESS = "0xaD67FE66660Fb8dFE9d6b1b4240d8650e30F6019"


def _validate_url(url_name: str, url: str) -> str:
    """Require https:// for anything that is not a local address."""
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1", "::1")
    if parsed.scheme != "https" and not is_local:
        raise ValueError(f"{url_name} must use https:// for security (got: {parsed.scheme}://)")
    return url.rstrip("/")


def _env_name(network: str, suffix: str) -> str:
    return f"{network.upper().replace('-', '_')}_{suffix}"


class NetworkConfig:
    """
    Access to the bundled network table (networks.json).

    Values can be overridden per call or through environment variables named
    after the network, e.g. COSTON2_RPC_URL or COSTON2_DA_LAYER_URL.
    """

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load the network table, caching it after the first read.

        Returns:
            Mapping of network name to its configuration
        """
        if cls._networks_cache is None:
            resource = importlib.resources.files("fdc_sdk").joinpath("networks.json")
            cls._networks_cache = json.loads(resource.read_text(encoding="utf-8"))
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get configuration for a network.

        Raises:
            ValueError: If the network is unknown
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks.keys()))
            raise ValueError(f"Network '{network}' not found. Available networks: {available}")
        return networks[network]

    @classmethod
    def _resolve(
        cls, network: str, key: str, env_suffix: str, override: Optional[str], required: bool = True
    ) -> Optional[str]:
        if override:
            return override
        env_value = os.environ.get(_env_name(network, env_suffix))
        if env_value:
            return env_value
        config = cls.get_network(network)
        return config[key] if required else config.get(key)

    @classmethod
    def get_rpc_url(cls, network: str, override: Optional[str] = None) -> str:
        return cls._resolve(network, "rpc", "RPC_URL", override)

    @classmethod
    def get_da_layer_url(cls, network: str, override: Optional[str] = None) -> str:
        return cls._resolve(network, "daLayer", "DA_LAYER_URL", override)

    @classmethod
    def get_verifier_url(cls, network: str, override: Optional[str] = None) -> str:
        return cls._resolve(network, "verifier", "VERIFIER_URL", override)

    @classmethod
    def get_web2json_verifier_url(cls, network: str, override: Optional[str] = None) -> Optional[str]:
        """Web2Json verifier, None where the network has no public one."""
        return cls._resolve(network, "web2JsonVerifier", "WEB2JSON_VERIFIER_URL", override, required=False)

    @classmethod
    def get_jq_verifier_url(cls, network: str, override: Optional[str] = None) -> Optional[str]:
        """JsonApi (jq) verifier, None where the network has no public one."""
        return cls._resolve(network, "jqVerifier", "JQ_VERIFIER_URL", override, required=False)

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        return int(cls.get_network(network)["chainId"])

    @classmethod
    def get_protocol_id(cls, network: str) -> Optional[int]:
        value = cls.get_network(network).get("fdcProtocolId")
        return int(value) if value is not None else None

    @classmethod
    def get_round_explorer_url(cls, network: str, round_id: int) -> Optional[str]:
        """Systems explorer page showing FDC progress for a voting round."""
        base = cls.get_network(network).get("systemsExplorer")
        if not base:
            return None
        return f"{base.rstrip('/')}/voting-round/{round_id}?tab=fdc"


class ClientConfig(BaseModel):
    """
    Everything an FDC client needs, passed explicitly to each component.

    Contract addresses left empty are looked up in the Flare contract
    registry at first use.
    """

    rpc_url: str
    verifier_url: str
    da_layer_url: str
    verifier_api_key: str = ""
    da_api_key: Optional[str] = None
    # Web2 sources, keyed by attestation type; fall back to verifier_url
    web2json_verifier_url: Optional[str] = None
    jq_verifier_url: Optional[str] = None

    chain_id: Optional[int] = None
    protocol_id: Optional[int] = None
    network: Optional[str] = None

    registry_address: str = FLARE_CONTRACT_REGISTRY_ADDRESS
    fdc_hub_address: Optional[str] = None
    fee_configurations_address: Optional[str] = None
    systems_manager_address: Optional[str] = None
    relay_address: Optional[str] = None
    fdc_verification_address: Optional[str] = None

    # HTTP
    timeout: int = 30
    retry_count: int = 3

    # Transactions
    receipt_timeout: int = 120
    receipt_poll_interval: float = 0.5

    # Polling
    finalization_poll_interval: float = 30.0
    finalization_timeout: Optional[float] = None
    proof_initial_delay: float = 10.0
    proof_poll_interval: float = 10.0
    proof_max_polls: Optional[int] = 60
    proof_max_attempts: int = 10
    proof_retry_interval: float = 20.0
    proof_max_retry_interval: float = 160.0

    @field_validator("rpc_url", "verifier_url", "da_layer_url")
    @classmethod
    def _check_url(cls, value: str, info) -> str:
        return _validate_url(info.field_name, value)

    @field_validator("web2json_verifier_url", "jq_verifier_url")
    @classmethod
    def _check_optional_url(cls, value: Optional[str], info) -> Optional[str]:
        if value is None:
            return None
        return _validate_url(info.field_name, value)

    def web2_verifier_urls(self) -> Dict[str, str]:
        """Verifier base URL per Web2 attestation type, where one is configured."""
        urls = {"Web2Json": self.web2json_verifier_url, "JsonApi": self.jq_verifier_url}
        return {attestation_type: url for attestation_type, url in urls.items() if url}

    @field_validator("proof_max_attempts")
    @classmethod
    def _check_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("proof_max_attempts must be at least 1")
        return value

    @classmethod
    def from_network(cls, network: str, **overrides: Any) -> "ClientConfig":
        """
        Build a configuration from the bundled network table.

        Args:
            network: Network name, e.g. "coston2"
            **overrides: Field values taking precedence over the table

        Returns:
            ClientConfig instance
        """
        values: Dict[str, Any] = {
            "network": network,
            "rpc_url": NetworkConfig.get_rpc_url(network, overrides.pop("rpc_url", None)),
            "verifier_url": NetworkConfig.get_verifier_url(network, overrides.pop("verifier_url", None)),
            "da_layer_url": NetworkConfig.get_da_layer_url(network, overrides.pop("da_layer_url", None)),
            "web2json_verifier_url": NetworkConfig.get_web2json_verifier_url(
                network, overrides.pop("web2json_verifier_url", None)
            ),
            "jq_verifier_url": NetworkConfig.get_jq_verifier_url(network, overrides.pop("jq_verifier_url", None)),
            "chain_id": NetworkConfig.get_chain_id(network),
            "protocol_id": NetworkConfig.get_protocol_id(network),
        }
        api_key = os.environ.get(_env_name(network, "VERIFIER_API_KEY"))
        if api_key:
            values["verifier_api_key"] = api_key
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls, prefix: str = "FDC_", environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """
        Build a configuration from environment variables.

        Every field maps to `<prefix><FIELD_NAME>`, e.g. FDC_RPC_URL.
        Empty variables are ignored.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"{prefix}{name.upper()}")
            if raw:
                values[name] = raw
        return cls(**values)
