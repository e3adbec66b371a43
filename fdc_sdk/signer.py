"""
Transaction signers.
"""
from typing import Dict, Any, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount


class Signer(Protocol):
    """Protocol for custom signers"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...


class LocalSigner:
    """Signer backed by a private key held in memory."""

    def __init__(self, private_key: str):
        self._account: LocalAccount = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        return self._account.sign_transaction(transaction_dict)


def raw_transaction_bytes(signed_tx: Any) -> bytes:
    """Raw bytes of a signed transaction across eth-account versions."""
    raw = getattr(signed_tx, "raw_transaction", None)
    if raw is None:
        raw = signed_tx.rawTransaction
    return raw
