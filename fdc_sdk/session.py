"""
HTTP session setup shared by the verifier and DA layer clients.
"""
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def create_session(retry_count: int = 3, backoff_factor: float = 0.5) -> requests.Session:
    """
    Create a requests session with transport-level retries.

    Args:
        retry_count: Retries for connection errors and 5xx responses.
            Zero disables transport retries, for callers that count
            attempts themselves.
        backoff_factor: urllib3 backoff factor between retries

    Returns:
        Configured session
    """
    session = requests.Session()
    if retry_count > 0:
        retries = Retry(
            total=retry_count,
            backoff_factor=backoff_factor,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
            connect=retry_count,
            read=retry_count,
            other=retry_count
        )
    else:
        retries = Retry(total=0, raise_on_status=False)
    session.mount("http://", HTTPAdapter(max_retries=retries))
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session
