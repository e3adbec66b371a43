#!/usr/bin/env python3
"""
Example of proving that a Bitcoin testnet address is valid with the FDC.
"""
import logging
import os

from fdc_sdk import FdcClient, FdcError, NetworkConfig


def main():
    """
    Request an AddressValidity attestation on Coston2.

    This example shows how to:
    1. Initialize the client from a network configuration
    2. Run the full workflow: prepare, pay, submit, wait, retrieve, decode
    3. Build the argument for a verifying contract
    """
    logging.basicConfig(level=logging.INFO)

    PRIVATE_KEY = os.environ.get("PRIVATE_KEY")
    ADDRESS = os.environ.get("BTC_ADDRESS", "mg9P9f4wr9w7c1sgFeiTC5oMLYXCc2c7hs")

    if not PRIVATE_KEY:
        print("ERROR: PRIVATE_KEY environment variable is required")
        return

    print("Available networks:")
    for network_name in NetworkConfig.load_networks().keys():
        print(f"  - {network_name}")
    print()

    # Verifier API key is read from COSTON2_VERIFIER_API_KEY
    with FdcClient.from_network("coston2", priv_key=PRIVATE_KEY) as client:
        client.assert_chain_id()
        print(f"Signer address: {client.signer.address}")

        try:
            result = client.request_attestation(
                "AddressValidity",
                "testBTC",
                {"addressStr": ADDRESS},
            )
        except FdcError as e:
            print(f"Attestation failed at stage '{e.stage}': {e}")
            return

        print(f"Submitted in tx {result.submission.tx_hash}, voting round {result.round_id}")
        print(f"Round explorer: {client.round_explorer_url(result.round_id)}")

        body = result.response.data["responseBody"]
        print(f"Address valid: {body['isValid']}")
        print(f"Standard address: {body['standardAddress']}")

        argument = result.verifier_argument()
        print(f"Merkle proof has {len(argument['merkleProof'])} nodes")


if __name__ == "__main__":
    main()
