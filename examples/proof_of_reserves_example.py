#!/usr/bin/env python3
"""
Proof of reserves: attest an off-chain reserves figure and the token supply
transactions on two chains, then combine the results.

Requests are submitted one after another from a single account, then the
finalization waits and proof retrievals run concurrently.
"""
import logging
import os
from concurrent.futures import ThreadPoolExecutor

from fdc_sdk import ClientConfig, FdcClient, FdcError, decode_abi_payload

RESERVES_API_URL = "https://api.htdigitalassets.com/alm-stablecoin-db/metrics/current_reserves_amount"
RESERVES_ABI_SIGNATURE = (
    '{"components": [{"internalType": "uint256","name": "reserves","type": "uint256"}],'
    '"internalType": "struct DataTransportObject","name": "dto","type": "tuple"}'
)

# Token supply update transactions to attest, per source chain
TRANSACTION_HASHES = {
    "testSGB": "0x192ff7eb839157d037f023d006aec47afaad6dc8ed98618a5e8803992518caeb",
    "testFLR": "0x7149c77b4ecb68ca9faea3991cf24864dc4fbf09c6c52f0c203c748456b80658",
}


def prepare_requests(client: FdcClient, jq_client: FdcClient):
    """Encoded requests keyed by a label, with their attestation types."""
    prepared = {
        "reserves": ("JsonApi", jq_client.prepare_request(
            "JsonApi",
            "WEB2",
            {
                "url": RESERVES_API_URL,
                "postprocessJq": '{reserves: .value | gsub(",";"") | sub("\\\\.\\\\d*";"")}',
                "abi_signature": RESERVES_ABI_SIGNATURE,
            },
        )),
    }
    for source_id, tx_hash in TRANSACTION_HASHES.items():
        prepared[source_id] = ("EVMTransaction", client.prepare_request(
            "EVMTransaction",
            source_id,
            {
                "transactionHash": tx_hash,
                "requiredConfirmations": "1",
                "provideInput": True,
                "listEvents": True,
                "logIndices": [],
            },
        ))
    return prepared


def main():
    logging.basicConfig(level=logging.INFO)

    PRIVATE_KEY = os.environ.get("PRIVATE_KEY")
    JQ_VERIFIER_URL = os.environ.get("JQ_VERIFIER_URL_TESTNET")
    JQ_VERIFIER_API_KEY = os.environ.get("JQ_VERIFIER_API_KEY_TESTNET", "")

    if not PRIVATE_KEY:
        print("ERROR: PRIVATE_KEY environment variable is required")
        return

    # JsonApi requests go to the network jq verifier unless JQ_VERIFIER_URL_TESTNET is set
    config = ClientConfig.from_network("coston2", jq_verifier_url=JQ_VERIFIER_URL)
    jq_config = config.model_copy(update={
        "verifier_api_key": JQ_VERIFIER_API_KEY,
    })

    with FdcClient(config, priv_key=PRIVATE_KEY) as client, \
            FdcClient(jq_config, w3=client.w3) as jq_client:
        try:
            prepared = prepare_requests(client, jq_client)

            # Sequential, so nonces come out in order
            rounds = {}
            for label, (_, encoded_request) in prepared.items():
                submission = client.submit_request(encoded_request)
                print(f"({label}) submitted {submission.tx_hash} in round {submission.round_id}")
                print(f"Check round progress at: {client.round_explorer_url(submission.round_id)}")
                rounds[label] = submission.round_id

            with ThreadPoolExecutor(max_workers=len(prepared)) as pool:
                futures = {
                    label: pool.submit(
                        client.retrieve_attestation, attestation_type, encoded_request, rounds[label]
                    )
                    for label, (attestation_type, encoded_request) in prepared.items()
                }
                results = {label: f.result() for label, f in futures.items()}
        except FdcError as e:
            print(f"Attestation failed at stage '{e.stage}': {e}")
            return

    reserves = results.pop("reserves")
    dto = decode_abi_payload(RESERVES_ABI_SIGNATURE, reserves.response.data["responseBody"]["abi_encoded_data"])
    print(f"Claimed reserves: {dto['reserves']}")
    for source_id, result in results.items():
        events = result.response.data["responseBody"]["events"]
        print(f"{source_id}: round {result.round_id}, {len(events)} events")

    # Pass these to ProofOfReserves.verifyReserves on chain
    arguments = {
        "jsonProof": reserves.verifier_argument(),
        "transactionProofs": [r.verifier_argument() for r in results.values()],
    }
    print(f"Verifier arguments ready for {len(arguments['transactionProofs'])} transactions")


if __name__ == "__main__":
    main()
