from __future__ import annotations

import logging
import time
from typing import Mapping

from flask import current_app
from web3 import Web3
from web3.middleware import geth_poa_middleware

from election_gateway.services.blockchain_service import (
    BlockchainUnavailable,
    ContractClient,
    load_abi,
)
from election_gateway.services.election_service import ElectionGateway

GATEWAY_EXTENSION = "election_gateway"

REQUIRED_SETTINGS = ("RPC_URL", "CONTRACT_ADDRESS", "ABI_PATH", "PRIVATE_KEY")


def connect_web3(rpc_url: str) -> Web3:
    web3 = Web3(Web3.HTTPProvider(rpc_url))
    # Inject middleware for Goerli/Sepolia support
    web3.middleware_onion.inject(geth_poa_middleware, layer=0)
    return web3


def wait_for_node(web3: Web3, max_attempts: int = 10, interval_seconds: int = 2) -> None:
    for attempt in range(1, max_attempts + 1):
        if web3.is_connected():
            return
        logging.warning("RPC node unavailable (attempt %s/%s)", attempt, max_attempts)
        time.sleep(interval_seconds)
    raise RuntimeError("RPC node did not respond in time.")


def build_contract_client(config: Mapping) -> ContractClient:
    missing = [key for key in REQUIRED_SETTINGS if not config.get(key)]
    if missing:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")

    web3 = connect_web3(config["RPC_URL"])
    wait_for_node(web3, max_attempts=config.get("RPC_CONNECT_ATTEMPTS", 10))

    try:
        abi = load_abi(config["ABI_PATH"])
    except BlockchainUnavailable as exc:
        raise RuntimeError(str(exc)) from exc
    contract = web3.eth.contract(
        address=Web3.to_checksum_address(config["CONTRACT_ADDRESS"]), abi=abi
    )

    chain_id = config.get("CHAIN_ID")
    if chain_id is None:
        chain_id = web3.eth.chain_id

    return ContractClient(
        web3,
        contract,
        config["PRIVATE_KEY"],
        account_address=config.get("ACCOUNT_ADDRESS"),
        chain_id=chain_id,
        receipt_timeout=config.get("TX_RECEIPT_TIMEOUT", 120),
        gas_limit=config.get("TX_GAS_LIMIT", 500_000),
    )


def build_gateway(client, config: Mapping) -> ElectionGateway:
    event_name = config.get("CANDIDATE_ADDED_EVENT", "CandidateAdded")
    source = config.get("CANDIDATE_ID_SOURCE", "auto")
    if source == "auto":
        source = "event" if client.has_event(event_name) else "count"
    return ElectionGateway(
        client,
        start_lead_seconds=config.get("ELECTION_START_LEAD_SECONDS", 120),
        duration_seconds=config.get("ELECTION_DURATION_SECONDS", 7200),
        candidate_id_source=source,
        candidate_event=event_name,
    )


def get_gateway() -> ElectionGateway:
    gateway = current_app.extensions.get(GATEWAY_EXTENSION)
    if gateway is None:
        raise RuntimeError("Election gateway is not initialized")
    return gateway
