from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from eth_account import Account
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError
from web3.logs import DISCARD

from election_gateway.models import Candidate, Election, TransactionReceipt

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 500_000
DEFAULT_RECEIPT_TIMEOUT = 120


class BlockchainUnavailable(Exception):
    """Raised when blockchain configuration is missing."""


class ContractReverted(Exception):
    """The contract refused the call before a transaction hash was obtained."""


def load_abi(path: str) -> List[Dict[str, Any]]:
    """Read an ABI from disk; compiler artifacts with an ``abi`` key are accepted too."""
    abi_path = Path(path)
    if not abi_path.exists():
        raise BlockchainUnavailable(f"ABI file not found: {abi_path}")
    data = json.loads(abi_path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("abi", [])
    if not isinstance(data, list):
        raise BlockchainUnavailable(f"ABI file {abi_path} does not contain an ABI list")
    return data


class PendingTransaction:
    def __init__(self, client: "ContractClient", tx_hash: str) -> None:
        self.client = client
        self.hash = tx_hash

    def wait(self) -> TransactionReceipt:
        return self.client.wait_for_receipt(self.hash)

    def __repr__(self) -> str:
        return f"PendingTransaction({self.hash})"


class ContractClient:
    """Handle on the voting contract bound to one signing identity."""

    def __init__(
        self,
        web3: Web3,
        contract: Contract,
        private_key: str,
        *,
        account_address: Optional[str] = None,
        chain_id: Optional[int] = None,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        gas_limit: int = DEFAULT_GAS_LIMIT,
    ) -> None:
        self.web3 = web3
        self.contract = contract
        self._private_key = private_key
        if account_address:
            self.account_address = Web3.to_checksum_address(account_address)
        else:
            self.account_address = Account.from_key(private_key).address
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout
        self.gas_limit = gas_limit

    def with_signer(self, private_key: str) -> "ContractClient":
        """Return a client sharing this connection but signing as another account."""
        try:
            address = Account.from_key(private_key).address
        except (ValueError, TypeError) as exc:
            raise ValueError("malformed private key") from exc
        return ContractClient(
            self.web3,
            self.contract,
            private_key,
            account_address=address,
            chain_id=self.chain_id,
            receipt_timeout=self.receipt_timeout,
            gas_limit=self.gas_limit,
        )

    def has_event(self, name: str) -> bool:
        return any(
            item.get("type") == "event" and item.get("name") == name
            for item in self.contract.abi
        )

    # Transactions

    def create_election(self, name: str, start_time: int, end_time: int) -> PendingTransaction:
        return self._transact("createElection", name, start_time, end_time)

    def add_candidate(self, election_id: int, name: str) -> PendingTransaction:
        return self._transact("addCandidate", election_id, name)

    def vote(self, election_id: int, candidate_id: int) -> PendingTransaction:
        return self._transact("vote", election_id, candidate_id)

    # Reads

    def election_count(self) -> int:
        return int(self.contract.functions.electionCount().call())

    def get_election(self, election_id: int) -> Election:
        record = self._call_named("elections", election_id)
        return Election(
            id=int(record.get("id", election_id)),
            name=record.get("electionName", ""),
            start_time=int(record.get("startTime", 0)),
            end_time=int(record.get("endTime", 0)),
            is_active=bool(record.get("isActive", False)),
            candidate_count=int(record.get("candidateCount", 0)),
        )

    def get_candidate(self, election_id: int, candidate_id: int) -> Candidate:
        record = self._call_named("getCandidate", election_id, candidate_id)
        return Candidate(
            id=int(record.get("id", candidate_id)),
            name=record.get("name", ""),
            vote_count=int(record.get("voteCount", 0)),
        )

    def wait_for_receipt(self, tx_hash: str) -> TransactionReceipt:
        raw = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        return TransactionReceipt(
            transaction_hash=tx_hash,
            status=int(raw["status"]),
            block_number=raw.get("blockNumber"),
            events=self._decode_events(raw),
        )

    def _transact(self, function_name: str, *args) -> PendingTransaction:
        params = {
            "from": self.account_address,
            "nonce": self.web3.eth.get_transaction_count(self.account_address, "pending"),
            "gasPrice": self.web3.eth.gas_price,
        }
        if self.chain_id is not None:
            params["chainId"] = self.chain_id

        try:
            tx = getattr(self.contract.functions, function_name)(*args).build_transaction(params)
        except ContractLogicError as exc:
            raise ContractReverted(str(exc)) from exc
        tx["gas"] = tx.get("gas", self.gas_limit)

        signed_tx = self.web3.eth.account.sign_transaction(tx, private_key=self._private_key)
        tx_hash = self.web3.to_hex(self.web3.eth.send_raw_transaction(signed_tx.rawTransaction))
        logger.info("Submitted %s from %s: %s", function_name, self.account_address, tx_hash)
        return PendingTransaction(self, tx_hash)

    def _call_named(self, function_name: str, *args) -> Dict[str, Any]:
        result = getattr(self.contract.functions, function_name)(*args).call()
        return name_outputs(self._function_outputs(function_name), result)

    def _function_outputs(self, function_name: str) -> Sequence[Dict[str, Any]]:
        for item in self.contract.abi:
            if item.get("type") == "function" and item.get("name") == function_name:
                return item.get("outputs", [])
        raise BlockchainUnavailable(f"Contract ABI has no function {function_name}")

    def _decode_events(self, raw_receipt) -> List[Dict[str, Any]]:
        events = []
        for item in self.contract.abi:
            if item.get("type") != "event":
                continue
            event_type = getattr(self.contract.events, item["name"])
            for log in event_type().process_receipt(raw_receipt, errors=DISCARD):
                events.append({"event": log["event"], "args": dict(log["args"])})
        return events


def name_outputs(outputs: Sequence[Dict[str, Any]], result: Any) -> Dict[str, Any]:
    """Pair a call result with the ABI output names.

    Public mapping getters return the struct members as separate outputs while
    functions returning a struct yield a single tuple output with components.
    """
    if len(outputs) == 1 and outputs[0].get("components"):
        return name_outputs(outputs[0]["components"], result)
    if len(outputs) == 1:
        result = [result]
    return {
        output.get("name") or str(index): value
        for index, (output, value) in enumerate(zip(outputs, result))
    }
