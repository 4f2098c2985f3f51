from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from election_gateway.models import TransactionReceipt
from election_gateway.services.blockchain_service import ContractReverted, PendingTransaction
from election_gateway.services.errors import (
    ContractCallFailed,
    InvalidField,
    InvalidWindow,
    MissingField,
    NotFound,
    ProtocolMismatch,
    TransactionFailed,
    TransactionRejected,
)

logger = logging.getLogger(__name__)

DEFAULT_START_LEAD_SECONDS = 120
DEFAULT_DURATION_SECONDS = 7200
CANDIDATE_ADDED_EVENT = "CandidateAdded"

ID_FROM_EVENT = "event"
ID_FROM_COUNT = "count"


def is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require(value: Any, field: str) -> Any:
    if is_missing(value):
        raise MissingField(field)
    return value


def require_text(value: Any, field: str) -> str:
    value = require(value, field)
    if not isinstance(value, str):
        raise InvalidField(field, "expected text")
    return value


def to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidField(field, "expected an integer")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidField(field, "expected an integer") from None
    if isinstance(value, float) and number != value:
        raise InvalidField(field, "expected an integer")
    return number


def to_id(value: Any, field: str) -> int:
    number = to_int(require(value, field), field)
    if number < 0:
        raise InvalidField(field, "must be non-negative")
    return number


class ElectionGateway:
    """Turns election requests into contract transactions and reads.

    The gateway keeps no ledger state between calls; every answer comes from
    a fresh read against the contract client it was constructed with.
    """

    def __init__(
        self,
        client,
        *,
        start_lead_seconds: int = DEFAULT_START_LEAD_SECONDS,
        duration_seconds: int = DEFAULT_DURATION_SECONDS,
        candidate_id_source: str = ID_FROM_EVENT,
        candidate_event: str = CANDIDATE_ADDED_EVENT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if candidate_id_source not in (ID_FROM_EVENT, ID_FROM_COUNT):
            raise ValueError(f"Unknown candidate id source: {candidate_id_source}")
        self.client = client
        self.start_lead_seconds = start_lead_seconds
        self.duration_seconds = duration_seconds
        self.candidate_id_source = candidate_id_source
        self.candidate_event = candidate_event
        self.clock = clock

    def create_election(
        self, name: Any, start_time: Any = None, end_time: Any = None
    ) -> Dict:
        name = require_text(name, "name")
        now = int(self.clock())

        if is_missing(start_time):
            start = now + self.start_lead_seconds
        else:
            start = to_int(start_time, "start_time")
        if is_missing(end_time):
            end = start + self.duration_seconds
        else:
            end = to_int(end_time, "end_time")

        if start <= now:
            raise InvalidWindow("start must be future")
        if end <= now:
            raise InvalidWindow("end must be future")
        if end <= start:
            raise InvalidWindow("end must follow start")

        operation = "create election"
        pending = self._submit(operation, lambda: self.client.create_election(name, start, end))
        self._confirm(operation, pending)

        # electionCount is only incremented by createElection; a concurrent
        # creation landing before this read shifts the id.
        try:
            election_id = self.client.election_count() - 1
        except Exception as exc:
            raise TransactionFailed(
                operation,
                cause=exc,
                transaction_hash=pending.hash,
                message="Election created but its id could not be read",
            ) from exc
        logger.info("Election %s created by %s (count-derived id)", election_id, pending.hash)

        return {
            "message": "Election created successfully",
            "transaction_hash": pending.hash,
            "created_election_id": str(election_id),
        }

    def get_election(self, election_id: Any) -> Dict:
        election_id = to_id(election_id, "election_id")
        try:
            election = self.client.get_election(election_id)
        except Exception as exc:
            logger.error("Error fetching election %s: %s", election_id, exc)
            raise ContractCallFailed("fetch election", exc) from exc
        if election.is_blank():
            raise NotFound("Election", str(election_id))
        return election.to_dict()

    def add_candidate(self, election_id: Any, candidate_name: Any) -> Dict:
        election_id = to_id(election_id, "election_id")
        candidate_name = require_text(candidate_name, "candidate_name")

        operation = "add candidate"
        pending = self._submit(
            operation, lambda: self.client.add_candidate(election_id, candidate_name)
        )
        receipt = self._confirm(operation, pending)

        if self.candidate_id_source == ID_FROM_EVENT:
            candidate_id = self._candidate_id_from_event(receipt)
        else:
            candidate_id = self._candidate_id_from_count(election_id, pending)
        logger.info(
            "Candidate %s added to election %s by %s", candidate_id, election_id, pending.hash
        )

        return {
            "message": "Candidate added successfully",
            "transaction_hash": pending.hash,
            "election_id": str(election_id),
            "created_candidate_id": str(candidate_id),
            "candidate_name": candidate_name,
        }

    def get_candidate(self, election_id: Any, candidate_id: Any) -> Dict:
        election_id = to_id(election_id, "election_id")
        candidate_id = to_id(candidate_id, "candidate_id")
        try:
            candidate = self.client.get_candidate(election_id, candidate_id)
        except Exception as exc:
            logger.error(
                "Error fetching candidate %s of election %s: %s", candidate_id, election_id, exc
            )
            raise ContractCallFailed("fetch candidate", exc) from exc
        if candidate.is_blank():
            raise NotFound("Candidate", f"{candidate_id} in election {election_id}")
        candidate.id = candidate_id
        return candidate.to_dict()

    def cast_vote(self, election_id: Any, candidate_id: Any, voter_identity: Any) -> Dict:
        election_id = to_id(election_id, "election_id")
        candidate_id = to_id(candidate_id, "candidate_id")
        voter_identity = require_text(voter_identity, "voter_identity")

        try:
            voter_client = self.client.with_signer(voter_identity)
        except ValueError:
            raise InvalidField("voter_identity", "not a valid private key") from None

        operation = "cast vote"
        pending = self._submit(
            operation,
            lambda: voter_client.vote(election_id, candidate_id),
            rejected_status=400,
        )
        receipt = self._confirm(operation, pending, rejected_status=400)

        return {
            "transaction_hash": pending.hash,
            "message": "Vote cast successfully",
            "block_number": None if receipt.block_number is None else str(receipt.block_number),
        }

    def _submit(
        self,
        operation: str,
        send: Callable[[], PendingTransaction],
        rejected_status: Optional[int] = None,
    ) -> PendingTransaction:
        try:
            return send()
        except ContractReverted as exc:
            logger.warning("Contract refused to %s: %s", operation, exc)
            raise TransactionFailed(
                operation,
                cause=exc,
                message=f"Transaction rejected by the contract: {operation}",
                status_code=rejected_status,
            ) from exc
        except Exception as exc:
            logger.error("Error submitting transaction to %s: %s", operation, exc)
            raise TransactionFailed(operation, cause=exc) from exc

    def _confirm(
        self,
        operation: str,
        pending: PendingTransaction,
        rejected_status: Optional[int] = None,
    ) -> TransactionReceipt:
        try:
            receipt = pending.wait()
        except Exception as exc:
            logger.error("Transaction %s did not reach finality: %s", pending.hash, exc)
            raise TransactionFailed(operation, cause=exc, transaction_hash=pending.hash) from exc
        if not receipt.succeeded:
            logger.warning("Transaction %s was mined but reverted", pending.hash)
            raise TransactionRejected(operation, pending.hash, status_code=rejected_status)
        return receipt

    def _candidate_id_from_event(self, receipt: TransactionReceipt) -> int:
        event = receipt.find_event(self.candidate_event)
        if event is None or "candidateId" not in event.get("args", {}):
            logger.error(
                "Receipt %s carries no %s event", receipt.transaction_hash, self.candidate_event
            )
            raise ProtocolMismatch(
                "add candidate", self.candidate_event, receipt.transaction_hash
            )
        return int(event["args"]["candidateId"])

    def _candidate_id_from_count(self, election_id: int, pending: PendingTransaction) -> int:
        try:
            election = self.client.get_election(election_id)
        except Exception as exc:
            raise TransactionFailed(
                "add candidate",
                cause=exc,
                transaction_hash=pending.hash,
                message="Candidate added but its id could not be read",
            ) from exc
        logger.warning(
            "Candidate id for %s derived from candidate count; concurrent additions may skew it",
            pending.hash,
        )
        return election.candidate_count - 1
