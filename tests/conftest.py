import itertools

import pytest

from election_gateway.models import Candidate, Election, TransactionReceipt

NOW = 1_700_000_000
VOTER_KEY = "0x" + "11" * 32
OTHER_VOTER_KEY = "0x" + "22" * 32


class FakePending:
    def __init__(self, tx_hash, receipt=None, wait_error=None):
        self.hash = tx_hash
        self._receipt = receipt
        self._wait_error = wait_error

    def wait(self):
        if self._wait_error is not None:
            raise self._wait_error
        return self._receipt


class FakeLedger:
    """Mimics the voting contract: zeroed structs for unknown elections, reverts for unknown candidates."""

    def __init__(self):
        self.elections = []
        self.candidates = {}
        self.voted = set()
        self.block_number = 100
        self._hashes = itertools.count(1)

    def next_hash(self):
        return "0x%064x" % next(self._hashes)

    def next_block(self):
        self.block_number += 1
        return self.block_number


class FakeContractClient:
    def __init__(self, ledger=None, signer="operator", emit_events=True):
        self.ledger = ledger or FakeLedger()
        self.signer = signer
        self.emit_events = emit_events
        self.calls = []
        self.submit_error = None
        self.wait_error = None
        self.count_error = None
        self.signers = []

    def has_event(self, name):
        return self.emit_events and name == "CandidateAdded"

    def with_signer(self, private_key):
        if not isinstance(private_key, str) or not private_key.startswith("0x"):
            raise ValueError("malformed private key")
        voter = FakeContractClient(self.ledger, signer=private_key, emit_events=self.emit_events)
        voter.calls = self.calls
        voter.submit_error = self.submit_error
        voter.wait_error = self.wait_error
        self.signers.append(private_key)
        return voter

    def _pending(self, status=1, events=None):
        tx_hash = self.ledger.next_hash()
        if self.wait_error is not None:
            return FakePending(tx_hash, wait_error=self.wait_error)
        receipt = TransactionReceipt(
            transaction_hash=tx_hash,
            status=status,
            block_number=self.ledger.next_block(),
            events=events or [],
        )
        return FakePending(tx_hash, receipt)

    def create_election(self, name, start_time, end_time):
        self.calls.append(("createElection", name, start_time, end_time))
        if self.submit_error is not None:
            raise self.submit_error
        election_id = len(self.ledger.elections)
        self.ledger.elections.append(
            Election(id=election_id, name=name, start_time=start_time, end_time=end_time, is_active=True)
        )
        self.ledger.candidates[election_id] = []
        return self._pending()

    def election_count(self):
        self.calls.append(("electionCount",))
        if self.count_error is not None:
            raise self.count_error
        return len(self.ledger.elections)

    def get_election(self, election_id):
        self.calls.append(("elections", election_id))
        if election_id >= len(self.ledger.elections):
            return Election(id=0, name="", start_time=0, end_time=0, is_active=False)
        election = self.ledger.elections[election_id]
        election.candidate_count = len(self.ledger.candidates[election_id])
        return Election(**vars(election))

    def add_candidate(self, election_id, name):
        self.calls.append(("addCandidate", election_id, name))
        if self.submit_error is not None:
            raise self.submit_error
        if election_id >= len(self.ledger.elections):
            return self._pending(status=0)
        candidates = self.ledger.candidates[election_id]
        candidate_id = len(candidates)
        candidates.append(Candidate(id=candidate_id, name=name, vote_count=0))
        events = []
        if self.emit_events:
            events.append(
                {
                    "event": "CandidateAdded",
                    "args": {"electionId": election_id, "candidateId": candidate_id, "name": name},
                }
            )
        return self._pending(events=events)

    def get_candidate(self, election_id, candidate_id):
        self.calls.append(("getCandidate", election_id, candidate_id))
        candidates = self.ledger.candidates.get(election_id)
        if candidates is None or candidate_id >= len(candidates):
            raise RuntimeError("execution reverted: Invalid candidate")
        candidate = candidates[candidate_id]
        return Candidate(id=candidate.id, name=candidate.name, vote_count=candidate.vote_count)

    def vote(self, election_id, candidate_id):
        self.calls.append(("vote", self.signer, election_id, candidate_id))
        if self.submit_error is not None:
            raise self.submit_error
        key = (self.signer, election_id)
        if key in self.ledger.voted:
            return self._pending(status=0)
        self.ledger.voted.add(key)
        self.ledger.candidates[election_id][candidate_id].vote_count += 1
        return self._pending()


def seed_election(client, name="Board Election", candidates=()):
    client.create_election(name, NOW + 120, NOW + 7320)
    election_id = len(client.ledger.elections) - 1
    for candidate in candidates:
        client.add_candidate(election_id, candidate)
    client.calls.clear()
    return election_id


@pytest.fixture
def fake_client():
    return FakeContractClient()


@pytest.fixture
def clock():
    return lambda: NOW
