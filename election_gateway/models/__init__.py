from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Election:
    id: int
    name: str
    start_time: int
    end_time: int
    is_active: bool
    candidate_count: int = 0

    def is_blank(self) -> bool:
        """A mapping getter returns a zeroed struct for ids that were never written."""
        return not self.name and self.start_time == 0 and self.end_time == 0

    def to_dict(self) -> Dict:
        return {
            "election_id": str(self.id),
            "election_name": self.name,
            "start_time": str(self.start_time),
            "end_time": str(self.end_time),
            "is_active": self.is_active,
            "candidate_count": str(self.candidate_count),
        }


@dataclass
class Candidate:
    id: int
    name: str
    vote_count: int

    def is_blank(self) -> bool:
        return not self.name

    def to_dict(self) -> Dict:
        return {
            "candidate_id": str(self.id),
            "candidate_name": self.name,
            "vote_count": str(self.vote_count),
        }


@dataclass
class TransactionReceipt:
    transaction_hash: str
    status: int
    block_number: Optional[int] = None
    events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    def find_event(self, name: str) -> Optional[Dict[str, Any]]:
        for event in self.events:
            if event.get("event") == name:
                return event
        return None
