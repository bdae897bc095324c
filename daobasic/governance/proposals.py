"""
Governance Proposals

Defines the lifecycle states and the Proposal dataclass that tracks an
individual governance proposal from submission to execution.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Dict, Hashable, List, Optional, Tuple

from ..exceptions import DaoException

if TYPE_CHECKING:
    from .voting import Vote


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class GovernanceError(DaoException):
    """Base governance exception."""


class InvalidProposalError(GovernanceError):
    """Raised when proposal data is invalid."""


class ProposalNotFoundError(GovernanceError):
    """Raised when a referenced proposal id does not exist."""


class DuplicateIdError(GovernanceError):
    """Raised when a proposal is inserted under an id that is already taken."""


# ══════════════════════════════════════════════════════════════════════
#  STATES
# ══════════════════════════════════════════════════════════════════════

class StateKind(IntEnum):
    """Lifecycle stage of a proposal."""
    OPEN = 0            # Open for voting
    ACCEPTED = 1        # Resolved in favour, awaiting execution
    REJECTED = 2        # Resolved against, awaiting execution bookkeeping
    EXECUTING = 3       # Execution hook in progress
    SUCCEEDED = 4       # Execution finished successfully
    FAILED = 5          # Execution failed, carries a reason


_STATE_NAMES = {
    StateKind.OPEN: "Open",
    StateKind.ACCEPTED: "Accepted",
    StateKind.REJECTED: "Rejected",
    StateKind.EXECUTING: "Executing",
    StateKind.SUCCEEDED: "Succeeded",
    StateKind.FAILED: "Failed",
}


@dataclass(frozen=True)
class ProposalState:
    """
    Tagged lifecycle state. Only ``Failed`` carries a payload (the reason).

    Use the class attributes for the payload-free states and
    ``ProposalState.failed(reason)`` for the failure state.
    """
    kind: StateKind
    reason: Optional[str] = None

    def __post_init__(self):
        if self.kind == StateKind.FAILED:
            if not isinstance(self.reason, str):
                raise TypeError("Failed state requires a reason string")
        elif self.reason is not None:
            raise TypeError(f"{_STATE_NAMES[self.kind]} state carries no reason")

    @classmethod
    def failed(cls, reason: str) -> "ProposalState":
        return cls(StateKind.FAILED, reason)

    @property
    def name(self) -> str:
        return _STATE_NAMES[self.kind]

    @property
    def is_terminal(self) -> bool:
        return self.kind in (StateKind.SUCCEEDED, StateKind.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"state": self.name}
        if self.kind == StateKind.FAILED:
            data["reason"] = self.reason
        return data

    def __str__(self) -> str:
        if self.kind == StateKind.FAILED:
            return f"Failed({self.reason})"
        return self.name

    def __repr__(self) -> str:
        return f"<ProposalState {self}>"


ProposalState.OPEN = ProposalState(StateKind.OPEN)
ProposalState.ACCEPTED = ProposalState(StateKind.ACCEPTED)
ProposalState.REJECTED = ProposalState(StateKind.REJECTED)
ProposalState.EXECUTING = ProposalState(StateKind.EXECUTING)
ProposalState.SUCCEEDED = ProposalState(StateKind.SUCCEEDED)


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    Governance proposal record.

    Fields:
        id:          Unique monotonic identifier, assigned by the store
        proposer:    Identity of the submitting member
        title:       Short title
        content:     Free-form body
        state:       Current lifecycle state
        votes:       (identity, Vote) pairs in the order they were cast
        properties:  Optional host metadata, opaque to the engine
        end_time:    Logical time at which the voting window closes
        created_at:  Logical time of submission
    """
    id: int
    proposer: Hashable
    title: str
    content: str
    end_time: int
    created_at: int
    state: ProposalState = ProposalState.OPEN
    votes: List[Tuple[Hashable, "Vote"]] = field(default_factory=list)
    properties: Optional[Dict[str, str]] = None
    _history: List[Dict[str, Any]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self._history:
            self._history.append({
                "from": "INIT",
                "to": str(self.state),
                "reason": "created",
                "timestamp": self.created_at,
            })

    # ── Properties ────────────────────────────────────────────────────

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def history(self) -> List[Dict[str, Any]]:
        return list(self._history)

    def window_closed(self, now: int) -> bool:
        """True once *now* has reached ``end_time``."""
        return now >= self.end_time

    def voters(self) -> List[Hashable]:
        return [voter for voter, _ in self.votes]

    def copy(self) -> "Proposal":
        """
        Independent copy of the record.

        Containers are copied; identities, votes and states are shared as-is,
        so identity equality survives the copy.
        """
        return replace(
            self,
            votes=list(self.votes),
            properties=dict(self.properties) if self.properties is not None else None,
            _history=[dict(entry) for entry in self._history],
        )

    # ── Audit trail ───────────────────────────────────────────────────

    def record_transition(self, new_state: ProposalState, timestamp: int, reason: str = ""):
        self._history.append({
            "from": str(self.state),
            "to": str(new_state),
            "reason": reason,
            "timestamp": timestamp,
        })

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "proposer": str(self.proposer),
            "title": self.title,
            "content": self.content,
            **self.state.to_dict(),
            "votes": [
                {"voter": str(voter), **vote.to_dict()}
                for voter, vote in self.votes
            ],
            "properties": dict(self.properties) if self.properties is not None else None,
            "endTime": self.end_time,
            "createdAt": self.created_at,
            "historyLength": len(self._history),
        }

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} '{self.title}' "
            f"state={self.state} votes={len(self.votes)}>"
        )
