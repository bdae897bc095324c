"""
Weighted Voting Engine

Implements:
  - Yes / No votes carrying the voter's weight at cast time
  - One vote per identity per proposal (first vote wins)
  - On-demand tallies recomputed from the vote list
  - Host voting policies applied atomically with the append
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, Hashable, Optional

from ..logger import get_logger
from .proposals import GovernanceError, Proposal, StateKind
from .store import ProposalStore

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class VotingError(GovernanceError):
    """Base voting error."""


class InvalidVoteError(VotingError):
    """Vote choice or weight is malformed."""


class AlreadyVotedError(VotingError):
    """Voter already cast a vote on this proposal."""


class VotingClosedError(VotingError):
    """Voting policy forbids votes on this proposal right now."""


# ══════════════════════════════════════════════════════════════════════
#  VOTE DATA
# ══════════════════════════════════════════════════════════════════════

class VoteChoice(IntEnum):
    YES = 1
    NO = 0


@dataclass(frozen=True)
class Vote:
    """A Yes or No vote together with the weight it was cast with."""
    choice: VoteChoice
    weight: int

    def __post_init__(self):
        if not isinstance(self.choice, VoteChoice):
            raise InvalidVoteError(f"Invalid vote choice: {self.choice!r}")
        if isinstance(self.weight, bool) or not isinstance(self.weight, int):
            raise InvalidVoteError(f"Vote weight must be an integer, got {self.weight!r}")
        if self.weight < 0:
            raise InvalidVoteError(f"Vote weight cannot be negative ({self.weight})")

    @classmethod
    def yes(cls, weight: int) -> "Vote":
        return cls(VoteChoice.YES, weight)

    @classmethod
    def no(cls, weight: int) -> "Vote":
        return cls(VoteChoice.NO, weight)

    @property
    def is_yes(self) -> bool:
        return self.choice == VoteChoice.YES

    def to_dict(self) -> Dict[str, Any]:
        return {"choice": self.choice.name, "weight": self.weight}

    def __str__(self) -> str:
        return f"{'Yes' if self.is_yes else 'No'}({self.weight})"


@dataclass(frozen=True)
class VoteTally:
    """Weighted totals for one proposal."""
    proposal_id: int
    yes: int = 0
    no: int = 0
    voters: int = 0

    @property
    def total(self) -> int:
        return self.yes + self.no

    @property
    def leading(self) -> str:
        """'yes', 'no' or 'tie'."""
        if self.yes > self.no:
            return "yes"
        if self.no > self.yes:
            return "no"
        return "tie"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "yes": self.yes,
            "no": self.no,
            "total": self.total,
            "voters": self.voters,
            "leading": self.leading,
        }


# ══════════════════════════════════════════════════════════════════════
#  VOTING POLICY
# ══════════════════════════════════════════════════════════════════════

class VotingPolicy(str, Enum):
    """
    When a vote is admissible.

    UNRESTRICTED  no state or time check
    OPEN_ONLY     proposal must be Open
    OPEN_WINDOW   proposal must be Open and its voting window not yet closed
    """
    UNRESTRICTED = "unrestricted"
    OPEN_ONLY = "open_only"
    OPEN_WINDOW = "open_window"

    def check(self, proposal: Proposal, now: Optional[int] = None):
        """Raise VotingClosedError if *proposal* does not accept votes."""
        if self is VotingPolicy.UNRESTRICTED:
            return
        if proposal.state.kind != StateKind.OPEN:
            raise VotingClosedError(
                f"Proposal #{proposal.id} is not open for voting "
                f"(state={proposal.state})"
            )
        if self is VotingPolicy.OPEN_WINDOW:
            if now is None:
                raise ValueError("OPEN_WINDOW policy needs the current time")
            if proposal.window_closed(now):
                raise VotingClosedError(
                    f"Voting period for proposal #{proposal.id} has ended"
                )


# ══════════════════════════════════════════════════════════════════════
#  VOTING ENGINE
# ══════════════════════════════════════════════════════════════════════

class VotingEngine:
    """
    Records votes on stored proposals.

    The engine itself does not look at proposal state or the voting window;
    callers that need such rules pass a ``guard`` that runs against the
    record inside its mutation handle.
    """

    async def cast_vote(
        self,
        store: ProposalStore,
        proposal_id: int,
        voter: Hashable,
        vote: Vote,
        guard: Optional[Callable[[Proposal], None]] = None,
    ):
        """
        Append ``(voter, vote)`` to the proposal's vote list.

        Raises:
            ProposalNotFoundError: unknown proposal id
            AlreadyVotedError: *voter* already has a vote on the proposal
            InvalidVoteError: *vote* is not a Vote
        """
        if not isinstance(vote, Vote):
            raise InvalidVoteError(f"Expected a Vote, got {type(vote).__name__}")

        async with store.get_mutable(proposal_id) as proposal:
            if guard is not None:
                guard(proposal)
            for existing, _ in proposal.votes:
                if existing == voter:
                    raise AlreadyVotedError(
                        f"{voter} has already voted on proposal #{proposal_id}"
                    )
            proposal.votes.append((voter, vote))

        logger.info(f"Vote: {voter} → {vote} on proposal #{proposal_id}")

    # ── Queries ───────────────────────────────────────────────────────

    @staticmethod
    def tally(proposal: Proposal) -> VoteTally:
        """Sum Yes and No weights over the current vote list."""
        yes = 0
        no = 0
        for _, vote in proposal.votes:
            if vote.is_yes:
                yes += vote.weight
            else:
                no += vote.weight
        return VoteTally(
            proposal_id=proposal.id, yes=yes, no=no, voters=len(proposal.votes)
        )

    @staticmethod
    def has_voted(proposal: Proposal, voter: Hashable) -> bool:
        return any(existing == voter for existing, _ in proposal.votes)

    def __repr__(self) -> str:
        return "<VotingEngine>"
