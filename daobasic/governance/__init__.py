"""
daobasic Governance

Provides:
  - ProposalState / Proposal                       (proposals.py)
  - ProposalStore                                  (store.py)
  - Vote / VoteTally / VotingPolicy / VotingEngine (voting.py)
  - LifecycleController / resolve_transition       (lifecycle.py)
  - MembershipOracle / Clock / ExecutionHook       (host.py)
  - GovernanceEngine                               (engine.py)
"""

from .proposals import (
    DuplicateIdError,
    GovernanceError,
    InvalidProposalError,
    Proposal,
    ProposalNotFoundError,
    ProposalState,
    StateKind,
)
from .store import ProposalStore
from .voting import (
    AlreadyVotedError,
    InvalidVoteError,
    Vote,
    VoteChoice,
    VoteTally,
    VotingClosedError,
    VotingEngine,
    VotingError,
    VotingPolicy,
)
from .lifecycle import (
    IllegalTransitionError,
    LifecycleController,
    allowed_targets,
    is_terminal,
    resolve_transition,
)
from .host import (
    Clock,
    ExecutionFailed,
    ExecutionHook,
    GovernancePolicy,
    HostError,
    ManualClock,
    MembershipOracle,
    StaticMembership,
    SystemClock,
)
from .engine import (
    ExecutionOutcome,
    GovernanceEngine,
    NotMemberError,
)

__all__ = [
    # Proposals
    "DuplicateIdError",
    "GovernanceError",
    "InvalidProposalError",
    "Proposal",
    "ProposalNotFoundError",
    "ProposalState",
    "StateKind",
    # Store
    "ProposalStore",
    # Voting
    "AlreadyVotedError",
    "InvalidVoteError",
    "Vote",
    "VoteChoice",
    "VoteTally",
    "VotingClosedError",
    "VotingEngine",
    "VotingError",
    "VotingPolicy",
    # Lifecycle
    "IllegalTransitionError",
    "LifecycleController",
    "allowed_targets",
    "is_terminal",
    "resolve_transition",
    # Host collaborators
    "Clock",
    "ExecutionFailed",
    "ExecutionHook",
    "GovernancePolicy",
    "HostError",
    "ManualClock",
    "MembershipOracle",
    "StaticMembership",
    "SystemClock",
    # Engine
    "ExecutionOutcome",
    "GovernanceEngine",
    "NotMemberError",
]
