"""
Proposal Lifecycle

    Open ──(window closed)──> Accepted ──┐
      └───(window closed)──> Rejected ───┴──> Executing ──> Succeeded
                                                   └──────> Failed(reason)

Succeeded and Failed are terminal. Every other pair is illegal.
"""

from typing import Dict, FrozenSet, Optional

from ..logger import get_logger
from .host import Clock, read_clock
from .proposals import GovernanceError, ProposalState, StateKind
from .store import ProposalStore

logger = get_logger(__name__)


class IllegalTransitionError(GovernanceError):
    """Raised on state changes the lifecycle does not allow."""


# Valid forward transitions
_VALID_TRANSITIONS: Dict[StateKind, FrozenSet[StateKind]] = {
    StateKind.OPEN:      frozenset({StateKind.ACCEPTED, StateKind.REJECTED}),
    StateKind.ACCEPTED:  frozenset({StateKind.EXECUTING}),
    StateKind.REJECTED:  frozenset({StateKind.EXECUTING}),
    StateKind.EXECUTING: frozenset({StateKind.SUCCEEDED, StateKind.FAILED}),
    # Terminal states: no further transitions
    StateKind.SUCCEEDED: frozenset(),
    StateKind.FAILED:    frozenset(),
}

# Leaving these states requires the voting window to be closed
_TIME_GUARDED = frozenset({StateKind.OPEN})


def allowed_targets(state: ProposalState) -> FrozenSet[StateKind]:
    return _VALID_TRANSITIONS[state.kind]


def is_terminal(state: ProposalState) -> bool:
    return not _VALID_TRANSITIONS[state.kind]


def resolve_transition(
    current: ProposalState,
    requested: ProposalState,
    end_time: int,
    now: int,
) -> ProposalState:
    """
    Decide whether *current* may move to *requested*.

    Pure: returns the new state or raises IllegalTransitionError, touching
    nothing else.
    """
    if not isinstance(requested, ProposalState):
        raise IllegalTransitionError(f"Unknown target state: {requested!r}")

    allowed = _VALID_TRANSITIONS[current.kind]
    if requested.kind not in allowed:
        raise IllegalTransitionError(
            f"Cannot transition from {current} → {requested}. "
            f"Allowed: {[k.name for k in sorted(allowed)]}"
        )
    if current.kind in _TIME_GUARDED and now < end_time:
        raise IllegalTransitionError(
            f"Voting window still open (now={now}, end_time={end_time}); "
            f"cannot move {current} → {requested}"
        )
    return requested


class LifecycleController:
    """Applies guarded state transitions to stored proposals."""

    def __init__(self, clock: Clock):
        self.clock = clock

    async def transition(
        self,
        store: ProposalStore,
        proposal_id: int,
        target: ProposalState,
        reason: str = "",
        now: Optional[int] = None,
    ) -> ProposalState:
        """
        Move proposal *proposal_id* to *target*.

        *now* is read from the clock unless the caller already holds a
        reading for it.

        The guard is evaluated entirely before the record is written; on
        failure the stored proposal is left as it was.

        Raises:
            ProposalNotFoundError: unknown proposal id
            IllegalTransitionError: transition not in the lifecycle table
            HostError: the clock failed
        """
        async with store.get_mutable(proposal_id) as proposal:
            if now is None:
                now = await read_clock(self.clock)
            old = proposal.state
            new = resolve_transition(old, target, proposal.end_time, now)
            proposal.record_transition(new, now, reason)
            proposal.state = new

        logger.info(
            f"Proposal #{proposal_id} ({proposal.title}): "
            f"{old} → {new}" + (f" | {reason}" if reason else "")
        )
        return new

    def __repr__(self) -> str:
        return f"<LifecycleController clock={self.clock!r}>"
