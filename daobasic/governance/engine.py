"""
Governance Engine

Orchestrates membership checks, proposal storage, voting and the
lifecycle state machine behind one asynchronous facade:

    submit → cast_vote → transition_state → run_execution_handler

Organization-specific policy (membership, weights, execution) is injected
as a GovernancePolicy; time comes from an injected Clock.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Mapping, Optional, Set

from ..config import GovernanceConfig
from ..logger import get_logger, set_log_level
from .host import (
    Clock,
    ExecutionFailed,
    GovernancePolicy,
    HostError,
    SystemClock,
    call_host,
    read_clock,
)
from .lifecycle import IllegalTransitionError, LifecycleController
from .proposals import (
    GovernanceError,
    InvalidProposalError,
    Proposal,
    ProposalState,
    StateKind,
)
from .store import ProposalStore
from .voting import InvalidVoteError, Vote, VoteTally, VotingEngine, VotingPolicy

logger = get_logger(__name__)


class NotMemberError(GovernanceError):
    """Caller failed the membership check."""


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of running the execution hook for one proposal."""
    proposal_id: int
    state: ProposalState

    @property
    def succeeded(self) -> bool:
        return self.state.kind == StateKind.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {"proposalId": self.proposal_id, **self.state.to_dict()}


class GovernanceEngine:
    """
    Public entry point of the library.

    Args:
        policy: membership oracle and execution hook of the host
        clock:  logical time source (defaults to SystemClock)
        config: governance settings (defaults to GovernanceConfig())
        store:  proposal store (defaults to a fresh ProposalStore)
    """

    def __init__(
        self,
        policy: GovernancePolicy,
        clock: Optional[Clock] = None,
        config: Optional[GovernanceConfig] = None,
        store: Optional[ProposalStore] = None,
    ):
        self.policy = policy
        self.clock = clock if clock is not None else SystemClock()
        self.config = config if config is not None else GovernanceConfig()
        self.config.validate()
        if self.config.log_level is not None:
            set_log_level(self.config.log_level)
        self.voting_policy = VotingPolicy(self.config.voting_policy)

        self.store = store if store is not None else ProposalStore()
        self.voting = VotingEngine()
        self.lifecycle = LifecycleController(self.clock)

        # Proposals whose hook is currently running
        self._executing: Set[int] = set()

    # ── Membership ────────────────────────────────────────────────────

    async def _require_member(self, identity: Hashable):
        is_member = await call_host(
            "MembershipOracle.is_member", self.policy.is_member, identity
        )
        if not is_member:
            raise NotMemberError(f"{identity} is not a member")

    # ── Submission ────────────────────────────────────────────────────

    async def submit(
        self,
        proposer: Hashable,
        title: str,
        content: str,
        properties: Optional[Mapping[str, str]] = None,
        end_time: Optional[int] = None,
    ) -> Proposal:
        """
        Submit a new proposal in the Open state.

        When *end_time* is omitted the voting window lasts
        ``config.default_voting_period`` from submission.

        Raises:
            NotMemberError: *proposer* is not a member
            InvalidProposalError: malformed title, content, properties or end time
            HostError: the membership oracle or the clock failed
        """
        if not isinstance(title, str) or not isinstance(content, str):
            raise InvalidProposalError("Proposal title and content must be strings")
        if properties is not None:
            if not all(isinstance(k, str) and isinstance(v, str) for k, v in properties.items()):
                raise InvalidProposalError("Proposal properties must map strings to strings")
            properties = dict(properties)
        if end_time is not None and (isinstance(end_time, bool) or not isinstance(end_time, int)):
            raise InvalidProposalError(f"end_time must be an integer, got {end_time!r}")

        await self._require_member(proposer)
        now = await read_clock(self.clock)
        if end_time is None:
            end_time = now + self.config.default_voting_period

        proposal = Proposal(
            id=self.store.allocate(),
            proposer=proposer,
            title=title,
            content=content,
            end_time=end_time,
            created_at=now,
            properties=properties,
        )
        self.store.insert(proposal)

        logger.info(
            f"Proposal #{proposal.id} submitted by {proposer}: '{title}' "
            f"(end_time={end_time})"
        )
        return self.store.get(proposal.id)

    # ── Voting ────────────────────────────────────────────────────────

    async def cast_vote(self, voter: Hashable, proposal_id: int, vote: Vote):
        """
        Record *voter*'s vote on *proposal_id*.

        Raises:
            NotMemberError: *voter* is not a member
            ProposalNotFoundError: unknown proposal id
            AlreadyVotedError: *voter* already voted on the proposal
            VotingClosedError: the configured voting policy refuses the vote
            HostError: the membership oracle or the clock failed
        """
        await self._require_member(voter)
        await self._record_vote(voter, proposal_id, vote)

    async def cast_weighted_vote(
        self, voter: Hashable, proposal_id: int, approve: bool
    ) -> Vote:
        """
        Vote with the weight the membership oracle reports for *voter* now.

        The weight is captured in the returned Vote and never re-read.
        """
        await self._require_member(voter)
        weight = await call_host(
            "MembershipOracle.weight_of", self.policy.weight_of, voter
        )
        try:
            vote = Vote.yes(weight) if approve else Vote.no(weight)
        except InvalidVoteError as e:
            raise HostError(f"MembershipOracle.weight_of returned {weight!r}") from e
        await self._record_vote(voter, proposal_id, vote)
        return vote

    async def _record_vote(self, voter: Hashable, proposal_id: int, vote: Vote):
        now = None
        if self.voting_policy is VotingPolicy.OPEN_WINDOW:
            now = await read_clock(self.clock)

        def guard(proposal: Proposal):
            self.voting_policy.check(proposal, now)

        await self.voting.cast_vote(self.store, proposal_id, voter, vote, guard=guard)

    def tally(self, proposal_id: int) -> VoteTally:
        return self.voting.tally(self.store.get(proposal_id))

    # ── Queries ───────────────────────────────────────────────────────

    def get(self, proposal_id: int) -> Proposal:
        return self.store.get(proposal_id)

    def list_proposals(self) -> List[Proposal]:
        return self.store.list_all()

    def proposal_map(self) -> Dict[int, Proposal]:
        return {p.id: p for p in self.store.list_all()}

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def transition_state(
        self, proposal_id: int, target: ProposalState, reason: str = ""
    ) -> ProposalState:
        """
        Move a proposal along the lifecycle.

        Raises:
            ProposalNotFoundError: unknown proposal id
            IllegalTransitionError: transition not allowed now
            HostError: the clock failed
        """
        return await self.lifecycle.transition(self.store, proposal_id, target, reason)

    # ── Execution ─────────────────────────────────────────────────────

    async def run_execution_handler(self) -> List[ExecutionOutcome]:
        """
        Run the host execution hook for every eligible proposal.

        Eligible: proposals in Executing and, when ``config.execute_resolved``
        is set, Accepted/Rejected proposals whose window has closed (these
        are first moved to Executing). A hook that returns records
        Succeeded; a hook that raises or returns a reason string records
        Failed(reason).

        The clock is read once, at the start of the run, and that reading
        stamps every transition the run makes.
        """
        now = await read_clock(self.clock)
        outcomes: List[ExecutionOutcome] = []

        for proposal in self.store.list_all():
            if proposal.id in self._executing or not self._is_eligible(proposal, now):
                continue
            self._executing.add(proposal.id)
            try:
                outcome = await self._execute(proposal.id, now)
            finally:
                self._executing.discard(proposal.id)
            if outcome is not None:
                outcomes.append(outcome)

        if outcomes:
            succeeded = sum(1 for o in outcomes if o.succeeded)
            logger.info(
                f"Execution run: {len(outcomes)} proposal(s), "
                f"{succeeded} succeeded, {len(outcomes) - succeeded} failed"
            )
        return outcomes

    def _is_eligible(self, proposal: Proposal, now: int) -> bool:
        kind = proposal.state.kind
        if kind == StateKind.EXECUTING:
            return True
        return (
            self.config.execute_resolved
            and kind in (StateKind.ACCEPTED, StateKind.REJECTED)
            and proposal.window_closed(now)
        )

    async def _execute(self, proposal_id: int, now: int) -> Optional[ExecutionOutcome]:
        try:
            proposal = self.store.get(proposal_id)
            if proposal.state.kind in (StateKind.ACCEPTED, StateKind.REJECTED):
                await self.lifecycle.transition(
                    self.store, proposal_id, ProposalState.EXECUTING, "execution started",
                    now=now,
                )
                proposal = self.store.get(proposal_id)
            elif proposal.state.kind != StateKind.EXECUTING:
                return None
        except IllegalTransitionError as e:
            logger.warning(f"Proposal #{proposal_id} skipped: {e}")
            return None

        reason = None
        try:
            result = self.policy.handle_execution(proposal)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, str):
                reason = result
        except ExecutionFailed as e:
            reason = e.reason
        except Exception as e:
            reason = str(e) or type(e).__name__
            logger.debug(f"Execution hook raised for proposal #{proposal_id}", exc_info=True)

        if reason is None:
            target = ProposalState.SUCCEEDED
        else:
            target = ProposalState.failed(reason)
            logger.warning(f"Proposal #{proposal_id} execution failed: {reason}")

        try:
            state = await self.lifecycle.transition(
                self.store, proposal_id, target, "execution hook", now=now
            )
        except IllegalTransitionError as e:
            logger.warning(f"Proposal #{proposal_id} outcome not recorded: {e}")
            return None
        return ExecutionOutcome(proposal_id=proposal_id, state=state)

    # ── Diagnostics ───────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        states: Dict[str, int] = {}
        for proposal in self.store.list_all():
            states[proposal.state.name] = states.get(proposal.state.name, 0) + 1
        return {
            "proposals": len(self.store),
            "states": states,
            "votingPolicy": self.voting_policy.value,
            "executeResolved": self.config.execute_resolved,
            "executing": sorted(self._executing),
        }

    def __repr__(self) -> str:
        return (
            f"<GovernanceEngine proposals={len(self.store)} "
            f"policy={self.voting_policy.value}>"
        )
