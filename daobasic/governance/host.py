"""
Host Collaborators

The engine is generic over a capability set supplied by the embedding
application:

  - MembershipOracle: is_member(identity), weight_of(identity)
  - Clock:            now()
  - ExecutionHook:    handle_execution(proposal)

Every method may be a plain function or a coroutine function. Failures
raised by host code are re-raised as HostError with the underlying exception
chained.
"""

import inspect
import time
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Hashable,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from .proposals import GovernanceError, Proposal


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class HostError(GovernanceError):
    """A host collaborator (oracle, clock, hook) failed."""


class ExecutionFailed(Exception):
    """
    Raised by an execution hook to report a failed execution.

    The reason is stored verbatim on the proposal as ``Failed(reason)``.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


# ══════════════════════════════════════════════════════════════════════
#  PROTOCOLS
# ══════════════════════════════════════════════════════════════════════

MaybeAwaitable = Union[Any, Awaitable[Any]]


@runtime_checkable
class MembershipOracle(Protocol):
    def is_member(self, identity: Hashable) -> MaybeAwaitable: ...

    def weight_of(self, identity: Hashable) -> MaybeAwaitable: ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> MaybeAwaitable: ...


@runtime_checkable
class ExecutionHook(Protocol):
    """
    Carries out an approved proposal.

    Returning None (or any non-string value) records Succeeded. Returning a
    string, or raising ExecutionFailed(reason), records Failed(reason).
    """

    def handle_execution(self, proposal: Proposal) -> MaybeAwaitable: ...


@runtime_checkable
class GovernancePolicy(MembershipOracle, ExecutionHook, Protocol):
    """Full capability set: membership, weight and execution."""


# ══════════════════════════════════════════════════════════════════════
#  CALL HELPERS
# ══════════════════════════════════════════════════════════════════════

async def call_host(what: str, fn: Callable[..., Any], *args) -> Any:
    """Invoke a host callable, awaiting it if needed; wrap failures in HostError."""
    try:
        result = fn(*args)
        if inspect.isawaitable(result):
            result = await result
    except HostError:
        raise
    except Exception as e:
        raise HostError(f"{what} failed: {e}") from e
    return result


async def read_clock(clock: Clock) -> int:
    return await call_host("Clock.now", clock.now)


# ══════════════════════════════════════════════════════════════════════
#  READY-MADE COLLABORATORS
# ══════════════════════════════════════════════════════════════════════

class SystemClock:
    """Wall-clock seconds since the epoch, as an integer."""

    def now(self) -> int:
        return int(time.time())

    def __repr__(self) -> str:
        return "<SystemClock>"


class ManualClock:
    """Logical clock moved explicitly by the caller. Never goes backwards."""

    def __init__(self, start: int = 0):
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, value: int):
        if value < self._now:
            raise ValueError(f"Clock cannot go backwards ({self._now} → {value})")
        self._now = value

    def advance(self, delta: int) -> int:
        self.set(self._now + delta)
        return self._now

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"


class StaticMembership:
    """
    In-memory member table mapping identity → weight.

    An optional *execute* callable serves as the execution hook, so an
    instance covers the whole GovernancePolicy.
    """

    def __init__(
        self,
        members: Optional[Dict[Hashable, int]] = None,
        execute: Optional[Callable[[Proposal], MaybeAwaitable]] = None,
    ):
        self._members: Dict[Hashable, int] = {}
        for identity, weight in (members or {}).items():
            self.add_member(identity, weight)
        self._execute = execute

    def add_member(self, identity: Hashable, weight: int = 1):
        if weight < 0:
            raise ValueError("Member weight cannot be negative")
        self._members[identity] = weight

    def remove_member(self, identity: Hashable):
        self._members.pop(identity, None)

    def set_weight(self, identity: Hashable, weight: int):
        if identity not in self._members:
            raise KeyError(identity)
        self.add_member(identity, weight)

    async def is_member(self, identity: Hashable) -> bool:
        return identity in self._members

    async def weight_of(self, identity: Hashable) -> int:
        return self._members.get(identity, 0)

    async def handle_execution(self, proposal: Proposal):
        if self._execute is None:
            return None
        result = self._execute(proposal)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __len__(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:
        return f"<StaticMembership members={len(self._members)}>"
