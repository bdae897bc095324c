"""
Proposal Store

Keyed in-process storage of proposals with monotonic id allocation.

Readers always receive copies. Identity objects inside a record are
never copied, so they keep comparing equal to what the host passed in.
Writers go through ``get_mutable``, which serializes mutations per
proposal id and commits a whole working copy at once, so a reader never
observes a half-applied change and a failed mutation leaves the stored
record untouched.
"""

import asyncio
import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List

from ..constants import FIRST_PROPOSAL_ID
from ..logger import get_logger
from .proposals import (
    DuplicateIdError,
    GovernanceError,
    Proposal,
    ProposalNotFoundError,
)

logger = get_logger(__name__)


class ProposalStore:
    """
    Owns every proposal for its whole lifetime. Records are never deleted.
    """

    def __init__(self, first_id: int = FIRST_PROPOSAL_ID):
        self._lock = threading.Lock()
        self._proposals: Dict[int, Proposal] = {}
        self._write_locks: Dict[int, asyncio.Lock] = {}
        self._next_id = first_id

    # ── Id allocation ─────────────────────────────────────────────────

    def allocate(self) -> int:
        """Return the next unused id. Ids are never handed out twice."""
        with self._lock:
            pid = self._next_id
            self._next_id += 1
        return pid

    # ── Insertion / lookup ────────────────────────────────────────────

    def insert(self, proposal: Proposal):
        with self._lock:
            if proposal.id in self._proposals:
                raise DuplicateIdError(f"Proposal #{proposal.id} already exists")
            self._proposals[proposal.id] = proposal.copy()
            self._write_locks[proposal.id] = asyncio.Lock()
        logger.debug(f"Stored proposal #{proposal.id}")

    def get(self, proposal_id: int) -> Proposal:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                raise ProposalNotFoundError(f"Proposal #{proposal_id} does not exist")
            return proposal.copy()

    def list_all(self) -> List[Proposal]:
        """Snapshot copies of every proposal, ordered by id."""
        with self._lock:
            return [self._proposals[pid].copy() for pid in sorted(self._proposals)]

    def ids(self) -> List[int]:
        with self._lock:
            return sorted(self._proposals)

    # ── Mutation ──────────────────────────────────────────────────────

    @asynccontextmanager
    async def get_mutable(self, proposal_id: int) -> AsyncIterator[Proposal]:
        """
        Exclusive mutation handle for one proposal.

        Yields a working copy. The copy replaces the stored record when the
        block exits normally; if the block raises, it is discarded.
        """
        with self._lock:
            write_lock = self._write_locks.get(proposal_id)
        if write_lock is None:
            raise ProposalNotFoundError(f"Proposal #{proposal_id} does not exist")

        async with write_lock:
            working = self.get(proposal_id)
            yield working
            if working.id != proposal_id:
                raise GovernanceError(
                    f"Proposal id is immutable (#{proposal_id} → #{working.id})"
                )
            with self._lock:
                self._proposals[proposal_id] = working

    def is_locked(self, proposal_id: int) -> bool:
        """True while a mutation handle for *proposal_id* is outstanding."""
        with self._lock:
            write_lock = self._write_locks.get(proposal_id)
        return write_lock is not None and write_lock.locked()

    # ── Dunder ────────────────────────────────────────────────────────

    def __len__(self) -> int:
        with self._lock:
            return len(self._proposals)

    def __contains__(self, proposal_id) -> bool:
        with self._lock:
            return proposal_id in self._proposals

    def __repr__(self) -> str:
        return f"<ProposalStore proposals={len(self)} next_id={self._next_id}>"
