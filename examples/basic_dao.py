"""
Basic DAO Example

Demonstrates embedding the governance engine: a fixed member table,
a manual clock, one proposal voted on, resolved and executed.
"""

import asyncio

from daobasic.config import GovernanceConfig
from daobasic.governance import (
    ExecutionFailed,
    GovernanceEngine,
    ManualClock,
    ProposalState,
    StaticMembership,
    Vote,
)


TREASURY = {"balance": 100}


async def pay_out(proposal):
    """Execution hook: transfer the requested amount out of the treasury."""
    amount = int((proposal.properties or {}).get("amount", "0"))
    if amount > TREASURY["balance"]:
        raise ExecutionFailed("insufficient funds")
    TREASURY["balance"] -= amount


async def main():
    members = StaticMembership({"alice": 10, "bob": 5, "carol": 1}, execute=pay_out)
    clock = ManualClock(0)
    engine = GovernanceEngine(
        members,
        clock=clock,
        config=GovernanceConfig(voting_policy="open_window"),
    )

    proposal = await engine.submit(
        "alice", "Grant", "Pay 40 to the docs team", {"amount": "40"}, end_time=100
    )
    await engine.cast_vote("alice", proposal.id, Vote.yes(10))
    await engine.cast_weighted_vote("bob", proposal.id, approve=False)

    clock.set(150)
    tally = engine.tally(proposal.id)
    print(f"Tally: {tally.to_dict()}")

    target = ProposalState.ACCEPTED if tally.leading == "yes" else ProposalState.REJECTED
    await engine.transition_state(proposal.id, target)
    await engine.transition_state(proposal.id, ProposalState.EXECUTING)

    for outcome in await engine.run_execution_handler():
        print(f"Proposal #{outcome.proposal_id}: {outcome.state}")
    print(f"Treasury balance: {TREASURY['balance']}")


if __name__ == "__main__":
    asyncio.run(main())
