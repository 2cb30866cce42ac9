"""Simulate a quadratic voting session with generated voters.

Creates a session, registers voters with fake e-mail addresses generated
by faker with a fixed seed, lets every voter spend part of their credits on
random proposals, and prints the outcome.

Usage:
    python scripts/simulate_session.py
    python scripts/simulate_session.py --voters 50 --credits 100 -p Parks -p Roads -p Library
"""

import argparse
import logging
import random
import sys
from pathlib import Path

from faker import Faker

sys.path.insert(0, str(Path(__file__).parent.parent))

from qvote.clock import ManualClock
from qvote.errors import InsufficientCredits
from qvote.identity import Caller
from qvote.pricing import get_all_cost_rules, get_cost_rule
from qvote.service import QuadraticVoting

SEED = 20260201
ADMIN = "0xadmin"
DEFAULT_PROPOSALS = ["Parks", "Roads", "Library"]


def generate_voters(count: int, seed: int) -> list[tuple[str, str]]:
    """Generate (address, email) pairs, unique and reproducible for a seed."""
    fake = Faker()
    Faker.seed(seed)
    voters = []
    used: set[str] = set()
    while len(voters) < count:
        address = "0x" + fake.hexify(text="^" * 40)
        if address in used:
            continue
        used.add(address)
        voters.append((address, fake.unique.email()))
    return voters


def random_batch(
    rng: random.Random, proposal_ids: list[int], budget: int, allow_against: bool
) -> tuple[list[int], list[tuple[int, int]]]:
    """Pick a random batch whose quadratic cost fits within ``budget``."""
    chosen = rng.sample(proposal_ids, rng.randint(1, len(proposal_ids)))
    counts = []
    for _ in chosen:
        votes = rng.randint(0, max(int((budget / len(chosen)) ** 0.5), 0))
        if allow_against and rng.random() < 0.3:
            counts.append((0, votes))
        else:
            counts.append((votes, 0))
    return chosen, counts


def simulate(
    qv: QuadraticVoting,
    proposals: list[str],
    voters: list[tuple[str, str]],
    credits: int,
    rng: random.Random,
    allow_against: bool = True,
) -> int:
    """Run one session and return its id."""
    admin = Caller.admin(ADMIN)
    session_id = qv.create_session(
        admin,
        "Simulated session",
        f"{len(voters)} generated voters",
        credits,
        3600,
        [(title, f"Proposal {title}") for title in proposals],
    )
    proposal_ids = [p.proposal_id for p in qv.get_session_proposals(session_id)]

    rejected = 0
    for address, email in voters:
        caller = Caller(address)
        qv.register_voter(caller, email)
        ids, counts = random_batch(rng, proposal_ids, credits, allow_against)
        try:
            qv.vote(caller, session_id, ids, counts)
        except InsufficientCredits:
            rejected += 1
    if rejected:
        print(f"{rejected} batches rejected for insufficient credits")
    return session_id


def main():
    rule_names = [rule.name for rule in get_all_cost_rules()]

    parser = argparse.ArgumentParser(
        description="Simulate a quadratic voting session")
    parser.add_argument("--voters", type=int, default=20,
                        help="Number of generated voters (default: 20)")
    parser.add_argument("--credits", type=int, default=100,
                        help="Credits per voter, 1..255 (default: 100)")
    parser.add_argument("-p", "--proposal", action="append", dest="proposals",
                        help=f"Proposal title, repeatable (default: {DEFAULT_PROPOSALS})")
    parser.add_argument("--cost-rule", choices=rule_names, default="independent-squares",
                        help="Cost rule used to price votes")
    parser.add_argument("--seed", type=int, default=SEED,
                        help=f"Random seed (default: {SEED})")
    parser.add_argument("--log-level", default="WARNING",
                        help="Logging level (default: WARNING)")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(),
                        format="%(levelname)s %(name)s: %(message)s")

    qv = QuadraticVoting(clock=ManualClock(), cost_rule=get_cost_rule(args.cost_rule))
    rng = random.Random(args.seed)
    voters = generate_voters(args.voters, args.seed)
    proposals = args.proposals or DEFAULT_PROPOSALS
    session_id = simulate(qv, proposals, voters, args.credits, rng)

    print(f"Session {session_id}: {len(voters)} voters, {args.credits} credits each")
    for summary in qv.get_session_proposals(session_id):
        print(f"  #{summary.proposal_id} {summary.title}: "
              f"{summary.votes_for} for, {summary.votes_against} against")

    results = qv.get_session_results(session_id)
    print("Ranking:")
    for placement in qv.rank_proposals(session_id):
        tie = " (tied)" if placement.tied else ""
        print(f"  {placement.rank}. #{placement.proposal_id}{tie}")
    if results.winning_proposal_id is None:
        print("No winner.")
    else:
        print(f"Winner: #{results.winning_proposal_id}")


if __name__ == "__main__":
    main()
