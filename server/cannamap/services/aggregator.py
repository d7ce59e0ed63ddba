"""Trust aggregate computation.

The aggregate is always rebuilt from the full vote set, never incremented, so
it cannot drift from the votes table.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from cannamap.models.location import DEFAULT_TRUST_SCORE
from cannamap.models.vote import VoteType
from cannamap.services.vote_store import list_votes_for_location


@dataclass(frozen=True)
class TrustAggregate:
    igniter_votes: int
    imposter_votes: int
    total_votes: int
    trust_score: int

    @classmethod
    def empty(cls) -> "TrustAggregate":
        return cls(igniter_votes=0, imposter_votes=0, total_votes=0, trust_score=DEFAULT_TRUST_SCORE)


def calculate_trust_score(igniter_votes: int, total_votes: int) -> int:
    """Percentage of igniter votes, rounded half up; 100 for an unvoted location."""
    if total_votes <= 0:
        return DEFAULT_TRUST_SCORE
    # round(igniter / total * 100) with half-up rounding, in integers
    return (200 * igniter_votes + total_votes) // (2 * total_votes)


def aggregate_votes(vote_types: Iterable[VoteType | str]) -> TrustAggregate:
    igniter = 0
    imposter = 0
    for vote_type in vote_types:
        if VoteType(vote_type) is VoteType.IGNITER:
            igniter += 1
        else:
            imposter += 1
    total = igniter + imposter
    return TrustAggregate(
        igniter_votes=igniter,
        imposter_votes=imposter,
        total_votes=total,
        trust_score=calculate_trust_score(igniter, total),
    )


def compute_aggregate(db: Session, location_id: int) -> TrustAggregate:
    """Recompute a location's aggregate from every vote row. Read-only."""
    votes = list_votes_for_location(db, location_id)
    return aggregate_votes(vote.vote_type for vote in votes)
