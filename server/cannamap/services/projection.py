"""Location projection: the trust aggregate embedded in each location row.

Read paths use ``get_trust_aggregate``. ``write_aggregate`` belongs to the vote
service alone and only ever touches the aggregate columns.
"""

from sqlalchemy import update
from sqlalchemy.orm import Session

from cannamap.models.location import Location
from cannamap.services.aggregator import TrustAggregate


def get_trust_aggregate(db: Session, location_id: int) -> TrustAggregate | None:
    row = (
        db.query(
            Location.igniter_votes,
            Location.imposter_votes,
            Location.total_votes,
            Location.trust_score,
        )
        .filter(Location.id == location_id)
        .first()
    )
    if row is None:
        return None
    return TrustAggregate(
        igniter_votes=row.igniter_votes,
        imposter_votes=row.imposter_votes,
        total_votes=row.total_votes,
        trust_score=row.trust_score,
    )


def read_aggregate_version(db: Session, location_id: int) -> int | None:
    return (
        db.query(Location.aggregate_version).filter(Location.id == location_id).scalar()
    )


def write_aggregate(
    db: Session, location_id: int, aggregate: TrustAggregate, expected_version: int
) -> bool:
    """Write the aggregate if the row is still at ``expected_version``.

    Returns False when another writer got there first. Does not commit.
    """
    result = db.execute(
        update(Location)
        .where(Location.id == location_id, Location.aggregate_version == expected_version)
        .values(
            igniter_votes=aggregate.igniter_votes,
            imposter_votes=aggregate.imposter_votes,
            total_votes=aggregate.total_votes,
            trust_score=aggregate.trust_score,
            aggregate_version=Location.aggregate_version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
