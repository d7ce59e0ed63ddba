"""Concurrent voting against a shared file-backed database.

Each worker gets its own session and connection, the way request handlers do.
"""

from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cannamap.models.base import Base
from cannamap.models.location import Location
from cannamap.models.user import User
from cannamap.models.vote import Vote, VoteType
from cannamap.services.aggregator import TrustAggregate, compute_aggregate
from cannamap.services.projection import get_trust_aggregate
from cannamap.services.vote import cast_vote

WORKERS = 8


@pytest.fixture
def session_factory(tmp_path) -> Generator[sessionmaker, None, None]:
    engine = create_engine(
        f"sqlite:///{tmp_path / 'votes.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def _seed(factory: sessionmaker, user_count: int) -> tuple[int, list[int]]:
    with factory() as db:
        location = Location(name="Corner Shop", latitude=40.0, longitude=-74.0)
        users = [
            User(username=f"voter{i}", email=f"voter{i}@example.com", password_hash="x")
            for i in range(user_count)
        ]
        db.add(location)
        db.add_all(users)
        db.commit()
        return location.id, [user.id for user in users]


def _cast(factory: sessionmaker, user_id: int, location_id: int, vote_type: VoteType):
    with factory() as db:
        return cast_vote(db, user_id, location_id, vote_type)


def test_distinct_users_all_counted(session_factory):
    location_id, user_ids = _seed(session_factory, WORKERS * 2)
    kinds = [VoteType.IGNITER if i % 4 else VoteType.IMPOSTER for i in range(len(user_ids))]

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        list(
            pool.map(
                lambda args: _cast(session_factory, args[0], location_id, args[1]),
                zip(user_ids, kinds),
            )
        )

    with session_factory() as db:
        assert db.query(Vote).filter(Vote.location_id == location_id).count() == len(user_ids)
        imposters = kinds.count(VoteType.IMPOSTER)
        igniters = len(user_ids) - imposters
        expected = TrustAggregate(
            igniter_votes=igniters,
            imposter_votes=imposters,
            total_votes=len(user_ids),
            trust_score=(200 * igniters + len(user_ids)) // (2 * len(user_ids)),
        )
        assert get_trust_aggregate(db, location_id) == expected


def test_same_user_concurrent_votes_keep_one_row(session_factory):
    location_id, (user_id,) = _seed(session_factory, 1)
    kinds = [VoteType.IGNITER, VoteType.IMPOSTER] * WORKERS

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        list(pool.map(lambda kind: _cast(session_factory, user_id, location_id, kind), kinds))

    with session_factory() as db:
        rows = db.query(Vote).filter(Vote.user_id == user_id).all()
        assert len(rows) == 1
        # Whichever cast landed last, the projection matches the stored vote
        assert get_trust_aggregate(db, location_id) == compute_aggregate(db, location_id)
        assert get_trust_aggregate(db, location_id).total_votes == 1


def test_projection_converges_with_mixed_voters(session_factory):
    location_id, user_ids = _seed(session_factory, WORKERS)
    jobs = [
        (user_id, kind)
        for user_id in user_ids
        for kind in (VoteType.IMPOSTER, VoteType.IGNITER, VoteType.IMPOSTER)
    ]

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        list(
            pool.map(
                lambda job: _cast(session_factory, job[0], location_id, job[1]),
                jobs,
            )
        )

    with session_factory() as db:
        assert db.query(Vote).filter(Vote.location_id == location_id).count() == len(user_ids)
        assert get_trust_aggregate(db, location_id) == compute_aggregate(db, location_id)
