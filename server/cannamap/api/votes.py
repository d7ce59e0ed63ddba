"""Igniter / imposter voting endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Path, Request, status
from sqlalchemy.orm import Session

from cannamap.api.deps import get_db, get_existing_location, get_optional_user
from cannamap.core.config import get_settings
from cannamap.core.rate_limit import limiter
from cannamap.models.location import Location
from cannamap.models.user import User
from cannamap.models.vote import Vote
from cannamap.schemas.location import TrustAggregateOut
from cannamap.schemas.vote import UserVoteOut, VoteCreate, VoteResponse
from cannamap.services.vote import (
    AggregationFailed,
    InvalidVote,
    LocationNotFound,
    Unauthenticated,
    cast_vote,
    get_user_vote,
    parse_vote_type,
)
from cannamap.services.vote_store import TransientStoreFailure

router = APIRouter()
settings = get_settings()

TRY_AGAIN_DETAIL = "Could not save your vote right now. Please try again."
STALE_SCORE_DETAIL = (
    "Your vote was recorded but the trust score could not be updated yet. "
    "Refresh the location before voting again."
)


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Sign in to vote",
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/{location_id}/vote", response_model=VoteResponse)
@limiter.limit(lambda: f"{settings.vote_rate_limit_per_minute}/minute")
def vote_for_location(
    request: Request,
    vote_data: VoteCreate,
    location_id: int = Path(..., gt=0),
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> VoteResponse:
    """Cast or change the caller's vote. Re-casting the same vote has no effect."""
    user_id = current_user.id if current_user else None
    try:
        aggregate = cast_vote(db, user_id, location_id, vote_data.vote_type)
    except Unauthenticated:
        raise _unauthenticated()
    except InvalidVote as e:
        raise HTTPException(status_code=422, detail=str(e))
    except LocationNotFound:
        raise HTTPException(status_code=404, detail="Location not found")
    except TransientStoreFailure:
        raise HTTPException(status_code=503, detail=TRY_AGAIN_DETAIL)
    except AggregationFailed:
        raise HTTPException(status_code=503, detail=STALE_SCORE_DETAIL)

    return VoteResponse(
        status="voted",
        vote_type=parse_vote_type(vote_data.vote_type).value,
        aggregate=TrustAggregateOut.model_validate(aggregate),
    )


@router.get("/{location_id}/vote", response_model=UserVoteOut | None)
def get_my_vote(
    location: Location = Depends(get_existing_location),
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> Vote | None:
    """The caller's current vote on the location, or null."""
    user_id = current_user.id if current_user else None
    try:
        return get_user_vote(db, user_id, location.id)
    except Unauthenticated:
        raise _unauthenticated()
    except TransientStoreFailure:
        raise HTTPException(status_code=503, detail="Please try again.")
