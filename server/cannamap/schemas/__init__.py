from cannamap.schemas.auth import Token, TokenData
from cannamap.schemas.location import LocationCreate, LocationDetail, LocationOut
from cannamap.schemas.review import ReviewCreate, ReviewOut
from cannamap.schemas.user import UserOut
from cannamap.schemas.vote import VoteCreate, VoteResponse

__all__ = [
    "Token",
    "TokenData",
    "UserOut",
    "LocationCreate",
    "LocationOut",
    "LocationDetail",
    "ReviewCreate",
    "ReviewOut",
    "VoteCreate",
    "VoteResponse",
]
