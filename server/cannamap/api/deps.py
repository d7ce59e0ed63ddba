from collections.abc import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from cannamap.db.session import SessionLocal
from cannamap.models.location import Location
from cannamap.models.user import User
from cannamap.services.auth import decode_token, get_active_user_by_username
from cannamap.services.location import get_location

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _resolve_user(db: Session, token: str | None) -> User | None:
    if not token:
        return None
    token_data = decode_token(token)
    if token_data is None or token_data.username is None:
        return None
    return get_active_user_by_username(db, token_data.username)


def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> User:
    user = _resolve_user(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    db: Session = Depends(get_db), token: str | None = Depends(optional_oauth2_scheme)
) -> User | None:
    """The signed-in user, or None. Services decide whether identity is required."""
    return _resolve_user(db, token)


def get_existing_location(location_id: int, db: Session = Depends(get_db)) -> Location:
    location = get_location(db, location_id)
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")
    return location
