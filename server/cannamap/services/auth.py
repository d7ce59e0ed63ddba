"""Identity: password hashing, access tokens and the active-user rule.

Only active users have an identity. Deactivated accounts cannot log in,
their tokens stop resolving, and the vote service refuses their ids.
"""

from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from sqlalchemy.orm import Session

from cannamap.core.config import get_settings
from cannamap.models.user import User
from cannamap.schemas.auth import TokenData

settings = get_settings()


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# Checked against when the username is unknown so both paths cost one bcrypt round
_UNKNOWN_USER_HASH = get_password_hash("cannamap-unknown-user")


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    claims = {**data, "exp": datetime.now(UTC) + lifetime}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenData | None:
    """Subject of a valid token, or None for anything expired, forged or malformed."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None
    subject = claims.get("sub")
    return TokenData(username=subject) if subject else None


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def get_active_user(db: Session, user_id: int | None) -> User | None:
    """The user behind ``user_id`` if it exists and is active."""
    if user_id is None:
        return None
    return db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()


def get_active_user_by_username(db: Session, username: str) -> User | None:
    user = get_user_by_username(db, username)
    return user if user is not None and user.is_active else None


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    """The active user matching the credentials, or None."""
    user = get_user_by_username(db, username)
    if user is None:
        verify_password(password, _UNKNOWN_USER_HASH)
        return None
    if not verify_password(password, user.password_hash) or not user.is_active:
        return None
    return user


def create_user(db: Session, username: str, password: str, email: str | None = None) -> User:
    user = User(username=username, email=email, password_hash=get_password_hash(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
