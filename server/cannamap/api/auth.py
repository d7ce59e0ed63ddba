from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cannamap.api.deps import get_current_user, get_db
from cannamap.core.config import get_settings
from cannamap.core.rate_limit import limiter
from cannamap.models.user import User
from cannamap.schemas.auth import Token
from cannamap.schemas.user import RegisterRequest, UserOut
from cannamap.services.auth import (
    authenticate_user,
    create_access_token,
    create_user,
    get_user_by_email,
    get_user_by_username,
)

router = APIRouter()
settings = get_settings()

REGISTRATION_CONFLICT = "Registration failed. Username or email already in use."


@router.post("/login", response_model=Token)
@limiter.limit(lambda: f"{settings.login_rate_limit_per_minute}/minute")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> Token:
    user = authenticate_user(db, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(data={"sub": user.username})
    return Token(access_token=access_token)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(lambda: f"{settings.registration_rate_limit_per_minute}/minute")
def register(
    request: Request,
    reg_data: RegisterRequest,
    db: Session = Depends(get_db),
) -> User:
    # Same message for both conflicts to prevent enumeration
    if get_user_by_username(db, reg_data.username) or get_user_by_email(db, reg_data.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=REGISTRATION_CONFLICT)
    try:
        return create_user(db, reg_data.username, reg_data.password, email=reg_data.email)
    except IntegrityError:
        # Lost a race with a concurrent registration for the same name or email
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=REGISTRATION_CONFLICT)


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)) -> User:
    return current_user
