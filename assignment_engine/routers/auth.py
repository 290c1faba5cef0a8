import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from assignment_engine.core.config import ACCESS_TOKEN_EXPIRE
from assignment_engine.core.current_user import get_current_user
from assignment_engine.core.deps import get_db
from assignment_engine.core.roles import Role
from assignment_engine.core.security import create_access_token, hash_password, verify_password
from assignment_engine.db.session import atomic
from assignment_engine.models.user import User
from assignment_engine.schemas.auth import LoginRequest
from assignment_engine.schemas.token import Token
from assignment_engine.schemas.user import UserCreate, UserRead

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"description": "Email already registered"},
    },
)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    # self-service accounts are always students; staff roles are assigned out of band
    user = User(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=hash_password(payload.password),
        role=Role.STUDENT.value,
    )
    with atomic(db, conflict_message="Email already registered"):
        db.add(user)
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


@router.post(
    "/login",
    response_model=Token,
    responses={
        401: {"description": "Invalid email or password"},
    },
)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    access_token = create_access_token(
        data={"sub": str(user.id), "role": user.role},
        expires_delta=ACCESS_TOKEN_EXPIRE,
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    return current_user
