import logging
import os
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from starlette import status
from database import get_db
from models.users import User
from schemas.auth import RegisterRequest, LoginRequest, RefreshRequest, ChangePasswordRequest, Token
from schemas.users import User as UserSchema
from crud import users as users_crud
from utils.auth_utils import (
    AUTH_COOKIE_NAME,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    validate_password_strength,
    verify_password,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

COOKIE_SECURE = os.getenv("APP_ENV", "development") == "production"

db_dependency = Annotated[Session, Depends(get_db)]


def _issue_tokens(user: User, response: Response) -> Token:
    access_token = create_access_token(user)
    response.set_cookie(
        AUTH_COOKIE_NAME,
        access_token,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
    )
    return Token(
        access_token=access_token,
        refresh_token=create_refresh_token(user),
        token_type="bearer",
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        tenant_id=user.tenant_id,
        user=UserSchema.model_validate(user),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register_user(request: RegisterRequest, response: Response, db: db_dependency):
    if users_crud.get_user_by_email(db, request.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    try:
        validate_password_strength(request.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    user = users_crud.register_user(db, request.email, request.password, request.name, request.tenant_name)
    return _issue_tokens(user, response)


@router.post("/login", response_model=Token)
def login(request: LoginRequest, response: Response, db: db_dependency):
    user = users_crud.authenticate_user(db, request.email, request.password)
    if not user:
        logger.warning(f"Failed login attempt for {request.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User account is inactive")

    user = users_crud.mark_login(db, user)
    logger.info(f"User {user.id} logged in")
    return _issue_tokens(user, response)


@router.post("/refresh", response_model=Token)
def refresh_token(request: RefreshRequest, response: Response, db: db_dependency):
    payload = decode_token(request.refresh_token, "refresh")
    user = users_crud.get_user(db, int(payload["sub"]))
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    return _issue_tokens(user, response)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(AUTH_COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserSchema)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/change-password")
def change_password(
    request: ChangePasswordRequest,
    db: db_dependency,
    current_user: User = Depends(get_current_user)
):
    if not verify_password(request.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    if request.current_password == request.new_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New password must be different")
    try:
        validate_password_strength(request.new_password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    users_crud.change_password(db, current_user, request.new_password)
    logger.info(f"User {current_user.id} changed password")
    return {"message": "Password updated"}
