"""Signup, login and logout for users and admins."""

import logging

from fastapi import APIRouter, status
from pymongo.errors import DuplicateKeyError

from database import USERS, create_document, find_one
from errors import DuplicateEmailError, InvalidCredentialsError
from schemas import (
    AuthResponse,
    AuthUser,
    LoginRequest,
    MessageResponse,
    SignupRequest,
    User,
    UserSignupRequest,
)
from security import PasswordHasherDep, TokenServiceDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _register(email: str, password: str, role: str, hasher, is_premium: bool = False) -> str:
    # Any existing account blocks the email, whatever its role
    if find_one(USERS, {"email": email}) is not None:
        raise DuplicateEmailError()

    user = User(email=email, password_hash=hasher.hash(password), is_premium=is_premium, role=role)
    try:
        uid = create_document(USERS, user)
    except DuplicateKeyError:
        raise DuplicateEmailError()
    logger.info("Registered %s %s", role, uid)
    return uid


def _login(email: str, password: str, role: str, hasher) -> dict:
    user = find_one(USERS, {"email": email, "role": role})
    if user is None or not hasher.verify(password, user.get("password_hash", "")):
        logger.info("Failed %s login", role)
        raise InvalidCredentialsError()
    logger.info("%s %s logged in", role.capitalize(), user["_id"])
    return user


@router.post("/user/signup", response_model=AuthResponse, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
def user_signup(req: UserSignupRequest, hasher: PasswordHasherDep, tokens: TokenServiceDep):
    is_premium = bool(req.is_premium)
    uid = _register(req.email, req.password, "user", hasher, is_premium=is_premium)
    return AuthResponse(
        token=tokens.create_token(uid),
        user=AuthUser(id=uid, email=req.email, is_premium=is_premium),
    )


@router.post("/admin/signup", response_model=AuthResponse, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
def admin_signup(req: SignupRequest, hasher: PasswordHasherDep, tokens: TokenServiceDep):
    uid = _register(req.email, req.password, "admin", hasher)
    return AuthResponse(
        token=tokens.create_token(uid),
        user=AuthUser(id=uid, email=req.email, role="admin"),
    )


@router.post("/user/login", response_model=AuthResponse, response_model_exclude_none=True)
def user_login(req: LoginRequest, hasher: PasswordHasherDep, tokens: TokenServiceDep):
    user = _login(req.email, req.password, "user", hasher)
    uid = str(user["_id"])
    return AuthResponse(
        token=tokens.create_token(uid),
        user=AuthUser(id=uid, email=user["email"], is_premium=bool(user.get("is_premium", False))),
    )


@router.post("/admin/login", response_model=AuthResponse, response_model_exclude_none=True)
def admin_login(req: LoginRequest, hasher: PasswordHasherDep, tokens: TokenServiceDep):
    user = _login(req.email, req.password, "admin", hasher)
    uid = str(user["_id"])
    return AuthResponse(
        token=tokens.create_token(uid),
        user=AuthUser(id=uid, email=user["email"], role="admin"),
    )


@router.post("/logout", response_model=MessageResponse)
def logout():
    # Tokens are not revoked server-side; they stay valid until they expire
    return MessageResponse(message="Logout successful. Please remove the token from client storage.")
