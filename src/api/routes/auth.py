"""Account endpoints: signup, login, current user, logout."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, Response

from src.accounts import storage
from src.accounts.auth import VISITOR_COOKIE, create_token, hash_password, verify_password
from src.accounts.storage import get_supabase_client
from src.api.identity import clear_auth_cookie, current_user_id, set_auth_cookie
from src.api.models import LoginRequest, SignupRequest, UserOut, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")

MIN_PASSWORD_LENGTH = 6


@router.post("/signup", response_model=UserResponse)
async def signup(body: SignupRequest, request: Request, response: Response) -> UserResponse:
    """Create an account and log it in.

    Uploads already made under the ``visitor_id`` cookie carry over to the
    new account's counter.
    """
    if not body.email.strip():
        raise HTTPException(status_code=400, detail="Email is required.")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
        )

    client = get_supabase_client()
    try:
        if storage.get_user_by_email(client, body.email):
            raise HTTPException(
                status_code=409, detail="An account with this email already exists."
            )
        user = storage.create_user(
            client,
            body.email,
            hash_password(body.password),
            name=body.name,
            visitor_id=request.cookies.get(VISITOR_COOKIE) or None,
        )
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Signup failed")
        raise HTTPException(status_code=500, detail="Failed to create account.") from exc

    set_auth_cookie(response, create_token(user.id))
    return UserResponse(user=UserOut(id=user.id, email=user.email, name=user.name))


@router.post("/login", response_model=UserResponse)
async def login(body: LoginRequest, response: Response) -> UserResponse:
    if not body.email.strip() or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required.")

    client = get_supabase_client()
    try:
        user = storage.get_user_by_email(client, body.email)
        if user is None or not verify_password(body.password, user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid email or password.")
        storage.update_last_login(client, user.id)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Login failed")
        raise HTTPException(status_code=500, detail="Failed to log in.") from exc

    set_auth_cookie(response, create_token(user.id))
    return UserResponse(user=UserOut(id=user.id, email=user.email, name=user.name))


@router.get("/me", response_model=UserResponse)
async def me(request: Request) -> UserResponse:
    """Return the logged-in user, or ``{"user": null}``. Never errors."""
    user_id = current_user_id(request)
    if not user_id:
        return UserResponse(user=None)

    try:
        user = storage.get_user_by_id(get_supabase_client(), user_id)
    except Exception:
        logger.exception("Get user failed")
        return UserResponse(user=None)

    if user is None:
        return UserResponse(user=None)
    return UserResponse(
        user=UserOut(
            id=user.id,
            email=user.email,
            name=user.name,
            upload_count=user.upload_count,
        )
    )


@router.post("/logout", response_model=UserResponse)
async def logout(response: Response) -> UserResponse:
    clear_auth_cookie(response)
    return UserResponse(user=None)
