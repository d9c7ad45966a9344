"""Resolve the requester (visitor or account) from cookies and headers."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request, Response
from supabase import Client

from src.accounts import storage
from src.accounts.auth import (
    AUTH_COOKIE,
    AUTH_MAX_AGE,
    FINGERPRINT_HEADER,
    VISITOR_COOKIE,
    VISITOR_MAX_AGE,
    verify_token,
)
from src.accounts.models import Account, Identity, Visitor
from src.config import settings


@dataclass(frozen=True)
class Requester:
    """The resolved identity plus whether a visitor row was just created."""

    identity: Identity
    is_new_visitor: bool = False


def current_user_id(request: Request) -> str | None:
    return verify_token(request.cookies.get(AUTH_COOKIE))


def resolve_requester(request: Request, client: Client) -> Requester:
    """Authenticated cookie wins; otherwise look up or create the visitor."""
    user_id = current_user_id(request)
    if user_id:
        return Requester(identity=Account(id=user_id))

    visitor = storage.get_or_create_visitor(
        client,
        request.cookies.get(VISITOR_COOKIE) or None,
        request.headers.get(FINGERPRINT_HEADER) or None,
    )
    return Requester(identity=Visitor(id=visitor.id), is_new_visitor=visitor.is_new)


def set_visitor_cookie(response: Response, visitor_id: str) -> None:
    response.set_cookie(
        VISITOR_COOKIE,
        visitor_id,
        max_age=VISITOR_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        AUTH_COOKIE,
        token,
        max_age=AUTH_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(AUTH_COOKIE, path="/")


def remember_new_visitor(response: Response, requester: Requester) -> None:
    if requester.is_new_visitor:
        set_visitor_cookie(response, requester.identity.id)
