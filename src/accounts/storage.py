"""Supabase storage helpers for visitors and users."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, cast

from supabase import Client, create_client

from src.accounts.models import UserRecord, VisitorRecord
from src.config import settings


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Create the process-wide Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


def _rows(result: Any) -> list[dict[str, Any]]:
    return cast(list[dict[str, Any]], result.data or [])


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _user_from_row(row: dict[str, Any]) -> UserRecord:
    return UserRecord(
        id=str(row["id"]),
        email=row["email"],
        password_hash=row.get("password_hash") or "",
        name=row.get("name"),
        upload_count=row.get("upload_count") or 0,
    )


# ---------------------------------------------------------------------------
# Visitors
# ---------------------------------------------------------------------------


def get_or_create_visitor(
    client: Client,
    cookie_id: str | None,
    fingerprint: str | None,
) -> VisitorRecord:
    """Find a visitor by cookie ID, then by fingerprint, else create one.

    A cookie that is not a UUID is ignored, so a tampered or stale value
    falls through to the fingerprint lookup instead of failing the query.
    """
    if cookie_id and _is_uuid(cookie_id):
        rows = _rows(
            client.table("visitors").select("id, upload_count").eq("id", cookie_id).execute()
        )
        if rows:
            return VisitorRecord(id=str(rows[0]["id"]), upload_count=rows[0]["upload_count"])

    if fingerprint:
        rows = _rows(
            client.table("visitors")
            .select("id, upload_count")
            .eq("fingerprint", fingerprint)
            .limit(1)
            .execute()
        )
        if rows:
            return VisitorRecord(id=str(rows[0]["id"]), upload_count=rows[0]["upload_count"])

    new_id = str(uuid.uuid4())
    client.table("visitors").insert(
        {"id": new_id, "fingerprint": fingerprint or None, "upload_count": 0}
    ).execute()
    return VisitorRecord(id=new_id, upload_count=0, is_new=True)


def get_visitor_upload_count(client: Client, visitor_id: str) -> int:
    if not _is_uuid(visitor_id):
        return 0
    rows = _rows(
        client.table("visitors").select("upload_count").eq("id", visitor_id).execute()
    )
    return int(rows[0]["upload_count"]) if rows else 0


def increment_visitor_uploads(client: Client, visitor_id: str) -> int:
    """Atomically increment a visitor's upload count and return the new value."""
    result = client.rpc("increment_visitor_uploads", {"p_visitor_id": visitor_id}).execute()
    return int(result.data or 0)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def create_user(
    client: Client,
    email: str,
    password_hash: str,
    name: str | None = None,
    visitor_id: str | None = None,
) -> UserRecord:
    """Insert a user; a visitor's existing upload count carries over on signup.

    The visitor is linked only when its row exists.
    """
    upload_count = 0
    linked_visitor: str | None = None
    if visitor_id and _is_uuid(visitor_id):
        rows = _rows(
            client.table("visitors").select("upload_count").eq("id", visitor_id).execute()
        )
        if rows:
            upload_count = int(rows[0]["upload_count"])
            linked_visitor = visitor_id

    result = (
        client.table("users")
        .insert(
            {
                "id": str(uuid.uuid4()),
                "email": email.strip().lower(),
                "name": name or None,
                "password_hash": password_hash,
                "upload_count": upload_count,
                "visitor_id": linked_visitor,
            }
        )
        .execute()
    )
    return _user_from_row(_rows(result)[0])


def get_user_by_email(client: Client, email: str) -> UserRecord | None:
    rows = _rows(
        client.table("users").select("*").eq("email", email.strip().lower()).execute()
    )
    return _user_from_row(rows[0]) if rows else None


def get_user_by_id(client: Client, user_id: str) -> UserRecord | None:
    rows = _rows(client.table("users").select("*").eq("id", user_id).execute())
    return _user_from_row(rows[0]) if rows else None


def update_last_login(client: Client, user_id: str) -> None:
    now = datetime.now(timezone.utc).isoformat()
    client.table("users").update({"last_login_at": now}).eq("id", user_id).execute()


def get_user_upload_count(client: Client, user_id: str) -> int:
    rows = _rows(client.table("users").select("upload_count").eq("id", user_id).execute())
    return int(rows[0]["upload_count"]) if rows else 0


def increment_user_uploads(client: Client, user_id: str) -> int:
    """Atomically increment a user's upload count and return the new value."""
    result = client.rpc("increment_user_uploads", {"p_user_id": user_id}).execute()
    return int(result.data or 0)
