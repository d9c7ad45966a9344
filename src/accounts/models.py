"""Data models for visitors, accounts, and quota state."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Visitor:
    """An anonymous requester identified by cookie and/or fingerprint."""

    id: str


@dataclass(frozen=True)
class Account:
    """An authenticated user."""

    id: str


Identity = Visitor | Account


@dataclass(frozen=True)
class QuotaStatus:
    """Result of a quota pre-check.

    ``remaining`` is None for accounts, which are unlimited.
    """

    allowed: bool
    used: int
    remaining: int | None
    unlimited: bool = False


@dataclass
class VisitorRecord:
    """A row from the visitors table."""

    id: str
    upload_count: int = 0
    is_new: bool = False


@dataclass
class UserRecord:
    """A row from the users table."""

    id: str
    email: str
    password_hash: str
    name: str | None = None
    upload_count: int = 0
