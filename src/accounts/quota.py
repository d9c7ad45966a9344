"""Free-upload quota gate for visitors and accounts."""

from __future__ import annotations

import logging

from supabase import Client

from src.accounts import storage
from src.accounts.models import Account, Identity, QuotaStatus, Visitor
from src.config import settings
from src.errors import QuotaExceededError

logger = logging.getLogger(__name__)


class QuotaGate:
    """Decide whether a requester may transcribe, and record usage afterwards.

    Visitors are limited to ``limit`` uploads; accounts are unlimited but
    their uploads are still counted for display.
    """

    def __init__(self, client: Client, limit: int | None = None) -> None:
        self._client = client
        self.limit = settings.free_upload_limit if limit is None else limit

    def _used(self, identity: Identity) -> int:
        if isinstance(identity, Account):
            return storage.get_user_upload_count(self._client, identity.id)
        return storage.get_visitor_upload_count(self._client, identity.id)

    def check_allowed(self, identity: Identity) -> QuotaStatus:
        used = self._used(identity)
        if isinstance(identity, Account):
            return QuotaStatus(allowed=True, used=used, remaining=None, unlimited=True)
        return QuotaStatus(
            allowed=used < self.limit,
            used=used,
            remaining=max(0, self.limit - used),
        )

    def ensure_allowed(self, identity: Identity) -> QuotaStatus:
        """Like :meth:`check_allowed` but raises when the visitor is out of uploads."""
        status = self.check_allowed(identity)
        if not status.allowed:
            logger.info("Upload limit reached for visitor %s (%d used)", identity.id, status.used)
            raise QuotaExceededError(used=status.used, limit=self.limit)
        return status

    def record_usage(self, identity: Identity) -> int:
        """Increment the requester's upload count and return the new value."""
        if isinstance(identity, Visitor):
            return storage.increment_visitor_uploads(self._client, identity.id)
        return storage.increment_user_uploads(self._client, identity.id)

    def remaining_after(self, used: int) -> int:
        return max(0, self.limit - used)


def get_quota_gate() -> QuotaGate:
    return QuotaGate(storage.get_supabase_client())
