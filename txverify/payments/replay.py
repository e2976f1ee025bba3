"""At-most-once use of payment references.

``claim`` is the only authoritative check: it atomically records the
reference and reports whether this caller was first. ``is_used`` is an
advisory read used to skip chain lookups for references that are
obviously spent.
"""

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable

from postgrest.exceptions import APIError
from supabase import Client

logger = logging.getLogger(__name__)

USED_TRANSACTIONS_TABLE = "used_transactions"

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


@runtime_checkable
class ReplayGuard(Protocol):
    """Persistence contract for spent payment references."""

    async def is_used(self, reference: str) -> bool:
        ...

    async def claim(self, reference: str, blockchain: Optional[str] = None) -> bool:
        """Mark the reference used; False if someone already had."""
        ...

    async def release(self, reference: str) -> None:
        """Forget a claim whose downstream work did not complete.

        Called through ``PaymentService.release`` when paid work fails after
        a successful redemption.
        """
        ...


class InMemoryReplayGuard:
    """Process-local replay guard (single instance deployments and tests)."""

    def __init__(self):
        self._used: set[str] = set()
        self._lock = threading.Lock()

    async def is_used(self, reference: str) -> bool:
        with self._lock:
            return reference in self._used

    async def claim(self, reference: str, blockchain: Optional[str] = None) -> bool:
        with self._lock:
            if reference in self._used:
                return False
            self._used.add(reference)
        return True

    async def release(self, reference: str) -> None:
        with self._lock:
            self._used.discard(reference)

    def __len__(self) -> int:
        with self._lock:
            return len(self._used)


class SupabaseReplayGuard:
    """Replay guard backed by a table with a UNIQUE transaction_hash column.

    The insert itself is the check-and-set; a unique violation means the
    reference was already spent.
    """

    def __init__(self, db: Client, table: str = USED_TRANSACTIONS_TABLE):
        self.db = db
        self.table = table

    async def is_used(self, reference: str) -> bool:
        def _query():
            return (
                self.db.table(self.table)
                .select("transaction_hash")
                .eq("transaction_hash", reference)
                .limit(1)
                .execute()
            )

        result = await asyncio.to_thread(_query)
        return bool(result.data)

    async def claim(self, reference: str, blockchain: Optional[str] = None) -> bool:
        data = {
            "transaction_hash": reference,
            "blockchain": blockchain,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        def _insert():
            return self.db.table(self.table).insert(data).execute()

        try:
            result = await asyncio.to_thread(_insert)
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.warning("Transaction %s already used", reference)
                return False
            raise

        if not result.data:
            raise RuntimeError(f"Failed to record transaction {reference}")

        logger.info("Recorded transaction %s (%s)", reference, blockchain)
        return True

    async def release(self, reference: str) -> None:
        def _delete():
            return (
                self.db.table(self.table)
                .delete()
                .eq("transaction_hash", reference)
                .execute()
            )

        await asyncio.to_thread(_delete)
        logger.info("Released transaction %s", reference)
