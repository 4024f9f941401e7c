from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple


class ProfessionalLocks:
    """Serialize check-and-persist sequences per professional.

    Only one booking for a given ``(venue_id, professional_id)`` may be between
    its conflict check and its write at any time. Bookings for different
    professionals proceed concurrently. The registry lives in process memory,
    so running several worker processes against one database still requires
    an exclusion constraint in the storage layer. Locks are never pruned: the
    registry holds one entry per professional that has taken a booking since
    startup.
    """

    def __init__(self) -> None:
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    def _lock_for(self, venue_id: str, professional_id: str) -> asyncio.Lock:
        key = (venue_id, professional_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, venue_id: str, professional_id: str) -> AsyncIterator[None]:
        async with self._lock_for(venue_id, professional_id):
            yield
