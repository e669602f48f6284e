"""Pending one-time passcodes, keyed by identity (email).

At most one entry exists per identity; ``put`` overwrites. ``take`` only looks,
the caller removes after deciding the claimed code matched, so a wrong guess
does not burn the pending code. Expired entries are never returned.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from redis import asyncio as aioredis

log = logging.getLogger("otpgate.ledger")

Clock = Callable[[], float]


@dataclass(frozen=True)
class OtpEntry:
    code: int
    expires_at: float  # unix seconds

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class OtpLedger(Protocol):
    async def put(self, identity: str, code: int, ttl: int) -> None:
        """Insert or overwrite the pending code for identity, valid for ttl seconds."""

    async def take(self, identity: str) -> Optional[OtpEntry]:
        """Return the live entry for identity, or None. Never removes a live entry."""

    async def remove(self, identity: str, expected: Optional[OtpEntry] = None) -> bool:
        """Delete the entry. With ``expected``, only if the stored entry is still that one."""

    async def purge_expired(self) -> int:
        """Drop expired entries; returns how many were dropped."""


class InMemoryOtpLedger:
    """Process-local ledger. Owned by one application instance."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._entries: dict[str, OtpEntry] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: str) -> bool:
        return identity in self._entries

    async def put(self, identity: str, code: int, ttl: int) -> None:
        self._entries[identity] = OtpEntry(code=code, expires_at=self._clock() + ttl)

    async def take(self, identity: str) -> Optional[OtpEntry]:
        entry = self._entries.get(identity)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[identity]
            return None
        return entry

    async def remove(self, identity: str, expected: Optional[OtpEntry] = None) -> bool:
        current = self._entries.get(identity)
        if current is None:
            return False
        if expected is not None and current is not expected:
            return False
        del self._entries[identity]
        return True

    async def purge_expired(self) -> int:
        now = self._clock()
        stale = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    async def close(self) -> None:
        self._entries.clear()


# compare-and-delete: only drop the key if it still holds the value we verified
_CAS_DELETE = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisOtpLedger:
    """Ledger shared by every worker process; Redis expires the keys itself."""

    def __init__(self, redis: aioredis.Redis, *, prefix: str = "otp:", clock: Clock = time.time) -> None:
        self._redis = redis
        self._prefix = prefix
        self._clock = clock
        self._cas_delete = redis.register_script(_CAS_DELETE)

    def _key(self, identity: str) -> str:
        return f"{self._prefix}{identity}"

    @staticmethod
    def _dump(entry: OtpEntry) -> str:
        return json.dumps({"code": entry.code, "expires_at": entry.expires_at}, separators=(",", ":"))

    @staticmethod
    def _load(raw: str) -> OtpEntry:
        data = json.loads(raw)
        return OtpEntry(code=int(data["code"]), expires_at=float(data["expires_at"]))

    async def put(self, identity: str, code: int, ttl: int) -> None:
        entry = OtpEntry(code=code, expires_at=self._clock() + ttl)
        # set new code with TTL; overwrite any previous
        await self._redis.set(self._key(identity), self._dump(entry), ex=ttl)

    async def take(self, identity: str) -> Optional[OtpEntry]:
        raw = await self._redis.get(self._key(identity))
        if not raw:
            return None
        try:
            entry = self._load(raw)
        except (ValueError, KeyError, TypeError):
            log.warning("dropping unreadable ledger value", extra={"extra": f"key={self._key(identity)}"})
            await self._redis.delete(self._key(identity))
            return None
        if entry.is_expired(self._clock()):
            return None
        return entry

    async def remove(self, identity: str, expected: Optional[OtpEntry] = None) -> bool:
        key = self._key(identity)
        if expected is None:
            return bool(await self._redis.delete(key))
        return bool(await self._cas_delete(keys=[key], args=[self._dump(expected)]))

    async def purge_expired(self) -> int:
        return 0

    async def close(self) -> None:
        await self._redis.aclose()
