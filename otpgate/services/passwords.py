from __future__ import annotations

import asyncio

import bcrypt

# bcrypt only reads this many bytes of the password
BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    # same cut for hash and compare, so long passwords still round-trip
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """bcrypt hash/compare, run off the event loop."""

    def __init__(self, rounds: int = 10) -> None:
        self._rounds = rounds

    def _hash_sync(self, password: str) -> str:
        return bcrypt.hashpw(_secret(password), bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    @staticmethod
    def _compare_sync(password: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(_secret(password), hashed.encode("utf-8"))
        except ValueError:
            # malformed stored hash
            return False

    async def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password cannot be empty")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._hash_sync, password)

    async def compare(self, password: str, hashed: str) -> bool:
        if not password or not hashed:
            return False
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._compare_sync, password, hashed)
