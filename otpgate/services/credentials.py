"""Credential store: durable {identity, password hash} records."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors.exceptions import EmailAlreadyRegistered, StoreUnavailable
from ..repos import accounts as accounts_repo


@dataclass(frozen=True)
class AccountRecord:
    name: str
    email: str
    password_hash: str


class CredentialStore(Protocol):
    async def find_by_identity(self, identity: str) -> Optional[AccountRecord]: ...

    async def create(self, *, name: str, identity: str, password_hash: str) -> AccountRecord:
        """Persist a new account; raises EmailAlreadyRegistered on a duplicate identity."""


class SqlCredentialStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def find_by_identity(self, identity: str) -> Optional[AccountRecord]:
        try:
            async with self._sessionmaker() as db:
                account = await accounts_repo.get_by_email(db, identity)
        except SQLAlchemyError as e:
            raise StoreUnavailable(cause=e) from e
        if account is None:
            return None
        return AccountRecord(name=account.name, email=account.email, password_hash=account.password_hash)

    async def create(self, *, name: str, identity: str, password_hash: str) -> AccountRecord:
        try:
            async with self._sessionmaker() as db:
                await accounts_repo.create(db, name=name, email=identity, password_hash=password_hash)
                await db.commit()
        except IntegrityError as e:
            # lost a race with a concurrent registration of the same email
            raise EmailAlreadyRegistered(cause=e) from e
        except SQLAlchemyError as e:
            raise StoreUnavailable(cause=e) from e
        return AccountRecord(name=name, email=identity, password_hash=password_hash)
