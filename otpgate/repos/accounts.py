from __future__ import annotations
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..models import Account


async def get_by_email(db: AsyncSession, email: str) -> Optional[Account]:
    res = await db.execute(select(Account).where(Account.email == email))
    return res.scalar_one_or_none()


async def create(db: AsyncSession, *, name: str, email: str, password_hash: str) -> Account:
    account = Account(name=name, email=email, password_hash=password_hash)
    db.add(account)
    await db.flush()
    return account
