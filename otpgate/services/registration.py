from __future__ import annotations

import logging

from ..errors.exceptions import EmailAlreadyRegistered
from .credentials import AccountRecord, CredentialStore
from .passwords import PasswordHasher

log = logging.getLogger("otpgate.register")


async def register_account(
    store: CredentialStore,
    hasher: PasswordHasher,
    *,
    name: str,
    identity: str,
    password: str,
) -> AccountRecord:
    if await store.find_by_identity(identity) is not None:
        raise EmailAlreadyRegistered()

    password_hash = await hasher.hash(password)
    account = await store.create(name=name, identity=identity, password_hash=password_hash)
    log.info("account registered", extra={"extra": f"email={identity}"})
    return account
