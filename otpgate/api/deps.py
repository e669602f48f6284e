from __future__ import annotations
from dataclasses import dataclass
from fastapi import Request

from ..otp.ledger import OtpLedger
from ..services.credentials import CredentialStore
from ..services.login import LoginOrchestrator
from ..services.notifier import Notifier
from ..services.passwords import PasswordHasher
from ..services.verification import VerificationHandler


@dataclass
class AuthServices:
    store: CredentialStore
    hasher: PasswordHasher
    ledger: OtpLedger
    notifier: Notifier
    login: LoginOrchestrator
    verification: VerificationHandler

    @classmethod
    def wire(cls, *, store, hasher, ledger, notifier, ttl: int) -> "AuthServices":
        return cls(
            store=store,
            hasher=hasher,
            ledger=ledger,
            notifier=notifier,
            login=LoginOrchestrator(store=store, hasher=hasher, ledger=ledger, notifier=notifier, ttl=ttl),
            verification=VerificationHandler(ledger=ledger),
        )


def get_services(request: Request) -> AuthServices:
    return request.app.state.services
