"""Password check, then a fresh OTP mailed to the account's address."""
from __future__ import annotations

import logging
import secrets

from ..errors.exceptions import AccountNotFound, InvalidCredentials, NotificationFailed
from ..observability.metrics import OTP_ISSUED, OTP_NOTIFY_FAILED
from ..otp.ledger import OtpLedger
from .credentials import CredentialStore
from .notifier import Notifier
from .passwords import PasswordHasher

log = logging.getLogger("otpgate.login")

OTP_MIN = 100000
OTP_MAX = 999999
OTP_TTL_SECONDS = 5 * 60

OTP_SUBJECT = "Your OTP for Login"


def generate_code() -> int:
    """Uniform over [OTP_MIN, OTP_MAX], from the OS CSPRNG."""
    return OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1)


def otp_body(code: int, ttl: int) -> str:
    return f"Your OTP is: {code}\n\nIt expires in {max(ttl // 60, 1)} minutes."


class LoginOrchestrator:
    def __init__(
        self,
        *,
        store: CredentialStore,
        hasher: PasswordHasher,
        ledger: OtpLedger,
        notifier: Notifier,
        ttl: int = OTP_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._ledger = ledger
        self._notifier = notifier
        self._ttl = ttl

    async def login(self, identity: str, password: str) -> int:
        """Returns the issued code. Raises AccountNotFound, InvalidCredentials, NotificationFailed."""
        account = await self._store.find_by_identity(identity)
        if account is None:
            raise AccountNotFound()

        if not await self._hasher.compare(password, account.password_hash):
            log.info("login rejected", extra={"extra": f"email={identity} reason=password"})
            raise InvalidCredentials()

        code = generate_code()
        await self._ledger.put(identity, code, self._ttl)
        OTP_ISSUED.inc()

        # the stored code stays valid even if the mail does not go out
        try:
            await self._notifier.send(account.email, OTP_SUBJECT, otp_body(code, self._ttl))
        except NotificationFailed:
            OTP_NOTIFY_FAILED.inc()
            log.warning("OTP mail failed", extra={"extra": f"email={identity}"})
            raise

        log.info("OTP sent", extra={"extra": f"email={identity} ttl_sec={self._ttl}"})
        return code
