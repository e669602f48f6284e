from __future__ import annotations

import logging
from typing import Union

from ..errors.exceptions import InvalidOtp, OtpNotFound
from ..observability.metrics import OTP_VERIFIED
from ..otp.ledger import OtpLedger

log = logging.getLogger("otpgate.verify")


def parse_code(claimed: Union[str, int]) -> int | None:
    if isinstance(claimed, bool):
        return None
    if isinstance(claimed, int):
        return claimed
    try:
        return int(str(claimed).strip())
    except ValueError:
        return None


class VerificationHandler:
    def __init__(self, *, ledger: OtpLedger) -> None:
        self._ledger = ledger

    async def verify(self, identity: str, claimed: Union[str, int]) -> None:
        """Consume the pending OTP for identity. Raises OtpNotFound or InvalidOtp."""
        entry = await self._ledger.take(identity)
        if entry is None:
            OTP_VERIFIED.labels(result="not_found").inc()
            raise OtpNotFound()

        if parse_code(claimed) != entry.code:
            # entry stays; the user may retry until it expires
            OTP_VERIFIED.labels(result="mismatch").inc()
            log.info("OTP mismatch", extra={"extra": f"email={identity}"})
            raise InvalidOtp()

        if not await self._ledger.remove(identity, expected=entry):
            # replaced by a newer login (or consumed concurrently) while we compared
            OTP_VERIFIED.labels(result="superseded").inc()
            raise OtpNotFound()

        OTP_VERIFIED.labels(result="ok").inc()
        log.info("OTP verified", extra={"extra": f"email={identity}"})
