from __future__ import annotations
import asyncio
import logging

from ..observability.metrics import OTP_PURGED
from ..otp.ledger import OtpLedger

log = logging.getLogger("worker.otp_sweeper")


async def run_once(ledger: OtpLedger) -> int:
    purged = await ledger.purge_expired()
    if purged:
        OTP_PURGED.inc(purged)
        log.info(f"purged {purged} expired OTPs")
    return purged


async def run_forever(ledger: OtpLedger, interval_sec: int):
    while True:
        await asyncio.sleep(interval_sec)
        try:
            await run_once(ledger)
        except Exception as e:
            log.exception("otp_sweeper error: %s", e)
