import itertools

import pytest

from otpgate.errors.exceptions import (
    AccountNotFound,
    AuthError,
    DependencyError,
    InvalidCredentials,
    NotFoundError,
    NotificationFailed,
)
from otpgate.services import login as login_service
from otpgate.services.login import OTP_MAX, OTP_MIN, generate_code
from otpgate.services.registration import register_account

pytestmark = pytest.mark.asyncio


async def _register(store, hasher, email="a@x.com", password="pw1"):
    await register_account(store, hasher, name="Al", identity=email, password=password)


async def test_unknown_account(orchestrator, ledger, notifier):
    with pytest.raises(AccountNotFound) as ei:
        await orchestrator.login("nobody@x.com", "pw1")
    assert isinstance(ei.value, NotFoundError)
    assert len(ledger) == 0
    assert notifier.sent == []


async def test_wrong_password_creates_no_entry(orchestrator, store, hasher, ledger, notifier):
    await _register(store, hasher)

    with pytest.raises(InvalidCredentials) as ei:
        await orchestrator.login("a@x.com", "wrong")
    assert isinstance(ei.value, AuthError)
    assert "a@x.com" not in ledger
    assert notifier.sent == []


async def test_success_stores_and_mails_one_code(orchestrator, store, hasher, ledger, notifier, clock):
    await _register(store, hasher)

    code = await orchestrator.login("a@x.com", "pw1")

    assert OTP_MIN <= code <= OTP_MAX
    entry = await ledger.take("a@x.com")
    assert entry.code == code
    assert entry.expires_at == clock.now + 300
    assert len(notifier.sent) == 1
    to, subject, _ = notifier.sent[0]
    assert to == "a@x.com"
    assert subject == "Your OTP for Login"
    assert notifier.last_code("a@x.com") == code


async def test_second_login_overwrites_pending_code(orchestrator, store, hasher, ledger, notifier, monkeypatch):
    await _register(store, hasher)
    codes = itertools.cycle([111111, 222222])
    monkeypatch.setattr(login_service, "generate_code", lambda: next(codes))

    await orchestrator.login("a@x.com", "pw1")
    await orchestrator.login("a@x.com", "pw1")

    assert len(ledger) == 1
    assert (await ledger.take("a@x.com")).code == 222222
    assert notifier.last_code("a@x.com") == 222222
    assert len(notifier.sent) == 2


async def test_notification_failure_keeps_code_stored(orchestrator, store, hasher, ledger, notifier, verifier, monkeypatch):
    await _register(store, hasher)
    monkeypatch.setattr(login_service, "generate_code", lambda: 424242)
    notifier.fail = True

    with pytest.raises(NotificationFailed) as ei:
        await orchestrator.login("a@x.com", "pw1")
    assert isinstance(ei.value, DependencyError)

    assert (await ledger.take("a@x.com")).code == 424242
    await verifier.verify("a@x.com", "424242")
    assert "a@x.com" not in ledger


async def test_generate_code_is_six_digits():
    for _ in range(2000):
        code = generate_code()
        assert OTP_MIN <= code <= OTP_MAX
        assert len(str(code)) == 6


async def test_generate_code_hits_both_bounds(monkeypatch):
    monkeypatch.setattr(login_service.secrets, "randbelow", lambda n: 0)
    assert generate_code() == 100000
    monkeypatch.setattr(login_service.secrets, "randbelow", lambda n: n - 1)
    assert generate_code() == 999999
