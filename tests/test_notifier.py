import smtplib
import logging

import pytest

from otpgate.config import Settings
from otpgate.errors.exceptions import NotificationFailed
from otpgate.services import notifier as notifier_module
from otpgate.services.notifier import ConsoleNotifier, SmtpNotifier, build_notifier

pytestmark = pytest.mark.asyncio


class _FakeSMTP:
    instances = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.calls = []
        self.messages = []
        _FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        self.calls.append("ehlo")

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, msg):
        if _FakeSMTP.fail_with is not None:
            raise _FakeSMTP.fail_with
        self.messages.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch):
    _FakeSMTP.instances = []
    _FakeSMTP.fail_with = None
    monkeypatch.setattr(notifier_module.smtplib, "SMTP", _FakeSMTP)
    return _FakeSMTP


def _smtp_settings(**kw):
    base = dict(NOTIFIER="smtp", SMTP_HOST="mail.x.com", SMTP_PORT=2525, SMTP_USER="bot@x.com", SMTP_PASS="pw")
    base.update(kw)
    return Settings(**base)


async def test_smtp_send_builds_plain_text_message(fake_smtp):
    n = SmtpNotifier.from_settings(_smtp_settings())

    await n.send("a@x.com", "Your OTP for Login", "Your OTP is: 123456")

    conn = fake_smtp.instances[0]
    assert (conn.host, conn.port) == ("mail.x.com", 2525)
    assert conn.calls == ["ehlo", "starttls", "ehlo", ("login", "bot@x.com", "pw")]
    msg = conn.messages[0]
    assert msg["To"] == "a@x.com"
    assert msg["From"] == "bot@x.com"
    assert msg["Subject"] == "Your OTP for Login"
    assert "Your OTP is: 123456" in msg.get_content()


async def test_smtp_failure_raises_notification_failed(fake_smtp):
    fake_smtp.fail_with = smtplib.SMTPRecipientsRefused({"a@x.com": (550, b"no such user")})
    n = SmtpNotifier.from_settings(_smtp_settings())

    with pytest.raises(NotificationFailed) as ei:
        await n.send("a@x.com", "s", "b")
    assert isinstance(ei.value.cause, smtplib.SMTPException)


async def test_connection_error_raises_notification_failed(fake_smtp):
    fake_smtp.fail_with = ConnectionRefusedError("refused")
    n = SmtpNotifier.from_settings(_smtp_settings(SMTP_STARTTLS=False))

    with pytest.raises(NotificationFailed):
        await n.send("a@x.com", "s", "b")
    assert "starttls" not in fake_smtp.instances[0].calls


async def test_build_notifier_picks_backend():
    assert isinstance(build_notifier(Settings(ENV="dev", NOTIFIER="console")), ConsoleNotifier)
    assert isinstance(build_notifier(_smtp_settings(EMAIL_FROM="noreply@x.com")), SmtpNotifier)
    with pytest.raises(RuntimeError):
        build_notifier(Settings(NOTIFIER="smtp", SMTP_USER=None, EMAIL_FROM=None))


async def test_console_notifier_refused_in_prod():
    with pytest.raises(RuntimeError):
        build_notifier(Settings(ENV="prod", NOTIFIER="console"))


async def test_console_notifier_keeps_code_out_of_info_logs(caplog):
    caplog.set_level(logging.INFO, logger=notifier_module.logger.name)

    await ConsoleNotifier().send("a@x.com", "Your OTP for Login", "Your OTP is: 123456")
    assert "123456" not in caplog.text

    caplog.set_level(logging.DEBUG, logger=notifier_module.logger.name)
    await ConsoleNotifier().send("a@x.com", "Your OTP for Login", "Your OTP is: 654321")
    assert "654321" in caplog.text
