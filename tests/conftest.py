import pytest
from fastapi.testclient import TestClient

from otpgate.config import Settings
from otpgate.main import create_app
from otpgate.otp.ledger import InMemoryOtpLedger
from otpgate.services.login import LoginOrchestrator
from otpgate.services.passwords import PasswordHasher
from otpgate.services.verification import VerificationHandler
from tests.fakes import FakeClock, InMemoryCredentialStore, RecordingNotifier

ALLOWED_ORIGIN = "http://localhost:5173"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return InMemoryOtpLedger(clock=clock)


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def hasher():
    # minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def orchestrator(store, hasher, ledger, notifier):
    return LoginOrchestrator(store=store, hasher=hasher, ledger=ledger, notifier=notifier, ttl=300)


@pytest.fixture
def verifier(ledger):
    return VerificationHandler(ledger=ledger)


@pytest.fixture
def settings():
    return Settings(
        ENV="test",
        DATABASE_URL="sqlite+aiosqlite://",
        OTP_SWEEP_INTERVAL_SEC=0,
        ALLOWED_ORIGINS=[ALLOWED_ORIGIN],
        NOTIFIER="console",
        EXPOSE_ERROR_DETAILS=False,
    )


@pytest.fixture
def client(settings, store, ledger, notifier, hasher):
    app = create_app(settings, store=store, ledger=ledger, notifier=notifier, hasher=hasher)
    with TestClient(app) as c:
        yield c
