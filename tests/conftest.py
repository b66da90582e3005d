from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from shopshap.main import app
from shopshap.services.otp_store import OtpStore
from shopshap.services.rate_limiter import RateLimiter
from shopshap.services.twilio_service import DeliveryReceipt
from shopshap.services.verification_service import VerificationService, get_verification_service

SENEGAL_NUMBER = "+221701234567"


class FakeClock:
    """Deterministic clock; advance() moves time forward."""

    def __init__(self, start=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeGateway:
    """Records messages instead of calling Twilio; raises `error` when set."""

    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def is_configured(self):
        return True

    async def send_message(self, to_phone, body):
        self.sent.append((to_phone, body))
        if self.error is not None:
            raise self.error
        return DeliveryReceipt(success=True, message_sid=f"SM{len(self.sent):032d}", status="queued")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def service(clock, gateway):
    return VerificationService(
        rate_limiter=RateLimiter(clock=clock),
        otp_store=OtpStore(clock=clock),
        gateway=gateway,
        clock=clock,
    )


@pytest.fixture
def client(service):
    app.dependency_overrides[get_verification_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
