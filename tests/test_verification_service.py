import asyncio

import httpx
import pytest

from shopshap.core.exceptions import DeliveryError, DeliveryFailure
from shopshap.services.otp_store import OtpStore
from shopshap.services.rate_limiter import RateLimiter
from shopshap.services.twilio_service import TwilioService
from shopshap.services.verification_service import VerificationService
from utils.validation_utils import SUPPORTED_COUNTRIES

from conftest import SENEGAL_NUMBER, FakeGateway


def run(coro):
    return asyncio.run(coro)


def issued_code(service, phone=SENEGAL_NUMBER):
    return service.otp_store.get(phone).code


def wrong_code(service, phone=SENEGAL_NUMBER):
    return "111111" if issued_code(service, phone) != "111111" else "222222"


def test_send_code_delivers_composed_message(service, gateway):
    result = run(service.send_code("+221 70 123 45 67"))

    assert result.success
    assert result.message == "Code envoyé sur WhatsApp 🇸🇳 Sénégal"
    assert result.sid == "SM" + "0" * 31 + "1"
    assert result.country == "Sénégal"
    assert result.formatted_number == SENEGAL_NUMBER

    to_phone, body = gateway.sent[0]
    assert to_phone == SENEGAL_NUMBER
    assert f"*{issued_code(service)}*" in body
    assert "📍 Connexion depuis: Sénégal" in body


def test_wrong_wrong_then_right(service, clock):
    run(service.send_code(SENEGAL_NUMBER))
    wrong = wrong_code(service)

    first = run(service.verify_code(SENEGAL_NUMBER, wrong))
    assert not first.success
    assert first.reason == "INCORRECT_CODE"
    assert first.remaining_attempts == 2
    assert first.message == "Code incorrect. 2 tentative(s) restante(s)."

    second = run(service.verify_code(SENEGAL_NUMBER, wrong))
    assert second.message == "Code incorrect. 1 tentative(s) restante(s)."

    clock.advance(minutes=2)
    result = run(service.verify_code("221701234567", issued_code(service)))
    assert result.success
    assert result.message == "Code vérifié avec succès"
    assert result.user_data.phone == SENEGAL_NUMBER
    assert result.user_data.country == "SN"
    assert result.user_data.verified_at == clock.now


def test_three_wrong_codes_exhaust_the_code(service):
    run(service.send_code(SENEGAL_NUMBER))
    code = issued_code(service)
    wrong = wrong_code(service)

    run(service.verify_code(SENEGAL_NUMBER, wrong))
    run(service.verify_code(SENEGAL_NUMBER, wrong))
    third = run(service.verify_code(SENEGAL_NUMBER, wrong))

    assert third.reason == "TOO_MANY_ATTEMPTS"
    assert third.remaining_attempts == 0
    assert third.message == "Code incorrect. Trop de tentatives. Demandez un nouveau code."

    after = run(service.verify_code(SENEGAL_NUMBER, code))
    assert after.reason == "CODE_NOT_FOUND"
    assert after.message == "Aucun code trouvé. Demandez un nouveau code."


def test_verify_without_a_code_sent(service):
    result = run(service.verify_code(SENEGAL_NUMBER, "123456"))

    assert not result.success
    assert result.reason == "CODE_NOT_FOUND"
    assert result.remaining_attempts is None


def test_expired_code(service, clock):
    run(service.send_code(SENEGAL_NUMBER))
    code = issued_code(service)

    clock.advance(minutes=11)
    result = run(service.verify_code(SENEGAL_NUMBER, code))

    assert result.reason == "CODE_EXPIRED"
    assert result.message == "Code expiré. Demandez un nouveau code."
    assert service.otp_store.get(SENEGAL_NUMBER) is None


def test_fourth_send_is_rate_limited_and_keeps_the_code(service, gateway, clock):
    for _ in range(3):
        assert run(service.send_code(SENEGAL_NUMBER)).success
        clock.advance(minutes=1)
    code = issued_code(service)

    blocked = run(service.send_code(SENEGAL_NUMBER))

    assert not blocked.success
    assert blocked.reason == "RATE_LIMITED"
    assert blocked.message == "Trop de tentatives. Réessayez dans 12 minute(s)."
    assert len(gateway.sent) == 3
    assert issued_code(service) == code
    assert service.rate_limiter.get(SENEGAL_NUMBER).count == 3


def test_rate_limit_is_shared_across_number_spellings(service):
    run(service.send_code("+221701234567"))
    run(service.send_code("221 70 123 45 67"))
    run(service.send_code("+221-70-123-45-67"))

    assert run(service.send_code("(221) 701234567")).reason == "RATE_LIMITED"


def test_sending_again_invalidates_the_previous_code(service, clock):
    codes = iter(["123456", "654321"])
    service.otp_store = OtpStore(clock=clock, code_factory=lambda: next(codes))

    run(service.send_code(SENEGAL_NUMBER))
    run(service.send_code(SENEGAL_NUMBER))

    assert run(service.verify_code(SENEGAL_NUMBER, "123456")).reason == "INCORRECT_CODE"
    assert run(service.verify_code(SENEGAL_NUMBER, "654321")).success


@pytest.mark.parametrize("reason,message", [
    (DeliveryFailure.INVALID_NUMBER, "Numéro de téléphone invalide"),
    (DeliveryFailure.CHANNEL_UNSUPPORTED, "Ce numéro ne peut pas recevoir de messages WhatsApp"),
    (DeliveryFailure.PERMISSION_DENIED, "Permission refusée pour ce numéro"),
    (DeliveryFailure.GENERIC, "Erreur lors de l'envoi. Veuillez réessayer."),
])
def test_delivery_failures_are_localized(service, gateway, reason, message):
    gateway.error = DeliveryError(reason, "Twilio API error: 400")

    result = run(service.send_code(SENEGAL_NUMBER))

    assert not result.success
    assert result.reason == reason.value
    assert result.message == message
    assert result.sid is None


def test_code_issued_before_a_delivery_failure_stays_valid(service, gateway):
    gateway.error = DeliveryError(DeliveryFailure.GENERIC)
    run(service.send_code(SENEGAL_NUMBER))

    assert run(service.verify_code(SENEGAL_NUMBER, issued_code(service))).success


def test_unconfigured_gateway(clock):
    service = VerificationService(
        rate_limiter=RateLimiter(clock=clock),
        otp_store=OtpStore(clock=clock),
        gateway=TwilioService(account_sid=None, auth_token=None),
        clock=clock,
    )

    result = run(service.send_code(SENEGAL_NUMBER))

    assert not result.success
    assert result.reason == "GATEWAY_UNCONFIGURED"
    assert result.message == "Service indisponible. Veuillez réessayer plus tard."


def test_unsupported_number_touches_no_state(service, gateway):
    result = run(service.send_code("+33612345678"))

    assert not result.success
    assert result.reason == "VALIDATION_ERROR"
    assert result.message.startswith("Numéro non supporté. Pays supportés: ")
    assert gateway.sent == []
    assert service.rate_limiter.snapshot() == []
    assert service.otp_store.snapshot() == []


def test_verify_with_unsupported_number(service):
    result = run(service.verify_code("+33612345678", "123456"))

    assert result.reason == "VALIDATION_ERROR"
    assert result.message == "Numéro de téléphone invalide"


@pytest.mark.parametrize("code", ["12345", "1234567", "12a456", "١٢٣٤٥٦"])
def test_malformed_code_does_not_consume_an_attempt(service, code):
    run(service.send_code(SENEGAL_NUMBER))

    result = run(service.verify_code(SENEGAL_NUMBER, code))

    assert result.reason == "VALIDATION_ERROR"
    assert result.message == "Le code doit contenir 6 chiffres"
    assert service.otp_store.get(SENEGAL_NUMBER).attempts == 0


def test_local_and_international_forms_reach_the_same_code(clock):
    senegal_only = tuple(c for c in SUPPORTED_COUNTRIES if c.code == "SN")
    service = VerificationService(
        rate_limiter=RateLimiter(clock=clock),
        otp_store=OtpStore(clock=clock),
        gateway=FakeGateway(),
        countries=senegal_only,
        clock=clock,
    )

    sent = run(service.send_code("0701234567"))
    assert sent.formatted_number == SENEGAL_NUMBER

    result = run(service.verify_code("+221 70 123 45 67", issued_code(service)))
    assert result.success


def test_purge_expired_and_debug_snapshot(service, clock):
    run(service.send_code(SENEGAL_NUMBER))

    snapshot = service.debug_snapshot()
    assert [c["phone"] for c in snapshot["active_codes"]] == [SENEGAL_NUMBER]
    assert [r["count"] for r in snapshot["rate_limits"]] == [1]

    clock.advance(minutes=11)
    assert service.purge_expired() == {"codes": 1, "rate_limits": 0}

    clock.advance(minutes=5)
    assert service.purge_expired() == {"codes": 0, "rate_limits": 1}
    assert service.debug_snapshot() == {"active_codes": [], "rate_limits": []}


def test_unreadable_twilio_reply_is_a_delivery_failure(clock):
    gateway = TwilioService(
        account_sid="AC00000000000000000000000000000000",
        auth_token="secret",
        transport=httpx.MockTransport(lambda r: httpx.Response(201, text="<html>oops</html>")),
    )
    service = VerificationService(
        rate_limiter=RateLimiter(clock=clock),
        otp_store=OtpStore(clock=clock),
        gateway=gateway,
        clock=clock,
    )

    result = run(service.send_code(SENEGAL_NUMBER))

    assert not result.success
    assert result.reason == "DELIVERY_FAILED"
    assert result.message == "Erreur lors de l'envoi. Veuillez réessayer."
