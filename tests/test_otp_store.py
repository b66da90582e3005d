from datetime import timedelta

from shopshap.services.otp_store import OtpStore, VerifyStatus, generate_verification_code

PHONE = "+221701234567"


def wrong(code):
    return "111111" if code != "111111" else "222222"


def test_generated_codes_have_six_digits():
    for _ in range(1000):
        code = generate_verification_code()
        assert len(code) == 6
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_create_code_stores_a_fresh_record(clock):
    store = OtpStore(clock=clock)
    code = store.create_code(PHONE)

    record = store.get(PHONE)
    assert record.code == code
    assert record.attempts == 0
    assert record.created_at == clock.now
    assert record.expires_at == clock.now + timedelta(minutes=10)


def test_correct_code_succeeds_exactly_once(clock):
    store = OtpStore(clock=clock)
    code = store.create_code(PHONE)

    outcome = store.verify(PHONE, code)
    assert outcome.success
    assert outcome.verified_at == clock.now

    assert store.verify(PHONE, code).status is VerifyStatus.NOT_FOUND


def test_unknown_number_is_not_found(clock):
    assert OtpStore(clock=clock).verify(PHONE, "123456").status is VerifyStatus.NOT_FOUND


def test_new_code_invalidates_the_previous_one(clock):
    codes = iter(["123456", "654321"])
    store = OtpStore(clock=clock, code_factory=lambda: next(codes))

    store.create_code(PHONE)
    store.create_code(PHONE)

    assert store.verify(PHONE, "123456").status is VerifyStatus.INCORRECT
    assert store.verify(PHONE, "654321").success


def test_incorrect_codes_report_remaining_attempts(clock):
    store = OtpStore(clock=clock)
    code = store.create_code(PHONE)

    first = store.verify(PHONE, wrong(code))
    second = store.verify(PHONE, wrong(code))

    assert (first.status, first.remaining_attempts) == (VerifyStatus.INCORRECT, 2)
    assert (second.status, second.remaining_attempts) == (VerifyStatus.INCORRECT, 1)
    assert store.verify(PHONE, code).success


def test_third_wrong_code_discards_the_record(clock):
    store = OtpStore(clock=clock)
    code = store.create_code(PHONE)

    store.verify(PHONE, wrong(code))
    store.verify(PHONE, wrong(code))
    third = store.verify(PHONE, wrong(code))

    assert third.status is VerifyStatus.TOO_MANY_ATTEMPTS
    assert store.get(PHONE) is None
    assert store.verify(PHONE, code).status is VerifyStatus.NOT_FOUND


def test_code_is_valid_until_expiry_inclusive(clock):
    store = OtpStore(clock=clock)
    code = store.create_code(PHONE)

    clock.advance(minutes=10)
    assert store.verify(PHONE, code).success


def test_expired_code_is_deleted_on_verify(clock):
    store = OtpStore(clock=clock)
    code = store.create_code(PHONE)

    clock.advance(minutes=10, seconds=1)
    assert store.get(PHONE) is not None  # lingers until queried

    assert store.verify(PHONE, code).status is VerifyStatus.EXPIRED
    assert store.get(PHONE) is None
    assert store.verify(PHONE, code).status is VerifyStatus.NOT_FOUND


def test_submitted_code_is_trimmed(clock):
    store = OtpStore(clock=clock)
    code = store.create_code(PHONE)

    assert store.verify(PHONE, f"  {code}\n").success


def test_non_ascii_submission_counts_as_incorrect(clock):
    store = OtpStore(clock=clock, code_factory=lambda: "123456")
    store.create_code(PHONE)

    assert store.verify(PHONE, "١٢٣٤٥٦").status is VerifyStatus.INCORRECT


def test_purge_expired(clock):
    store = OtpStore(clock=clock)
    store.create_code(PHONE)
    clock.advance(minutes=5)
    store.create_code("+212612345678")

    clock.advance(minutes=6)
    assert store.purge_expired() == 1
    assert store.get(PHONE) is None
    assert store.get("+212612345678") is not None


def test_snapshot_lists_codes(clock):
    store = OtpStore(clock=clock, code_factory=lambda: "123456")
    store.create_code(PHONE)

    assert store.snapshot() == [{
        "phone": PHONE,
        "code": "123456",
        "expires_at": (clock.now + timedelta(minutes=10)).isoformat(),
        "attempts": 0,
    }]
