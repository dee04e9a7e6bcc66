import logging
import re
import time

import pytest
from fastapi import HTTPException

from clinicdesk import rate_limiter
from clinicdesk.auth import _check_claims, _find_or_create_user
from clinicdesk.config import FIREBASE_PROJECT_ID
from clinicdesk.models import User
from clinicdesk.webhook_security import (
    create_webhook_signature,
    extract_signing_key,
    verify_timestamp,
)


@pytest.fixture
def clean_counters():
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


def test_memory_rate_limit_window(clean_counters):
    results = [rate_limiter.check_rate_limit("test:ip", 3, 60, client=None) for _ in range(4)]
    assert [allowed for allowed, _, _ in results] == [True, True, True, False]
    assert results[-1][1] == 3
    assert 0 < results[-1][2] <= 60


def test_rate_limit_window_resets(clean_counters):
    rate_limiter.check_rate_limit("test:reset", 1, 60, client=None)
    assert rate_limiter.check_rate_limit("test:reset", 1, 60, client=None)[0] is False

    rate_limiter.memory_cache["test:reset"]["reset_time"] = int(time.time()) - 1
    assert rate_limiter.check_rate_limit("test:reset", 1, 60, client=None)[0] is True


def test_signing_key_from_secret():
    assert extract_signing_key("whsec_c2VjcmV0") == b"secret"
    assert extract_signing_key("plain secret!") == b"plain secret!"


def test_signature_is_deterministic():
    sig = create_webhook_signature("whsec_c2VjcmV0", "wh_1", "1700000000", b"{}")
    assert sig.startswith("v1,")
    assert sig == create_webhook_signature("whsec_c2VjcmV0", "wh_1", "1700000000", b"{}")
    assert sig != create_webhook_signature("whsec_c2VjcmV0", "wh_2", "1700000000", b"{}")


def test_timestamp_tolerance():
    now = int(time.time())
    assert verify_timestamp(str(now - 10)) is True
    assert verify_timestamp(str(now - 600)) is False
    assert verify_timestamp("yesterday") is False


def firebase_claims(**overrides):
    now = int(time.time())
    claims = {
        "aud": FIREBASE_PROJECT_ID,
        "iss": f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}",
        "exp": now + 3600,
        "iat": now - 10,
        "auth_time": now - 10,
        "sub": "uid-1",
    }
    claims.update(overrides)
    return claims


def test_valid_firebase_claims():
    _check_claims(firebase_claims())


@pytest.mark.parametrize(
    "overrides",
    [
        {"aud": "another-project"},
        {"iss": "https://securetoken.google.com/another-project"},
        {"exp": int(time.time()) - 5},
        {"iat": int(time.time()) + 600},
    ],
)
def test_invalid_firebase_claims(overrides):
    with pytest.raises(HTTPException) as exc:
        _check_claims(firebase_claims(**overrides))
    assert exc.value.status_code == 401


def test_expired_token_is_flagged():
    with pytest.raises(HTTPException) as exc:
        _check_claims(firebase_claims(exp=int(time.time()) - 5))
    assert exc.value.headers == {"X-Token-Expired": "true"}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    response = client.get("/")
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_requests_are_logged_with_status_and_duration(client, caplog):
    caplog.set_level(logging.INFO, logger="clinicdesk.main")
    client.get("/health")
    (line,) = [r.getMessage() for r in caplog.records if r.getMessage().startswith("GET /health")]
    assert re.fullmatch(r"GET /health -> 200 \(\d+\.\dms\)", line)


def test_sign_in_without_email_is_rejected(db):
    with pytest.raises(HTTPException) as exc:
        _find_or_create_user(db, "phone-only-uid", None, "")
    assert exc.value.status_code == 401
    with pytest.raises(HTTPException):
        _find_or_create_user(db, "another-phone-uid", "", "")
    assert db.query(User).count() == 0


def test_first_sign_in_links_invited_member(db):
    invited = User(email="hina@example.com", full_name=None)
    db.add(invited)
    db.commit()

    user = _find_or_create_user(db, "uid-hina", "Hina@Example.com", "Hina Baig")
    assert user.id == invited.id
    assert (user.firebase_uid, user.full_name) == ("uid-hina", "Hina Baig")

    # Later tokens are matched on the UID alone
    assert _find_or_create_user(db, "uid-hina", None, "").id == invited.id
