from datetime import timedelta

import jwt
import pytest

from app.application.services.token_issuer import TokenClaims, TokenConfig, TokenIssuer
from app.exceptions import InvalidToken, TokenExpired
from app.utils import utcnow

CONFIG = TokenConfig(access_secret="access-secret", refresh_secret="refresh-secret")
CLAIMS = TokenClaims(user_id="user-1", phone="+966501234567", role="individual", permissions=["offices:read"])


def test_access_token_round_trip():
    issuer = TokenIssuer(config=CONFIG)
    assert issuer.verify_access_token(issuer.issue_access_token(CLAIMS)) == CLAIMS


def test_refresh_token_round_trip():
    issuer = TokenIssuer(config=CONFIG)
    assert issuer.verify_refresh_token(issuer.issue_refresh_token(CLAIMS)) == CLAIMS


def test_tokens_are_not_interchangeable():
    issuer = TokenIssuer(config=CONFIG)
    with pytest.raises(InvalidToken):
        issuer.verify_access_token(issuer.issue_refresh_token(CLAIMS))
    with pytest.raises(InvalidToken):
        issuer.verify_refresh_token(issuer.issue_access_token(CLAIMS))


def test_type_claim_checked_even_with_shared_secret():
    issuer = TokenIssuer(config=TokenConfig(access_secret="same", refresh_secret="same"))
    with pytest.raises(InvalidToken):
        issuer.verify_access_token(issuer.issue_refresh_token(CLAIMS))


def test_expired_access_token():
    past = utcnow() - timedelta(hours=1)
    issuer = TokenIssuer(config=CONFIG, clock=lambda: past)
    token = issuer.issue_access_token(CLAIMS)
    with pytest.raises(TokenExpired):
        TokenIssuer(config=CONFIG).verify_access_token(token)


def test_refresh_token_outlives_access_token():
    past = utcnow() - timedelta(days=1)
    issuer = TokenIssuer(config=CONFIG, clock=lambda: past)
    pair = issuer.issue_token_pair(CLAIMS)
    with pytest.raises(TokenExpired):
        issuer.verify_access_token(pair.access_token)
    assert issuer.verify_refresh_token(pair.refresh_token) == CLAIMS


def test_tampered_and_garbage_tokens_are_invalid():
    issuer = TokenIssuer(config=CONFIG)
    token = issuer.issue_access_token(CLAIMS)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")])
    with pytest.raises(InvalidToken):
        issuer.verify_access_token(tampered)
    with pytest.raises(InvalidToken):
        issuer.verify_access_token("not-a-token")


def test_malformed_claims_are_invalid():
    now = utcnow()
    token = jwt.encode(
        {"sub": "user-1", "type": "access", "iat": now, "exp": now + timedelta(minutes=5), "ver": 1},
        CONFIG.access_secret,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        TokenIssuer(config=CONFIG).verify_access_token(token)


def test_pair_tokens_carry_unique_ids():
    issuer = TokenIssuer(config=CONFIG)
    first = issuer.issue_token_pair(CLAIMS)
    second = issuer.issue_token_pair(CLAIMS)
    ids = {
        jwt.decode(t, options={"verify_signature": False})["jti"]
        for t in (first.access_token, first.refresh_token, second.access_token, second.refresh_token)
    }
    assert len(ids) == 4


def test_token_expired_is_an_invalid_token():
    assert issubclass(TokenExpired, InvalidToken)
    assert TokenExpired().status_code == 401
