"""
tests/test_security.py -- Unit tests for password hashing and access tokens.

Coverage:
  - CredentialManager: verify round trip, wrong password, salting, malformed
    hashes, rehash detection, hashing failures
  - create_access_token / decode_access_token: claims, expiry, tampering
  - SessionIssuer.issue_token: subject is the immutable id, username the name
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from user_service.auth import SessionIssuer
from user_service.errors import PasswordHashingError, TokenSigningError, Unauthorized
from user_service.models import User
from user_service.security import (
    CredentialManager,
    create_access_token,
    decode_access_token,
)

SECRET = "unit-test-secret-key-0123456789abcdefghij"


@pytest.fixture(scope="module")
def manager() -> CredentialManager:
    return CredentialManager(time_cost=1)


class TestCredentialManager:
    @pytest.mark.parametrize("password", ["p1", "correct horse battery staple", "пароль", " padded "])
    def test_hash_verifies_against_its_plaintext(self, manager: CredentialManager, password: str) -> None:
        assert manager.verify(password, manager.hash(password))

    def test_hash_is_not_plaintext(self, manager: CredentialManager) -> None:
        hashed = manager.hash("p1")
        assert hashed != "p1"
        assert hashed.startswith("$argon2")

    def test_other_password_does_not_verify(self, manager: CredentialManager) -> None:
        hashed = manager.hash("p1")
        assert not manager.verify("wrong", hashed)
        assert not manager.verify("p1 ", hashed)

    def test_hash_is_salted(self, manager: CredentialManager) -> None:
        first = manager.hash("p1")
        second = manager.hash("p1")
        assert first != second
        assert manager.verify("p1", first)
        assert manager.verify("p1", second)

    @pytest.mark.parametrize(
        "bad_hash",
        [
            "",
            None,
            "p1",
            "not-a-hash",
            "$argon2id$v=19$garbage",
            "$argon2id$v=19$m=512,t=1,p=1,data=YWJj$c2FsdHNhbHRzYWx0$" + "A" * 43,
            "$argon2id$v=19$m=512,t=4294967295,p=1$c2FsdHNhbHRzYWx0$" + "A" * 43,
            "$argon2id$v=19$m=4194304,t=1,p=1$c2FsdHNhbHRzYWx0$" + "A" * 43,
        ],
    )
    def test_malformed_hash_is_a_mismatch(self, manager: CredentialManager, bad_hash) -> None:
        assert manager.verify("p1", bad_hash) is False

    def test_costlier_hash_within_limit_still_verifies(self, manager: CredentialManager) -> None:
        hashed = CredentialManager(time_cost=4).hash("p1")
        assert manager.verify("p1", hashed)

    def test_needs_rehash_when_cost_increases(self, manager: CredentialManager) -> None:
        weak = manager.hash("p1")
        stronger = CredentialManager(time_cost=2)
        assert not manager.needs_rehash(weak)
        assert stronger.needs_rehash(weak)
        assert stronger.verify("p1", weak)

    def test_hash_failure_raises_instead_of_returning_plaintext(
        self, manager: CredentialManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _boom(*args, **kwargs):
            raise MemoryError("out of memory")

        broken = CredentialManager(time_cost=1)
        monkeypatch.setattr(broken._context, "hash", _boom)
        with pytest.raises(PasswordHashingError):
            broken.hash("p1")

    def test_verify_dummy_never_raises(self, manager: CredentialManager) -> None:
        manager.verify_dummy("anything")

    def test_dummy_hash_is_ready_before_first_use(self, monkeypatch: pytest.MonkeyPatch) -> None:
        fresh = CredentialManager(time_cost=1)
        assert fresh.verify("user-service-timing-dummy", fresh._dummy_hash)

        def _no_hashing(*args, **kwargs):
            raise AssertionError("verify_dummy must not hash")

        monkeypatch.setattr(fresh, "hash", _no_hashing)
        fresh.verify_dummy("anything")


class TestAccessTokens:
    def test_round_trip_carries_claims_and_expiry(self) -> None:
        now = datetime.now(timezone.utc)
        token = create_access_token(
            {"sub": "7", "username": "A"}, SECRET, "HS256", timedelta(minutes=5), now=now
        )
        payload = decode_access_token(token, SECRET, "HS256")
        assert payload["sub"] == "7"
        assert payload["username"] == "A"
        assert payload["exp"] - payload["iat"] == 300

    def test_expired_token_is_rejected(self) -> None:
        issued = datetime.now(timezone.utc) - timedelta(hours=1)
        token = create_access_token({"sub": "7"}, SECRET, "HS256", timedelta(minutes=5), now=issued)
        with pytest.raises(Unauthorized) as excinfo:
            decode_access_token(token, SECRET, "HS256")
        assert excinfo.value.message == "Token has expired"

    def test_wrong_key_is_rejected(self) -> None:
        token = create_access_token({"sub": "7"}, SECRET, "HS256", timedelta(minutes=5))
        with pytest.raises(Unauthorized) as excinfo:
            decode_access_token(token, SECRET + "-other", "HS256")
        assert excinfo.value.message == "Invalid token"

    def test_unsigned_token_is_rejected(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"sub": "7", "exp": exp}, None, algorithm="none")
        with pytest.raises(Unauthorized):
            decode_access_token(token, SECRET, "HS256")

    def test_token_without_subject_is_rejected(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"username": "A", "exp": exp}, SECRET, algorithm="HS256")
        with pytest.raises(Unauthorized):
            decode_access_token(token, SECRET, "HS256")

    def test_garbage_is_rejected(self) -> None:
        with pytest.raises(Unauthorized):
            decode_access_token("not.a.jwt", SECRET, "HS256")

    def test_signing_failure_raises(self) -> None:
        with pytest.raises(TokenSigningError):
            create_access_token({"sub": "7"}, SECRET, "NOPE256", timedelta(minutes=5))


class TestSessionIssuer:
    def test_issued_token_names_user_by_id_and_name(self, manager: CredentialManager) -> None:
        issuer = SessionIssuer(manager, secret_key=SECRET, ttl=timedelta(minutes=5))
        token = issuer.issue_token(User(id=42, name="Alice", email="a@x.com", password="x"))
        payload = issuer.decode(token)
        assert payload["sub"] == "42"
        assert payload["username"] == "Alice"
        assert payload["exp"] - payload["iat"] == 300
