"""
tests/test_service.py -- Unit tests for AuthService against a fake store.

AuthService receives its CredentialStore by injection, so these tests run
without a database. One race test at the end uses a real file-backed
UserStore to exercise the UNIQUE constraint.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from auth.models import UserProfile
from auth.service import AuthFailure, AuthService
from auth.store import DuplicateEmailError, UserStore
from auth.tokens import create_access_token


@pytest.fixture
def service(fake_store) -> AuthService:
    return AuthService(fake_store)


class TestSignUp:
    def test_success_returns_projection(self, service, fake_store) -> None:
        result = service.sign_up("Ann", "a@x.com", "secret1")
        assert result.ok
        assert isinstance(result.user, UserProfile)
        assert result.user.email == "a@x.com"
        assert not hasattr(result.user, "hashed_password")
        stored = fake_store.get_by_email("a@x.com")
        assert stored.hashed_password != "secret1"

    @pytest.mark.parametrize(
        ("name", "email", "password", "field"),
        [
            (None, "a@x.com", "secret1", "name"),
            ("   ", "a@x.com", "secret1", "name"),
            ("Ann", None, "secret1", "email"),
            ("Ann", "a@x.com", None, "password"),
            ("Ann", "a@x.com", "12345", "password"),
        ],
    )
    def test_invalid_input(self, service, name, email, password, field) -> None:
        result = service.sign_up(name, email, password)
        assert result.failure is AuthFailure.VALIDATION
        assert result.failure.status_code == 400
        assert [e.field for e in result.errors] == [field]

    def test_six_character_password_is_enough(self, service) -> None:
        assert service.sign_up("Ann", "a@x.com", "123456").ok

    def test_duplicate_email(self, service) -> None:
        service.sign_up("Ann", "a@x.com", "secret1")
        result = service.sign_up("Ann Again", "a@x.com", "secret2")
        assert result.failure is AuthFailure.DUPLICATE_EMAIL
        assert result.failure.status_code == 400
        assert result.failure.message == "Email already registered"

    def test_duplicate_detected_by_store_constraint(self, fake_store) -> None:
        """A sign-up that passes the pre-check but loses the insert race."""

        class RacingStore(type(fake_store)):
            def get_by_email(self, email):
                return None

            def create_user(self, name, email, password_hash):
                raise DuplicateEmailError(email)

        result = AuthService(RacingStore()).sign_up("Ann", "a@x.com", "secret1")
        assert result.failure is AuthFailure.DUPLICATE_EMAIL

    def test_store_outage_propagates(self, fake_store) -> None:
        """Unexpected errors are not turned into expected failures."""

        class BrokenStore(type(fake_store)):
            def get_by_email(self, email):
                raise ConnectionError("database unavailable")

        with pytest.raises(ConnectionError):
            AuthService(BrokenStore()).sign_up("Ann", "a@x.com", "secret1")


class TestSignIn:
    def test_success(self, service) -> None:
        created = service.sign_up("Ann", "a@x.com", "secret1").user
        result = service.sign_in("a@x.com", "secret1")
        assert result.ok
        assert result.user == created
        assert not hasattr(result.user, "hashed_password")

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, service) -> None:
        service.sign_up("Ann", "a@x.com", "secret1")
        wrong_password = service.sign_in("a@x.com", "wrong")
        unknown_email = service.sign_in("nobody@x.com", "secret1")
        assert wrong_password == unknown_email
        assert wrong_password.failure is AuthFailure.BAD_CREDENTIALS
        assert wrong_password.failure.status_code == 401
        assert wrong_password.failure.message == "Invalid email or password"

    @pytest.mark.parametrize(("email", "password"), [(None, "secret1"), ("a@x.com", None), ("", "")])
    def test_missing_fields(self, service, email, password) -> None:
        result = service.sign_in(email, password)
        assert result.failure is AuthFailure.VALIDATION


class TestAuthenticate:
    def test_missing_token(self, service) -> None:
        assert service.authenticate(None).failure is AuthFailure.AUTH_REQUIRED
        assert service.authenticate("").failure is AuthFailure.AUTH_REQUIRED

    def test_invalid_token(self, service) -> None:
        assert service.authenticate("garbage").failure is AuthFailure.INVALID_TOKEN

    def test_unknown_user(self, service) -> None:
        token = create_access_token("no-such-user")
        assert service.authenticate(token).failure is AuthFailure.USER_NOT_FOUND

    def test_valid_token_resolves_user(self, service) -> None:
        created = service.sign_up("Ann", "a@x.com", "secret1").user
        result = service.authenticate(create_access_token(created.id))
        assert result.ok
        assert result.user == created

    def test_all_token_failures_are_401(self) -> None:
        for failure in (AuthFailure.AUTH_REQUIRED, AuthFailure.INVALID_TOKEN, AuthFailure.USER_NOT_FOUND):
            assert failure.status_code == 401


def test_concurrent_sign_ups_for_same_email(tmp_path) -> None:
    """Simultaneous sign-ups for one email: exactly one succeeds."""
    store = UserStore(f"sqlite:///{tmp_path / 'signup_race.db'}")
    service = AuthService(store)
    workers = 6
    barrier = threading.Barrier(workers)

    def attempt(i: int):
        barrier.wait()
        return service.sign_up(f"User {i}", "race@x.com", "secret1")

    try:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(attempt, range(workers)))
    finally:
        store.close()

    assert sum(r.ok for r in results) == 1
    assert all(r.failure is AuthFailure.DUPLICATE_EMAIL for r in results if not r.ok)
