from __future__ import annotations
from pathlib import Path
import sys
import types

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from supplydash.core.v1.session import (
    MIN_PASSWORD_LENGTH,
    MemoryAuth,
    SessionError,
    SupabaseAuth,
    open_auth,
)


class _FakeAdminApi:
    def __init__(self, calls):
        self.calls = calls

    def sign_out(self, jwt, scope="global"):
        self.calls.append(("revoke", jwt, scope))


class _FakeAuthApi:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = []
        self.admin = _FakeAdminApi(self.calls)

    def sign_in_with_password(self, credentials):
        self.calls.append(("sign_in", dict(credentials)))
        if self.error is not None:
            raise self.error
        user = types.SimpleNamespace(email=credentials["email"])
        sess = types.SimpleNamespace(access_token=f"tok-{credentials['email']}")
        return types.SimpleNamespace(user=user, session=sess)


def _client(error=None):
    return types.SimpleNamespace(auth=_FakeAuthApi(error))


class _Factory:
    """Hands out a new fake client per call and remembers them."""

    def __init__(self, error=None):
        self.error = error
        self.clients = []

    def __call__(self):
        c = _client(self.error)
        self.clients.append(c)
        return c


def test_sign_in_trims_credentials_and_returns_session():
    factory = _Factory()
    user = SupabaseAuth(factory).sign_in("  ops@example.com ", " secret1 ")
    assert user.email == "ops@example.com"
    assert user.access_token == "tok-ops@example.com"
    assert factory.clients[0].auth.calls == [("sign_in", {"email": "ops@example.com", "password": "secret1"})]


def test_each_sign_in_runs_on_its_own_client():
    factory = _Factory()
    auth = SupabaseAuth(factory)
    auth.sign_in("a@example.com", "secret1")
    auth.sign_in("b@example.com", "secret2")
    assert len(factory.clients) == 2
    assert factory.clients[0] is not factory.clients[1]
    assert [c.auth.calls[0][1]["email"] for c in factory.clients] == ["a@example.com", "b@example.com"]


def test_sign_out_revokes_only_the_given_token():
    factory = _Factory()
    auth = SupabaseAuth(factory)
    auth.sign_out("tok-a")
    assert factory.clients[0].auth.calls == [("revoke", "tok-a", "local")]
    # Without a token there is nothing to revoke
    auth.sign_out(None)
    assert len(factory.clients) == 1


def test_short_password_is_rejected_before_calling_service():
    factory = _Factory()
    with pytest.raises(SessionError) as ei:
        SupabaseAuth(factory).sign_in("ops@example.com", "x" * (MIN_PASSWORD_LENGTH - 1))
    assert str(MIN_PASSWORD_LENGTH) in ei.value.message
    assert factory.clients == []


def test_service_error_message_surfaces():
    factory = _Factory(error=RuntimeError("Invalid login credentials"))
    with pytest.raises(SessionError) as ei:
        SupabaseAuth(factory).sign_in("ops@example.com", "wrongpass")
    assert ei.value.message == "Invalid login credentials"


def test_memory_auth_checks_configured_accounts():
    auth = MemoryAuth({"Ops@Example.com": "secret1"})
    assert auth.sign_in("ops@example.com", "secret1").email == "ops@example.com"
    with pytest.raises(SessionError):
        auth.sign_in("ops@example.com", "secret2")
    with pytest.raises(SessionError):
        auth.sign_in("", "secret1")


def test_open_auth_memory_backend_uses_config_users(monkeypatch):
    monkeypatch.delenv("SD_STORE", raising=False)
    auth = open_auth({"store": {"backend": "memory"}, "auth": {"users": [{"email": "a@b.co", "password": "abcdef"}]}})
    assert isinstance(auth, MemoryAuth)
    assert auth.sign_in("a@b.co", "abcdef").email == "a@b.co"


def test_open_auth_supabase_backend_uses_given_factory(monkeypatch):
    monkeypatch.delenv("SD_STORE", raising=False)
    factory = _Factory()
    auth = open_auth({"store": {"backend": "supabase"}}, client_factory=factory)
    assert isinstance(auth, SupabaseAuth)
    auth.sign_out("tok-x")
    assert factory.clients[0].auth.calls == [("revoke", "tok-x", "local")]
