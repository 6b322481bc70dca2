from __future__ import annotations
from dataclasses import dataclass
import logging
import secrets
from typing import Callable, Dict, Optional

from .config import get_auth_users, get_store_backend
from .store import connect_supabase

log = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class SessionError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class UserSession:
    email: str
    access_token: Optional[str] = None


def _check_credentials(email: str, password: str) -> tuple[str, str]:
    email = (email or "").strip()
    password = (password or "").strip()
    if not email:
        raise SessionError("Email is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SessionError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return email, password

class SupabaseAuth:
    """Password sign-in against the hosted auth service.

    Each call runs on a fresh client from `client_factory`. The SDK rewrites
    a client's request headers when a session starts or ends, so the client
    the store queries with is never used here.
    """

    def __init__(self, client_factory: Callable[[], object]):
        self.client_factory = client_factory

    def sign_in(self, email: str, password: str) -> UserSession:
        email, password = _check_credentials(email, password)
        log.info("sign-in attempt for %s", email)
        client = self.client_factory()
        try:
            resp = client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or "An error occurred during authentication"
            log.warning("sign-in failed for %s: %s", email, message)
            raise SessionError(message) from e
        user = getattr(resp, "user", None)
        sess = getattr(resp, "session", None)
        if user is None:
            raise SessionError("An error occurred during authentication")
        return UserSession(
            email=getattr(user, "email", None) or email,
            access_token=getattr(sess, "access_token", None),
        )

    def sign_out(self, access_token: Optional[str] = None) -> None:
        """Revoke the session identified by `access_token` (this session only)."""
        if not access_token:
            return None
        client = self.client_factory()
        try:
            client.auth.admin.sign_out(access_token, "local")
        except Exception as e:
            raise SessionError(getattr(e, "message", None) or str(e)) from e


class MemoryAuth:
    """Accounts from .supplydash.yml (auth.users); for local use only."""

    def __init__(self, users: Optional[Dict[str, str]] = None):
        self.users = {k.strip().lower(): v for k, v in (users or {}).items()}

    def sign_in(self, email: str, password: str) -> UserSession:
        email, password = _check_credentials(email, password)
        if self.users.get(email.lower()) != password:
            raise SessionError("Invalid login credentials")
        return UserSession(email=email, access_token=secrets.token_hex(16))

    def sign_out(self, access_token: Optional[str] = None) -> None:
        return None


def open_auth(cfg: dict, client_factory: Optional[Callable[[], object]] = None):
    """Return the auth adapter matching the configured store backend."""
    if get_store_backend(cfg) == "memory":
        return MemoryAuth(get_auth_users(cfg))
    if client_factory is None:
        def client_factory():
            return connect_supabase(cfg)
    return SupabaseAuth(client_factory)
