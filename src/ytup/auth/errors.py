# Auth error taxonomy.
# Created: 2026-10-18

from __future__ import annotations

from enum import Enum


class AuthErrorKind(str, Enum):
    BIND = "bind"
    TIMEOUT = "timeout"
    LISTENER = "listener"
    EXCHANGE = "exchange"


class AuthError(Exception):
    """Fatal failure of one authorization attempt.

    Callers may retry by running the whole flow again; nothing in the auth
    package retries on its own.
    """

    kind: AuthErrorKind = AuthErrorKind.LISTENER

    def __init__(self, message: str, kind: AuthErrorKind | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def message(self) -> str:
        return str(self)


class BindError(AuthError):
    """The local callback port could not be bound."""

    kind = AuthErrorKind.BIND


class CallbackTimeout(AuthError):
    """No authorization code arrived within the wait limit."""

    kind = AuthErrorKind.TIMEOUT


class ListenerError(AuthError):
    """The callback listener failed or the user denied consent."""

    kind = AuthErrorKind.LISTENER


class ExchangeFailure(AuthError):
    """The token endpoint rejected the code (or refresh token)."""

    kind = AuthErrorKind.EXCHANGE

    def __init__(self, message: str, status_code: int | None = None, detail: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class LaunchError(Exception):
    """The browser could not be opened. Never fatal."""
