"""Interactive OAuth 2.0 authorization with a local token cache."""

from ytup.auth.browser import BrowserLauncher
from ytup.auth.client import AuthenticatedClient
from ytup.auth.coordinator import AuthorizationRequest, OAuthManager, build_auth_url
from ytup.auth.errors import (
    AuthError,
    AuthErrorKind,
    BindError,
    CallbackTimeout,
    ExchangeFailure,
    LaunchError,
    ListenerError,
)
from ytup.auth.listener import CallbackListener
from ytup.auth.token_store import OAuthToken, TokenStore

__all__ = [
    "AuthError",
    "AuthErrorKind",
    "AuthenticatedClient",
    "AuthorizationRequest",
    "BindError",
    "BrowserLauncher",
    "CallbackListener",
    "CallbackTimeout",
    "ExchangeFailure",
    "LaunchError",
    "ListenerError",
    "OAuthManager",
    "OAuthToken",
    "TokenStore",
    "build_auth_url",
]
