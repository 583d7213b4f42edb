# OAuth Manager — three-legged OAuth 2.0 flow with a cached token.
# Created: 2026-10-18
#
# authenticate():
#   cached token usable?          -> use it
#   expired but refreshable?      -> refresh_token grant, save, use it
#   otherwise                     -> start callback listener, open browser,
#                                    wait for code, stop listener,
#                                    exchange code, save, use it

from __future__ import annotations

import logging
import secrets
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass

import httpx
from rich.console import Console

from ytup.auth.browser import BrowserLauncher
from ytup.auth.client import AuthenticatedClient
from ytup.auth.errors import ExchangeFailure, LaunchError
from ytup.auth.listener import CallbackListener
from ytup.auth.token_store import OAuthToken, TokenStore

logger = logging.getLogger(__name__)

DEFAULT_AUTH_TIMEOUT = 300.0


@dataclass(frozen=True)
class AuthorizationRequest:
    """Everything needed for one authorization attempt."""

    scope: str
    client_id: str
    client_secret: str
    redirect_uri: str = "http://localhost:8080/"
    auth_url: str = "https://accounts.google.com/o/oauth2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"

    @classmethod
    def from_settings(cls, settings, scopes: list[str]) -> AuthorizationRequest:
        return cls(
            scope=" ".join(scopes),
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            auth_url=settings.auth_url,
            token_url=settings.token_url,
        )


def build_auth_url(request: AuthorizationRequest, redirect_uri: str, state: str = "") -> str:
    """Authorization URL for the consent page."""
    params = {
        "client_id": request.client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": request.scope,
        "access_type": "offline",
        "prompt": "consent",
    }
    if state:
        params["state"] = state
    return f"{request.auth_url}?{urllib.parse.urlencode(params)}"


def _url_console() -> Console:
    # Plain and unwrapped so the URL can be copied from the terminal.
    return Console(stderr=True, soft_wrap=True, markup=False, emoji=False, highlight=False)


def _valid_token_fields(data: dict) -> bool:
    expires_in = data.get("expires_in")
    if expires_in is not None:
        if isinstance(expires_in, bool):
            return False
        try:
            float(expires_in)
        except (TypeError, ValueError):
            return False
    return (
        isinstance(data["access_token"], str)
        and isinstance(data.get("refresh_token"), (str, type(None)))
        and isinstance(data.get("token_type", "Bearer"), str)
    )


class OAuthManager:
    """Obtain an AuthenticatedClient for an AuthorizationRequest.

    Collaborators are injectable for testing: ``listener_factory`` builds
    the CallbackListener from (redirect_uri, state) and ``transport`` is
    passed to the httpx client that talks to the token endpoint.
    """

    def __init__(
        self,
        request: AuthorizationRequest,
        store: TokenStore | None = None,
        launcher: BrowserLauncher | None = None,
        timeout: float = DEFAULT_AUTH_TIMEOUT,
        listener_factory: Callable[[str, str], CallbackListener] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.request = request
        self.store = store or TokenStore()
        self.launcher = launcher or BrowserLauncher()
        self.timeout = timeout
        self._listener_factory = listener_factory or self._default_listener
        self._transport = transport

    def authenticate(self) -> AuthenticatedClient:
        """Return a client carrying a valid access token.

        Raises AuthError (BindError, CallbackTimeout, ListenerError,
        ExchangeFailure) when no token can be obtained.
        """
        token = self.store.load()
        if token is not None:
            if token.is_usable():
                logger.info("Using cached OAuth token")
                return self._client_for(token)
            if token.refresh_token:
                try:
                    token = self.refresh(token)
                except ExchangeFailure as e:
                    logger.warning("Token refresh failed, re-authorizing: %s", e)
                else:
                    self._save(token)
                    return self._client_for(token)

        code, redirect_uri = self.obtain_code()
        token = self.exchange_code(code, redirect_uri)
        self._save(token)
        return self._client_for(token)

    def obtain_code(self) -> tuple[str, str]:
        """Run the browser leg. Returns (code, redirect_uri used)."""
        state = secrets.token_urlsafe(16)
        with self._listener_factory(self.request.redirect_uri, state) as listener:
            url = build_auth_url(self.request, listener.redirect_uri, state)
            try:
                self.launcher.open(url)
            except LaunchError as e:
                logger.info("Could not open a browser (%s).", e)
                logger.info(
                    "Visit the URL below to authorize. This program will pause until the site is visited."
                )
            else:
                logger.info(
                    "Your browser has been opened to an authorization URL. "
                    "This program will resume once authorization has been provided."
                )
            _url_console().print(url)

            code = listener.await_code(self.timeout)
            return code, listener.redirect_uri

    def exchange_code(self, code: str, redirect_uri: str) -> OAuthToken:
        """Exchange an authorization code for access + refresh tokens."""
        data = self._token_request(
            {
                "code": code,
                "client_id": self.request.client_id,
                "client_secret": self.request.client_secret,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        logger.info("OAuth authorization complete")
        return OAuthToken.from_response(data)

    def refresh(self, token: OAuthToken) -> OAuthToken:
        """Use the refresh token to get a new access token."""
        data = self._token_request(
            {
                "refresh_token": token.refresh_token,
                "client_id": self.request.client_id,
                "client_secret": self.request.client_secret,
                "grant_type": "refresh_token",
            }
        )
        logger.info("Refreshed OAuth token")
        return OAuthToken.from_response(data, previous=token)

    # ── Internal ───────────────────────────────────────────────────────

    @staticmethod
    def _default_listener(redirect_uri: str, state: str) -> CallbackListener:
        return CallbackListener.from_redirect_uri(redirect_uri, expected_state=state)

    def _token_request(self, form: dict[str, str]) -> dict:
        try:
            with httpx.Client(timeout=15, transport=self._transport) as client:
                resp = client.post(self.request.token_url, data=form)
        except httpx.HTTPError as e:
            raise ExchangeFailure(f"Token request failed: {e}") from e

        if resp.is_error:
            raise ExchangeFailure(
                f"Token endpoint returned HTTP {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                detail=resp.text,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ExchangeFailure(f"Token endpoint returned invalid JSON: {resp.text}") from e
        if not isinstance(data, dict) or not data.get("access_token"):
            raise ExchangeFailure(f"Token endpoint response has no access_token: {resp.text}")
        if not _valid_token_fields(data):
            raise ExchangeFailure(
                f"Token endpoint response has malformed fields: {resp.text}", detail=resp.text
            )
        return data

    def _save(self, token: OAuthToken) -> None:
        try:
            self.store.save(token)
        except OSError as e:
            logger.warning("Could not cache OAuth token at %s: %s", self.store.path, e)

    def _refresh_and_save(self, token: OAuthToken) -> OAuthToken:
        token = self.refresh(token)
        self._save(token)
        return token

    def _client_for(self, token: OAuthToken) -> AuthenticatedClient:
        return AuthenticatedClient(token, refresher=self._refresh_and_save)
