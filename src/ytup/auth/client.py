# Authenticated Client — httpx.Client that sends the OAuth bearer token.
# Created: 2026-10-18
#
# With a refresher, an expired token is renewed before the request goes out,
# and a 401 response triggers one refresh and one retry.

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Generator

import httpx

from ytup.auth.token_store import OAuthToken

logger = logging.getLogger(__name__)

Refresher = Callable[[OAuthToken], OAuthToken]


class BearerAuth(httpx.Auth):
    def __init__(self, token: OAuthToken, refresher: Refresher | None = None):
        self.token = token
        self._refresher = refresher
        self._lock = threading.Lock()

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if self.token.is_expired():
            self._refresh(self.token)

        sent = self.token
        request.headers["Authorization"] = f"Bearer {sent.access_token}"
        response = yield request

        if response.status_code == 401 and self._refresh(sent):
            logger.debug("Retrying %s %s with a refreshed token", request.method, request.url)
            request.headers["Authorization"] = f"Bearer {self.token.access_token}"
            yield request

    def _refresh(self, stale: OAuthToken) -> bool:
        """Replace ``stale``. Returns True if a newer token is now in place.

        ExchangeFailure from the refresher propagates.
        """
        with self._lock:
            if self.token is not stale:
                return True
            if self._refresher is None or not stale.refresh_token:
                return False
            self.token = self._refresher(stale)
            return True


class AuthenticatedClient(httpx.Client):
    """HTTP client bound to one OAuth token.

    Every outbound request carries ``Authorization: Bearer <access token>``.
    ``refresher`` turns an expired token into a fresh one; without it the
    token is used as-is for the client's lifetime.
    """

    def __init__(self, token: OAuthToken, refresher: Refresher | None = None, **kwargs):
        kwargs.setdefault("timeout", 60)
        self._bearer = BearerAuth(token, refresher)
        super().__init__(auth=self._bearer, **kwargs)

    @property
    def token(self) -> OAuthToken:
        return self._bearer.token

    @property
    def access_token(self) -> str:
        return self.token.access_token
