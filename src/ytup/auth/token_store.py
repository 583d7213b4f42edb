# Token Store — single cached OAuth token at ~/.ytup/oauth_token.json.
# Created: 2026-10-18

from __future__ import annotations

import json
import logging
import os
import stat
import time
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Tokens this close to expiry are treated as already expired.
EXPIRY_LEEWAY = 60


@dataclass
class OAuthToken:
    """OAuth 2.0 access/refresh token pair."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_at: float | None = None  # Unix timestamp

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return self.expires_at <= now + EXPIRY_LEEWAY

    def is_usable(self, now: float | None = None) -> bool:
        return bool(self.access_token) and not self.is_expired(now)

    @classmethod
    def from_response(cls, data: dict, previous: OAuthToken | None = None) -> OAuthToken:
        """Build a token from a token-endpoint JSON response.

        ``previous`` supplies the refresh token when a refresh response
        omits it.
        """
        expires_in = data.get("expires_in")
        refresh = data.get("refresh_token")
        if refresh is None and previous is not None:
            refresh = previous.refresh_token
        return cls(
            access_token=data["access_token"],
            refresh_token=refresh,
            token_type=data.get("token_type", "Bearer"),
            expires_at=time.time() + float(expires_in) if expires_in is not None else None,
        )


def _well_typed(token: OAuthToken) -> bool:
    expires_at = token.expires_at
    return (
        isinstance(token.access_token, str)
        and isinstance(token.refresh_token, (str, type(None)))
        and isinstance(token.token_type, str)
        and (expires_at is None or (isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool)))
    )


class TokenStore:
    """File-based store for exactly one token.

    The file is chmod 0600 and replaced atomically on save, so an
    interrupted write leaves the previous token intact. There is no
    locking; concurrent savers race and the last one wins.
    """

    def __init__(self, path: Path | None = None):
        self._path = path

    @property
    def path(self) -> Path:
        if self._path is None:
            from ytup.config import get_token_path

            self._path = get_token_path()
        return self._path

    def load(self) -> OAuthToken | None:
        """Return the cached token, or None on any kind of cache miss."""
        path = self.path
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            token = OAuthToken(**data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Ignoring unreadable token cache %s: %s", path, e)
            return None

        if not _well_typed(token):
            logger.warning("Ignoring malformed token cache %s", path)
            return None
        return token

    def save(self, token: OAuthToken) -> None:
        """Write the token. Raises OSError if the file cannot be written."""
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_name(path.name + ".tmp")
        try:
            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, stat.S_IRUSR | stat.S_IWUSR)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(asdict(token), f, indent=2)
            os.chmod(temp_path, stat.S_IRUSR | stat.S_IWUSR)
            temp_path.replace(path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
        logger.debug("Saved OAuth token to %s", path)

    def delete(self) -> bool:
        """Remove the cached token. Returns True if a file was deleted."""
        path = self.path
        if path.exists():
            path.unlink()
            logger.info("Deleted cached OAuth token %s", path)
            return True
        return False
