# YouTube Client — minimal YouTube Data API v3 calls over an authenticated httpx client.
# Created: 2026-10-18

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_API_BASE = "https://www.googleapis.com/youtube/v3"
_UPLOAD_BASE = "https://www.googleapis.com/upload/youtube/v3"

DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024
PRIVACY_STATUSES = ("private", "unlisted", "public")

ProgressCallback = Callable[[int, int], None]


def watch_url(video_id: str) -> str:
    return f"https://youtube.com/watch?v={video_id}"


@dataclass
class VideoMetadata:
    """Snippet and status fields for a video insert."""

    title: str
    description: str = ""
    category_id: str = "22"  # People & Blogs
    tags: list[str] = field(default_factory=list)
    privacy: str = "unlisted"

    def to_resource(self) -> dict[str, Any]:
        snippet: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
        }
        if self.category_id:
            snippet["categoryId"] = self.category_id
        # The API rejects an empty tag list with 400 Bad Request.
        tags = [t.strip() for t in self.tags if t.strip()]
        if tags:
            snippet["tags"] = tags
        return {"snippet": snippet, "status": {"privacyStatus": self.privacy}}


class YouTubeClient:
    """Video upload and playlist calls.

    ``http`` must already authenticate its requests (see
    ``ytup.auth.AuthenticatedClient``). HTTP errors propagate as
    ``httpx.HTTPStatusError``.
    """

    def __init__(self, http: httpx.Client, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._http = http
        self.chunk_size = chunk_size

    def upload_video(
        self,
        file_path: str | Path,
        metadata: VideoMetadata,
        progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Upload a video with the resumable protocol.

        Returns the created video resource (``id`` is the video ID).
        """
        local = Path(file_path).expanduser()
        if not local.is_file():
            raise ValueError(f"Video file not found: {local}")
        size = local.stat().st_size
        if size == 0:
            raise ValueError(f"Video file is empty: {local}")

        content_type = mimetypes.guess_type(local.name)[0] or "application/octet-stream"
        resp = self._http.post(
            f"{_UPLOAD_BASE}/videos",
            params={"uploadType": "resumable", "part": "snippet,status"},
            json=metadata.to_resource(),
            headers={
                "X-Upload-Content-Length": str(size),
                "X-Upload-Content-Type": content_type,
            },
        )
        resp.raise_for_status()
        session_url = resp.headers.get("Location")
        if not session_url:
            raise httpx.HTTPStatusError(
                "Resumable upload response has no Location header",
                request=resp.request,
                response=resp,
            )
        logger.debug("Resumable upload session: %s", session_url)

        offset = 0
        with open(local, "rb") as f:
            while True:
                f.seek(offset)
                chunk = f.read(self.chunk_size)
                end = offset + len(chunk) - 1
                resp = self._http.put(
                    session_url,
                    content=chunk,
                    headers={
                        "Content-Type": content_type,
                        "Content-Range": f"bytes {offset}-{end}/{size}",
                    },
                )
                if resp.status_code == 308:
                    received = self._next_offset(resp)
                    if received <= offset:
                        raise httpx.HTTPStatusError(
                            f"Resumable upload stalled at byte {offset} of {size}",
                            request=resp.request,
                            response=resp,
                        )
                    offset = received
                    if progress:
                        progress(offset, size)
                    continue
                resp.raise_for_status()
                if progress:
                    progress(size, size)
                return resp.json()

    @staticmethod
    def _next_offset(resp: httpx.Response) -> int:
        # Range: bytes=0-NNN names the last byte the server has stored.
        received = resp.headers.get("Range")
        if not received:
            return 0
        return int(received.rsplit("-", 1)[-1]) + 1

    def find_playlist(self, title: str) -> str | None:
        """ID of the caller's playlist with exactly this title, or None."""
        params: dict[str, Any] = {"part": "snippet", "mine": "true", "maxResults": 50}
        while True:
            resp = self._http.get(f"{_API_BASE}/playlists", params=params)
            resp.raise_for_status()
            data = resp.json()
            for item in data.get("items", []):
                if item.get("snippet", {}).get("title") == title:
                    return item["id"]
            page_token = data.get("nextPageToken")
            if not page_token:
                return None
            params["pageToken"] = page_token

    def create_playlist(self, title: str, privacy: str = "unlisted") -> str:
        resp = self._http.post(
            f"{_API_BASE}/playlists",
            params={"part": "snippet,status"},
            json={"snippet": {"title": title}, "status": {"privacyStatus": privacy}},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def ensure_playlist(self, title: str, privacy: str = "unlisted") -> tuple[str, bool]:
        """Find the playlist by title, creating it if missing.

        Returns (playlist_id, created).
        """
        playlist_id = self.find_playlist(title)
        if playlist_id:
            return playlist_id, False
        return self.create_playlist(title, privacy), True

    def add_to_playlist(self, video_id: str, playlist_id: str) -> dict[str, Any]:
        resp = self._http.post(
            f"{_API_BASE}/playlistItems",
            params={"part": "snippet"},
            json={
                "snippet": {
                    "playlistId": playlist_id,
                    "resourceId": {"kind": "youtube#video", "videoId": video_id},
                }
            },
        )
        resp.raise_for_status()
        return resp.json()
