"""ytup entry point.

Upload a video file to YouTube, optionally adding it to a playlist. The
first run walks through browser-based OAuth authorization; later runs reuse
the cached token.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import httpx

from ytup import __version__
from ytup.auth import (
    AuthError,
    AuthorizationRequest,
    BrowserLauncher,
    OAuthManager,
    TokenStore,
)
from ytup.config import YOUTUBE_SCOPES, Settings, get_settings
from ytup.logging_setup import setup_logging
from ytup.progress import UploadProgress, summarize
from ytup.youtube import PRIVACY_STATUSES, VideoMetadata, YouTubeClient, watch_url

logger = logging.getLogger("ytup")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ytup",
        description="Upload a video to YouTube",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ytup --filename talk.mp4 --title "My talk"
  ytup --filename talk.mp4 --title "My talk" --playlist "Conference 2026"
  ytup --logout                      Forget the cached OAuth token
""",
    )
    parser.add_argument("--filename", help="Name of video file to upload")
    parser.add_argument("--title", default="", help="Video title")
    parser.add_argument("--description", default="", help="Video description")
    parser.add_argument("--category", default="22", help="Video category ID (default: 22)")
    parser.add_argument("--keywords", default="", help="Comma separated list of video keywords")
    parser.add_argument(
        "--privacy",
        default="unlisted",
        choices=PRIVACY_STATUSES,
        help="Video privacy status (default: unlisted)",
    )
    parser.add_argument("--playlist", default="", help="Playlist name to add video to")
    parser.add_argument("--clientid", default=None, help="OAuth client ID")
    parser.add_argument("--secret", default=None, help="OAuth client secret")
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Print the authorization URL instead of opening a browser",
    )
    parser.add_argument(
        "--auth-timeout",
        type=float,
        default=None,
        help="Seconds to wait for browser authorization (default: 300)",
    )
    parser.add_argument(
        "--logout", action="store_true", help="Delete the cached OAuth token and exit"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_request(args: argparse.Namespace, settings: Settings) -> AuthorizationRequest:
    """Merge flags over settings. Raises ValueError naming the missing flag."""
    client_id = args.clientid or settings.client_id
    client_secret = args.secret or settings.client_secret
    if not client_id:
        raise ValueError("You must provide an oauth client ID with --clientid")
    if not client_secret:
        raise ValueError("You must provide an oauth client secret with --secret")

    request = AuthorizationRequest.from_settings(settings, YOUTUBE_SCOPES)
    return replace(request, client_id=client_id, client_secret=client_secret)


def parse_keywords(keywords: str) -> list[str]:
    if not keywords.strip():
        return []
    return [k.strip() for k in keywords.split(",") if k.strip()]


def upload(args: argparse.Namespace, manager: OAuthManager) -> int:
    logger.info("Requesting auth token...")
    with manager.authenticate() as http:
        youtube = YouTubeClient(http)
        metadata = VideoMetadata(
            title=args.title or Path(args.filename).stem,
            description=args.description,
            category_id=args.category,
            tags=parse_keywords(args.keywords),
            privacy=args.privacy,
        )

        logger.info("Uploading %s...", args.filename)
        size = Path(args.filename).stat().st_size
        progress = UploadProgress()
        start = datetime.now()
        try:
            video = youtube.upload_video(args.filename, metadata, progress=progress)
        finally:
            progress.finish()
        elapsed = datetime.now() - start
        logger.info("%s : %s", summarize(size, elapsed), watch_url(video["id"]))

        if args.playlist:
            playlist_id, created = youtube.ensure_playlist(args.playlist, args.privacy)
            if created:
                logger.info("Playlist created: id=%s", playlist_id)
            else:
                logger.info("Playlist found: %s", playlist_id)
            youtube.add_to_playlist(video["id"], playlist_id)
            logger.info("Video added to playlist")

    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level="DEBUG" if args.verbose else "INFO")
    settings = get_settings()

    if args.logout:
        if not TokenStore().delete():
            logger.info("No cached OAuth token to delete")
        return EXIT_OK

    if not args.filename:
        parser.print_usage(sys.stderr)
        print("ytup: error: specify a filename of a video file with --filename", file=sys.stderr)
        return EXIT_USAGE
    if not Path(args.filename).is_file():
        print(f"ytup: error: cannot open {args.filename}", file=sys.stderr)
        return EXIT_USAGE

    try:
        request = build_request(args, settings)
    except ValueError as e:
        print(f"ytup: error: {e}", file=sys.stderr)
        return EXIT_USAGE

    manager = OAuthManager(
        request,
        store=TokenStore(),
        launcher=BrowserLauncher(enabled=settings.open_browser and not args.no_browser),
        timeout=args.auth_timeout or settings.auth_timeout,
    )

    try:
        return upload(args, manager)
    except AuthError as e:
        logger.error("Error building OAuth client (%s): %s", e.kind.value, e)
        return EXIT_FAILURE
    except httpx.HTTPStatusError as e:
        logger.error(
            "Error making YouTube API call: HTTP %d: %s", e.response.status_code, e.response.text
        )
        return EXIT_FAILURE
    except httpx.HTTPError as e:
        logger.error("Error making YouTube API call: %s", e)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
