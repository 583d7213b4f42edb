# Callback Listener — one-shot local HTTP endpoint for the OAuth redirect.
# Created: 2026-10-18
#
# A FastAPI app served by uvicorn on a background thread. The first valid
# callback resolves a Future that the CLI thread blocks on; the server then
# shuts itself down. stop() joins the thread and releases the port.

from __future__ import annotations

import logging
import socket
import threading
import urllib.parse
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from ytup.auth.errors import BindError, CallbackTimeout, ListenerError

logger = logging.getLogger(__name__)

SUCCESS_PAGE = "Received authorization code.\r\nYou can now safely close this browser window."
DENIED_PAGE = "Authorization was denied ({error}).\r\nYou can close this browser window."

_SHUTDOWN_JOIN_TIMEOUT = 10.0


class CallbackListener:
    """Receive exactly one authorization code on ``http://host:port/path``.

    Usage::

        with CallbackListener.from_redirect_uri(uri, expected_state=state) as listener:
            code = listener.await_code(timeout=300)

    Entering starts the server (raising BindError if the port is taken);
    leaving always stops it.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8080,
        path: str = "/",
        expected_state: str | None = None,
    ):
        self.host = host
        self.port = port
        self.path = path or "/"
        self.expected_state = expected_state

        self._delivery: Future[str] = Future()
        self._delivery_lock = threading.Lock()
        self._sock: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None
        self._stop_lock = threading.Lock()
        self._stopped = False

    @classmethod
    def from_redirect_uri(cls, redirect_uri: str, expected_state: str | None = None) -> CallbackListener:
        parsed = urllib.parse.urlsplit(redirect_uri)
        if parsed.scheme != "http" or not parsed.hostname:
            raise ValueError(f"Redirect URI must be a local http:// URL, got {redirect_uri!r}")
        port = parsed.port if parsed.port is not None else 80
        return cls(parsed.hostname, port, parsed.path or "/", expected_state=expected_state)

    # ── Public API ─────────────────────────────────────────────────────

    @property
    def redirect_uri(self) -> str:
        """The redirect URI this listener actually answers on."""
        return f"http://{self.host}:{self.port}{self.path}"

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> str:
        """Bind the port and start serving. Returns the listen address."""
        if self._sock is not None:
            raise RuntimeError("CallbackListener already started")

        self._sock = self._bind()
        self.port = self._sock.getsockname()[1]

        config = uvicorn.Config(
            self._build_app(),
            log_config=None,
            log_level="warning",
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=2,
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._serve, name="ytup-oauth-callback", daemon=True
        )
        self._thread.start()
        logger.debug("Callback listener started on %s", self.redirect_uri)
        return f"{self.host}:{self.port}"

    def await_code(self, timeout: float | None = None) -> str:
        """Block until the first authorization code arrives.

        Raises CallbackTimeout or ListenerError.
        """
        try:
            return self._delivery.result(timeout=timeout)
        except FutureTimeoutError:
            raise CallbackTimeout(
                f"No authorization code received within {timeout:g} seconds"
            ) from None

    def stop(self) -> None:
        """Shut the server down and release the port. Safe to call repeatedly."""
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True

            if self._server is not None:
                self._server.should_exit = True
            if self._thread is not None:
                self._thread.join(timeout=_SHUTDOWN_JOIN_TIMEOUT)
                if self._thread.is_alive():
                    logger.warning("Callback listener thread did not exit in time")
            if self._sock is not None:
                self._sock.close()
            logger.debug("Callback listener on port %d stopped", self.port)

    def __enter__(self) -> CallbackListener:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # ── Internal ───────────────────────────────────────────────────────

    def _bind(self) -> socket.socket:
        try:
            infos = socket.getaddrinfo(
                self.host, self.port, socket.AF_UNSPEC, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
            )
        except socket.gaierror as exc:
            raise BindError(f"Cannot resolve callback host {self.host!r}: {exc}") from exc

        # Prefer IPv4: browsers fall back to 127.0.0.1 for "localhost".
        infos.sort(key=lambda info: info[0] != socket.AF_INET)
        family, socktype, proto, _, addr = infos[0]

        sock = socket.socket(family, socktype, proto)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(addr)
            sock.listen(8)
        except OSError as exc:
            sock.close()
            raise BindError(
                f"Cannot listen on {self.host}:{self.port} for the OAuth callback: {exc}"
            ) from exc
        return sock

    def _serve(self) -> None:
        try:
            self._server.run(sockets=[self._sock])
        except Exception as exc:  # noqa: BLE001
            logger.exception("Callback listener crashed")
            self._fail(ListenerError(f"Callback listener failed: {exc}"))
        finally:
            self._fail(ListenerError("Callback listener stopped before a code was received"))

    def _fail(self, error: Exception) -> None:
        with self._delivery_lock:
            if not self._delivery.done():
                self._delivery.set_exception(error)

    def _deliver(self, code: str | None, error: str | None) -> bool:
        """Resolve the one-shot delivery. Returns False if already resolved."""
        with self._delivery_lock:
            if self._delivery.done():
                return False
            if error:
                self._delivery.set_exception(ListenerError(f"Authorization denied: {error}"))
            else:
                self._delivery.set_result(code)
        if self._server is not None:
            self._server.should_exit = True
        return True

    def _build_app(self) -> FastAPI:
        app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

        @app.get(self.path, response_class=PlainTextResponse)
        async def oauth_callback(
            code: str | None = None,
            state: str | None = None,
            error: str | None = None,
        ):
            if self.expected_state is not None and state != self.expected_state:
                logger.warning("Rejected OAuth callback with mismatched state")
                return PlainTextResponse("Invalid state parameter.", status_code=400)
            if not code and not error:
                return PlainTextResponse("Missing code parameter.", status_code=400)

            if not self._deliver(code, error):
                return PlainTextResponse("Authorization already received.", status_code=409)

            if error:
                return PlainTextResponse(DENIED_PAGE.format(error=error))
            return PlainTextResponse(SUCCESS_PAGE)

        return app
