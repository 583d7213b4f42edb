# Tests for auth/listener.py
# Created: 2026-10-18

import socket
import threading
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from ytup.auth.errors import AuthErrorKind, BindError, CallbackTimeout, ListenerError
from ytup.auth.listener import SUCCESS_PAGE, CallbackListener


def _get(listener: CallbackListener, **params) -> httpx.Response:
    return httpx.get(f"http://127.0.0.1:{listener.port}/", params=params, timeout=5, trust_env=False)


@pytest.fixture
def listener():
    lst = CallbackListener("127.0.0.1", 0, expected_state="s1")
    lst.start()
    yield lst
    lst.stop()


# ---------------------------------------------------------------------------
# Handler behaviour (no sockets)
# ---------------------------------------------------------------------------


class TestCallbackApp:
    @pytest.fixture
    def app_listener(self):
        return CallbackListener("127.0.0.1", 0, expected_state="s1")

    @pytest.fixture
    def client(self, app_listener):
        return TestClient(app_listener._build_app())

    def test_code_delivered(self, app_listener, client):
        resp = client.get("/", params={"code": "ABC123", "state": "s1"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text == SUCCESS_PAGE
        assert app_listener.await_code(timeout=0) == "ABC123"

    def test_second_code_rejected(self, app_listener, client):
        assert client.get("/", params={"code": "first", "state": "s1"}).status_code == 200
        resp = client.get("/", params={"code": "second", "state": "s1"})
        assert resp.status_code == 409
        assert app_listener.await_code(timeout=0) == "first"

    def test_state_mismatch_does_not_consume(self, app_listener, client):
        resp = client.get("/", params={"code": "forged", "state": "other"})
        assert resp.status_code == 400
        assert client.get("/", params={"code": "real", "state": "s1"}).status_code == 200
        assert app_listener.await_code(timeout=0) == "real"

    def test_missing_state_rejected(self, client):
        assert client.get("/", params={"code": "x"}).status_code == 400

    def test_missing_code_does_not_consume(self, app_listener, client):
        assert client.get("/", params={"state": "s1"}).status_code == 400
        with pytest.raises(CallbackTimeout):
            app_listener.await_code(timeout=0.01)

    def test_denied_consent(self, app_listener, client):
        resp = client.get("/", params={"error": "access_denied", "state": "s1"})
        assert resp.status_code == 200
        assert "denied" in resp.text
        with pytest.raises(ListenerError, match="access_denied") as exc_info:
            app_listener.await_code(timeout=0)
        assert exc_info.value.kind is AuthErrorKind.LISTENER

    def test_no_state_check_when_not_expected(self):
        lst = CallbackListener("127.0.0.1", 0)
        client = TestClient(lst._build_app())
        assert client.get("/", params={"code": "c"}).status_code == 200
        assert lst.await_code(timeout=0) == "c"

    def test_custom_path(self):
        lst = CallbackListener("127.0.0.1", 0, path="/oauth2callback")
        client = TestClient(lst._build_app())
        assert client.get("/", params={"code": "c"}).status_code == 404
        assert client.get("/oauth2callback", params={"code": "c"}).status_code == 200


class TestFromRedirectUri:
    def test_parses_host_port_path(self):
        lst = CallbackListener.from_redirect_uri("http://localhost:8080/", expected_state="x")
        assert (lst.host, lst.port, lst.path) == ("localhost", 8080, "/")
        assert lst.expected_state == "x"

    def test_default_path_and_port(self):
        lst = CallbackListener.from_redirect_uri("http://localhost")
        assert (lst.port, lst.path) == (80, "/")

    def test_rejects_non_http(self):
        with pytest.raises(ValueError):
            CallbackListener.from_redirect_uri("https://example.com/cb")


# ---------------------------------------------------------------------------
# Real loopback server
# ---------------------------------------------------------------------------


class TestCallbackServer:
    def test_start_reports_bound_port(self, listener):
        assert listener.port != 0
        assert listener.running
        assert listener.redirect_uri == f"http://127.0.0.1:{listener.port}/"

    def test_receives_code(self, listener, port_free):
        resp = _get(listener, code="ABC123", state="s1")
        assert resp.status_code == 200
        assert "close this browser window" in resp.text
        assert listener.await_code(timeout=5) == "ABC123"

        listener.stop()
        assert not listener.running
        assert port_free(listener.port)

    def test_code_sent_before_wait_is_kept(self, listener):
        _get(listener, code="early", state="s1")
        time.sleep(0.2)
        assert listener.await_code(timeout=5) == "early"

    def test_timeout(self, listener, port_free):
        with pytest.raises(CallbackTimeout) as exc_info:
            listener.await_code(timeout=0.2)
        assert exc_info.value.kind is AuthErrorKind.TIMEOUT

        listener.stop()
        assert port_free(listener.port)

    def test_concurrent_requests_deliver_first_code_only(self, listener):
        results: dict[str, object] = {}

        def hit(code: str) -> None:
            try:
                results[code] = _get(listener, code=code, state="s1").status_code
            except httpx.TransportError as exc:
                # The listener may already be closed for the second request.
                results[code] = exc

        threads = [threading.Thread(target=hit, args=(c,)) for c in ("one", "two")]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
            assert not t.is_alive()

        code = listener.await_code(timeout=5)
        assert code in ("one", "two")
        assert results[code] == 200
        other = "two" if code == "one" else "one"
        assert results[other] != 200

    def test_stop_is_idempotent(self, listener, port_free):
        listener.stop()
        listener.stop()
        assert port_free(listener.port)

    def test_stop_unblocks_waiter(self, listener):
        listener.stop()
        with pytest.raises(ListenerError):
            listener.await_code(timeout=5)

    def test_context_manager_releases_port(self, port_free):
        with CallbackListener("127.0.0.1", 0) as lst:
            port = lst.port
            assert not port_free(port)
        assert port_free(port)

    def test_bind_error_when_port_taken(self, port_free):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            lst = CallbackListener("127.0.0.1", port)
            with pytest.raises(BindError) as exc_info:
                lst.start()
            assert exc_info.value.kind is AuthErrorKind.BIND
            assert not lst.running
            lst.stop()

        assert port_free(port)
