"""
Tests for the artifact fetcher (httpx, retries, local files).
"""

import httpx
import pytest

from formula_installer.errors import HTTPError, NetworkError
from formula_installer.lib.net import USER_AGENT, fetch_artifact

URL = "https://example.com/milyai/releases/0.1.0/milyai-macos-universal.tar.gz"


class Recorder:
    """MockTransport handler replaying a script of responses/exceptions."""

    def __init__(self, *script):
        self.script = list(script)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, type) and issubclass(item, Exception):
            raise item("simulated", request=request)
        status, body = item
        return httpx.Response(status, content=body)


def _fetch(handler, **kwargs):
    sleeps = []
    kwargs.setdefault("retries", 3)
    kwargs.setdefault("backoff_s", 0.5)
    data = fetch_artifact(
        URL,
        transport=httpx.MockTransport(handler),
        sleep=sleeps.append,
        **kwargs,
    )
    return data, sleeps


class TestHttpFetch:
    def test_success(self):
        handler = Recorder((200, b"payload"))
        data, sleeps = _fetch(handler)
        assert data == b"payload"
        assert sleeps == []
        assert handler.requests[0].headers["User-Agent"] == USER_AGENT

    def test_not_found_is_final(self):
        handler = Recorder((404, b"nope"))
        with pytest.raises(HTTPError) as exc:
            _fetch(handler)
        assert exc.value.status_code == 404
        assert len(handler.requests) == 1

    def test_transient_5xx_is_retried_with_backoff(self):
        handler = Recorder((503, b""), (502, b""), (200, b"payload"))
        data, sleeps = _fetch(handler)
        assert data == b"payload"
        assert sleeps == [0.5, 1.0]

    def test_persistent_5xx_raises_last_error(self):
        handler = Recorder((503, b""))
        with pytest.raises(HTTPError) as exc:
            _fetch(handler, retries=2)
        assert exc.value.status_code == 503
        assert len(handler.requests) == 3

    @pytest.mark.parametrize("status", [501, 507, 520])
    def test_any_5xx_is_retried(self, status):
        handler = Recorder((status, b""), (200, b"payload"))
        data, sleeps = _fetch(handler)
        assert data == b"payload"
        assert sleeps == [0.5]

    def test_rate_limit_is_retried(self):
        handler = Recorder((429, b""), (200, b"payload"))
        data, _ = _fetch(handler)
        assert data == b"payload"

    def test_negative_retries_still_makes_one_attempt(self):
        handler = Recorder((503, b""))
        with pytest.raises(HTTPError) as exc:
            _fetch(handler, retries=-1)
        assert exc.value.status_code == 503
        assert len(handler.requests) == 1

    def test_connect_error_is_network_error(self):
        handler = Recorder(httpx.ConnectError)
        with pytest.raises(NetworkError, match="cannot reach"):
            _fetch(handler, retries=1)
        assert len(handler.requests) == 2

    def test_timeout_is_network_error(self):
        handler = Recorder(httpx.ReadTimeout)
        with pytest.raises(NetworkError, match="timed out"):
            _fetch(handler, retries=0)

    def test_recovers_after_network_error(self):
        handler = Recorder(httpx.ConnectError, (200, b"ok"))
        data, sleeps = _fetch(handler)
        assert data == b"ok"
        assert sleeps == [0.5]

    def test_redirect_is_followed(self):
        def handler(request):
            if request.url.path.endswith(".tar.gz"):
                return httpx.Response(302, headers={"Location": "https://cdn.example.com/blob"})
            return httpx.Response(200, content=b"blob")

        data, _ = _fetch(handler)
        assert data == b"blob"


class TestLocalFetch:
    def test_file_url(self, tmp_path):
        p = tmp_path / "a b.tar.gz"
        p.write_bytes(b"local")
        assert fetch_artifact(p.as_uri()) == b"local"

    def test_plain_path(self, tmp_path):
        p = tmp_path / "artifact.bin"
        p.write_bytes(b"local")
        assert fetch_artifact(str(p)) == b"local"

    def test_missing_file(self, tmp_path):
        with pytest.raises(NetworkError, match="cannot read"):
            fetch_artifact((tmp_path / "missing.tar.gz").as_uri())

    def test_unsupported_scheme(self):
        with pytest.raises(NetworkError, match="unsupported"):
            fetch_artifact("ftp://example.com/milyai.tar.gz")
