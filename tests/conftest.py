from pathlib import Path

import pytest

from soundz import cli
from soundz.cli import debug


FIXTURES_DIR = Path(__file__).parent / "fixtures" / "bbc"


class FakeResponse:
    def __init__(self, body, status_code=200):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.content = body
        self.status_code = status_code

    def raise_for_status(self):
        if 400 <= self.status_code:
            raise cli.requests.HTTPError(f"HTTP {self.status_code}")


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def fixture_html():
    return load_fixture


@pytest.fixture
def fake_requests(monkeypatch):
    """Install a fake ``requests.get`` serving canned bodies.

    Values may be a body, a ``(body, status_code)`` tuple or an exception
    instance to raise. URLs missing from the mapping get *default* when one
    is given, otherwise the test fails.
    """
    calls = []

    def _install(responses, default=None):
        def _fake_get(url, headers=None, timeout=None):
            calls.append({"url": url, "headers": headers, "timeout": timeout})
            if url not in responses:
                assert default is not None, f"Unexpected URL {url}"
                return FakeResponse(default)
            payload = responses[url]
            if isinstance(payload, Exception):
                raise payload
            status_code = 200
            if isinstance(payload, tuple):
                payload, status_code = payload
            return FakeResponse(payload, status_code)

        monkeypatch.setattr(cli.requests, "get", _fake_get)
        return calls

    return _install


@pytest.fixture(autouse=True)
def reset_debug():
    debug.set_debug(False)
    yield
    debug.set_debug(False)
