import pytest
import requests

from friendlinks import http_client
from friendlinks.http_client import HttpClient


class _Resp:
    def __init__(self, status_code, *, headers=None, body=b"<html></html>"):
        self.status_code = status_code
        self.url = "https://a.example/links"
        self.headers = headers or {"Content-Type": "text/html; charset=utf-8"}
        self.content = body
        self.encoding = "utf-8"
        self.apparent_encoding = "utf-8"


class _Session:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def get(self, url, **kwargs):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def sleeps(monkeypatch):
    waited = []
    monkeypatch.setattr(http_client.time, "sleep", waited.append)
    return waited


def test_transient_status_is_retried_with_backoff(sleeps):
    session = _Session([_Resp(503), _Resp(502), _Resp(200)])
    client = HttpClient(session, max_retries=2, backoff_base_s=0.5)

    result = client.get("https://A.example/links#top")

    assert result.status_code == 200
    assert result.url == "https://a.example/links"
    assert session.calls == 3
    assert sleeps == [0.5, 1.0]


def test_retry_after_header_wins_over_backoff(sleeps):
    session = _Session([_Resp(429, headers={"Retry-After": "3"}), _Resp(200)])
    client = HttpClient(session, max_retries=1)

    assert client.get("https://a.example/").status_code == 200
    assert sleeps == [3.0]


def test_without_retries_error_status_is_returned(sleeps):
    session = _Session([_Resp(503)])
    result = HttpClient(session, max_retries=0).get("https://a.example/")
    assert result.status_code == 503
    assert session.calls == 1
    assert sleeps == []


def test_network_errors_raise_after_last_attempt(sleeps):
    session = _Session([requests.ConnectionError("down")] * 2)
    client = HttpClient(session, max_retries=1, backoff_base_s=1.0)

    with pytest.raises(RuntimeError, match="Failed to fetch"):
        client.get("https://a.example/")
    assert session.calls == 2
    assert sleeps == [1.0]
