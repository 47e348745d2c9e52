# -*- coding: utf-8 -*-
"""
Tests for agenthub.catalog.http — ResilientFetcher retry and auth headers.

Author
------
Agent Hub contributors

Created
-------
2026-09-17
"""

import json
import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from agenthub.catalog.errors import HttpClientError, NetworkError, ValidationError
from agenthub.catalog.http import USER_AGENT, ResilientFetcher
from agenthub.catalog.models import AuthConfig


def _response(status=200, text="", reason="OK", payload=None):
    response = MagicMock(status_code=status, reason=reason, text=text)
    if payload is not None:
        response.json.return_value = payload
    else:
        response.json.side_effect = json.JSONDecodeError("Expecting value", text, 0)
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def fetcher(session):
    return ResilientFetcher(timeout=5.0, session=session)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch('agenthub.catalog.http.time.sleep') as sleep:
        yield sleep


class TestRetry:

    def test_success_first_try(self, fetcher, session, no_sleep):
        session.request.return_value = _response(text="hello")
        assert fetcher.fetch_text("https://example.com/a.md") == "hello"
        assert session.request.call_count == 1
        no_sleep.assert_not_called()

    def test_client_error_not_retried(self, fetcher, session):
        session.request.return_value = _response(status=404, reason="Not Found")
        with pytest.raises(HttpClientError) as exc_info:
            fetcher.fetch("https://example.com/a.md")
        assert exc_info.value.status_code == 404
        assert session.request.call_count == 1

    def test_server_error_retried_then_succeeds(self, fetcher, session, no_sleep):
        session.request.side_effect = [
            _response(status=503, reason="Service Unavailable"),
            _response(status=502, reason="Bad Gateway"),
            _response(text="ok"),
        ]
        assert fetcher.fetch_text("https://example.com/a.md") == "ok"
        assert session.request.call_count == 3
        assert [c.args[0] for c in no_sleep.call_args_list] == [1.0, 2.0]

    def test_server_error_exhausts_retries(self, fetcher, session, no_sleep):
        session.request.return_value = _response(status=500, reason="Server Error")
        with pytest.raises(NetworkError) as exc_info:
            fetcher.fetch("https://example.com/a.md")
        assert exc_info.value.status_code == 500
        assert session.request.call_count == 4
        assert [c.args[0] for c in no_sleep.call_args_list] == [1.0, 2.0, 4.0]

    def test_backoff_is_capped(self, session, no_sleep):
        fetcher = ResilientFetcher(
            max_retries=5, initial_delay=4.0, max_delay=10.0, session=session,
        )
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(NetworkError):
            fetcher.fetch("https://example.com/a.md")
        assert [c.args[0] for c in no_sleep.call_args_list] == [4.0, 8.0, 10.0, 10.0, 10.0]

    def test_transport_error_retried(self, fetcher, session):
        session.request.side_effect = [
            requests.Timeout("timed out"),
            _response(text="ok"),
        ]
        assert fetcher.fetch_text("https://example.com/a.md") == "ok"

    def test_request_arguments(self, fetcher, session):
        session.request.return_value = _response()
        fetcher.fetch("https://example.com/a", method="POST", body="x",
                      headers={"Accept": "text/markdown"})
        args, kwargs = session.request.call_args
        assert args == ("POST", "https://example.com/a")
        assert kwargs['data'] == "x"
        assert kwargs['timeout'] == 5.0
        assert kwargs['headers']['Accept'] == "text/markdown"
        assert kwargs['headers']['User-Agent'] == USER_AGENT


class TestJson:

    def test_fetch_json(self, fetcher, session):
        session.request.return_value = _response(payload={'a': 1})
        assert fetcher.fetch_json("https://example.com/c.json") == {'a': 1}

    def test_invalid_json(self, fetcher, session):
        session.request.return_value = _response(text="<html>")
        with pytest.raises(ValidationError):
            fetcher.fetch_json("https://example.com/c.json")


class TestAuthHeaders:

    def _headers(self, fetcher, session, auth):
        session.request.return_value = _response()
        fetcher.fetch("https://example.com/a", auth=auth)
        return session.request.call_args.kwargs['headers']

    def test_no_auth(self, fetcher, session):
        assert 'Authorization' not in self._headers(fetcher, session, None)

    def test_bearer(self, fetcher, session):
        headers = self._headers(fetcher, session, AuthConfig(type='bearer', token='abc'))
        assert headers['Authorization'] == "Bearer abc"

    def test_basic(self, fetcher, session):
        headers = self._headers(
            fetcher, session,
            AuthConfig(type='basic', username='user', password='pass'),
        )
        assert headers['Authorization'] == "Basic dXNlcjpwYXNz"

    def test_env_reference_read_at_request_time(self, fetcher, session):
        auth = AuthConfig(type='bearer', token='${env:AGENTHUB_TEST_TOKEN}')
        with patch.dict(os.environ, {'AGENTHUB_TEST_TOKEN': 'from-env'}):
            headers = self._headers(fetcher, session, auth)
        assert headers['Authorization'] == "Bearer from-env"
        assert auth.token == '${env:AGENTHUB_TEST_TOKEN}'

    def test_missing_env_sends_no_credential(self, fetcher, session):
        auth = AuthConfig(type='bearer', token='${env:AGENTHUB_TEST_TOKEN}')
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('AGENTHUB_TEST_TOKEN', None)
            headers = self._headers(fetcher, session, auth)
        assert 'Authorization' not in headers

    def test_unresolved_secret_never_sent(self, fetcher, session):
        auth = AuthConfig(type='bearer', token='${secret:missing}')
        assert 'Authorization' not in self._headers(fetcher, session, auth)


class TestConnection:

    def test_success(self, fetcher, session):
        session.request.return_value = _response()
        result = fetcher.test_connection("https://example.com/c.json")
        assert result.success
        assert session.request.call_args.args[0] == "HEAD"

    def test_failure_reported(self, fetcher, session):
        session.request.return_value = _response(status=401, reason="Unauthorized")
        result = fetcher.test_connection("https://example.com/c.json")
        assert not result.success
        assert "401" in result.error

    def test_close(self, fetcher, session):
        fetcher.close()
        session.close.assert_called_once()
