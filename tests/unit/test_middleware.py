"""
Unit tests for the middleware pipeline and access logging.
"""

import logging

import pytest

from minihttp.http.request import Header, HTTPRequest
from minihttp.http.response import HTTPResponse, ok
from minihttp.middleware import (
    Middleware,
    MiddlewarePipeline,
    LoggingMiddleware,
    RequestLog,
)


class Recorder(Middleware):
    """Appends its label before and after calling the next handler."""

    def __init__(self, label: str, calls: list):
        self.label = label
        self.calls = calls

    def __call__(self, request, next):
        self.calls.append(f"{self.label}:in")
        response = next(request)
        self.calls.append(f"{self.label}:out")
        return response


class ShortCircuit(Middleware):
    def __call__(self, request, next):
        return ok("blocked")


class TestMiddlewarePipeline:
    """Tests for ordering and short-circuiting."""

    def test_empty_pipeline_returns_handler(self):
        def handler(request):
            return ok("x")

        assert MiddlewarePipeline().wrap(handler) is handler

    def test_first_added_is_outermost(self):
        calls = []
        pipeline = MiddlewarePipeline()
        pipeline.add(Recorder("a", calls)).add(Recorder("b", calls))

        def handler(request):
            calls.append("handler")
            return ok()

        pipeline.wrap(handler)(HTTPRequest(method="GET", path="/"))

        assert len(pipeline) == 2
        assert calls == ["a:in", "b:in", "handler", "b:out", "a:out"]

    def test_short_circuit(self):
        pipeline = MiddlewarePipeline().add(ShortCircuit())

        def handler(request):
            raise AssertionError("should not be called")

        response = pipeline.wrap(handler)(HTTPRequest(method="GET", path="/"))

        assert response.body == b"blocked"

    def test_name(self):
        assert ShortCircuit().name == "ShortCircuit"


class TestLoggingMiddleware:
    """Tests for the access log."""

    def test_logs_and_passes_response_through(self, caplog):
        expected = ok("abc")
        request = HTTPRequest(
            method="GET",
            path="/echo/abc",
            headers=[Header("User-Agent", "curl/8.0")],
            client_address=("10.0.0.1", 4000),
        )

        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            response = LoggingMiddleware()(request, lambda r: expected)

        assert response is expected
        assert response.headers == {"Content-Type": "text/plain", "Content-Length": "3"}
        assert '10.0.0.1 - [' in caplog.text
        assert '"GET /echo/abc" 200 3' in caplog.text

    def test_logs_failure_and_reraises(self, caplog):
        def broken(request):
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            with pytest.raises(RuntimeError):
                LoggingMiddleware()(HTTPRequest(method="POST", path="/x"), broken)

        assert "Request failed: POST /x - RuntimeError: boom" in caplog.text

    def test_respects_log_level(self, caplog):
        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            LoggingMiddleware(log_level=logging.DEBUG)(
                HTTPRequest(method="GET", path="/"), lambda r: ok()
            )

        assert caplog.records == []


class TestRequestLog:
    def make_entry(self, **changes) -> RequestLog:
        fields = dict(
            method="GET",
            path="/",
            client_ip="127.0.0.1",
            user_agent="-",
            status_code=404,
            content_length=0,
            duration_ms=1.234,
            timestamp="19/Oct/2026:10:00:00 +0000",
        )
        fields.update(changes)
        return RequestLog(**fields)

    def test_to_text(self):
        assert self.make_entry().to_text() == (
            '127.0.0.1 - [19/Oct/2026:10:00:00 +0000] "GET /" 404 0 1.23ms'
        )

    def test_to_text_without_client(self):
        assert self.make_entry(client_ip="").to_text().startswith("- - [")

    def test_to_dict_rounds_duration(self):
        assert self.make_entry().to_dict()["duration_ms"] == 1.23
