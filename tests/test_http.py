"""Tests for HTTP/1.1 request framing and response head parsing."""

from __future__ import annotations

import logging

import pytest

from misskey_client.errors import MisskeyEncodingError, MisskeyProtocolError
from misskey_client.http import (
    HttpRequest,
    build_request,
    decode_body,
    encode_request,
    parse_head,
)


class TestBuildRequest:
    """Tests for build_request()."""

    def test_header_order(self):
        """Test headers are emitted in a fixed order with Content-Type last."""
        request = build_request(
            "/api/i",
            host="misskey.example",
            body=b"{}",
            content_type="application/json",
        )

        assert [name for name, _ in request.headers] == [
            "Accept-Charset",
            "Accept-Encoding",
            "Connection",
            "Content-Length",
            "Host",
            "Content-Type",
        ]
        assert dict(request.headers)["Content-Type"] == (
            "application/json; Charset=UTF-8"
        )

    def test_no_content_type_when_not_declared(self):
        """Test bodyless requests carry no Content-Type header."""
        request = build_request("/api/miauth/x/check", host="misskey.example", body=b"")

        names = [name for name, _ in request.headers]
        assert "Content-Type" not in names
        assert dict(request.headers)["Content-Length"] == "0"

    def test_content_length_counts_bytes(self):
        """Test Content-Length is the UTF-8 byte length, not the character count."""
        body = '{"text":"こんにちは"}'.encode()
        request = build_request("/api/notes/create", host="h", body=body)

        assert dict(request.headers)["Content-Length"] == str(len(body))
        assert len(body) > len('{"text":"こんにちは"}')


class TestEncodeRequest:
    """Tests for encode_request()."""

    def test_exact_bytes(self):
        """Test the full request is framed with CRLF separators."""
        request = build_request(
            "/api/notes/create",
            host="misskey.example",
            body=b'{"text":"hello"}',
            content_type="application/json",
        )

        assert encode_request(request) == (
            b"POST /api/notes/create HTTP/1.1\r\n"
            b"Accept-Charset: UTF-8\r\n"
            b"Accept-Encoding: identity\r\n"
            b"Connection: keep-alive\r\n"
            b"Content-Length: 16\r\n"
            b"Host: misskey.example\r\n"
            b"Content-Type: application/json; Charset=UTF-8\r\n"
            b"\r\n"
            b'{"text":"hello"}'
        )

    def test_encode_method_matches_function(self):
        """Test HttpRequest.encode() delegates to encode_request()."""
        request = HttpRequest(method="GET", path="/", headers=(("Host", "h"),))
        assert request.encode() == b"GET / HTTP/1.1\r\nHost: h\r\n\r\n"


class TestParseHead:
    """Tests for parse_head()."""

    def test_status_line_and_headers(self):
        """Test version, status, reason and headers are parsed."""
        head = parse_head(
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 42\r\n"
            b"\r\n"
        )

        assert head.version == "HTTP/1.1"
        assert head.status == 200
        assert head.reason == "OK"
        assert head.content_length == 42
        assert head.headers["content-type"] == "application/json"

    def test_headers_are_case_insensitive(self):
        """Test header names are looked up without regard to case."""
        head = parse_head(b"HTTP/1.1 200 OK\r\nX-Request-Id: abc\r\n\r\n")
        assert head.headers["x-request-id"] == "abc"
        assert head.headers["X-REQUEST-ID"] == "abc"

    def test_multi_word_reason(self):
        """Test reason phrases with spaces are kept whole."""
        head = parse_head(b"HTTP/1.1 400 Bad Request\r\nContent-Length: 0\r\n\r\n")
        assert head.status == 400
        assert head.reason == "Bad Request"

    def test_missing_reason(self):
        """Test a status line without a reason phrase is accepted."""
        head = parse_head(b"HTTP/1.1 204\r\n\r\n")
        assert head.status == 204
        assert head.reason == ""

    def test_header_value_with_colon(self):
        """Test only the first colon separates name from value."""
        head = parse_head(b"HTTP/1.1 200 OK\r\nLocation: http://x:80/y\r\n\r\n")
        assert head.headers["location"] == "http://x:80/y"

    def test_missing_content_length_is_zero(self):
        """Test responses without Content-Length have an empty body."""
        head = parse_head(b"HTTP/1.1 204 No Content\r\n\r\n")
        assert head.content_length == 0

    def test_non_numeric_content_length_is_zero(self, caplog):
        """Test an unparseable Content-Length is treated as zero and logged."""
        with caplog.at_level(logging.WARNING, logger="misskey_client.http"):
            head = parse_head(b"HTTP/1.1 200 OK\r\nContent-Length: lots\r\n\r\n")

        assert head.content_length == 0
        assert "Content-Length" in caplog.text

    def test_superscript_content_length_is_zero(self, caplog):
        """Test a Content-Length of non-ASCII digits counts as zero."""
        with caplog.at_level(logging.WARNING, logger="misskey_client.http"):
            head = parse_head(
                "HTTP/1.1 200 OK\r\nContent-Length: ²\r\n\r\n".encode()
            )

        assert head.content_length == 0
        assert head.headers["content-length"] == "²"
        assert "Content-Length" in caplog.text

    def test_chunked_is_logged(self, caplog):
        """Test chunked transfer-encoding is reported as unsupported."""
        with caplog.at_level(logging.WARNING, logger="misskey_client.http"):
            head = parse_head(
                b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
            )

        assert head.content_length == 0
        assert "Chunked" in caplog.text

    @pytest.mark.parametrize(
        "version", ["HTTP/0.9", "HTTP/1.0", "HTTP/1.1", "HTTP/2", "HTTP/3"]
    )
    def test_supported_versions(self, version):
        """Test every supported HTTP version token is accepted."""
        head = parse_head(f"{version} 200 OK\r\n\r\n".encode())
        assert head.version == version

    @pytest.mark.parametrize(
        "raw",
        [
            b"HTTP/4.0 200 OK\r\n\r\n",
            b"SPDY/3 200 OK\r\n\r\n",
            b"http/1.1 200 OK\r\n\r\n",
        ],
    )
    def test_unsupported_version_raises(self, raw):
        """Test unknown version tokens are rejected."""
        with pytest.raises(MisskeyProtocolError, match="Unsupported HTTP version"):
            parse_head(raw)

    def test_malformed_status_line_raises(self):
        """Test a status line with a single token is rejected."""
        with pytest.raises(MisskeyProtocolError, match="Malformed status line"):
            parse_head(b"HTTP/1.1\r\n\r\n")

    def test_non_numeric_status_raises(self):
        """Test a non-numeric status code is rejected."""
        with pytest.raises(MisskeyProtocolError, match="Malformed status code"):
            parse_head(b"HTTP/1.1 OK fine\r\n\r\n")

    def test_superscript_status_raises(self):
        """Test a status made of non-ASCII digits is rejected."""
        with pytest.raises(MisskeyProtocolError, match="Malformed status code"):
            parse_head("HTTP/1.1 ² OK\r\n\r\n".encode())


class TestDecodeBody:
    """Tests for decode_body()."""

    def test_utf8(self):
        assert decode_body("ノート".encode()) == "ノート"

    def test_invalid_utf8_raises(self):
        """Test bytes that are not UTF-8 raise an encoding error."""
        with pytest.raises(MisskeyEncodingError):
            decode_body(b"\xff\xfe\xfd")
