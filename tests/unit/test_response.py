"""
Unit tests for HTTP response building and writing.
"""

from datetime import datetime, timezone
from io import BytesIO

import pytest

from staticserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    error_response,
    forbidden,
    format_http_date,
    moved_permanently,
    not_found,
)


class BrokenPipe(BytesIO):
    """A writable that fails like a disconnected socket."""

    def write(self, data):
        raise BrokenPipeError("client went away")


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Connection: close\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_server_header(self):
        result = HTTPResponse().to_bytes(server_name="test/0.1")
        assert b"Server: test/0.1\r\n" in result

    def test_empty_body_still_ends_header_block(self):
        result = not_found().to_bytes()
        assert result.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert b"Content-Length: 0\r\n" in result
        assert result.endswith(b"\r\n\r\n")

    def test_connection_close_overrides_handler(self):
        response = HTTPResponse(headers={"Connection": "keep-alive"})
        assert b"Connection: close\r\n" in response.to_bytes()
        assert b"keep-alive" not in response.to_bytes()

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"

    def test_location_keeps_raw_path_bytes(self):
        location = b"/caf\xe9/".decode("utf-8", "surrogateescape")
        result = moved_permanently(location).to_bytes()
        assert b"Location: /caf\xe9/\r\n" in result


class TestWriteTo:
    """Tests for writing responses to a stream."""

    def test_in_memory_body(self):
        out = BytesIO()
        written = HTTPResponse(body=b"hello").write_to(out)

        assert written == 5
        assert out.getvalue().endswith(b"\r\n\r\nhello")

    def test_streams_file_in_chunks(self):
        data = bytes(range(256)) * 100
        source = BytesIO(data)
        response = (ResponseBuilder()
            .file(source, len(data), "application/octet-stream")
            .build())

        out = BytesIO()
        written = response.write_to(out, chunk_size=1000)

        head, _, body = out.getvalue().partition(b"\r\n\r\n")
        assert written == len(data)
        assert body == data
        assert f"Content-Length: {len(data)}".encode() in head
        assert b"Content-Type: application/octet-stream" in head

    def test_file_closed_after_write(self):
        source = BytesIO(b"abc")
        response = ResponseBuilder().file(source, 3, "text/plain").build()

        response.write_to(BytesIO())

        assert source.closed
        assert response.body_file is None

    def test_file_closed_when_write_fails(self):
        source = BytesIO(b"abc")
        response = ResponseBuilder().file(source, 3, "text/plain").build()

        with pytest.raises(OSError):
            response.write_to(BrokenPipe())

        assert source.closed

    def test_body_stops_at_content_length(self):
        """Test that bytes past the declared length are never sent."""
        source = BytesIO(b"declared" + b"appended later")
        response = ResponseBuilder().file(source, 8, "text/plain").build()

        out = BytesIO()
        written = response.write_to(out)

        assert written == 8
        assert out.getvalue().endswith(b"\r\n\r\ndeclared")

    def test_short_file_aborts(self):
        source = BytesIO(b"abc")
        response = ResponseBuilder().file(source, 10, "text/plain").build()

        with pytest.raises(OSError, match="7 bytes short"):
            response.write_to(BytesIO())
        assert source.closed

    def test_close_is_idempotent(self):
        response = ResponseBuilder().file(BytesIO(b"x"), 1, "text/plain").build()
        response.close()
        response.close()
        assert response.body_file is None


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        """Test setting status code."""
        response = ResponseBuilder().status(HTTPStatus.FORBIDDEN).build()
        assert response.status == HTTPStatus.FORBIDDEN

    def test_html_body(self):
        response = ResponseBuilder().html("<p>é</p>").build()

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.body == "<p>é</p>".encode("utf-8")

    def test_content_type(self):
        response = ResponseBuilder().content_type("text/css").body(b"x").build()
        assert response.headers["Content-Type"] == "text/css"

    def test_redirect(self):
        response = ResponseBuilder().redirect("/docs/").build()

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/docs/"
        assert response.body == b""


class TestConvenienceFunctions:
    """Tests for the canned responses."""

    def test_moved_permanently(self):
        response = moved_permanently("/foo/?q=1")
        assert response.status == 301
        assert response.headers["Location"] == "/foo/?q=1"

    def test_not_found_empty_body(self):
        response = not_found()
        assert response.status == 404
        assert response.body == b""

    def test_forbidden(self):
        assert forbidden().status == HTTPStatus.FORBIDDEN

    @pytest.mark.parametrize("status", [400, 414, 431, 500, 503])
    def test_error_response(self, status):
        response = error_response(status)
        assert response.status == status
        assert response.body == b""


class TestFormatHttpDate:

    def test_format(self):
        dt = datetime(2026, 10, 19, 12, 0, 5, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Mon, 19 Oct 2026 12:00:05 GMT"

    def test_zero_padding(self):
        dt = datetime(2024, 1, 5, 3, 4, 5, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Fri, 05 Jan 2024 03:04:05 GMT"
