"""
Unit tests for the static file handler.
"""

import os
from io import BytesIO

import pytest

from staticserver.handlers.static import StaticFileHandler
from staticserver.http.request import HTTPRequest
from staticserver.http.status_codes import HTTPStatus


running_as_root = hasattr(os, "geteuid") and os.geteuid() == 0


def get(path: str):
    return StaticFileHandler().handle(HTTPRequest(method="GET", path=path))


def body_of(response) -> bytes:
    """Write the response and return just its body."""
    out = BytesIO()
    response.write_to(out)
    return out.getvalue().partition(b"\r\n\r\n")[2]


class TestRedirects:

    def test_directory_without_slash(self, docroot):
        response = get("/foo")

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/foo/"
        assert response.body == b""

    def test_index_directory_without_slash(self, docroot):
        response = get("/site")
        assert response.status == 301
        assert response.headers["Location"] == "/site/"

    def test_query_carried_over(self, docroot):
        response = get("/foo?sort=name&x=1")
        assert response.headers["Location"] == "/foo/?sort=name&x=1"

    def test_empty_query_carried_over(self, docroot):
        assert get("/foo?").headers["Location"] == "/foo/?"

    def test_location_uses_raw_path(self, docroot):
        """Test that the redirect keeps the client's encoding."""
        (docroot / "two words").mkdir()
        assert get("/two%20words").headers["Location"] == "/two%20words/"

    def test_slash_before_query_not_redirected(self, docroot):
        assert get("/foo/?x=1").status == HTTPStatus.OK


class TestFiles:

    def test_serves_file(self, docroot):
        response = get("/hello.txt")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/plain"
        assert response.headers["Content-Length"] == "14"
        assert body_of(response) == b"Hello, world!\n"

    def test_mime_from_extension(self, docroot):
        response = get("/style.css")
        assert response.headers["Content-Type"] == "text/css"
        response.close()

    def test_unknown_type(self, docroot):
        response = get("/noext")
        assert response.headers["Content-Type"] == "application/octet-stream"
        assert body_of(response) == b"\x00\x01\x02"

    def test_index_html(self, docroot):
        response = get("/site/")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/html"
        assert body_of(response) == b"<h1>Site</h1>\n"

    def test_index_htm(self, docroot):
        response = get("/legacy/")
        assert body_of(response) == b"<h1>Legacy</h1>\n"

    def test_file_growing_after_open(self, docroot):
        """Test that the body matches the Content-Length taken at open time."""
        response = get("/hello.txt")
        with open(docroot / "hello.txt", "ab") as f:
            f.write(b"x" * 20)

        body = body_of(response)

        assert response.headers["Content-Length"] == "14"
        assert body == b"Hello, world!\n"

    def test_file_is_streamed(self, docroot):
        response = get("/hello.txt")
        assert response.body == b""
        assert response.body_file is not None
        response.close()

    @pytest.mark.skipif(running_as_root, reason="root ignores file permissions")
    def test_unreadable_file_forbidden(self, docroot):
        secret = docroot / "secret.txt"
        secret.write_bytes(b"secret")
        secret.chmod(0)
        try:
            response = get("/secret.txt")
        finally:
            secret.chmod(0o644)

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.body == b""


class TestListings:

    def test_directory_listing(self, docroot):
        response = get("/foo/")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert b"a.txt" in response.body
        assert b"<title>/foo/</title>" in response.body

    def test_root_listing(self, docroot):
        response = get("/")
        assert response.status == HTTPStatus.OK
        assert b"hello.txt" in response.body

    def test_title_is_decoded_path(self, docroot):
        (docroot / "two words").mkdir()
        assert b"<title>/two words/</title>" in get("/two%20words/").body

    @pytest.mark.skipif(running_as_root, reason="root ignores directory permissions")
    def test_unreadable_directory_forbidden(self, docroot):
        locked = docroot / "locked"
        locked.mkdir()
        locked.chmod(0o300)  # no read: listing fails, index lookup doesn't
        try:
            response = get("/locked/")
        finally:
            locked.chmod(0o755)

        assert response.status == HTTPStatus.FORBIDDEN


class TestNotFound:

    def test_missing(self, docroot):
        response = get("/nope.html")

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b""

    def test_traversal_outside_root(self, docroot):
        assert get("/../../../../../../etc/passwd").status == HTTPStatus.NOT_FOUND
