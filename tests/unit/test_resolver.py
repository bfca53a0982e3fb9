"""
Unit tests for request path resolution.
"""

import pytest

from staticserver.handlers.resolver import (
    ResolvedTarget,
    TargetKind,
    resolve,
    to_relative,
)


class TestToRelative:
    """Tests for to_relative()."""

    @pytest.mark.parametrize("raw, expected", [
        ("/", "."),
        ("", "."),
        ("/hello.txt", "hello.txt"),
        ("/a/b/../c", "a/c"),
        ("/foo/?x=1", "foo"),
        ("/my%20file.txt", "my file.txt"),
        ("/my+file.txt", "my file.txt"),
        ("/%2e%2e/%2E%2E/etc/passwd", "etc/passwd"),
        ("/../../..", "."),
        ("//double//slash/", "double/slash"),
    ])
    def test_to_relative(self, raw, expected):
        assert to_relative(raw) == expected

    def test_query_cut_before_decoding(self):
        """Test that an encoded '?' is part of the name, not a query."""
        assert to_relative("/what%3F.txt?real=query") == "what?.txt"


class TestResolve:
    """Tests for resolve() against the docroot fixture."""

    def test_plain_file(self, docroot):
        assert resolve("/hello.txt") == ResolvedTarget(TargetKind.FILE, "hello.txt")

    def test_file_with_query(self, docroot):
        target = resolve("/hello.txt?download=1")
        assert target.kind is TargetKind.FILE
        assert target.path == "hello.txt"

    def test_encoded_name(self, docroot):
        assert resolve("/my%20file.txt").path == "my file.txt"
        assert resolve("/%3Ca%26b%3E").kind is TargetKind.FILE

    def test_directory_without_index(self, docroot):
        target = resolve("/foo/")
        assert target == ResolvedTarget(TargetKind.DIRECTORY, "foo")
        assert target.is_directory_request

    def test_root_directory(self, docroot):
        assert resolve("/") == ResolvedTarget(TargetKind.DIRECTORY, ".")

    def test_index_html(self, docroot):
        target = resolve("/site/")
        assert target.kind is TargetKind.FILE
        assert target.path.replace("\\", "/") == "site/index.html"
        assert target.via_index
        assert target.is_directory_request

    def test_index_htm_fallback(self, docroot):
        target = resolve("/legacy")
        assert target.kind is TargetKind.FILE
        assert target.path.replace("\\", "/") == "legacy/index.htm"
        assert target.via_index

    def test_index_html_preferred_over_htm(self, docroot):
        (docroot / "site" / "index.htm").write_bytes(b"older")
        assert resolve("/site/").path.endswith("index.html")

    def test_plain_file_is_not_directory_request(self, docroot):
        assert not resolve("/hello.txt").is_directory_request

    def test_missing(self, docroot):
        target = resolve("/missing.txt")
        assert target.kind is TargetKind.NOT_FOUND
        assert not target.is_directory_request

    def test_traversal_stays_in_root(self, docroot):
        """Test that excess '..' resolve as if they were absent."""
        assert resolve("/../../../hello.txt") == resolve("/hello.txt")
        assert resolve("/foo/../../../foo/a.txt").path.replace("\\", "/") == "foo/a.txt"

    def test_traversal_never_reaches_real_paths(self, docroot):
        assert resolve("/../../../../etc/passwd").kind is TargetKind.NOT_FOUND
