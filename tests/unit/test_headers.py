"""
Unit tests for the case-insensitive header map.
"""

from pyhttpd.http.headers import Headers


class TestHeaders:
    """Tests for Headers class."""

    def test_lookup_ignores_case(self):
        headers = Headers({"Content-Type": "text/plain"})

        assert headers["content-type"] == "text/plain"
        assert headers["CONTENT-TYPE"] == "text/plain"
        assert "content-TYPE" in headers
        assert headers.get("missing") is None

    def test_last_write_wins_with_its_casing(self):
        headers = Headers()
        headers["Content-Length"] = "5"
        headers["content-length"] = "7"

        assert len(headers) == 1
        assert list(headers.items()) == [("content-length", "7")]

    def test_replacing_keeps_position(self):
        headers = Headers()
        headers["A"] = "1"
        headers["B"] = "2"
        headers["a"] = "3"

        assert list(headers) == ["a", "B"]

    def test_values_stored_as_strings(self):
        headers = Headers()
        headers["Content-Length"] = 42
        assert headers["content-length"] == "42"

    def test_delete_ignores_case(self):
        headers = Headers({"Vary": "Accept-Encoding"})
        del headers["VARY"]
        assert "Vary" not in headers

    def test_remove_missing_is_noop(self):
        headers = Headers({"A": "1"})
        headers.remove("B")
        headers.remove("a")
        assert len(headers) == 0

    def test_non_string_membership(self):
        assert 1 not in Headers({"A": "1"})

    def test_equality(self):
        headers = Headers({"Content-Type": "text/plain"})

        assert headers == {"content-type": "text/plain"}
        assert headers == Headers({"CONTENT-TYPE": "text/plain"})
        assert headers != {"content-type": "text/html"}

    def test_copy_is_independent(self):
        original = Headers({"A": "1"})
        clone = original.copy()
        clone["B"] = "2"

        assert "B" not in original
        assert clone["a"] == "1"
