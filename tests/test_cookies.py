"""Tests for set-cookie directive parsing."""

import pytest

from svcgate.http.cookies import (
    CookieDirective,
    format_set_cookie,
    is_valid_token,
    parse_cookie_header,
)


class TestTokenValidator:
    """Token validation rejects whitespace and control characters."""

    @pytest.mark.parametrize("token", ["abc123", "/", "Thu,01-Jan-1970", "", "a=b", "é"])
    def test_valid_tokens(self, token):
        # ',' inside a token is fine for the validator; the parser splits on it earlier.
        assert is_valid_token(token) is True

    @pytest.mark.parametrize("token", ["a b", "a\tb", "a\rb", "a\nb", "a\fb", " ", "\n"])
    def test_invalid_tokens(self, token):
        assert is_valid_token(token) is False

    def test_other_control_characters_are_not_checked(self):
        assert is_valid_token("a\x00b") is True
        assert is_valid_token("a\vb") is True


class TestParseCookieHeader:
    """Parsing of individual fragments and the whole header."""

    def test_full_directive(self):
        pairs = parse_cookie_header("session=abc123; Max-Age=3600; Path=/; HttpOnly")
        assert pairs[0] == ("session", "abc123")
        assert dict(pairs[1:]) == {"max_age": "3600", "path": "/", "http_only": True}

    def test_name_value_only(self):
        assert parse_cookie_header("name=value") == [("name", "value")]

    def test_empty_fragment_dropped(self):
        assert parse_cookie_header("a=1;;b=2") == [("a", "1"), ("b", "2")]

    def test_malformed_attribute_dropped(self):
        assert parse_cookie_header("x=1; k with space=v") == [("x", "1")]

    def test_malformed_value_dropped(self):
        assert parse_cookie_header("x=1; Path=a\tb") == [("x", "1")]

    def test_bare_flag_only(self):
        assert parse_cookie_header("HttpOnly") == [("http_only", True)]

    def test_unknown_bare_fragment_dropped(self):
        assert parse_cookie_header("a=1; Partitioned; Secure") == [("a", "1"), ("secure", True)]

    def test_empty_key_dropped(self):
        assert parse_cookie_header("=oops; a=1") == [("a", "1")]
        assert parse_cookie_header("  = x") == []

    def test_empty_value_kept(self):
        assert parse_cookie_header("a=; Domain=") == [("a", ""), ("domain", "")]

    def test_value_split_on_first_equals(self):
        assert parse_cookie_header("token=a=b==") == [("token", "a=b==")]

    def test_whitespace_trimmed(self):
        assert parse_cookie_header("  a = 1 ;  Path =  /x  ") == [("a", "1"), ("path", "/x")]

    def test_all_canonical_keys(self):
        raw = "id=7; Max-Age=10; Expires=never; Domain=example.com; Path=/; SameSite=Lax; Secure; HttpOnly"
        assert parse_cookie_header(raw) == [
            ("id", "7"),
            ("max_age", "10"),
            ("expires", "never"),
            ("domain", "example.com"),
            ("path", "/"),
            ("same_site", "Lax"),
            ("secure", True),
            ("http_only", True),
        ]

    def test_key_lookup_is_case_sensitive(self):
        assert parse_cookie_header("a=1; max-age=5; PATH=/; httponly") == [
            ("a", "1"),
            ("max-age", "5"),
            ("PATH", "/"),
        ]

    def test_flags_with_values_are_normalized(self):
        assert parse_cookie_header("a=1; Secure=yes") == [("a", "1"), ("secure", "yes")]

    def test_comma_is_a_separator(self):
        # Legacy compatibility: ',' separates fragments just like ';'.
        assert parse_cookie_header("a=1, Path=/, HttpOnly") == [("a", "1"), ("path", "/"), ("http_only", True)]

    def test_comma_splits_expires_dates(self):
        # Consequence of the dual separator: the weekday and the date part split apart.
        assert parse_cookie_header("a=1; Expires=Wed, 21 Oct 2015 07:28:00 GMT") == [("a", "1"), ("expires", "Wed")]

    def test_order_preserved(self):
        pairs = parse_cookie_header("b=2; Path=/; a=1")
        assert [k for k, _ in pairs] == ["b", "path", "a"]

    def test_empty_header(self):
        assert parse_cookie_header("") == []
        assert parse_cookie_header(" ; , ") == []


class TestCookieDirective:
    """Building directives from parsed pairs."""

    def test_from_pairs(self):
        directive = CookieDirective.parse("session=abc123; Max-Age=3600; Path=/; HttpOnly")
        assert directive == CookieDirective(
            name="session",
            value="abc123",
            attributes={"max_age": "3600", "path": "/", "http_only": True},
        )

    def test_from_empty_pairs(self):
        assert CookieDirective.from_pairs([]) is None

    def test_flag_first_has_no_name(self):
        assert CookieDirective.parse("HttpOnly") is None
        assert CookieDirective.parse("Secure; a=1") is None

    def test_later_duplicate_attribute_wins(self):
        directive = CookieDirective.parse("a=1; Path=/x; Path=/y")
        assert directive.attributes == {"path": "/y"}

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="cookie name cannot be empty"):
            CookieDirective(name="", value="x")


class TestFormatSetCookie:
    """Rendering directives back to header values."""

    def test_canonical_keys_use_wire_names(self):
        directive = CookieDirective(
            name="session",
            value="abc",
            attributes={"max_age": "60", "path": "/", "same_site": "Strict", "secure": True, "http_only": True},
        )
        assert format_set_cookie(directive) == "session=abc; Max-Age=60; Path=/; SameSite=Strict; Secure; HttpOnly"

    def test_custom_attributes_pass_through(self):
        directive = CookieDirective(name="a", value="1", attributes={"priority": "High"})
        assert format_set_cookie(directive) == "a=1; priority=High"

    def test_false_flags_omitted(self):
        directive = CookieDirective(name="a", value="1", attributes={"secure": False})
        assert format_set_cookie(directive) == "a=1"

    def test_parsed_directive_renders_normalized(self):
        directive = CookieDirective.parse(" id = 7 , Domain = example.com ;HttpOnly")
        assert format_set_cookie(directive) == "id=7; Domain=example.com; HttpOnly"
