"""Set-Cookie directive parsing and rendering.

The read side (``parse_cookie_header``) turns a service's ``set-cookie`` header
value into ordered ``(key, value_or_flag)`` pairs. The write side
(``format_set_cookie``) renders a ``CookieDirective`` back into a header value
for the wire.

Parsing is best effort: fragments that are malformed are dropped and never
abort the whole header.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping, Sequence


AttributeValue = str | bool
CookiePair = tuple[str, AttributeValue]

# Legacy formats use ',' between attributes, so both are separators.
_FRAGMENT_SEPARATOR = re.compile(r"[;,]")

_FORBIDDEN_TOKEN_CHARS = frozenset(" \t\r\n\f")

_ATTRIBUTE_KEYS: dict[str, str] = {
    "Max-Age": "max_age",
    "Expires": "expires",
    "Domain": "domain",
    "Path": "path",
    "HttpOnly": "http_only",
    "Secure": "secure",
    "SameSite": "same_site",
}

_FLAG_KEYS: dict[str, str] = {
    "HttpOnly": "http_only",
    "Secure": "secure",
}

_WIRE_NAMES: dict[str, str] = {v: k for k, v in _ATTRIBUTE_KEYS.items()}


def is_valid_token(s: str) -> bool:
    """Return True if ``s`` has no space, tab, CR, LF or form-feed."""
    return not any(ch in _FORBIDDEN_TOKEN_CHARS for ch in s)


def _parse_fragment(fragment: str) -> CookiePair | None:
    fragment = fragment.strip()
    key, sep, value = fragment.partition("=")
    if not sep:
        flag = _FLAG_KEYS.get(fragment)
        return (flag, True) if flag is not None else None

    key = key.strip()
    value = value.strip()
    if not key:
        return None
    if not (is_valid_token(key) and is_valid_token(value)):
        return None
    return (_ATTRIBUTE_KEYS.get(key, key), value)


def parse_cookie_header(raw: str) -> list[CookiePair]:
    """
    Split a ``set-cookie`` header value into ordered pairs.

    The first pair is conventionally the cookie's own ``(name, value)``;
    the rest are attributes with canonical keys (``max_age``, ``expires``,
    ``domain``, ``path``, ``http_only``, ``secure``, ``same_site``). Unknown
    attribute keys pass through unchanged. Bare ``HttpOnly``/``Secure``
    fragments become ``True`` flags; every other malformed fragment is
    silently dropped.

    >>> parse_cookie_header("session=abc; Path=/; HttpOnly")
    [('session', 'abc'), ('path', '/'), ('http_only', True)]
    """
    pairs: list[CookiePair] = []
    for fragment in _FRAGMENT_SEPARATOR.split(raw):
        pair = _parse_fragment(fragment)
        if pair is not None:
            pairs.append(pair)
    return pairs


@dataclass(frozen=True, slots=True)
class CookieDirective:
    """A parsed ``set-cookie`` header: name, value and attributes."""

    name: str
    value: str
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            raise ValueError("cookie name cannot be empty")

    @classmethod
    def from_pairs(cls, pairs: Sequence[CookiePair]) -> "CookieDirective | None":
        """
        Build a directive from ``parse_cookie_header`` output.

        Returns None when there is nothing to set: no pairs at all, or the
        first pair is a bare flag rather than a name/value.
        """
        if not pairs:
            return None
        name, value = pairs[0]
        if not isinstance(value, str) or not name:
            return None
        return cls(name=name, value=value, attributes=dict(pairs[1:]))

    @classmethod
    def parse(cls, raw: str) -> "CookieDirective | None":
        return cls.from_pairs(parse_cookie_header(raw))


def format_set_cookie(directive: CookieDirective) -> str:
    """Render a directive as a ``Set-Cookie`` header value."""
    parts = [f"{directive.name}={directive.value}"]
    for key, value in directive.attributes.items():
        wire = _WIRE_NAMES.get(key, key)
        if value is True:
            parts.append(wire)
        elif value is False:
            continue
        else:
            parts.append(f"{wire}={value}")
    return "; ".join(parts)
