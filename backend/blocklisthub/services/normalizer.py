"""Indicator normalizer — canonicalizes and validates raw IoC values per kind.

Every function here is pure: no DNS lookups, no I/O. ``is_valid_*`` always
rejects empty or blank input.
"""

import ipaddress
import re
from urllib.parse import urlsplit

# MD5 (32) .. SHA-256 (64), any case
HASH_PATTERN = re.compile(r"[a-fA-F0-9]{32,64}")

# label.label...tld, labels 1-63 chars without leading/trailing hyphen
DOMAIN_PATTERN = re.compile(
    r"([a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63}"
)

# Defanged forms analysts paste from reports: hxxp://, hxxps://, evil[.]com
_DEFANGED_SCHEME = re.compile(r"hxxp(s?)://", re.IGNORECASE)
_DEFANGED_DOT = "[.]"

_URL_SCHEME = re.compile(r"[a-zA-Z][a-zA-Z0-9+.\-]*")

# Never allowed unescaped anywhere in a URI (RFC 3986)
_URL_ILLEGAL_CHARS = frozenset("<>\"{}|\\^`")
_URL_BAD_ESCAPE = re.compile(r"%(?![0-9a-fA-F]{2})")


def _clean(raw: str | None) -> str:
    return (raw or "").strip()


# ── IP ────────────────────────────────────────────────────────────────


def normalize_ip(raw: str | None) -> str:
    """IPs keep their textual form; equality is decided by :func:`ip_lookup_key`."""
    return _clean(raw)


def is_valid_ip(value: str | None) -> bool:
    if not value or not value.strip():
        return False
    try:
        ipaddress.ip_address(value.strip())
    except ValueError:
        return False
    return True


def ip_lookup_key(value: str) -> str:
    """Hex of the packed address, so ``::1`` and ``0:0::1`` collide."""
    return ipaddress.ip_address(value.strip()).packed.hex()


# ── Hash ──────────────────────────────────────────────────────────────


def normalize_hash(raw: str | None) -> str:
    return _clean(raw).lower()


def is_valid_hash(value: str | None) -> bool:
    if not value or not value.strip():
        return False
    return bool(HASH_PATTERN.fullmatch(value))


# ── Domain ────────────────────────────────────────────────────────────


def normalize_domain(raw: str | None) -> str:
    return _clean(raw).lower()


def is_valid_domain(value: str | None) -> bool:
    if not value or not value.strip():
        return False
    return bool(DOMAIN_PATTERN.fullmatch(value))


# ── URL ───────────────────────────────────────────────────────────────


def normalize_url(raw: str | None) -> str:
    """Undo the usual defanging, e.g. ``hxxp://evil[.]com/a`` -> ``http://evil.com/a``."""
    value = _clean(raw)
    value = _DEFANGED_SCHEME.sub(lambda m: f"http{m.group(1).lower()}://", value)
    return value.replace(_DEFANGED_DOT, ".")


def _illegal_in_url(ch: str) -> bool:
    return ch.isspace() or ch in _URL_ILLEGAL_CHARS or ord(ch) < 0x20 or ord(ch) == 0x7F


def is_valid_url(value: str | None) -> bool:
    """Absolute URI: non-empty scheme and scheme-specific part.

    The ``scheme://`` form also needs a host, so a bare ``http://`` never
    ends up in a published blocklist.
    """
    if not value or not value.strip():
        return False
    if any(_illegal_in_url(ch) for ch in value):
        return False
    if _URL_BAD_ESCAPE.search(value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _URL_SCHEME.fullmatch(parts.scheme):
        return False

    rest = value[len(parts.scheme) + 1:]
    if not rest:
        return False
    if rest.startswith("//"):
        return bool(parts.netloc)
    return True
