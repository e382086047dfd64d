import base64
import binascii
import ipaddress
import re
import logging
from datetime import date
from typing import Dict, List, Any, Optional, Callable, Tuple

logger = logging.getLogger(__name__)

# Reserved path segment for array elements, e.g. "orders.[].id"
ARRAY_SEGMENT = "[]"
# Path under which non-object records are profiled
ROOT_PATH = "$"
PATH_SEPARATOR = "."

_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
_TIME_RE = re.compile(
    r'^(\d{2}):(\d{2})(?::(\d{2})(?:\.\d{1,9})?)?(?:Z|z|[+-]\d{2}:?\d{2})?$'
)
_DATE_TIME_RE = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2})(?::(\d{2})(?:\.\d{1,9})?)?(?:Z|z|[+-]\d{2}:?\d{2})?$'
)
_UUID_RE = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.IGNORECASE)
_JWT_RE = re.compile(r'^eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*$')
_EMAIL_RE = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
_URI_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*://[^\s/?#]+[^\s]*$')
_OPAQUE_URI_RE = re.compile(r'^(?:mailto|urn|tel|data):\S+$', re.IGNORECASE)
_IPV4_RE = re.compile(r'^(\d{1,3}\.){3}\d{1,3}$')
_SEMVER_RE = re.compile(
    r'^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$'
)
_MIME_RE = re.compile(
    r'^(?:application|audio|font|image|message|model|multipart|text|video)/'
    r'[a-zA-Z0-9][a-zA-Z0-9!#$&^_.+-]*(?:\s*;\s*[a-zA-Z0-9-]+=[^\s;]+)*$'
)
_HOSTNAME_RE = re.compile(
    r'^(?=.{4,253}$)(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63}$'
)
_PHONE_RE = re.compile(r'^\+?[0-9][0-9()\-. ]{5,22}[0-9]$')
_COUNTRY_RE = re.compile(r'^[A-Z]{2}$')
_CURRENCY_RE = re.compile(r'^[A-Z]{3}$')
_LANGUAGE_RE = re.compile(r'^[a-z]{2}(?:[-_][A-Z]{2})?$')
_BASE64_RE = re.compile(r'^[A-Za-z0-9+/]+={0,2}$')
_SLUG_RE = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)+$')


def _valid_date(year: str, month: str, day: str) -> bool:
    try:
        date(int(year), int(month), int(day))
    except ValueError:
        return False
    return True


def _valid_time(hour: str, minute: str, second: Optional[str]) -> bool:
    # 60 allows a leap second
    return int(hour) < 24 and int(minute) < 60 and (second is None or int(second) <= 60)


def looks_like_date_time(value: str) -> bool:
    """Check if a string is an ISO 8601 timestamp with both date and time."""
    match = _DATE_TIME_RE.match(value)
    if not match:
        return False
    year, month, day, hour, minute, second = match.groups()
    return _valid_date(year, month, day) and _valid_time(hour, minute, second)


def looks_like_date(value: str) -> bool:
    """Check if a string is an ISO calendar date (YYYY-MM-DD)."""
    match = _DATE_RE.match(value)
    return bool(match) and _valid_date(*match.groups())


def looks_like_time(value: str) -> bool:
    """Check if a string is a time of day (HH:MM[:SS[.fff]][offset])."""
    match = _TIME_RE.match(value)
    return bool(match) and _valid_time(*match.groups())


def looks_like_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value))


def looks_like_jwt(value: str) -> bool:
    return bool(_JWT_RE.match(value))


def looks_like_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def looks_like_uri(value: str) -> bool:
    """Check if a string is an absolute URI (scheme://authority... or an opaque mailto:/urn: form)."""
    return bool(_URI_RE.match(value) or _OPAQUE_URI_RE.match(value))


def looks_like_ipv4(value: str) -> bool:
    if not _IPV4_RE.match(value):
        return False
    # Each octet must be 0-255
    return all(0 <= int(part) <= 255 for part in value.split('.'))


def looks_like_ipv6(value: str) -> bool:
    if ':' not in value:
        return False
    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True


def looks_like_semver(value: str) -> bool:
    return bool(_SEMVER_RE.match(value))


def looks_like_mime_type(value: str) -> bool:
    return bool(_MIME_RE.match(value))


def looks_like_hostname(value: str) -> bool:
    """Check if a string is a dotted DNS name with an alphabetic top-level label."""
    return bool(_HOSTNAME_RE.match(value))


def looks_like_phone(value: str) -> bool:
    """Check if a string is a phone number: 7-15 digits with a leading + or separators."""
    if not _PHONE_RE.match(value):
        return False
    digits = sum(ch.isdigit() for ch in value)
    if not 7 <= digits <= 15:
        return False
    return value.startswith('+') or any(ch in value for ch in "-. ()")


def looks_like_country_code(value: str) -> bool:
    return bool(_COUNTRY_RE.match(value))


def looks_like_currency_code(value: str) -> bool:
    return bool(_CURRENCY_RE.match(value))


def looks_like_language_code(value: str) -> bool:
    return bool(_LANGUAGE_RE.match(value))


def looks_like_base64(value: str) -> bool:
    """Check if a string is a standard base64 payload long enough not to be an ordinary word."""
    if len(value) < 16 or len(value) % 4 != 0 or value.isalpha():
        return False
    if not _BASE64_RE.match(value):
        return False
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def looks_like_slug(value: str) -> bool:
    return bool(_SLUG_RE.match(value))


# Most specific first: a value is attributed to the first format it matches.
FORMAT_CHECKS: List[Tuple[str, Callable[[str], bool]]] = [
    ("date-time", looks_like_date_time),
    ("date", looks_like_date),
    ("time", looks_like_time),
    ("uuid", looks_like_uuid),
    ("jwt", looks_like_jwt),
    ("email", looks_like_email),
    ("uri", looks_like_uri),
    ("ipv4", looks_like_ipv4),
    ("ipv6", looks_like_ipv6),
    ("semver", looks_like_semver),
    ("mime-type", looks_like_mime_type),
    ("hostname", looks_like_hostname),
    ("phone", looks_like_phone),
    ("country-code", looks_like_country_code),
    ("currency-code", looks_like_currency_code),
    ("language-code", looks_like_language_code),
    ("base64", looks_like_base64),
    ("slug", looks_like_slug),
]

FORMAT_NAMES = [name for name, _ in FORMAT_CHECKS]


def detect_format(value: Any) -> Optional[str]:
    """Return the name of the first format a string matches, or None."""
    if not isinstance(value, str) or not value or value != value.strip():
        return None

    for name, check in FORMAT_CHECKS:
        if check(value):
            return name
    return None


def select_format(format_matches: Dict[str, int], string_count: int, threshold: float) -> Optional[str]:
    """
    Pick the format attributed to a field.

    A format qualifies when matches / string_count >= threshold. The field gets a
    format only when exactly one qualifies; ambiguous fields stay unannotated.
    """
    if string_count <= 0:
        return None

    qualifying = [
        name for name, matches in format_matches.items()
        if matches > 0 and matches / string_count >= threshold
    ]
    if len(qualifying) == 1:
        return qualifying[0]
    if len(qualifying) > 1:
        logger.debug(f"Formats {sorted(qualifying)} all clear the threshold; leaving field unannotated")
    return None


def join_path(parent: Optional[str], key: str) -> str:
    """Append a key (or the array segment) to a dot-notation field path."""
    if not parent:
        return key
    return f"{parent}{PATH_SEPARATOR}{key}"



def escape_key(key: str) -> str:
    """
    Escape a record key for use as one path segment.

    Backslashes and separators are backslash-escaped, and keys spelled like a
    reserved segment get a leading backslash, so `{"a.b": 1}` and
    `{"a": {"b": 1}}` never share a path.
    """
    escaped = key.replace("\\", "\\\\").replace(PATH_SEPARATOR, "\\" + PATH_SEPARATOR)
    if escaped in (ARRAY_SEGMENT, ROOT_PATH):
        escaped = "\\" + escaped
    return escaped
