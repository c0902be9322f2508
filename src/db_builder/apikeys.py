"""Project API key generation, validation and masking.

Key format::

    hzm_<base36 ms timestamp>_<32 alphanumerics>[_<8-char project hash>]

Example:
    >>> key = generate_project_api_key("p1", "Shop")
    >>> validate_api_key(key)
    True
    >>> extract_metadata(key).is_project_key
    True
"""

import re
import secrets
import string
import time
from dataclasses import dataclass

from db_builder.fields import new_id, utc_now
from db_builder.models.project import ApiKey, ApiKeyPermission

PREFIX = "hzm_"
KEY_LENGTH = 32
MIN_KEY_LENGTH = 40
CHARSET = string.ascii_uppercase + string.ascii_lowercase + string.digits
DEFAULT_RATE_LIMIT = 1000

_KEY_PATTERN = re.compile(r"^hzm_[a-z0-9]+_[A-Za-z0-9]+(_[a-z0-9]{8})?$")
_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class KeyMetadata:
    timestamp: int  # milliseconds since epoch
    is_project_key: bool


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _string_hash(value: str) -> str:
    """32-bit multiplicative string hash, absolute value in base36.

    Iterates UTF-16 code units so keys match ones issued by the web
    dashboard for the same project.
    """
    encoded = value.encode("utf-16-le")
    h = 0
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return to_base36(abs(h))


def generate_api_key() -> str:
    timestamp = to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(CHARSET) for _ in range(KEY_LENGTH))
    return f"{PREFIX}{timestamp}_{random_part}"


def generate_project_api_key(project_id: str, project_name: str) -> str:
    """API key tagged with an 8-char hash of the project id and name.

    A 32-bit hash is at most 6 base36 digits, so it is zero-padded to the
    8 characters the key pattern expects.
    """
    project_hash = _string_hash(project_id + project_name)[:8].zfill(8)
    return f"{generate_api_key()}_{project_hash}"


def validate_api_key(api_key: str | None) -> bool:
    if not api_key or not isinstance(api_key, str):
        return False
    if not api_key.startswith(PREFIX) or len(api_key) < MIN_KEY_LENGTH:
        return False
    return _KEY_PATTERN.match(api_key) is not None


def extract_metadata(api_key: str) -> KeyMetadata | None:
    """Creation timestamp and key kind, or ``None`` for malformed keys."""
    if not validate_api_key(api_key):
        return None
    parts = api_key.split("_")
    return KeyMetadata(timestamp=int(parts[1], 36), is_project_key=len(parts) > 3)


def mask_api_key(api_key: str | None) -> str:
    """Show the first 8 and last 4 characters; at most 20 stars between."""
    if not api_key or len(api_key) < 10:
        return "***"
    middle = "*" * max(0, min(len(api_key) - 12, 20))
    return f"{api_key[:8]}{middle}{api_key[-4:]}"


def generate_key_with_permissions(
    project_id: str,
    name: str,
    permissions: list[ApiKeyPermission | str],
) -> ApiKey:
    """New active ``ApiKey`` for ``project_id`` with default rate limit."""
    return ApiKey(
        id=new_id(),
        key=generate_project_api_key(project_id, name),
        project_id=project_id,
        name=name,
        permissions=[ApiKeyPermission(p) for p in permissions],
        is_active=True,
        created_at=utc_now(),
        usage_count=0,
        rate_limit=DEFAULT_RATE_LIMIT,
    )
