"""Document and repository identifiers.

Ids are ULIDs rendered in lowercase: 26 Crockford base32 characters whose
prefix encodes the creation time, so ids sort by age.
"""

import re
from datetime import datetime, timezone

from ulid import ULID

ULID_RE = re.compile(r"^[0-9a-hjkmnp-tv-z]{26}$")


def new_id() -> str:
    """Generate a new lowercase ULID."""
    return str(ULID()).lower()


def is_valid_id(value: str) -> bool:
    return bool(ULID_RE.match(value))


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with a `Z` suffix and no microseconds."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
