import hashlib
from datetime import datetime, timezone
from typing import Union


def calculate_checksum(content: Union[bytes, str]) -> str:
    """SHA-256 hex digest of the exact bytes (str is encoded as UTF-8)."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def verify_checksum(content: Union[bytes, str], checksum: str) -> bool:
    return calculate_checksum(content) == checksum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp as written into blob metadata.

    Naive values are treated as UTC; a trailing "Z" is accepted.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
