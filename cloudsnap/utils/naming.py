"""
Destination file names for uploads.
"""
import secrets
import string
from datetime import datetime, timezone
from typing import Optional

from cloudsnap.security import sanitize_custom_filename

# Lowercase base36, matching what browsers produce for random ids
ALPHABET = string.digits + string.ascii_lowercase
DEFAULT_EXTENSION = "jpg"


def generate_suffix(length: int = 9) -> str:
    """
    Generate a random base36 suffix.

    Uses the `secrets` module so names cannot be guessed from each other.

    Returns:
        str: A suffix like "k3j9x0q2m"
    """
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a ``Z`` suffix."""
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def file_extension(filename: str) -> str:
    """Text after the last dot (the whole name if it has none), or ``jpg`` when that is empty."""
    return filename.rsplit(".", 1)[-1] or DEFAULT_EXTENSION


def build_filename(
    original_name: str,
    custom_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Pick the stored file name for an upload.

    A custom name is sanitized and keeps the original extension; otherwise
    the name is ``{timestamp}-{suffix}.{ext}`` with ``:`` and ``.`` in the
    timestamp replaced by dashes.
    """
    extension = file_extension(original_name)
    if custom_name:
        return f"{sanitize_custom_filename(custom_name)}.{extension}"
    stamp = iso_timestamp(now).replace(":", "-").replace(".", "-")
    return f"{stamp}-{generate_suffix()}.{extension}"
