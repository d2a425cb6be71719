"""
Security utilities for CloudSnap.
Provides path sanitization, credential checks and session tokens.
"""
import hashlib
import hmac
import logging
import re
import time
from enum import Enum
from typing import Mapping, Optional

from cloudsnap.config import SESSION_MAX_AGE

security_logger = logging.getLogger('security')

# Characters allowed in repository folder paths and custom file names
UNSAFE_FOLDER_CHARS = re.compile(r'[^a-zA-Z0-9_/-]')
UNSAFE_NAME_CHARS = re.compile(r'[^a-zA-Z0-9_-]')

SESSION_COOKIE = 'authenticated'
_SESSION_SUBJECT = 'authenticated'


# ============ PATH SANITIZATION ============

def sanitize_folder(folder: str) -> str:
    """
    Normalize a user-supplied folder path.

    Strips leading/trailing slashes and replaces any character outside
    ``[A-Za-z0-9_/-]`` with a dash. Applying it twice is a no-op.

    Args:
        folder: Raw folder path

    Returns:
        Sanitized path, possibly empty
    """
    return UNSAFE_FOLDER_CHARS.sub('-', (folder or '').strip('/'))


def sanitize_custom_filename(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_-]`` with a dash."""
    return UNSAFE_NAME_CHARS.sub('-', name)


# ============ CREDENTIALS ============

def extract_api_key(headers: Mapping[str, str]) -> Optional[str]:
    """
    Read the caller's API key from ``x-api-key`` or a Bearer authorization header.

    Args:
        headers: Request headers (case-insensitive mapping)

    Returns:
        The supplied key or None
    """
    key = headers.get('x-api-key')
    if key:
        return key
    authorization = headers.get('authorization') or ''
    if authorization.startswith('Bearer '):
        return authorization[len('Bearer '):] or None
    return None


def api_key_matches(provided: Optional[str], configured: Optional[str]) -> bool:
    return bool(provided) and bool(configured) and provided == configured


def pin_matches(submitted: Optional[str], configured: Optional[str]) -> bool:
    """
    Compare a submitted PIN to the configured one.

    Plain equality, not constant-time.
    """
    return configured is not None and submitted == configured


# ============ SESSION TOKENS ============

class SessionState(str, Enum):
    VALID = 'valid'
    EXPIRED = 'expired'
    INVALID = 'invalid'


def _signature(key: bytes, issued_at: int) -> str:
    message = f'{_SESSION_SUBJECT}:{issued_at}'.encode('utf-8')
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def issue_session_token(key: bytes, now: Optional[float] = None) -> str:
    """Create a signed token recording when access was granted."""
    issued_at = int(time.time() if now is None else now)
    return f'{issued_at}.{_signature(key, issued_at)}'


def validate_session_token(
    token: Optional[str],
    key: Optional[bytes],
    now: Optional[float] = None,
    max_age: int = SESSION_MAX_AGE,
) -> SessionState:
    """
    Check a session token without touching any request state.

    Args:
        token: Cookie value, if any
        key: Signing key; no key means no token can be valid
        now: Current unix time (defaults to ``time.time()``)
        max_age: Lifetime in seconds

    Returns:
        VALID, EXPIRED or INVALID
    """
    if not token or not key:
        return SessionState.INVALID

    issued_part, _, signature = token.partition('.')
    try:
        issued_at = int(issued_part)
    except ValueError:
        return SessionState.INVALID

    expected = _signature(key, issued_at)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        return SessionState.INVALID

    current = time.time() if now is None else now
    if issued_at > current + 60:
        return SessionState.INVALID
    if current - issued_at > max_age:
        return SessionState.EXPIRED
    return SessionState.VALID


def log_security_event(event_type: str, details: dict):
    """Log a security-relevant event."""
    security_logger.warning(f"SECURITY_EVENT: {event_type} - {details}")
