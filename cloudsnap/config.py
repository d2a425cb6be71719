"""
Application settings, read once from the environment at start-up.
"""
import hashlib
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

SESSION_MAX_AGE = 86400  # 24 hours
DEFAULT_BRANCH = "main"
ASSETS_ROOT = "src/assets"


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Immutable configuration handed to every component."""
    github_owner: Optional[str] = None
    github_repo: Optional[str] = None
    github_branch: str = DEFAULT_BRANCH
    github_token: Optional[str] = None
    api_key: Optional[str] = None
    pin: Optional[str] = None
    session_secret: Optional[str] = None
    debug: bool = False
    environment: str = "production"
    github_timeout: float = 30.0
    allowed_origins: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_env(cls, env=None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ`` after loading .env)."""
        if env is None:
            load_dotenv()
            env = os.environ

        origins = tuple(
            o.strip() for o in env.get("ALLOWED_ORIGINS", "").split(",") if o.strip()
        )
        return cls(
            github_owner=env.get("GITHUB_OWNER") or None,
            github_repo=env.get("GITHUB_REPO") or None,
            github_branch=env.get("GITHUB_BRANCH") or DEFAULT_BRANCH,
            github_token=env.get("GITHUB_TOKEN") or None,
            api_key=env.get("API_KEY") or None,
            pin=env.get("PIN") or None,
            session_secret=env.get("SESSION_SECRET") or None,
            debug=_flag(env.get("DEBUG")),
            environment=env.get("ENVIRONMENT", "production").strip().lower(),
            github_timeout=float(env.get("GITHUB_TIMEOUT", "30")),
            allowed_origins=origins,
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def signing_key(self) -> Optional[bytes]:
        """
        Key used to sign session tokens.

        Falls back to a key derived from the PIN, so changing the PIN
        invalidates every outstanding session.
        """
        if self.session_secret:
            return self.session_secret.encode("utf-8")
        if self.pin:
            return hashlib.sha256(f"cloudsnap-session:{self.pin}".encode("utf-8")).digest()
        return None
