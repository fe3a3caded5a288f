"""Persisted bearer token.

Handles:
- Loading the token saved by a previous run
- Saving the token after login/registration
- Clearing it on logout or when the server rejects it
"""
import json
from pathlib import Path
from typing import Optional

from medibook import config
from medibook.logging_config import get_logger

logger = get_logger(__name__)


class TokenStore:
    """Stores one bearer token in a small JSON file under a fixed key."""

    def __init__(self, path: Optional[str] = None):
        """
        Initialize token store.

        Args:
            path: JSON file holding the token.
                  Defaults to config.TOKEN_FILE (~/.medibook/session.json).
        """
        self.path = Path(path or config.TOKEN_FILE)

    def get(self) -> Optional[str]:
        """Return the stored token, or None if nothing usable is stored."""
        if not self.path.exists():
            return None

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("token_store_unreadable", path=str(self.path), error=str(e))
            return None

        token = data.get(config.TOKEN_KEY) if isinstance(data, dict) else None
        return token or None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({config.TOKEN_KEY: token}, f)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
