"""File-based persistence for WhatsApp session credentials."""

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class CredentialStore:
    """Stores session credentials under a single directory.

    The directory holds `creds.json` (the credentials blob reported by the
    session) and the session database used by the WhatsApp client. Clearing
    the store removes both, which forces a new pairing on the next start.
    """

    CREDENTIALS_FILE = "creds.json"
    DATABASE_FILE = "session.sqlite3"

    def __init__(self, directory: str):
        self.directory = Path(directory)

    @property
    def credentials_path(self) -> Path:
        return self.directory / self.CREDENTIALS_FILE

    @property
    def database_path(self) -> Path:
        return self.directory / self.DATABASE_FILE

    def exists(self) -> bool:
        """Check if any credentials were stored."""
        return self.credentials_path.exists() or self.database_path.exists()

    def load(self) -> Optional[Dict[str, Any]]:
        """Load stored credentials, or None when nothing usable is stored."""
        if not self.credentials_path.exists():
            return None
        try:
            data = json.loads(self.credentials_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable credentials file: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring credentials file with unexpected content")
            return None
        return data

    def save(self, credentials: Dict[str, Any]) -> None:
        """Persist credentials with owner-only permissions."""
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.credentials_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(credentials), encoding="utf-8")
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.credentials_path)
        logger.debug("Credentials saved")

    def clear(self) -> bool:
        """Remove all stored credentials. Returns True if anything was removed."""
        if not self.directory.exists():
            return False
        shutil.rmtree(self.directory)
        logger.info(f"Cleared stored credentials in {self.directory}")
        return True
