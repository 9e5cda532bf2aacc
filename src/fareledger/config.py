"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_DB_DIR = ".fareledger"
DEFAULT_DB_FILE = "fareledger.db"
DEFAULT_EXPORTS_DIR = "exports"


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Attributes:
        database_url: Explicit SQLAlchemy URL, wins over database_path
        database_path: SQLite file path used when no URL is given
        exports_root: Directory that receives archived exports
        log_level: Root log level
        log_json: Emit JSON log lines instead of console format
    """

    database_url: Optional[str]
    database_path: Optional[str]
    exports_root: str
    log_level: str = "WARNING"
    log_json: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from FARELEDGER_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("FARELEDGER_DATABASE_URL") or None,
            database_path=env.get("FARELEDGER_DB_PATH") or None,
            exports_root=env.get("FARELEDGER_EXPORTS_ROOT") or str(Path.cwd() / DEFAULT_EXPORTS_DIR),
            log_level=env.get("FARELEDGER_LOG_LEVEL", "WARNING"),
            log_json=env.get("FARELEDGER_LOG_JSON", "0").lower() in ("1", "true", "yes"),
        )

    def resolve_database_url(self) -> str:
        """Return the SQLAlchemy URL, defaulting to ~/.fareledger/fareledger.db."""
        if self.database_url:
            return self.database_url
        database_path = self.database_path
        if database_path is None:
            db_dir = Path.home() / DEFAULT_DB_DIR
            db_dir.mkdir(exist_ok=True)
            database_path = str(db_dir / DEFAULT_DB_FILE)
        return f"sqlite:///{database_path}"
