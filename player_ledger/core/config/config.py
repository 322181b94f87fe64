"""
Static configuration for the player ledger.

Values come from environment variables (a ``.env`` file is honoured through
python-dotenv) and are read once at import. Malformed or out-of-range values
fall back to their defaults with a warning instead of failing the import;
only production refuses to start without a database URL and at least one
admin.

Variables
---------
ENVIRONMENT, DEBUG, LOG_LEVEL, LOG_JSON, LOG_TO_FILE, LOGS_DIR,
DATABASE_URL (default: SQLite file under data/), DATABASE_POOL_SIZE,
DATABASE_MAX_OVERFLOW, DATABASE_ECHO, DATABASE_POOL_RECYCLE,
DATABASE_POOL_TIMEOUT, DATABASE_STATEMENT_TIMEOUT_MS, TESTING,
ADMIN_ADDRESSES (comma separated), AUDIT_PERSIST,
EVENT_LISTENER_TIMEOUT_SECONDS
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from player_ledger.core.exceptions import ConfigurationError

load_dotenv()

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Environment(Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """Unknown names map to DEVELOPMENT."""
        try:
            return cls(value.lower())
        except ValueError:
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


class Config:
    """
    Class-level settings namespace.

    >>> Config.DATABASE_URL
    'sqlite+aiosqlite:///.../data/player_ledger.db'
    >>> Config.get_config_summary()["admin_count"]
    1
    """

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None  # None: JSON in production only
    LOG_TO_FILE: bool = False

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"
    DATA_DIR = PROJECT_ROOT / "data"

    DATABASE_URL: str = ""
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_ECHO: bool = False
    DATABASE_POOL_RECYCLE: int = 1800
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_STATEMENT_TIMEOUT_MS: int = 30_000
    TESTING: bool = False

    ADMIN_ADDRESSES: List[str] = []
    AUDIT_PERSIST: bool = True

    EVENT_LISTENER_TIMEOUT_SECONDS: int = 5

    # Keys whose environment value was rejected on the last load.
    _rejected: Dict[str, str] = {}

    # =========================================================================
    # Parsing
    # =========================================================================

    @classmethod
    def _reject(cls, key: str, reason: str, default: Any) -> Any:
        cls._rejected[key] = reason
        logging.warning(f"{key}: {reason}, using default {default!r}")
        return default

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        raw = os.getenv(key)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            return cls._reject(key, f"'{raw}' is not an integer", default)
        if min_val is not None and value < min_val:
            return cls._reject(key, f"{value} is below {min_val}", default)
        if max_val is not None and value > max_val:
            return cls._reject(key, f"{value} is above {max_val}", default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        raw = os.getenv(key)
        if raw is None:
            return default
        normalized = raw.strip().lower()
        if normalized in _TRUE:
            return True
        if normalized in _FALSE:
            return False
        return cls._reject(key, f"'{raw}' is not a boolean", default)

    @classmethod
    def _safe_list(cls, key: str) -> List[str]:
        return [item.strip() for item in os.getenv(key, "").split(",") if item.strip()]

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """(Re)read every setting from the environment."""
        cls._rejected = {}

        cls.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
        cls.DEBUG = bool(cls._safe_bool("DEBUG", False))
        cls.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        if cls.LOG_LEVEL not in _LOG_LEVELS:
            cls.LOG_LEVEL = cls._reject("LOG_LEVEL", f"'{cls.LOG_LEVEL}' is not a level", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_TO_FILE = bool(cls._safe_bool("LOG_TO_FILE", False))
        cls.LOGS_DIR = Path(os.getenv("LOGS_DIR", str(cls.PROJECT_ROOT / "logs")))

        cls.DATABASE_URL = os.getenv(
            "DATABASE_URL", f"sqlite+aiosqlite:///{cls.DATA_DIR / 'player_ledger.db'}"
        )
        cls.DATABASE_POOL_SIZE = cls._safe_int("DATABASE_POOL_SIZE", 5, 1, 200)
        cls.DATABASE_MAX_OVERFLOW = cls._safe_int("DATABASE_MAX_OVERFLOW", 10, 0, 200)
        cls.DATABASE_ECHO = bool(cls._safe_bool("DATABASE_ECHO", False))
        cls.DATABASE_POOL_RECYCLE = cls._safe_int("DATABASE_POOL_RECYCLE", 1800, 60)
        cls.DATABASE_POOL_TIMEOUT = cls._safe_int("DATABASE_POOL_TIMEOUT", 30, 1, 600)
        cls.DATABASE_STATEMENT_TIMEOUT_MS = cls._safe_int(
            "DATABASE_STATEMENT_TIMEOUT_MS", 30_000, 100
        )
        cls.TESTING = bool(cls._safe_bool("TESTING", False))

        cls.ADMIN_ADDRESSES = cls._safe_list("ADMIN_ADDRESSES")
        cls.AUDIT_PERSIST = bool(cls._safe_bool("AUDIT_PERSIST", True))

        cls.EVENT_LISTENER_TIMEOUT_SECONDS = cls._safe_int(
            "EVENT_LISTENER_TIMEOUT_SECONDS", 5, 0, 300
        )

    @classmethod
    def validate(cls) -> None:
        """
        Load and sanity-check the settings.

        Raises ConfigurationError in production when the database URL or the
        admin list is missing. Elsewhere problems are only logged.
        """
        logger = logging.getLogger(__name__)
        cls.load()

        problems: List[ConfigurationError] = []
        if not cls.DATABASE_URL:
            problems.append(ConfigurationError("DATABASE_URL", "a database URL is required"))
        if cls.is_production():
            if not cls.ADMIN_ADDRESSES:
                problems.append(
                    ConfigurationError("ADMIN_ADDRESSES", "at least one admin is required")
                )
            if cls.DATABASE_URL.startswith("sqlite"):
                logger.warning("Production is running on SQLite")
            if cls.DEBUG:
                logger.warning("DEBUG is enabled in production")

        if cls.DATABASE_URL.startswith("sqlite") and ":memory:" not in cls.DATABASE_URL:
            cls.DATA_DIR.mkdir(exist_ok=True)

        if problems and cls.is_production():
            raise problems[0]
        for problem in problems:
            logger.warning(str(problem))
        if cls._rejected:
            logger.warning(f"Configuration values replaced by defaults: {sorted(cls._rejected)}")

    # =========================================================================
    # Environment checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.lower() == Environment.PRODUCTION.value

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT.lower() == Environment.TESTING.value

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-secret view of the settings, safe to log."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "database_scheme": cls.DATABASE_URL.split(":", 1)[0],
            "database_pool_size": cls.DATABASE_POOL_SIZE,
            "admin_count": len(cls.ADMIN_ADDRESSES),
            "audit_persist": cls.AUDIT_PERSIST,
            "rejected_keys": sorted(cls._rejected),
        }


Config.validate()
