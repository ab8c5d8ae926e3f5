"""Application configuration helpers."""

import logging
import os

from dotenv import load_dotenv

from .grading import TERM_RANK, TermKey

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DOTENV_PATH = os.path.join(_BASE_DIR, ".env")

if os.path.exists(_DOTENV_PATH):
    load_dotenv(_DOTENV_PATH)

DEFAULT_CURRENT_YEAR = 2025
DEFAULT_CURRENT_TERM = "Fall"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


_MONGO_URI_CACHE = None
_DB_NAME_CACHE = None
_CURRENT_TERM_CACHE = None


def get_mongo_uri():
    """Return the MongoDB connection string from the environment."""

    global _MONGO_URI_CACHE

    if _MONGO_URI_CACHE:
        return _MONGO_URI_CACHE

    uri = os.getenv("MONGODB_URI")
    if not uri:
        raise ConfigError("MONGODB_URI is not set. Define it in backend/.env.")

    _MONGO_URI_CACHE = uri
    return uri


def get_db_name():
    """Return the database name derived from the MongoDB URI or env var."""

    global _DB_NAME_CACHE

    if _DB_NAME_CACHE:
        return _DB_NAME_CACHE

    db_name = os.getenv("MONGODB_DB")
    if db_name:
        _DB_NAME_CACHE = db_name
        return db_name

    main = get_mongo_uri().split("?", 1)[0].rstrip("/")
    after_scheme = main.split("://", 1)[1] if "://" in main else main
    candidate = after_scheme.split("/", 1)[1] if "/" in after_scheme else ""
    if not candidate:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    _DB_NAME_CACHE = candidate
    return candidate


def get_current_term() -> TermKey:
    """Return the academic term the portal treats as in progress."""

    global _CURRENT_TERM_CACHE

    if _CURRENT_TERM_CACHE:
        return _CURRENT_TERM_CACHE

    year_raw = os.getenv("PORTAL_CURRENT_YEAR", str(DEFAULT_CURRENT_YEAR)).strip()
    term_raw = os.getenv("PORTAL_CURRENT_TERM", DEFAULT_CURRENT_TERM).strip()

    try:
        year = int(year_raw)
    except ValueError:
        raise ConfigError("PORTAL_CURRENT_YEAR must be an integer.") from None

    term = term_raw.capitalize()
    if term not in TERM_RANK:
        raise ConfigError(
            "PORTAL_CURRENT_TERM must be one of: " + ", ".join(TERM_RANK) + "."
        )

    _CURRENT_TERM_CACHE = TermKey(year, term)
    return _CURRENT_TERM_CACHE


def reset_cache():
    """Forget cached values so the environment is read again."""

    global _MONGO_URI_CACHE, _DB_NAME_CACHE, _CURRENT_TERM_CACHE
    _MONGO_URI_CACHE = None
    _DB_NAME_CACHE = None
    _CURRENT_TERM_CACHE = None


def configure_logging():
    """Attach a console handler to the ``portal`` logger once."""

    logger = logging.getLogger("portal")
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger


__all__ = [
    "ConfigError",
    "configure_logging",
    "get_current_term",
    "get_db_name",
    "get_mongo_uri",
    "reset_cache",
]
