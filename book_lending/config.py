import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "2024"))

    # Database settings
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///library.db")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Book Lending API")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    debug: bool = _env_bool("DEBUG")

    @property
    def database_file(self) -> str:
        return database_path(self.database_url)


def database_path(url: str) -> str:
    """Resolve a ``sqlite:///path`` URL (or a bare path) to a filesystem path."""
    if not url:
        raise ValueError("DATABASE_URL cannot be empty.")
    if "://" not in url:
        return url
    parsed = urlparse(url)
    if parsed.scheme != "sqlite":
        raise ValueError(f"Unsupported database scheme: {parsed.scheme}")
    # sqlite:///relative.db -> "relative.db", sqlite:////abs/path.db -> "/abs/path.db"
    path = url[len("sqlite:///"):] if url.startswith("sqlite:///") else parsed.path
    if not path:
        raise ValueError("DATABASE_URL does not name a database file.")
    return path


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Set up root logging once for the API server and the CLI."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
