import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.environ.get("DATA_DIR", BASE_DIR / "data"))


def normalize_db_url(db_url: str) -> str:
    """Return a SQLAlchemy URL, falling back to a local SQLite file.

    Hosted Postgres providers still hand out ``postgres://`` URLs which
    SQLAlchemy no longer accepts, so those are rewritten.
    """
    db_url = (db_url or "").strip()
    if not db_url:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{(DATA_DIR / 'production.db').as_posix()}"
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    return db_url


def env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Configuration for the Flask app and database.

    - ``SQLALCHEMY_DATABASE_URI``: taken from ``DATABASE_URL``; defaults to a
      SQLite file under ``DATA_DIR``.
    - ``SECRET_KEY``: used by Flask for session signing.  Set a strong value
      via the environment in production.
    - ``STRICT_STAGE_TRANSITIONS``: when enabled, workflow actions that would
      move a day's record to a stage not reachable from its current stage
      are rejected instead of overwriting the stage.
    - ``CORS_ORIGINS``: comma separated list of allowed origins, ``*`` by
      default.
    """

    SQLALCHEMY_DATABASE_URI = normalize_db_url(os.getenv("DATABASE_URL", ""))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    STRICT_STAGE_TRANSITIONS = env_flag("STRICT_STAGE_TRANSITIONS")
    CORS_ORIGINS = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    STRICT_STAGE_TRANSITIONS = False
