import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _default_sqlite_uri() -> str:
    instance_path = BASE_DIR / "instance"
    instance_path.mkdir(exist_ok=True)
    return f"sqlite:///{instance_path / 'novel_maker.db'}"


def _float_from_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Config:
    """Base configuration shared across environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", _default_sqlite_uri())
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_TIME_LIMIT = None

    STORE_SNAPSHOT_NAME = os.environ.get("STORE_SNAPSHOT_NAME", "novel-maker-storage")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    GROK_API_KEY = os.environ.get("GROK_API_KEY", "")
    GROK_API_BASE = os.environ.get("GROK_API_BASE", "https://api.x.ai/v1")
    GROK_MODEL_CANDIDATES = os.environ.get("GROK_MODEL_CANDIDATES", "grok-3,grok-3-beta,grok-beta,grok")
    GROK_MAX_TOKENS = int(_float_from_env("GROK_MAX_TOKENS", 8000))
    GROK_TEMPERATURE = _float_from_env("GROK_TEMPERATURE", 0.8)
    GROK_REQUEST_TIMEOUT = _float_from_env("GROK_REQUEST_TIMEOUT", 300.0)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STORE_SNAPSHOT_NAME = "novel-maker-test"
    GROK_API_KEY = ""
