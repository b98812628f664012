import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev_secret_key_change_me")

    # Offline-first: SQLite local
    DB_PATH = os.environ.get("DB_PATH", os.path.join(basedir, "pos.db"))
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cookies de sesión más seguras (ajusta en producción)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    LOG_DIR = os.environ.get("LOG_DIR", os.path.join(basedir, "logs"))

    # Sync remoto (la conexión en sí vive en la tabla settings)
    SYNC_BATCH_LIMIT = int(os.environ.get("SYNC_BATCH_LIMIT", "500"))
    SYNC_CONNECT_TIMEOUT = int(os.environ.get("SYNC_CONNECT_TIMEOUT", "10"))
    # Arranca el timer al crear la app si sync_enabled = true
    SYNC_AUTOSTART = _env_bool("SYNC_AUTOSTART", "true")
