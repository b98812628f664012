from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models.setting import Setting
from services.remote import RemoteDialect, RemoteSyncConfig, to_bool, to_port


DEFAULT_SETTINGS = {
    "store_name": "Mi Tienda",
    "currency": "BRL",
    # Sync remoto
    "sync_enabled": "false",
    "sync_driver": "mysql",
    "sync_host": "",
    "sync_port": "",
    "sync_database": "",
    "sync_user": "",
    "sync_password": "",
    "sync_ssl": "false",
    "sync_interval_minutes": "5",
    "sync_last_at": "",
}

SYNC_KEYS = {
    "enabled": "sync_enabled",
    "driver": "sync_driver",
    "host": "sync_host",
    "port": "sync_port",
    "database": "sync_database",
    "user": "sync_user",
    "password": "sync_password",
    "ssl": "sync_ssl",
    "interval_minutes": "sync_interval_minutes",
}


def ensure_default_settings(db: Session) -> int:
    """Inserta las claves faltantes sin pisar valores existentes."""
    existing = {k for (k,) in db.query(Setting.key).all()}
    added = 0
    for key, value in DEFAULT_SETTINGS.items():
        if key not in existing:
            db.add(Setting(key=key, value=value))
            added += 1
    if added:
        db.commit()
    return added


def get_setting(db: Session, key: str, default: Optional[str] = None) -> Optional[str]:
    row = db.get(Setting, key)
    if row is None or row.value is None:
        return default
    return row.value


def set_setting(db: Session, key: str, value) -> None:
    row = db.get(Setting, key)
    if row is None:
        row = Setting(key=key)
        db.add(row)
    row.value = "" if value is None else str(value)


def _to_interval(val, default: int = 5) -> int:
    try:
        minutes = int(str(val).strip())
    except (TypeError, ValueError):
        return default
    return minutes if minutes > 0 else default


def load_remote_config(db: Session) -> RemoteSyncConfig:
    """Lee la config remota desde settings (sin cache: cada pasada la relee)."""
    rows = db.query(Setting).filter(Setting.key.like("sync\\_%", escape="\\")).all()
    cfg = {r.key: (r.value or "") for r in rows}

    try:
        driver = RemoteDialect.parse(cfg.get("sync_driver") or RemoteDialect.MYSQL.value)
    except ValueError:
        driver = RemoteDialect.MYSQL

    return RemoteSyncConfig(
        driver=driver,
        host=cfg.get("sync_host", "").strip(),
        port=to_port(cfg.get("sync_port")),
        database=cfg.get("sync_database", "").strip(),
        user=cfg.get("sync_user", "").strip(),
        password=cfg.get("sync_password", ""),
        ssl=to_bool(cfg.get("sync_ssl")),
        enabled=cfg.get("sync_enabled") == "true",
        interval_minutes=_to_interval(cfg.get("sync_interval_minutes")),
        last_sync_at=cfg.get("sync_last_at") or None,
    )


def save_remote_config(db: Session, data: dict) -> RemoteSyncConfig:
    """Guarda sólo las claves presentes en `data`. Password vacío = no cambia."""
    for field, key in SYNC_KEYS.items():
        if field not in data:
            continue
        value = data[field]
        if field in ("enabled", "ssl"):
            value = "true" if to_bool(value) else "false"
        elif field == "driver":
            value = RemoteDialect.parse(value).value
        elif field == "port":
            port = to_port(value)
            value = str(port) if port else ""
        elif field == "interval_minutes":
            value = str(_to_interval(value))
        elif field == "password" and not value:
            continue
        set_setting(db, key, value)
    db.commit()
    return load_remote_config(db)


def touch_last_sync(db: Session, when: Optional[datetime] = None) -> str:
    stamp = (when or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    set_setting(db, "sync_last_at", stamp)
    db.commit()
    return stamp
