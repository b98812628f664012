from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from models import db
from models.user import UserRole
from routes.guards import require_roles
from services.remote import RemoteSyncConfig
from services.settings import load_remote_config, save_remote_config


sync_bp = Blueprint("sync", __name__, url_prefix="/sync")


class _BadConfig(Exception):
    pass


def _engine():
    return current_app.extensions["sync_engine"]


def _scheduler():
    return current_app.extensions["sync_scheduler"]


def _config_json(cfg: RemoteSyncConfig) -> dict:
    return {
        "enabled": cfg.enabled,
        "driver": cfg.driver.value,
        "host": cfg.host,
        "port": cfg.port,
        "database": cfg.database,
        "user": cfg.user,
        # Nunca devolvemos el password
        "has_password": bool(cfg.password),
        "ssl": cfg.ssl,
        "interval_minutes": cfg.interval_minutes,
        "last_sync_at": cfg.last_sync_at,
    }


def _request_config() -> RemoteSyncConfig:
    """Config enviada por el formulario; si falta el password se usa el guardado."""
    data = request.get_json(silent=True) or {}
    try:
        cfg = RemoteSyncConfig.from_dict(data)
    except ValueError as e:
        raise _BadConfig(str(e)) from e
    if not cfg.password:
        cfg.password = load_remote_config(db.session).password
    return cfg


@sync_bp.errorhandler(_BadConfig)
def _handle_bad_config(e):
    return jsonify({"success": False, "message": str(e)}), 400


@sync_bp.post("/run")
@login_required
def run():
    """Pasada manual (botón "Sincronizar ahora")."""
    result = _engine().run_sync()
    return jsonify(result.to_dict())


@sync_bp.post("/test")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def test_connection():
    return jsonify(_engine().test_connection(_request_config()))


@sync_bp.post("/init-schema")
@login_required
@require_roles(UserRole.ADMIN)
def init_schema():
    return jsonify(_engine().init_remote_schema(_request_config()))


@sync_bp.get("/status")
@login_required
def status():
    limit = request.args.get("limit", default=10, type=int)
    data = _engine().get_status(limit=max(1, min(limit, 100)))
    data["auto_sync"] = {
        "running": _scheduler().is_running,
        "interval_minutes": _scheduler().interval_minutes,
    }
    return jsonify(data)


@sync_bp.post("/clear-queue")
@login_required
@require_roles(UserRole.ADMIN)
def clear_queue():
    deleted = _engine().purge_synced()
    return jsonify({"ok": True, "deleted": deleted})


@sync_bp.post("/auto/start")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def auto_start():
    data = request.get_json(silent=True) or {}
    interval = data.get("interval_minutes")
    if interval is None:
        interval = load_remote_config(db.session).interval_minutes
    try:
        _scheduler().start(float(interval))
    except (TypeError, ValueError):
        return jsonify({"ok": False, "error": "Intervalo inválido."}), 400
    return jsonify({"ok": True, "interval_minutes": _scheduler().interval_minutes})


@sync_bp.post("/auto/stop")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def auto_stop():
    _scheduler().stop()
    return jsonify({"ok": True})


@sync_bp.get("/config")
@login_required
@require_roles(UserRole.ADMIN, UserRole.MANAGER)
def get_config():
    return jsonify(_config_json(load_remote_config(db.session)))


@sync_bp.post("/config")
@login_required
@require_roles(UserRole.ADMIN)
def save_config():
    data = request.get_json(silent=True) or {}
    try:
        cfg = save_remote_config(db.session, data)
    except ValueError as e:
        db.session.rollback()
        return jsonify({"ok": False, "error": str(e)}), 400

    # El timer sigue la config guardada
    if cfg.enabled:
        _scheduler().start(cfg.interval_minutes)
    else:
        _scheduler().stop()

    return jsonify({"ok": True, "config": _config_json(cfg)})
