import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify, request
from flask_migrate import Migrate
from sqlalchemy.exc import OperationalError

from config import Config
from models import db, login_manager


migrate = Migrate()


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)

    # -------------------------
    # Extensiones
    # -------------------------
    db.init_app(app)
    migrate.init_app(app, db)

    login_manager.init_app(app)

    # -------------------------
    # Importar modelos (Alembic)
    # -------------------------
    from models.user import User  # noqa: F401
    from models.setting import Setting  # noqa: F401
    from models.category import Category  # noqa: F401
    from models.product import Product  # noqa: F401
    from models.customer import Customer  # noqa: F401

    # Offline-first sync
    from models.sync_queue import SyncQueueEntry  # noqa: F401
    from models.sync_log import SyncLog  # noqa: F401

    # -------------------------
    # Blueprints
    # -------------------------
    from routes.auth import auth_bp
    from routes.products import products_bp
    from routes.customers import customers_bp
    from routes.sync import sync_bp

    blueprints = [
        auth_bp,

        # Catálogo (productores de la cola de sync)
        products_bp,
        customers_bp,

        # Sync
        sync_bp,
    ]

    for bp in blueprints:
        app.register_blueprint(bp)

    # -------------------------
    # Logging + manejo global de errores
    # -------------------------
    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "app.log"),
            maxBytes=2_000_000,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        ))

        # Los módulos de services/ loguean con logging.getLogger(__name__)
        for logger in (app.logger, logging.getLogger("services")):
            if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
                logger.addHandler(file_handler)
            logger.setLevel(logging.INFO)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"ok": False, "error": "Debes iniciar sesión."}), 401

    @app.errorhandler(400)
    def _handle_400(e):
        return jsonify({"ok": False, "error": getattr(e, "description", "Solicitud inválida.")}), 400

    @app.errorhandler(404)
    def _handle_404(e):
        return jsonify({"ok": False, "error": "No encontrado."}), 404

    @app.errorhandler(500)
    def _handle_500(e):
        app.logger.exception("Error 500 no manejado: %s %s", request.method, request.path)
        return jsonify({"ok": False, "error": "Ocurrió un error interno. El problema fue registrado."}), 500

    # -------------------------
    # Sync remoto: motor + timer
    # -------------------------
    from services.scheduler import SyncScheduler
    from services.settings import load_remote_config
    from services.sync_engine import SyncEngine

    sync_engine = SyncEngine(
        db.session,
        batch_limit=app.config.get("SYNC_BATCH_LIMIT", 500),
        connect_timeout=app.config.get("SYNC_CONNECT_TIMEOUT", 10),
    )

    def _scheduled_sync():
        with app.app_context():
            return sync_engine.run_sync()

    scheduler = SyncScheduler(_scheduled_sync)
    app.extensions["sync_engine"] = sync_engine
    app.extensions["sync_scheduler"] = scheduler

    if app.config.get("SYNC_AUTOSTART"):
        with app.app_context():
            try:
                cfg = load_remote_config(db.session)
            except OperationalError:
                # Base sin migrar todavía (flask db upgrade)
                app.logger.warning("No se pudo leer la config de sync; timer no iniciado")
                db.session.rollback()
                cfg = None
            if cfg is not None and cfg.enabled:
                scheduler.start(cfg.interval_minutes)

    return app


if __name__ == "__main__":
    app = create_app()
    # Debug controlado por config / variables de entorno
    app.run(debug=app.config.get("DEBUG", False))
