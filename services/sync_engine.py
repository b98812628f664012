import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from models.sync_log import SyncLog, SyncLogStatus
from services.remote import (
    DEFAULT_CONNECT_TIMEOUT,
    RemoteConnection,
    RemoteSyncConfig,
    error_message,
    open_remote,
)
from services.remote_schema import remote_schema_ddl
from services.settings import load_remote_config, touch_last_sync
from services.sql_builder import build_statement
from services.sync_queue import (
    DEFAULT_BATCH_LIMIT,
    decode_payload,
    mark_failed,
    mark_synced,
    pending_batch,
    pending_count,
    purge_synced,
)


logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    success: bool
    synced: int = 0
    failed: int = 0
    message: str = ""
    # success | partial | error | disabled | busy
    status: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


DISABLED = "disabled"
BUSY = "busy"


def pass_status(synced: int, failed: int) -> str:
    if failed == 0:
        return SyncLogStatus.SUCCESS
    if synced > 0:
        return SyncLogStatus.PARTIAL
    return SyncLogStatus.ERROR


class SyncEngine:
    """Vacía la cola local contra la base remota, una pasada a la vez.

    La config se relee al inicio de cada pasada, así los cambios hechos en
    Ajustes aplican en el siguiente tick sin reiniciar.
    """

    def __init__(
        self,
        session,
        *,
        connect: Callable[..., RemoteConnection] = open_remote,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    ):
        self.session = session
        self.batch_limit = batch_limit
        self.connect_timeout = connect_timeout
        self._connect = connect
        self._lock = threading.Lock()

    # -------------------------
    # Pasada de sync
    # -------------------------
    def run_sync(self) -> SyncResult:
        if not self._lock.acquire(blocking=False):
            logger.info("Sync ya en curso; se omite esta solicitud")
            return SyncResult(success=False, message="Sincronización ya en curso", status=BUSY)
        try:
            return self._run_pass()
        finally:
            self._lock.release()

    def _run_pass(self) -> SyncResult:
        db = self.session
        cfg = load_remote_config(db)

        if not cfg.enabled:
            return SyncResult(success=False, message="Sync no habilitado", status=DISABLED)

        missing = cfg.missing_fields()
        if missing:
            return SyncResult(
                success=False,
                message=f"Configuración incompleta: {', '.join(missing)}",
                status=SyncLogStatus.ERROR,
            )

        remote = None
        try:
            try:
                remote = self._connect(cfg, timeout=self.connect_timeout)
            except Exception as e:
                msg = error_message(e)
                logger.warning("Sync: no se pudo conectar a %s@%s: %s", cfg.database, cfg.host, msg)
                self._record_pass(SyncLogStatus.ERROR, 0, 0, msg)
                return SyncResult(success=False, message=msg, status=SyncLogStatus.ERROR)

            progress = {"synced": 0, "failed": 0}
            local_error = None
            try:
                self._drain(remote, cfg, progress)
            except SQLAlchemyError as e:
                # Falla de la base local (no de un item): lo ya marcado queda
                # confirmado y el resto sigue pendiente para la próxima pasada
                db.rollback()
                local_error = error_message(e)
                logger.exception("Sync: error leyendo/actualizando la cola local")

            synced, failed = progress["synced"], progress["failed"]
            status = pass_status(synced, failed)
            message = f"{synced} registros sincronizados"
            if failed:
                message += f", {failed} fallas"
            if local_error:
                message += f"; cola local interrumpida: {local_error}"

            self._record_pass(status, synced, failed, message)
            touch_last_sync(db)

            logger.info("Sync finalizado (%s): %s", status, message)
            return SyncResult(success=True, synced=synced, failed=failed, message=message, status=status)
        finally:
            if remote is not None:
                try:
                    remote.close()
                except Exception:
                    logger.debug("Error cerrando conexión remota", exc_info=True)

    def _drain(self, remote: RemoteConnection, cfg: RemoteSyncConfig, progress: dict) -> None:
        """Replica el lote en orden. `progress` se actualiza item a item."""
        db = self.session

        # Snapshot del lote: cada commit de mark_* expira los objetos ORM
        batch = [
            (e.id, e.table_name, e.operation, e.record_id, e.data)
            for e in pending_batch(db, self.batch_limit)
        ]

        for entry_id, table, operation, record_id, data in batch:
            try:
                payload = decode_payload(data)
                stmt = build_statement(cfg.driver, table, operation, payload, record_id=record_id)
                remote.execute(stmt.sql, stmt.params)
            except Exception as e:
                msg = error_message(e)
                logger.warning("Sync: item %s (%s %s#%s) falló: %s", entry_id, operation, table, record_id, msg)
                mark_failed(db, entry_id, msg)
                progress["failed"] += 1
            else:
                mark_synced(db, [entry_id])
                progress["synced"] += 1

    def _record_pass(self, status: str, synced: int, failed: int, message: str) -> SyncLog:
        log = SyncLog(status=status, items_synced=synced, items_failed=failed, message=message)
        self.session.add(log)
        self.session.commit()
        return log

    # -------------------------
    # Operaciones auxiliares
    # -------------------------
    def test_connection(self, cfg: RemoteSyncConfig) -> dict:
        missing = cfg.missing_fields()
        if missing:
            return {"success": False, "message": f"Configuración incompleta: {', '.join(missing)}"}

        remote = None
        try:
            remote = self._connect(cfg, timeout=self.connect_timeout)
            remote.execute("SELECT 1")
            return {"success": True, "message": "Conexión establecida correctamente"}
        except Exception as e:
            return {"success": False, "message": error_message(e)}
        finally:
            if remote is not None:
                remote.close()

    def init_remote_schema(self, cfg: RemoteSyncConfig) -> dict:
        """Crea (si no existen) las tablas espejo en la base remota."""
        missing = cfg.missing_fields()
        if missing:
            return {"success": False, "message": f"Configuración incompleta: {', '.join(missing)}"}

        remote = None
        try:
            statements = remote_schema_ddl(cfg.driver)
            remote = self._connect(cfg, timeout=self.connect_timeout)
            for ddl in statements:
                remote.execute(ddl)
            logger.info("Schema remoto verificado (%s tablas) en %s", len(statements), cfg.host)
            return {"success": True, "message": f"Schema creado/verificado ({len(statements)} tablas)"}
        except Exception as e:
            logger.warning("No se pudo crear el schema remoto: %s", e)
            return {"success": False, "message": error_message(e)}
        finally:
            if remote is not None:
                remote.close()

    def get_status(self, limit: int = 10) -> dict:
        db = self.session
        cfg = load_remote_config(db)
        recent = (
            db.query(SyncLog)
            .order_by(SyncLog.id.desc())
            .limit(limit)
            .all()
        )
        return {
            "pending": pending_count(db),
            "last_sync_at": cfg.last_sync_at,
            "enabled": cfg.enabled,
            "recent": [log.to_dict() for log in recent],
        }

    def purge_synced(self) -> int:
        deleted = purge_synced(self.session)
        logger.info("Cola de sync: %s entradas sincronizadas eliminadas", deleted)
        return deleted

