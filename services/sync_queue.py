import json
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from models.sync_queue import SyncOperation, SyncQueueEntry
from models.syncable import to_sync_value


logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 500


def _json_default(value):
    converted = to_sync_value(value)
    if converted is value:
        raise TypeError(f"Valor no serializable en payload: {type(value).__name__}")
    return converted


def encode_payload(payload: dict) -> str:
    # bool va como 0/1, igual que en sync_payload()
    values = {key: to_sync_value(value) for key, value in payload.items()}
    return json.dumps(values, default=_json_default, ensure_ascii=False)


def decode_payload(data: str) -> dict:
    payload = json.loads(data)
    if not isinstance(payload, dict):
        raise ValueError("payload debe ser un objeto JSON")
    return payload


def enqueue(
    db: Session,
    *,
    table: str,
    operation: str,
    record_id: int,
    payload: dict
) -> Optional[SyncQueueEntry]:
    """
    Registra un cambio confirmado en la cola de sync.

    Se llama dentro de la misma unidad de trabajo que la mutación, con el
    estado de la fila ya aplicado. Es best-effort: usa un SAVEPOINT, así que
    un fallo aquí sólo se loguea y nunca revierte la operación de negocio.
    """
    try:
        if operation not in SyncOperation.ALL:
            raise ValueError(f"operation inválida: {operation!r}")

        data = encode_payload(payload)
        with db.begin_nested():
            entry = SyncQueueEntry(
                table_name=table,
                operation=operation,
                record_id=int(record_id),
                data=data,
                synced=False,
                retry_count=0,
            )
            db.add(entry)
        return entry
    except Exception:
        logger.exception("No se pudo encolar %s %s#%s para sync", operation, table, record_id)
        return None


def pending_batch(db: Session, limit: int = DEFAULT_BATCH_LIMIT) -> list[SyncQueueEntry]:
    return (
        db.query(SyncQueueEntry)
        .filter(SyncQueueEntry.synced.is_(False))
        .order_by(SyncQueueEntry.id.asc())
        .limit(limit)
        .all()
    )


def pending_count(db: Session) -> int:
    return db.query(SyncQueueEntry.id).filter(SyncQueueEntry.synced.is_(False)).count()


def mark_synced(db: Session, ids: Iterable[int]) -> None:
    ids = [int(i) for i in ids]
    if not ids:
        return
    (
        db.query(SyncQueueEntry)
        .filter(SyncQueueEntry.id.in_(ids), SyncQueueEntry.synced.is_(False))
        .update(
            {SyncQueueEntry.synced: True, SyncQueueEntry.synced_at: datetime.utcnow()},
            synchronize_session="fetch",
        )
    )
    db.commit()


def mark_failed(db: Session, entry_id: int, error: str) -> None:
    (
        db.query(SyncQueueEntry)
        .filter(SyncQueueEntry.id == int(entry_id))
        .update(
            {
                SyncQueueEntry.retry_count: SyncQueueEntry.retry_count + 1,
                SyncQueueEntry.last_error: error,
            },
            synchronize_session="fetch",
        )
    )
    db.commit()


def purge_synced(db: Session) -> int:
    """Mantenimiento: borra sólo las entradas ya sincronizadas."""
    deleted = (
        db.query(SyncQueueEntry)
        .filter(SyncQueueEntry.synced.is_(True))
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def enqueue_model(db: Session, obj, operation: str) -> Optional[SyncQueueEntry]:
    """Atajo para entidades SyncableMixin. El llamador ya hizo flush de la mutación."""
    try:
        payload = obj.sync_payload()
    except Exception:
        logger.exception("No se pudo preparar el snapshot de %r para sync", obj)
        return None
    return enqueue(db, table=obj.__tablename__, operation=operation, record_id=obj.id, payload=payload)
