from datetime import datetime

from . import db


class SyncOperation:
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    ALL = {INSERT, UPDATE, DELETE}


class SyncQueueEntry(db.Model):
    """Cola offline-first de cambios locales pendientes de replicar.

    Cada mutación confirmada (producto, cliente, categoría) agrega una fila.
    El motor de sync sólo cambia synced / retry_count / last_error / synced_at,
    nunca el payload.
    """

    __tablename__ = "sync_queue"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    table_name = db.Column(db.String(60), nullable=False)
    operation = db.Column(db.String(10), nullable=False)
    record_id = db.Column(db.Integer, nullable=False)

    # Snapshot JSON de la fila ya confirmada (no un diff)
    data = db.Column(db.Text, nullable=False)

    synced = db.Column(db.Boolean, nullable=False, default=False)
    retry_count = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    synced_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint("operation IN ('INSERT','UPDATE','DELETE')", name="ck_sync_queue_operation"),
        db.Index("ix_sync_queue_pending", "synced", "id"),
        # AUTOINCREMENT: los ids no se reutilizan tras purgar la cola
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "table_name": self.table_name,
            "operation": self.operation,
            "record_id": self.record_id,
            "synced": bool(self.synced),
            "retry_count": self.retry_count,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "synced_at": self.synced_at.isoformat() if self.synced_at else None,
        }

    def __repr__(self):
        return f"<SyncQueueEntry {self.id} {self.operation} {self.table_name}#{self.record_id} synced={self.synced}>"
