from datetime import datetime

from . import db


class SyncLogStatus:
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"

    ALL = {SUCCESS, PARTIAL, ERROR}


class SyncLog(db.Model):
    """Una fila por pasada de sincronización ejecutada."""

    __tablename__ = "sync_log"

    id = db.Column(db.Integer, primary_key=True)

    status = db.Column(db.String(10), nullable=False, index=True)
    items_synced = db.Column(db.Integer, nullable=False, default=0)
    items_failed = db.Column(db.Integer, nullable=False, default=0)
    message = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    __table_args__ = (
        db.CheckConstraint("status IN ('success','error','partial')", name="ck_sync_log_status"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "items_synced": self.items_synced,
            "items_failed": self.items_failed,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<SyncLog {self.id} {self.status} ok={self.items_synced} fail={self.items_failed}>"
