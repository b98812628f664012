from datetime import date, datetime
from decimal import Decimal

from . import db


def to_sync_value(value):
    """Valor escalar apto para JSON y para cualquier driver remoto."""
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return value


class SyncableMixin:
    """Entidades que se replican a la base remota.

    Requisitos: PK entera `id` y flag `active` (el borrado remoto es lógico).
    """

    __sync__ = True

    def sync_payload(self) -> dict:
        # Orden de columnas = orden declarado en el modelo
        return {
            col.key: to_sync_value(getattr(self, col.key))
            for col in self.__table__.columns
        }


def syncable_models():
    return [
        mapper.class_
        for mapper in db.Model.registry.mappers
        if getattr(mapper.class_, "__sync__", False)
    ]
