"""Traduce (dialecto, tabla, operación, snapshot) a SQL de upsert/update/soft-delete.

Función pura: sin I/O y determinista. Siempre usa placeholders `?`; el
conector los convierte al estilo del driver.
"""
import re
from typing import NamedTuple, Optional

from models.sync_queue import SyncOperation
from services.remote import RemoteDialect


_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class StatementError(ValueError):
    """El item de la cola no se puede traducir a SQL."""


class Statement(NamedTuple):
    sql: str
    params: list


def _ident(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise StatementError(f"Identificador inválido: {name!r}")
    return name


def _record_id(payload: dict, record_id: Optional[int]):
    rid = payload.get("id", record_id)
    if rid is None:
        raise StatementError("El payload no tiene id")
    return rid


def build_statement(
    dialect,
    table: str,
    operation: str,
    payload: dict,
    *,
    record_id: Optional[int] = None
) -> Statement:
    dialect = RemoteDialect.parse(dialect)
    table = _ident(table)
    rid = _record_id(payload, record_id)

    if operation == SyncOperation.DELETE:
        # Nunca DELETE físico: otras filas remotas pueden referenciarla
        return Statement(f"UPDATE {table} SET active = 0 WHERE id = ?", [rid])

    if operation == SyncOperation.INSERT:
        return _build_upsert(dialect, table, payload, rid)

    if operation == SyncOperation.UPDATE:
        return _build_update(table, payload, rid)

    raise StatementError(f"Operación no soportada: {operation!r}")


def _build_upsert(dialect: RemoteDialect, table: str, payload: dict, rid) -> Statement:
    row = {"id": rid}
    row.update((k, v) for k, v in payload.items() if k != "id")
    cols = [_ident(c) for c in row]
    update_cols = [c for c in cols if c != "id"]

    col_list = ", ".join(cols)
    placeholders = ", ".join("?" for _ in cols)
    sql = f"INSERT INTO {table} ({col_list}) VALUES ({placeholders})"

    if dialect is RemoteDialect.MYSQL:
        if update_cols:
            assignments = ", ".join(f"{c} = VALUES({c})" for c in update_cols)
        else:
            assignments = "id = id"
        sql += f" ON DUPLICATE KEY UPDATE {assignments}"
    else:
        if update_cols:
            assignments = ", ".join(f"{c} = EXCLUDED.{c}" for c in update_cols)
            sql += f" ON CONFLICT (id) DO UPDATE SET {assignments}"
        else:
            sql += " ON CONFLICT (id) DO NOTHING"

    return Statement(sql, [row.get(c) for c in cols])


def _build_update(table: str, payload: dict, rid) -> Statement:
    set_cols = [_ident(c) for c in payload if c != "id"]
    if not set_cols:
        raise StatementError(f"UPDATE sin columnas para {table}#{rid}")

    assignments = ", ".join(f"{c} = ?" for c in set_cols)
    params = [payload.get(c) for c in set_cols]
    params.append(rid)
    return Statement(f"UPDATE {table} SET {assignments} WHERE id = ?", params)
