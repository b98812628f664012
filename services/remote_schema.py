"""Schema espejo para la base remota.

Se deriva de los modelos sincronizables locales, así la tabla remota siempre
tiene las mismas columnas que el payload que se replica.
"""
import sqlalchemy as sa
from sqlalchemy.schema import CreateTable

from models import db
from models.category import Category  # noqa: F401
from models.customer import Customer  # noqa: F401
from models.product import Product  # noqa: F401
from models.syncable import syncable_models
from services.remote import dialect_for


def _remote_type(column: sa.Column):
    if column.primary_key:
        return sa.BigInteger()
    if isinstance(column.type, sa.Boolean):
        return sa.Integer()
    if isinstance(column.type, sa.Integer):
        return sa.Integer()
    if isinstance(column.type, sa.Numeric):
        return sa.Double()
    # Texto, fechas y todo lo demás viaja como TEXT
    return sa.Text()


def build_remote_metadata() -> sa.MetaData:
    sync_tables = {m.__tablename__ for m in syncable_models()}
    remote = sa.MetaData()

    for table in db.metadata.sorted_tables:
        if table.name not in sync_tables:
            continue
        columns = []
        for col in table.columns:
            if col.primary_key:
                columns.append(sa.Column(col.name, _remote_type(col), primary_key=True, autoincrement=True))
            elif col.name == "active":
                columns.append(sa.Column(col.name, sa.Integer(), server_default=sa.text("1")))
            else:
                columns.append(sa.Column(col.name, _remote_type(col), nullable=True))
        sa.Table(table.name, remote, *columns)

    return remote


def remote_schema_ddl(driver) -> list[str]:
    """CREATE TABLE IF NOT EXISTS por tabla, compilado para el dialecto remoto."""
    sa_dialect = dialect_for(driver).sqlalchemy_dialect()
    metadata = build_remote_metadata()
    return [
        str(CreateTable(table, if_not_exists=True).compile(dialect=sa_dialect)).strip()
        for table in metadata.sorted_tables
    ]
