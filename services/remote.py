"""Conector a la base remota (MySQL / PostgreSQL).

Los llamadores siempre escriben placeholders posicionales `?`; aquí se
traducen al estilo nativo del driver antes de ejecutar.
"""
import enum
import logging
import re
import ssl
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import create_engine
from sqlalchemy.dialects import mysql, postgresql
from sqlalchemy.engine import URL, Engine
from sqlalchemy.pool import NullPool


logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10

_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|\?")


class RemoteConnectionError(Exception):
    """No se pudo abrir (o usar) la conexión remota."""


class RemoteDialect(str, enum.Enum):
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"

    @classmethod
    def parse(cls, value) -> "RemoteDialect":
        if isinstance(value, cls):
            return value
        raw = (value or "").strip().lower()
        if raw in ("postgres", "pg"):
            raw = cls.POSTGRESQL.value
        if raw in ("mariadb",):
            raw = cls.MYSQL.value
        try:
            return cls(raw)
        except ValueError:
            raise ValueError(f"driver remoto inválido: {value!r}") from None


@dataclass
class RemoteSyncConfig:
    driver: RemoteDialect = RemoteDialect.MYSQL
    host: str = ""
    port: Optional[int] = None
    database: str = ""
    user: str = ""
    password: str = ""
    ssl: bool = False
    enabled: bool = False
    interval_minutes: int = 5
    last_sync_at: Optional[str] = None

    REQUIRED = ("host", "database", "user")

    @property
    def effective_port(self) -> int:
        return self.port or dialect_for(self.driver).default_port

    def missing_fields(self) -> list[str]:
        return [name for name in self.REQUIRED if not (getattr(self, name) or "").strip()]

    @classmethod
    def from_dict(cls, data: dict) -> "RemoteSyncConfig":
        """Config ad-hoc (probar conexión / crear schema) desde un JSON del cliente."""
        return cls(
            driver=RemoteDialect.parse(data.get("driver") or RemoteDialect.MYSQL.value),
            host=str(data.get("host") or "").strip(),
            port=to_port(data.get("port")),
            database=str(data.get("database") or "").strip(),
            user=str(data.get("user") or "").strip(),
            password=str(data.get("password") or ""),
            ssl=to_bool(data.get("ssl")),
        )


def to_port(val) -> Optional[int]:
    try:
        port = int(str(val).strip())
    except (TypeError, ValueError):
        return None
    return port if port > 0 else None


def to_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val or "").strip().lower() in ("1", "true", "yes", "on")


# -------------------------
# Dialectos
# -------------------------
class BaseDialect:
    name: RemoteDialect
    drivername: str
    default_port: int

    def url(self, cfg: RemoteSyncConfig) -> URL:
        return URL.create(
            self.drivername,
            username=cfg.user,
            password=cfg.password or None,
            host=cfg.host,
            port=cfg.effective_port,
            database=cfg.database,
        )

    def connect_args(self, cfg: RemoteSyncConfig, timeout: int) -> dict:
        raise NotImplementedError

    def sqlalchemy_dialect(self):
        raise NotImplementedError


def _unverified_ssl_context() -> ssl.SSLContext:
    # Cifrado sin verificar el certificado del servidor
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


class MySQLDialect(BaseDialect):
    name = RemoteDialect.MYSQL
    drivername = "mysql+pymysql"
    default_port = 3306

    def connect_args(self, cfg, timeout):
        args = {"connect_timeout": timeout, "charset": "utf8mb4"}
        if cfg.ssl:
            args["ssl"] = _unverified_ssl_context()
        return args

    def sqlalchemy_dialect(self):
        return mysql.dialect()


class PostgreSQLDialect(BaseDialect):
    name = RemoteDialect.POSTGRESQL
    drivername = "postgresql+psycopg2"
    default_port = 5432

    def connect_args(self, cfg, timeout):
        # sslmode=require cifra sin validar la CA
        return {
            "connect_timeout": timeout,
            "sslmode": "require" if cfg.ssl else "disable",
        }

    def sqlalchemy_dialect(self):
        return postgresql.dialect()


DIALECTS = {
    RemoteDialect.MYSQL: MySQLDialect(),
    RemoteDialect.POSTGRESQL: PostgreSQLDialect(),
}


def dialect_for(driver) -> BaseDialect:
    return DIALECTS[RemoteDialect.parse(driver)]


# -------------------------
# Placeholders
# -------------------------
def translate_placeholders(sql: str, params: Sequence = (), paramstyle: str = "qmark"):
    """
    Convierte `?` posicionales al paramstyle DB-API del driver.
    Devuelve (sql, params) listos para `cursor.execute`.
    Los `?` dentro de literales '...' se respetan.
    """
    params = list(params or [])
    if paramstyle == "qmark":
        return sql, tuple(params)

    counter = 0

    def _marker(index: int) -> str:
        if paramstyle == "format":
            return "%s"
        if paramstyle == "numeric":
            return f":{index}"
        if paramstyle == "numeric_dollar":
            return f"${index}"
        if paramstyle == "named":
            return f":p{index}"
        if paramstyle == "pyformat":
            return f"%(p{index})s"
        raise ValueError(f"paramstyle no soportado: {paramstyle}")

    def _replace(match):
        nonlocal counter
        token = match.group(0)
        if token != "?":
            return token
        counter += 1
        return _marker(counter)

    if paramstyle in ("format", "pyformat") and params:
        sql = sql.replace("%", "%%")

    native = _PLACEHOLDER_RE.sub(_replace, sql)

    if counter != len(params):
        raise ValueError(f"placeholders ({counter}) y parámetros ({len(params)}) no coinciden")

    if paramstyle in ("named", "pyformat"):
        return native, {f"p{i}": v for i, v in enumerate(params, start=1)}
    return native, tuple(params)


# -------------------------
# Conexión
# -------------------------
class RemoteConnection:
    """Handle con `execute(sql, params)` y `close()`.

    Cada sentencia se confirma sola (AUTOCOMMIT): un item fallido no
    arrastra a los demás.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._conn = None

    @property
    def paramstyle(self) -> str:
        return self._engine.dialect.paramstyle

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    def connect(self) -> "RemoteConnection":
        conn = self._engine.connect()
        conn.execution_options(isolation_level="AUTOCOMMIT")
        self._conn = conn
        return self

    def execute(self, sql: str, params: Sequence = ()) -> list[dict]:
        if self._conn is None:
            raise RemoteConnectionError("Conexión remota no establecida")

        native_sql, native_params = translate_placeholders(sql, params, self.paramstyle)
        result = self._conn.exec_driver_sql(native_sql, native_params or None)
        if not result.returns_rows:
            return []
        return [dict(row._mapping) for row in result]

    def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            try:
                conn.close()
            except Exception:
                logger.debug("Error cerrando conexión remota", exc_info=True)
        try:
            self._engine.dispose()
        except Exception:
            logger.debug("Error liberando engine remoto", exc_info=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def build_engine(cfg: RemoteSyncConfig, *, timeout: int = DEFAULT_CONNECT_TIMEOUT) -> Engine:
    dialect = dialect_for(cfg.driver)
    return create_engine(
        dialect.url(cfg),
        poolclass=NullPool,
        connect_args=dialect.connect_args(cfg, timeout),
    )


def open_remote(cfg: RemoteSyncConfig, *, timeout: int = DEFAULT_CONNECT_TIMEOUT) -> RemoteConnection:
    """Abre la conexión remota o levanta RemoteConnectionError (timeout acotado)."""
    try:
        engine = build_engine(cfg, timeout=timeout)
    except Exception as e:
        raise RemoteConnectionError(str(e)) from e

    remote = RemoteConnection(engine)
    try:
        return remote.connect()
    except Exception as e:
        remote.close()
        raise RemoteConnectionError(error_message(e)) from e


def error_message(exc: Exception) -> str:
    # SQLAlchemy envuelve el error del driver, que es más legible
    orig = getattr(exc, "orig", None)
    return str(orig or exc).strip() or exc.__class__.__name__
