import logging
import os

from alembic.config import Config
from sqlalchemy import Connection, create_engine, event
from sqlalchemy.engine import Engine

from alembic import command
from rentflow.settings import settings

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_connection: Connection | None = None


def is_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # bill_charges rows rely on ON DELETE CASCADE
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Build an engine for ``db_url``.

    SQLite connections are shared between the request threadpool and the
    event loop, and need foreign keys switched on per connection. Server
    databases get pre-ping and recycling so idle connections do not go stale.
    """
    if is_sqlite(db_url):
        engine = create_engine(db_url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(db_url, pool_pre_ping=True, pool_recycle=1800)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine(settings.db_url)
        logger.info("Database engine created (%s)", _engine.url.get_backend_name())
    return _engine


def get_connection() -> Connection:
    """Return a global singleton connection for scripts.

    The web app uses per-request connections via DBConnectionMiddleware instead.
    """
    global _connection
    if _connection is None:
        _connection = get_engine().connect()
        logger.debug("Singleton DB connection created")
    return _connection


def dispose_engine() -> None:
    """Close the script connection and the engine's pool."""
    global _engine, _connection
    if _connection is not None:
        _connection.close()
        _connection = None
    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")


def _get_alembic_config(db_url: str | None = None) -> Config:
    """Alembic config for the project's migrations, bound to ``db_url``."""
    project_root = os.path.dirname(os.path.dirname(__file__))
    ini_path = os.path.join(project_root, "alembic.ini")
    if not os.path.exists(ini_path):
        ini_path = os.path.join(os.getcwd(), "alembic.ini")
    cfg = Config(ini_path)
    cfg.set_main_option("script_location", os.path.join(os.path.dirname(ini_path), "alembic"))
    # env.py migrates whatever URL is set here; % is ini interpolation
    cfg.set_main_option("sqlalchemy.url", (db_url or settings.db_url).replace("%", "%%"))
    return cfg


def initialize_db(db_url: str | None = None) -> None:
    """Bring the billing schema up to the latest revision."""
    cfg = _get_alembic_config(db_url)
    logger.info("Migrating database to head")
    command.upgrade(cfg, "head")
    logger.info("Migrations complete")
