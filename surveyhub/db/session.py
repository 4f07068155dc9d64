# db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from surveyhub.app.core.config import settings
from surveyhub.db.store import EntityStore


def make_engine(database_url: str = settings.DATABASE_URL, busy_timeout: float = settings.DB_BUSY_TIMEOUT) -> Engine:
    if not database_url.startswith("sqlite"):
        # lock_timeout makes blocked writers fail fast instead of waiting forever
        connect_args = {"options": f"-c lock_timeout={int(busy_timeout * 1000)}"}
        return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": busy_timeout},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # let SQLAlchemy, not the driver, decide when a transaction begins
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout * 1000)}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


engine = make_engine()
LocalSession = sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)


def get_store() -> EntityStore:
    return EntityStore(LocalSession)
