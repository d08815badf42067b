import logging
import os
import sys
from typing import Dict, Iterable

from sqlalchemy import event, inspect
from sqlmodel import Session, create_engine

DB_PATH = os.environ.get("SORTINGHALL_DB_PATH", "data/sortinghall.db")
engine = create_engine(
    f"sqlite:///{DB_PATH}",
    echo=False,
    connect_args={"check_same_thread": False},
)
logger = logging.getLogger("app")


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # Slots hängen per ON DELETE CASCADE an ihrer Reihe
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Felder, von denen Dispatch und Callback-Verarbeitung zur Laufzeit abhängen
REQUIRED_SCHEMA: Dict[str, Iterable[str]] = {
    "hall_row": {"id", "name", "capacity", "article"},
    "pallet_slot": {"id", "row_id", "position_index", "state"},
    "work_table": {"id", "name"},
    "row_call": {
        "id",
        "table_id",
        "row_id",
        "requested_at",
        "status",
        "order_id",
        "last_agilox_action",
        "last_agilox_status",
    },
    "setting": {"key", "value"},
}


def verify_schema_or_exit(engine, required_schema: dict | None = None) -> None:
    """
    Prüft, ob die erwarteten Tabellen und Spalten vorhanden sind.
    Bei fehlenden Einträgen wird ein Fehler geloggt und der Prozess beendet.
    """
    if required_schema is None:
        required_schema = REQUIRED_SCHEMA

    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()

    missing = []
    for table, cols in required_schema.items():
        if table not in existing_tables:
            missing.append(f"Missing table: {table}")
            continue
        existing_cols = {c["name"] for c in inspector.get_columns(table)}
        for col in cols:
            if col not in existing_cols:
                missing.append(f"Missing column: {table}.{col}")

    if missing:
        logger.error("[DB] Schema validation failed")
        for item in missing:
            logger.error("[DB] %s", item)
        logger.error("[DB] Database file: %s", DB_PATH)
        logger.error("[DB] Fix: run `alembic upgrade head`. Server will exit.")
        sys.exit(1)


def run_migrations() -> None:
    """Führt Alembic-Migrationen bis head aus."""
    logger.info("Starte Alembic-Migrationen...")
    from alembic import command
    from alembic.config import Config

    base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    alembic_ini = os.path.join(base_dir, "alembic.ini")
    if not os.path.exists(alembic_ini):
        logger.warning("alembic.ini nicht gefunden, Migrationen werden übersprungen.")
        return
    cfg = Config(alembic_ini)
    cfg.set_main_option("sqlalchemy.url", f"sqlite:///{DB_PATH}")
    cfg.set_main_option("script_location", os.path.join(base_dir, "alembic"))

    command.upgrade(cfg, "head")
    logger.info("[DB] Alembic upgrade head erfolgreich abgeschlossen.")


def init_db() -> None:
    """
    Legt die SQLite-Datei an, führt Migrationen aus und prüft das Schema.
    Tabellen werden ausschließlich über Alembic verwaltet.
    """
    logger.info("Initialisiere Datenbank...")
    db_dir = os.path.dirname(DB_PATH)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)

    try:
        run_migrations()
    except Exception as exc:
        logger.error("Fehler bei Migrationen: %s", exc, exc_info=True)
        logger.error("Server wird beendet, da Migrationen fehlgeschlagen sind.")
        sys.exit(1)

    verify_schema_or_exit(engine)
    logger.info("[STARTUP] Datenbank bereit | Migrationen OK | Schema OK")


def get_session():
    """
    Dependency für FastAPI-Routen.
    """
    with Session(engine) as session:
        yield session
