import os
import sys
from pathlib import Path

import pytest
from sqlmodel import Session

test_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(test_root))

# Nie die echte Hallen-DB anfassen, falls doch jemand database.engine benutzt
os.environ["SORTINGHALL_DB_PATH"] = os.path.join(test_root, "data", "test_sortinghall.db")

import sortinghall.models.hall  # noqa: E402,F401  SQLModel-Metadaten registrieren
import sortinghall.models.row_call  # noqa: E402,F401
import sortinghall.models.settings  # noqa: E402,F401
from sortinghall.services.dispatch_service import DispatchService  # noqa: E402
from sortinghall.services.hall_locks import KeyedLocks  # noqa: E402

from tests.helpers import FakeGateway, create_row, create_table, make_engine  # noqa: E402


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as sess:
        yield sess


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifications():
    """Liste, in die jede hall_updated-Benachrichtigung einen Eintrag schreibt."""
    return []


@pytest.fixture
def service(session, gateway, notifications):
    return DispatchService(
        session,
        gateway,
        notify=lambda: notifications.append("hall_updated"),
        row_locks=KeyedLocks("test-row"),
        table_locks=KeyedLocks("test-table"),
    )


@pytest.fixture
def hall(session):
    """Drei Reihen (Reihe1 leer, Reihe2 mit 2 Paletten, Reihe3 mit 1 Palette) und zwei Tische."""
    rows = {
        "Reihe1": create_row(session, "Reihe1", article="Holz"),
        "Reihe2": create_row(session, "Reihe2", article="Holz", occupied=2),
        "Reihe3": create_row(session, "Reihe3", article="Stahl", occupied=1),
    }
    tables = {
        "Tisch 1": create_table(session, "Tisch 1"),
        "Tisch 2": create_table(session, "Tisch 2"),
    }
    return rows, tables
