from typing import List, Optional, Tuple

from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from sortinghall.models.hall import HallRow, PalletSlot, PalletState, WorkTable
from sortinghall.services.fleet_gateway import FleetGatewayError


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str = "sqlite://"):
    """In-Memory-Engine (eine geteilte Verbindung) oder Datei-Engine für Thread-Tests."""
    if url == "sqlite://":
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
    event.listen(engine, "connect", _enable_foreign_keys)
    SQLModel.metadata.create_all(engine)
    return engine


class FakeGateway:
    """Zeichnet Aufrufe auf; vergibt fortlaufende OrderIds ab 1000."""

    def __init__(self, first_order_id: int = 1000):
        self.next_order_id = first_order_id
        self.moves: List[Tuple[str, str]] = []
        self.cancelled: List[int] = []
        self.fail_begin = False
        self.fail_cancel = False
        self.return_none = False

    def begin_move(self, row_name: str, table_name: str) -> Optional[int]:
        if self.fail_begin:
            raise FleetGatewayError("Agilox nicht erreichbar (Test)")
        self.moves.append((row_name, table_name))
        if self.return_none:
            return None
        order_id = self.next_order_id
        self.next_order_id += 1
        return order_id

    def cancel_order(self, order_id: int) -> None:
        if self.fail_cancel:
            raise FleetGatewayError("Storno fehlgeschlagen (Test)")
        self.cancelled.append(order_id)


def create_row(session: Session, name: str, capacity: int = 4, article: str = "", occupied: int = 0) -> HallRow:
    """Reihe mit `capacity` Slots; die obersten `occupied` Slots sind belegt."""
    row = HallRow(name=name, color_hex="#123456", capacity=capacity, article=article)
    session.add(row)
    session.commit()
    session.refresh(row)
    for index in range(capacity):
        state = PalletState.OCCUPIED if index >= capacity - occupied else PalletState.EMPTY
        session.add(PalletSlot(row_id=row.id, position_index=index, state=state))
    session.commit()
    return row


def create_table(session: Session, name: str) -> WorkTable:
    table = WorkTable(name=name)
    session.add(table)
    session.commit()
    session.refresh(table)
    return table
