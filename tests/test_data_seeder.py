from sqlmodel import select

from sortinghall.models.hall import HallRow, PalletState, WorkTable
from sortinghall.services.data_seeder import seed_hall
from sortinghall.services.hall_queries import ordered_slots

HALL_CFG = {
    "rows": [
        {"name": "Reihe1", "color": "#ff0000", "capacity": 3},
        {"name": "Reihe2", "color": "#00ff00", "capacity": 2},
    ],
    "tables": [{"name": "Tisch 1"}, {"name": "Tisch 2"}],
}


def test_seed_creates_rows_slots_and_tables(session):
    seed_hall(session, HALL_CFG)

    rows = session.exec(select(HallRow).order_by(HallRow.name)).all()
    assert [(r.name, r.capacity, r.color_hex) for r in rows] == [
        ("Reihe1", 3, "#ff0000"),
        ("Reihe2", 2, "#00ff00"),
    ]
    slots = ordered_slots(session, rows[0].id)
    assert [s.position_index for s in slots] == [0, 1, 2]
    assert all(s.state == PalletState.EMPTY for s in slots)
    assert len(session.exec(select(WorkTable)).all()) == 2


def test_seed_is_idempotent(session):
    seed_hall(session, HALL_CFG)
    seed_hall(session, HALL_CFG)
    assert len(session.exec(select(HallRow)).all()) == 2
    assert len(session.exec(select(WorkTable)).all()) == 2
    row = session.exec(select(HallRow).where(HallRow.name == "Reihe1")).one()
    assert len(ordered_slots(session, row.id)) == 3


def test_seed_syncs_capacity(session):
    seed_hall(session, HALL_CFG)
    row = session.exec(select(HallRow).where(HallRow.name == "Reihe1")).one()
    # Palette im vorderen Slot bleibt beim Verkleinern erhalten
    slot0 = ordered_slots(session, row.id)[0]
    slot0.state = PalletState.OCCUPIED
    session.add(slot0)
    session.commit()

    smaller = {"rows": [{"name": "Reihe1", "color": "#0000ff", "capacity": 1}], "tables": []}
    seed_hall(session, smaller)
    session.refresh(row)
    slots = ordered_slots(session, row.id)
    assert row.capacity == 1
    assert row.color_hex == "#0000ff"
    assert [(s.position_index, s.state) for s in slots] == [(0, PalletState.OCCUPIED)]

    larger = {"rows": [{"name": "Reihe1", "color": "#0000ff", "capacity": 4}], "tables": []}
    seed_hall(session, larger)
    assert [s.position_index for s in ordered_slots(session, row.id)] == [0, 1, 2, 3]


def test_seed_ignores_rows_without_name(session):
    seed_hall(session, {"rows": [{"capacity": 2}], "tables": [{"name": " "}]})
    assert session.exec(select(HallRow)).all() == []
    assert session.exec(select(WorkTable)).all() == []
