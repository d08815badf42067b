"""
Auswahl der Reihe für einen Artikelruf.

Kandidaten sind alle Reihen mit dem angefragten Artikel, aufsteigend nach
Name sortiert ("von links nach rechts"). Die Strategie setzt der Lagerist:

- NEAREST_LEFT: erster Kandidat
- NEAREST_RIGHT: letzter Kandidat
- MOST_FREE_PALLETS: meiste verfügbare Paletten, bei Gleichstand der linke
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlmodel import Session

from sortinghall.models.hall import HallRow
from sortinghall.models.settings import RowSelectionStrategy
from sortinghall.services.hall_queries import available_count, rows_by_name


@dataclass(frozen=True)
class RowCandidate:
    row: HallRow
    available: int


def choose_row(
    candidates: Sequence[RowCandidate], strategy: RowSelectionStrategy
) -> Optional[RowCandidate]:
    """Wählt aus bereits nach Name sortierten Kandidaten; keine Seiteneffekte."""
    if not candidates:
        return None
    if strategy == RowSelectionStrategy.NEAREST_LEFT:
        return candidates[0]
    if strategy == RowSelectionStrategy.NEAREST_RIGHT:
        return candidates[-1]

    best = candidates[0]
    for candidate in candidates[1:]:
        # strikt größer: bei Gleichstand bleibt die linke Reihe
        if candidate.available > best.available:
            best = candidate
    return best


def load_candidates(session: Session, article: str) -> list[RowCandidate]:
    return [
        RowCandidate(row=row, available=available_count(session, row.id))
        for row in rows_by_name(session, article=article)
    ]


def select_row_for_article(
    session: Session, article: str, strategy: RowSelectionStrategy
) -> Optional[HallRow]:
    if not article:
        return None
    chosen = choose_row(load_candidates(session, article), strategy)
    return chosen.row if chosen else None
